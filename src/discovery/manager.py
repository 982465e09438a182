"""
Discovery manager: mDNS candidates -> validation -> confirmed mesh nodes
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from protocol.client import MeshProtocolClient
from .models import MeshDevice, DiscoveryResult
from .network_discovery import DeviceDiscoverer
from .validator import DeviceValidator

logger = logging.getLogger(__name__)

class MeshDiscovery:
    """Main discovery service for mesh heating panels"""

    def __init__(self, config: Dict, client: Optional[MeshProtocolClient] = None):
        self.config = config
        self.client = client or MeshProtocolClient(config.get('request_timeout', 10))
        self.discoverer = DeviceDiscoverer(config)
        self.validator = DeviceValidator(self.client)
        self.known_devices: Dict[str, MeshDevice] = {}  # mac -> MeshDevice
        self.max_concurrent_probes = config.get('max_concurrent_probes', 5)
        self._run_lock = asyncio.Lock()

    async def discover_devices(self) -> DiscoveryResult:
        """
        One full discovery run. Each announced address is validated exactly once;
        overlapping runs are serialized.
        """
        async with self._run_lock:
            logger.info("[SEARCH] Starting mesh discovery...")
            start_time = time.time()

            addresses = [address async for address in self.discoverer.discover()]

            semaphore = asyncio.Semaphore(self.max_concurrent_probes)

            async def validate_one(address: str) -> Optional[MeshDevice]:
                async with semaphore:
                    return await self.validator.validate(address)

            results = await asyncio.gather(*(validate_one(a) for a in addresses))
            devices = self._dedupe_by_mac([d for d in results if d is not None])

            for device in devices:
                self.known_devices[device.mac] = device

            duration = time.time() - start_time
            logger.info(
                f"[PASS] Discovery complete: {len(devices)} mesh node(s) confirmed "
                f"out of {len(addresses)} candidate(s) in {duration:.1f}s"
            )
            return DiscoveryResult(devices, duration, len(addresses), len(devices))

    def _dedupe_by_mac(self, devices: List[MeshDevice]) -> List[MeshDevice]:
        """A node reachable on several addresses is kept once, at its first address"""
        by_mac: Dict[str, MeshDevice] = {}
        for device in devices:
            if device.mac in by_mac:
                logger.debug(f"{device.mac} also answered at {device.host}, keeping {by_mac[device.mac].host}")
                continue
            by_mac[device.mac] = device
        return list(by_mac.values())
