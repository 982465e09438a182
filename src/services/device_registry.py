"""
MAC-keyed registry that owns one sync controller per mesh node
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from discovery.models import MeshDevice
from .device_sync import DeviceSyncController

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Guarantees that no two controllers ever own the same MAC"""

    def __init__(self, controller_factory: Callable[[MeshDevice], DeviceSyncController]):
        self._factory = controller_factory
        self._controllers: Dict[str, DeviceSyncController] = {}

    def register(self, device: MeshDevice) -> Tuple[DeviceSyncController, bool]:
        """
        Start a controller for a new MAC, or refresh the host of the existing one.
        Returns (controller, created).
        """
        existing = self._controllers.get(device.mac)
        if existing is not None:
            if existing.device.host != device.host:
                logger.info(f"{device.mac} moved from {existing.device.host} to {device.host}")
                existing.device.host = device.host
            return existing, False

        controller = self._factory(device)
        self._controllers[device.mac] = controller
        controller.start()
        logger.info(f"Registered mesh node {device.mac} (node {device.id}) at {device.host}")
        return controller, True

    def get(self, mac: str) -> Optional[DeviceSyncController]:
        return self._controllers.get(mac)

    def controllers(self) -> List[DeviceSyncController]:
        return list(self._controllers.values())

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, mac: str) -> bool:
        return mac in self._controllers

    async def stop_all(self) -> None:
        if self._controllers:
            await asyncio.gather(*(c.stop() for c in self._controllers.values()), return_exceptions=True)
