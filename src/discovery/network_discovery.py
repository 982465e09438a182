"""
mDNS discovery of mesh-HTTP announcers
"""

import asyncio
import logging
from typing import AsyncIterator, List

from zeroconf import Error as ZeroconfError, IPVersion, ServiceListener, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from protocol.errors import DiscoveryError
from .models import MeshAnnouncement

logger = logging.getLogger(__name__)

# PTR meta-query answered by every DNS-SD responder with the service types it offers
DNS_SD_META_QUERY = "_services._dns-sd._udp.local."
MESH_SERVICE_FQDN = "_mesh-http._tcp.local"


def _normalize(name: str) -> str:
    return name.rstrip('.')


class _ServiceCollector(ServiceListener):
    """Collects service names announced during a browse window"""

    def __init__(self):
        self.names: List[str] = []

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        if name not in self.names:
            logger.debug(f"mDNS announcement under {type_}: {name}")
            self.names.append(name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.add_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass


class DeviceDiscoverer:
    """Runs one mDNS query per call and yields addresses announcing the mesh service"""

    def __init__(self, config: dict):
        self.config = config
        self.service_fqdn = _normalize(config.get('service_fqdn', MESH_SERVICE_FQDN))
        self.discovery_timeout = config.get('discovery_timeout', 5)
        self.resolve_timeout_ms = int(config.get('request_timeout', 10) * 1000)

    def matches_service(self, fqdn: str) -> bool:
        return _normalize(fqdn) == self.service_fqdn

    async def discover(self) -> AsyncIterator[str]:
        """
        Yield each candidate address once. Failures of the mDNS layer are
        logged and end the run without raising.
        """
        seen = set()
        try:
            async for announcement in self._query_announcements():
                if not self.matches_service(announcement.fqdn):
                    logger.debug(f"Ignoring unrelated service {announcement.fqdn}")
                    continue
                if not announcement.address or announcement.address in seen:
                    continue
                seen.add(announcement.address)
                yield announcement.address
        except DiscoveryError as e:
            logger.error(f"mDNS discovery failed: {e}")

        logger.info(f"mDNS discovery finished: {len(seen)} candidate address(es)")

    async def _query_announcements(self) -> AsyncIterator[MeshAnnouncement]:
        """Announced service types, resolved to addresses when they pass the FQDN filter"""
        try:
            aiozc = AsyncZeroconf(ip_version=IPVersion.V4Only)
        except (OSError, ZeroconfError) as e:
            raise DiscoveryError(f"Cannot open mDNS socket: {e}") from e

        try:
            service_types = await self._browse(aiozc, DNS_SD_META_QUERY)
            for fqdn in service_types:
                if not self.matches_service(fqdn):
                    yield MeshAnnouncement(fqdn=_normalize(fqdn))
                    continue
                for address in await self._resolve_addresses(aiozc, fqdn):
                    yield MeshAnnouncement(fqdn=_normalize(fqdn), address=address)
        except (OSError, ZeroconfError) as e:
            raise DiscoveryError(str(e)) from e
        finally:
            await aiozc.async_close()

    async def _browse(self, aiozc: AsyncZeroconf, service_type: str) -> List[str]:
        collector = _ServiceCollector()
        browser = AsyncServiceBrowser(aiozc.zeroconf, [service_type], listener=collector)
        try:
            await asyncio.sleep(self.discovery_timeout)
        finally:
            await browser.async_cancel()
        return collector.names

    async def _resolve_addresses(self, aiozc: AsyncZeroconf, fqdn: str) -> List[str]:
        service_type = _normalize(fqdn) + '.'
        addresses = []
        for name in await self._browse(aiozc, service_type):
            info = AsyncServiceInfo(service_type, name)
            if not await info.async_request(aiozc.zeroconf, self.resolve_timeout_ms):
                logger.debug(f"No address record for {name}")
                continue
            addresses.extend(info.parsed_addresses(IPVersion.V4Only))
        return addresses
