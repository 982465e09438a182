"""
Tests for discovery/network_discovery.py

The mDNS layer is replaced by canned announcements or a patched zeroconf.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from zeroconf import Error as ZeroconfError

from discovery.models import MeshAnnouncement
from discovery.network_discovery import DeviceDiscoverer
from protocol.errors import DiscoveryError


def _announcing(*announcements, error=None):
    async def fake_query(self):
        for announcement in announcements:
            yield announcement
        if error:
            raise error
    return fake_query


async def _collect(discoverer):
    return [address async for address in discoverer.discover()]


@pytest.mark.asyncio
async def test_only_mesh_service_addresses_are_yielded():
    fake = _announcing(
        MeshAnnouncement("_googlecast._tcp.local"),
        MeshAnnouncement("_mesh-http._tcp.local", "10.0.0.5"),
        MeshAnnouncement("_mesh-http._udp.local", "10.0.0.6"),
        MeshAnnouncement("_mesh-http._tcp.local.", "10.0.0.7"),
    )
    with patch.object(DeviceDiscoverer, "_query_announcements", fake):
        addresses = await _collect(DeviceDiscoverer({}))

    assert addresses == ["10.0.0.5", "10.0.0.7"]


@pytest.mark.asyncio
async def test_each_address_is_yielded_once_per_run():
    fake = _announcing(
        MeshAnnouncement("_mesh-http._tcp.local", "10.0.0.5"),
        MeshAnnouncement("_mesh-http._tcp.local", "10.0.0.5"),
        MeshAnnouncement("_mesh-http._tcp.local", None),
    )
    with patch.object(DeviceDiscoverer, "_query_announcements", fake):
        discoverer = DeviceDiscoverer({})
        assert await _collect(discoverer) == ["10.0.0.5"]
        # a new run starts from scratch
        assert await _collect(discoverer) == ["10.0.0.5"]


@pytest.mark.asyncio
async def test_mdns_failure_is_reported_not_raised():
    fake = _announcing(
        MeshAnnouncement("_mesh-http._tcp.local", "10.0.0.5"),
        error=DiscoveryError("no multicast route"),
    )
    with patch.object(DeviceDiscoverer, "_query_announcements", fake):
        addresses = await _collect(DeviceDiscoverer({}))

    assert addresses == ["10.0.0.5"]


def test_configured_service_name_is_normalized():
    discoverer = DeviceDiscoverer({"service_fqdn": "_panel._tcp.local."})

    assert discoverer.matches_service("_panel._tcp.local")
    assert not discoverer.matches_service("_mesh-http._tcp.local")


# ================== zeroconf-backed query ==================

ANNOUNCED = {
    "_services._dns-sd._udp.local.": ["_googlecast._tcp.local.", "_mesh-http._tcp.local."],
    "_mesh-http._tcp.local.": ["panel-1._mesh-http._tcp.local.", "panel-2._mesh-http._tcp.local."],
    "_googlecast._tcp.local.": ["tv._googlecast._tcp.local."],
}

RESOLVED = {
    "panel-1._mesh-http._tcp.local.": ["10.0.0.5"],
    "panel-2._mesh-http._tcp.local.": ["10.0.0.6", "10.0.0.5"],
}


@pytest.fixture
def fake_mdns():
    """Patches zeroconf in discovery.network_discovery with a canned LAN"""
    aiozc = MagicMock()
    aiozc.async_close = AsyncMock()
    browsed = []
    resolved = []

    def browser(zc, types, listener=None):
        service_type = types[0]
        browsed.append(service_type)
        for name in ANNOUNCED.get(service_type, []):
            listener.add_service(zc, service_type, name)
        instance = MagicMock()
        instance.async_cancel = AsyncMock()
        return instance

    def service_info(service_type, name):
        resolved.append(name)
        info = MagicMock()
        info.async_request = AsyncMock(return_value=name in RESOLVED)
        info.parsed_addresses.return_value = RESOLVED.get(name, [])
        return info

    with patch("discovery.network_discovery.AsyncZeroconf", return_value=aiozc) as zeroconf_cls, \
            patch("discovery.network_discovery.AsyncServiceBrowser", side_effect=browser), \
            patch("discovery.network_discovery.AsyncServiceInfo", side_effect=service_info):
        yield {"aiozc": aiozc, "cls": zeroconf_cls, "browsed": browsed, "resolved": resolved}


@pytest.mark.asyncio
async def test_meta_query_resolves_only_mesh_instances(fake_mdns):
    addresses = await _collect(DeviceDiscoverer({"discovery_timeout": 0}))

    assert addresses == ["10.0.0.5", "10.0.0.6"]
    assert fake_mdns["browsed"] == ["_services._dns-sd._udp.local.", "_mesh-http._tcp.local."]
    assert "tv._googlecast._tcp.local." not in fake_mdns["resolved"]
    fake_mdns["aiozc"].async_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_unresolvable_instance_is_skipped(fake_mdns):
    with patch.dict(RESOLVED):
        del RESOLVED["panel-1._mesh-http._tcp.local."]
        addresses = await _collect(DeviceDiscoverer({"discovery_timeout": 0}))

    assert addresses == ["10.0.0.6", "10.0.0.5"]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [OSError("no multicast interface"), ZeroconfError("bad socket")])
async def test_zeroconf_startup_failure_is_logged(fake_mdns, caplog, error):
    fake_mdns["cls"].side_effect = error

    with caplog.at_level(logging.ERROR, logger="discovery.network_discovery"):
        addresses = await _collect(DeviceDiscoverer({"discovery_timeout": 0}))

    assert addresses == []
    assert "mDNS discovery failed" in caplog.text


@pytest.mark.asyncio
async def test_zeroconf_is_closed_when_browse_fails(fake_mdns):
    with patch("discovery.network_discovery.AsyncServiceBrowser", side_effect=ZeroconfError("socket closed")):
        addresses = await _collect(DeviceDiscoverer({"discovery_timeout": 0}))

    assert addresses == []
    fake_mdns["aiozc"].async_close.assert_awaited_once()
