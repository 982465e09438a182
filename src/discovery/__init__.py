"""
Discovery module for mesh heating panel discovery
"""

from .manager import MeshDiscovery
from .models import MeshDevice, MeshAnnouncement, DiscoveryResult
from .network_discovery import DeviceDiscoverer
from .validator import DeviceValidator

__all__ = ['MeshDiscovery', 'MeshDevice', 'MeshAnnouncement', 'DiscoveryResult', 'DeviceDiscoverer', 'DeviceValidator']
