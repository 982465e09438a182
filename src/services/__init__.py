"""
Services module: per-device sync, device registry and the server orchestrator
"""

from .device_state import DeviceState, StateField, map_characteristics
from .device_sync import DeviceSyncController, SyncStatus
from .device_registry import DeviceRegistry

__all__ = ['DeviceState', 'StateField', 'map_characteristics', 'DeviceSyncController', 'SyncStatus', 'DeviceRegistry']
