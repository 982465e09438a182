"""
Per-device synchronization: periodic polling and the setpoint write path
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Set

from discovery.models import MeshDevice
from protocol.characteristics import (
    Characteristic, DEVICE_REQUEST_PATH, SETPOINT_CID,
    device_data_request, device_info_request, set_status_request, parse_characteristics
)
from protocol.client import MeshProtocolClient
from protocol.errors import MeshError
from .device_state import DeviceState, StateField, map_characteristics

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 300


class SyncStatus(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    STOPPED = "stopped"


class DeviceSyncController:
    """Owns one mesh node's state mirror and keeps it in step with the device"""

    def __init__(
        self,
        device: MeshDevice,
        client: MeshProtocolClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_state_change: Optional[Callable[["DeviceSyncController", dict], None]] = None,
    ):
        self.device = device
        self.client = client
        self.poll_interval = poll_interval
        self.on_state_change = on_state_change

        self.state = DeviceState()
        self.details: Optional[Any] = None  # getDeviceData reply, informational only
        self.status = SyncStatus.IDLE

        self.poll_count = 0
        self.failure_count = 0
        self.last_error: Optional[str] = None
        self.last_success: Optional[datetime] = None

        self._task: Optional[asyncio.Task] = None
        self._sync_lock = asyncio.Lock()
        self._pending_writes: Set[asyncio.Task] = set()

    # ================== LIFECYCLE ==================

    def start(self) -> asyncio.Task:
        """Sync immediately, then every poll_interval seconds until stopped"""
        if self.status == SyncStatus.STOPPED:
            raise RuntimeError(f"Controller for {self.device.mac} was stopped")
        if self._task is None:
            self.status = SyncStatus.POLLING
            self._task = asyncio.create_task(self._polling_loop())
            logger.info(f"Polling {self.device.mac} at {self.device.host} every {self.poll_interval}s")
        return self._task

    async def stop(self) -> None:
        self.status = SyncStatus.STOPPED
        tasks = list(self._pending_writes)
        if self._task:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        logger.info(f"Stopped polling {self.device.mac}")

    async def _polling_loop(self):
        while self.status == SyncStatus.POLLING:
            cycle_start_time = time.monotonic()
            try:
                await self.sync_once()
            except Exception as e:
                logger.error(f"Unexpected sync error for {self.device.mac}: {e}")

            # Fixed rate: the time spent syncing comes out of the sleep
            elapsed_time = time.monotonic() - cycle_start_time
            await asyncio.sleep(max(0, self.poll_interval - elapsed_time))

    # ================== READ PATH ==================

    async def sync_once(self) -> bool:
        """
        Fetch device data and characteristics, then map them into the state.
        Returns False, leaving the state untouched, when any step fails or a
        sync for this device is already in flight.
        """
        if self._sync_lock.locked():
            logger.warning(f"Sync for {self.device.mac} already in flight, skipping")
            return False

        async with self._sync_lock:
            self.poll_count += 1
            try:
                details = await self.client.send(self.device, DEVICE_REQUEST_PATH, device_data_request())
                info = await self.client.send(self.device, DEVICE_REQUEST_PATH, device_info_request())
                characteristics = parse_characteristics(info)
            except MeshError as e:
                self.failure_count += 1
                self.last_error = str(e)
                logger.warning(f"Sync failed for {self.device.mac} ({self.device.host}): {e}")
                return False

            self.details = details
            changed = self.state.apply(map_characteristics(characteristics))
            self.last_error = None
            self.last_success = datetime.now(timezone.utc)

        if changed:
            field_changes = ", ".join(f"{f.value}: {c['from']}→{c['to']}" for f, c in changed.items())
            logger.debug(f"{self.device.mac} changed: {field_changes}")

        self._notify(changed)
        return True

    def _notify(self, changed: dict) -> None:
        if not self.on_state_change:
            return
        try:
            self.on_state_change(self, changed)
        except Exception as e:
            logger.error(f"State change callback failed for {self.device.mac}: {e}")

    # ================== WRITE PATH ==================

    def set_setpoint(self, value: float) -> asyncio.Task:
        """
        Record the new setpoint immediately, then send it to the device in the
        background. A rejected write is not rolled back; the next poll reports
        the device's own value.
        """
        if self.status == SyncStatus.STOPPED:
            raise RuntimeError(f"Controller for {self.device.mac} was stopped")
        self.state.set(StateField.SETPOINT_TEMPERATURE, value)
        task = asyncio.create_task(self._write_setpoint(value))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _write_setpoint(self, value: float) -> bool:
        payload = set_status_request([
            Characteristic(name=StateField.SETPOINT_TEMPERATURE.value, value=value, cid=SETPOINT_CID)
        ])
        try:
            response = await self.client.send(self.device, DEVICE_REQUEST_PATH, payload)
        except MeshError as e:
            logger.warning(f"Setpoint write of {value} to {self.device.mac} failed: {e}")
            return False

        logger.info(f"Setpoint {value} sent to {self.device.mac}")
        logger.debug(f"set_status reply from {self.device.mac}: {response}")
        return True

    def get_status(self) -> dict:
        return {
            'status': self.status.value,
            'poll_count': self.poll_count,
            'failure_count': self.failure_count,
            'last_error': self.last_error,
            'last_success': self.last_success.isoformat() if self.last_success else None,
        }
