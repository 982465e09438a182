"""
Typed per-device state mirror and the characteristic -> field mapping
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from protocol.characteristics import Characteristic


class StateField(str, Enum):
    """Characteristic names the mirror accepts from device reports"""
    ROOM_TEMPERATURE = "RoomTemperature"
    SETPOINT_TEMPERATURE = "SetpointTemperature"

    @classmethod
    def from_name(cls, name: Any) -> Optional["StateField"]:
        if not isinstance(name, str):
            return None
        for member in cls:
            if member.value == name:
                return member
        return None


_ATTRIBUTES = {
    StateField.ROOM_TEMPERATURE: 'room_temperature',
    StateField.SETPOINT_TEMPERATURE: 'setpoint_temperature',
}


def map_characteristics(characteristics: Iterable[Characteristic]) -> Dict[StateField, Any]:
    """
    Keep only characteristics whose name exactly matches a StateField.
    Later entries for the same field win, as they would on the device.
    """
    updates: Dict[StateField, Any] = {}
    for characteristic in characteristics:
        field = StateField.from_name(characteristic.name)
        if field is None:
            continue
        updates[field] = characteristic.value
    return updates


@dataclass
class DeviceState:
    """Last known room temperature and setpoint; None means not yet reported"""
    room_temperature: Optional[float] = None
    setpoint_temperature: Optional[float] = None
    last_update: Optional[datetime] = None

    def get(self, field: StateField) -> Any:
        return getattr(self, _ATTRIBUTES[field])

    def set(self, field: StateField, value: Any) -> None:
        setattr(self, _ATTRIBUTES[field], value)

    def apply(self, updates: Dict[StateField, Any]) -> Dict[StateField, Dict[str, Any]]:
        """Apply all updates at once; returns {field: {'from': old, 'to': new}} for changed fields"""
        changed = {}
        for field, value in updates.items():
            previous = self.get(field)
            if previous != value:
                changed[field] = {'from': previous, 'to': value}
            self.set(field, value)
        self.last_update = datetime.now(timezone.utc)
        return changed

    def to_dict(self) -> Dict[str, Any]:
        data = {field.value: self.get(field) for field in StateField}
        data['last_update'] = self.last_update.isoformat() if self.last_update else None
        return data
