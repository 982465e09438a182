"""
Wire-level characteristics and request bodies for the mesh-HTTP protocol
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .errors import ProtocolError

logger = logging.getLogger(__name__)

MESH_INFO_PATH = "/mesh_info"
DEVICE_REQUEST_PATH = "/device_request"

# Probe replies carry this status_code when the node accepts the handshake
STATUS_OK = 0

# Characteristic id of the heating setpoint, used by set_status writes
SETPOINT_CID = 19


@dataclass
class Characteristic:
    """A single data point exchanged with a mesh node"""
    name: Optional[str]
    value: Union[float, int, str, None]
    cid: Optional[int] = None

    def to_write_dict(self) -> Dict[str, Any]:
        """Writes are addressed by cid only"""
        return {"value": self.value, "cid": self.cid}


def device_data_request() -> Dict[str, Any]:
    return {"start": 1, "request": "getDeviceData"}


def device_info_request() -> Dict[str, Any]:
    return {"request": "get_device_info"}


def set_status_request(characteristics: List[Characteristic]) -> Dict[str, Any]:
    return {
        "request": "set_status",
        "characteristics": [c.to_write_dict() for c in characteristics]
    }


def parse_characteristics(response: Any) -> List[Characteristic]:
    """
    Extract characteristics from a get_device_info reply.

    Raises ProtocolError when the reply is not an object carrying a
    `characteristics` array. Individual entries that are not objects or
    lack a value are skipped.
    """
    if not isinstance(response, dict):
        raise ProtocolError(f"Expected JSON object, got {type(response).__name__}")

    raw = response.get("characteristics")
    if not isinstance(raw, list):
        raise ProtocolError("Response has no characteristics array")

    characteristics = []
    for entry in raw:
        if not isinstance(entry, dict) or "value" not in entry:
            logger.debug(f"Skipping malformed characteristic entry: {entry!r}")
            continue
        cid = entry.get("cid")
        characteristics.append(Characteristic(
            name=entry.get("name"),
            value=entry["value"],
            cid=cid if isinstance(cid, int) else None
        ))
    return characteristics
