"""
Handshake that turns a candidate address into a confirmed mesh node
"""

import logging
from typing import Optional

from protocol.characteristics import MESH_INFO_PATH, STATUS_OK
from protocol.client import MeshProtocolClient
from protocol.errors import ValidationMismatch, TransportError, ProtocolError
from .models import MeshDevice

logger = logging.getLogger(__name__)

NODE_NUM_HEADER = 'mesh-node-num'
NODE_MAC_HEADER = 'mesh-node-mac'


class DeviceValidator:
    """Probes /mesh_info and reads node identity from the reply headers"""

    def __init__(self, client: MeshProtocolClient):
        self.client = client

    async def validate(self, address: str) -> Optional[MeshDevice]:
        """
        Return the confirmed device, or None when the address is not a mesh node.
        Unrelated announcers are routine on a LAN, so nothing here is raised.
        """
        try:
            device = await self._confirm(address)
        except ValidationMismatch as e:
            logger.debug(f"{address} is not a mesh node: {e}")
            return None
        except (TransportError, ProtocolError) as e:
            logger.info(f"Probe of {address} failed: {e}")
            return None

        logger.info(f"Confirmed mesh node {device.mac} (node {device.id}) at {address}")
        return device

    async def _confirm(self, address: str) -> MeshDevice:
        data, headers = await self.client.probe(address, MESH_INFO_PATH)

        if not isinstance(data, dict):
            raise ValidationMismatch(f"probe reply is {type(data).__name__}, not an object")

        status_code = data.get('status_code')
        # bool is an int subclass; False must not pass as 0
        if isinstance(status_code, bool) or status_code != STATUS_OK:
            raise ValidationMismatch(f"status_code={status_code!r}")

        node_num = headers.get(NODE_NUM_HEADER)
        node_mac = headers.get(NODE_MAC_HEADER)
        if not node_num or not node_mac:
            raise ValidationMismatch("missing mesh identity headers")

        return MeshDevice(host=address, id=str(node_num), mac=str(node_mac))
