"""
Stateless JSON-over-HTTP transport for mesh nodes
"""

import asyncio
import json
import logging
from typing import Any, Mapping, Tuple

import aiohttp

from http_helper import create_device_session
from .characteristics import MESH_INFO_PATH
from .errors import TransportError, ProtocolError

logger = logging.getLogger(__name__)


class MeshProtocolClient:
    """Issues single request/response exchanges against mesh nodes"""

    def __init__(self, request_timeout: float = 10):
        self.request_timeout = request_timeout

    async def send(self, device, path: str, payload: dict) -> Any:
        """
        POST a JSON payload to a device and return the parsed JSON reply.
        `device` must provide host, id and mac.
        """
        url = f"http://{device.host}{path}"
        headers = {
            'Mesh-Node-Mac': str(device.mac),
            'Mesh-Node-Num': str(device.id),
            'Content-Type': 'application/json'
        }
        body = json.dumps(payload)

        try:
            async with create_device_session(self.request_timeout) as session:
                async with session.post(url, data=body, headers=headers) as response:
                    self._check_status(url, response.status)
                    raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"POST {url} failed: {e!r}") from e

        return self._decode(url, raw)

    async def probe(self, host: str, path: str = MESH_INFO_PATH) -> Tuple[Any, Mapping[str, str]]:
        """GET a path without identity headers; returns (parsed JSON, response headers)"""
        url = f"http://{host}{path}"

        try:
            async with create_device_session(self.request_timeout) as session:
                async with session.get(url) as response:
                    self._check_status(url, response.status)
                    raw = await response.read()
                    headers = response.headers
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"GET {url} failed: {e!r}") from e

        return self._decode(url, raw), headers

    def _check_status(self, url: str, status: int) -> None:
        if status >= 400:
            raise TransportError(f"{url} answered HTTP {status}")

    def _decode(self, url: str, raw: bytes) -> Any:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        try:
            return json.loads(raw.decode('utf-8'))
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON from {url}: {e}") from e
