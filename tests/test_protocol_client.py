"""
Tests for protocol/client.py against a local aiohttp device stub
"""

import json

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from discovery.models import MeshDevice
from protocol.client import MeshProtocolClient
from protocol.errors import TransportError, ProtocolError


@pytest_asyncio.fixture
async def panel():
    """Fake panel recording every /device_request it receives"""
    received = []

    async def device_request(request):
        received.append({"headers": dict(request.headers), "body": await request.text()})
        return web.json_response({"characteristics": [{"name": "RoomTemperature", "value": 21.5}]})

    async def mesh_info(request):
        return web.json_response(
            {"status_code": 0},
            headers={"Mesh-Node-Mac": "AA:BB", "Mesh-Node-Num": "7"}
        )

    async def garbage(request):
        return web.Response(text="<html>not json</html>")

    async def mangled(request):
        return web.Response(body=b'\xff\xfe{"status_code":0}', content_type="application/json")

    async def broken(request):
        return web.Response(status=500, text="{}")

    app = web.Application()
    app.router.add_post("/device_request", device_request)
    app.router.add_get("/mesh_info", mesh_info)
    app.router.add_post("/garbage", garbage)
    app.router.add_post("/broken", broken)
    app.router.add_post("/mangled", mangled)
    app.router.add_get("/mangled", mangled)

    server = TestServer(app)
    await server.start_server()
    server.received = received
    yield server
    await server.close()


def _device_for(server):
    return MeshDevice(host=f"{server.host}:{server.port}", id="7", mac="AA:BB")


@pytest.mark.asyncio
async def test_send_posts_json_with_identity_headers(panel):
    client = MeshProtocolClient(request_timeout=5)

    reply = await client.send(_device_for(panel), "/device_request", {"request": "get_device_info"})

    assert reply == {"characteristics": [{"name": "RoomTemperature", "value": 21.5}]}
    sent = panel.received[0]
    assert json.loads(sent["body"]) == {"request": "get_device_info"}
    assert sent["headers"]["Mesh-Node-Mac"] == "AA:BB"
    assert sent["headers"]["Mesh-Node-Num"] == "7"
    assert sent["headers"]["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_send_rejects_non_json_body(panel):
    client = MeshProtocolClient(request_timeout=5)

    with pytest.raises(ProtocolError):
        await client.send(_device_for(panel), "/garbage", {})


@pytest.mark.asyncio
async def test_send_treats_http_error_as_transport_failure(panel):
    client = MeshProtocolClient(request_timeout=5)

    with pytest.raises(TransportError):
        await client.send(_device_for(panel), "/broken", {})


@pytest.mark.asyncio
async def test_send_to_unreachable_host_raises_transport_error():
    client = MeshProtocolClient(request_timeout=2)
    device = MeshDevice(host="127.0.0.1:1", id="1", mac="00:00")

    with pytest.raises(TransportError):
        await client.send(device, "/device_request", {})


@pytest.mark.asyncio
async def test_probe_returns_body_and_case_insensitive_headers(panel):
    client = MeshProtocolClient(request_timeout=5)

    data, headers = await client.probe(f"{panel.host}:{panel.port}")

    assert data == {"status_code": 0}
    assert headers.get("mesh-node-mac") == "AA:BB"
    assert headers.get("mesh-node-num") == "7"


@pytest.mark.asyncio
async def test_undecodable_body_is_a_protocol_error(panel):
    client = MeshProtocolClient(request_timeout=5)

    with pytest.raises(ProtocolError):
        await client.send(_device_for(panel), "/mangled", {})
    with pytest.raises(ProtocolError):
        await client.probe(f"{panel.host}:{panel.port}", "/mangled")
