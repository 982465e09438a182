"""
Shared pytest fixtures for the mesh server tests
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from discovery.models import MeshDevice


@pytest.fixture
def device():
    """A confirmed mesh node"""
    return MeshDevice(host="10.0.0.5", id="7", mac="AA:BB")


@pytest.fixture
def mock_client():
    """MeshProtocolClient stand-in; tests set send/probe side effects"""
    client = MagicMock()
    client.send = AsyncMock()
    client.probe = AsyncMock()
    return client
