"""
Protocol module for mesh-HTTP device communication
"""

from .client import MeshProtocolClient
from .characteristics import Characteristic, parse_characteristics
from .errors import MeshError, DiscoveryError, ValidationMismatch, TransportError, ProtocolError

__all__ = [
    'MeshProtocolClient', 'Characteristic', 'parse_characteristics',
    'MeshError', 'DiscoveryError', 'ValidationMismatch', 'TransportError', 'ProtocolError'
]
