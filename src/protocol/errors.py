"""
Error taxonomy for discovery, validation and device requests
"""


class MeshError(Exception):
    """Base class for all mesh protocol errors"""


class DiscoveryError(MeshError):
    """The mDNS scan itself failed (non-fatal, retried by the caller)"""


class ValidationMismatch(MeshError):
    """A probed address is not a matching mesh node"""


class TransportError(MeshError):
    """Connection, timeout or HTTP-level failure talking to a device"""


class ProtocolError(MeshError):
    """Device answered with a malformed or unexpected body"""
