"""
Discovery data structures and models
"""

import time
from typing import List, Optional
from dataclasses import dataclass, field

@dataclass
class MeshDevice:
    """A confirmed mesh node. Only host may change, when the same MAC reappears elsewhere."""
    host: str
    id: str
    mac: str
    discovered_at: float = field(default_factory=time.time)

@dataclass
class MeshAnnouncement:
    """One mDNS answer: an announced service name and, once resolved, its address"""
    fqdn: str
    address: Optional[str] = None

@dataclass
class DiscoveryResult:
    """Results from one discovery run"""
    devices: List[MeshDevice]
    duration_seconds: float
    candidates_tested: int
    success_count: int
