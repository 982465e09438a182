# HTTP Helper for mesh node connections
# Local panels speak plain HTTP; every session carries a hard total deadline

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 10) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for local mesh node connections (always HTTP)
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=1,           # Panels handle one request at a time
        ssl=False,                  # Local mesh nodes use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
