"""
Main FastAPI application setup

Local HTTP API for the mesh heating panel server: device listing,
state inspection and setpoint control
"""

from fastapi import FastAPI
from typing import Dict
import logging

# Import modular route factories
from .device_routes import create_device_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class MeshAPI:
    """Local HTTP API over the device registry"""

    def __init__(self, registry, config: Dict, discovery_trigger=None):
        self.registry = registry
        self.config = config
        self.discovery_trigger = discovery_trigger
        self.app = FastAPI(
            title="Ecocontrol Mesh Server",
            description="Local API for mesh heating panel state and setpoint control",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_device_routes(self.registry))
        self.app.include_router(create_system_routes(self.registry, self.config, self.discovery_trigger))
