"""
API module for mesh device control and monitoring
"""

from .main_api import MeshAPI
from .device_routes import create_device_routes
from .system_routes import create_system_routes

__all__ = ['MeshAPI', 'create_device_routes', 'create_system_routes']
