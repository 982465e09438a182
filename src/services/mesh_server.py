"""
Mesh Server - Main orchestrator for discovery, device sync and the local API
"""

import asyncio
import logging
from typing import Dict, List, Optional

import uvicorn

from config_loader import load_config, setup_logging
from discovery.manager import MeshDiscovery
from discovery.models import MeshDevice, DiscoveryResult
from protocol.client import MeshProtocolClient
from api.main_api import MeshAPI
from .device_registry import DeviceRegistry
from .device_sync import DeviceSyncController

logger = logging.getLogger(__name__)

class MeshServer:
    """Main server orchestrating discovery, per-device polling and the HTTP API"""

    def __init__(self, config_path: str = "config/config.yaml", config: Optional[Dict] = None):
        self.config = config if config is not None else load_config(config_path)
        setup_logging(self.config)

        network = self.config['network']
        self.client = MeshProtocolClient(network['request_timeout'])
        self.discovery = MeshDiscovery(network, self.client)
        self.registry = DeviceRegistry(self._create_controller)
        self.api = MeshAPI(self.registry, self.config, self.run_discovery)

        self.running = False
        self.tasks: List[asyncio.Task] = []
        self._api_server: Optional[uvicorn.Server] = None
        self._stopped = asyncio.Event()

        self._stats = {
            'discovery_runs': 0,
            'state_updates': 0,
            'state_changes_detected': 0
        }

    def _create_controller(self, device: MeshDevice) -> DeviceSyncController:
        return DeviceSyncController(
            device,
            self.client,
            poll_interval=self.config['polling']['status_interval_seconds'],
            on_state_change=self._on_state_change
        )

    def _on_state_change(self, controller: DeviceSyncController, changed: dict) -> None:
        """State sink: every successful poll lands here"""
        self._stats['state_updates'] += 1
        if not changed:
            return
        self._stats['state_changes_detected'] += 1
        state = controller.state
        logger.info(
            f"{controller.device.mac} | room={state.room_temperature} "
            f"setpoint={state.setpoint_temperature} | changed: {', '.join(f.value for f in changed)}"
        )

    async def start(self):
        """Start discovery, background services and the API server"""
        logger.info("Starting Mesh Server...")

        try:
            self.running = True
            await self.run_discovery()

            self.tasks = [asyncio.create_task(self._discovery_service())]
            logger.info(f"All services started ({len(self.registry)} device(s) polling)")

            if self.config['api']['enabled']:
                await self._start_api_server()
            else:
                logger.info("API disabled - running headless")
                await self._stopped.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all services gracefully"""
        if not self.running and not self.tasks:
            return
        logger.info("Stopping server...")
        self.running = False
        self._stopped.set()

        if self._api_server:
            self._api_server.should_exit = True

        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        await self.registry.stop_all()

        stats = self._stats
        logger.info(f"Server stopped after {stats['discovery_runs']} discovery run(s), "
                    f"{stats['state_updates']} state update(s), {stats['state_changes_detected']} change(s)")

    async def run_discovery(self) -> DiscoveryResult:
        """Discover, validate and register mesh nodes; shared by startup, timer and API"""
        self._stats['discovery_runs'] += 1
        result = await self.discovery.discover_devices()

        new_devices = 0
        for device in result.devices:
            _, created = self.registry.register(device)
            if created:
                new_devices += 1

        logger.info(f"Discovery registered {new_devices} new device(s), {len(self.registry)} total")
        return result

    async def _discovery_service(self):
        """Background service for periodic rediscovery"""
        scan_interval = self.config['network']['scan_interval_minutes'] * 60
        if scan_interval <= 0:
            logger.info("Periodic discovery disabled")
            return

        logger.info(f"Discovery service started (every {scan_interval/60} minutes)")

        while self.running:
            try:
                await asyncio.sleep(scan_interval)
                if not self.running:
                    break

                logger.info("[REFRESH] Running periodic discovery...")
                await self.run_discovery()

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Discovery service error: {e}")

    def get_stats(self) -> Dict:
        return dict(self._stats)

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        self._api_server = uvicorn.Server(config)

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        await self._api_server.serve()
