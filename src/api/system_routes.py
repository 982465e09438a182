"""
System health and discovery API routes
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import asyncio
import logging

logger = logging.getLogger(__name__)

def create_system_routes(registry, config, discovery_trigger=None):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api", tags=["system"])
    background_tasks = set()

    @router.get("/system/health")
    async def system_health():
        """System health check"""
        controllers = registry.controllers()
        failing = [c.device.mac for c in controllers if c.last_error]
        return {
            "status": "healthy" if not failing else "degraded",
            "devices": {
                "count": len(controllers),
                "failing": failing,
                "poll_count": sum(c.poll_count for c in controllers),
                "failure_count": sum(c.failure_count for c in controllers)
            },
            "poll_interval_seconds": config['polling']['status_interval_seconds'],
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @router.post("/discovery/scan")
    async def trigger_discovery():
        """Trigger manual device discovery"""
        if discovery_trigger is None:
            return {"message": "Discovery not available", "started": False}

        task = asyncio.create_task(discovery_trigger())
        background_tasks.add(task)
        task.add_done_callback(background_tasks.discard)
        return {"message": "Discovery scan initiated", "started": True}

    return router
