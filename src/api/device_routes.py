"""
Mesh device state and control API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Thermostat surface limits, in degrees Celsius
MIN_SETPOINT = 15
MAX_SETPOINT = 30
# Reported target when the device has not told us its setpoint yet
DEFAULT_TARGET_TEMPERATURE = 15

# Request models
class SetpointRequest(BaseModel):
    temperature: float = Field(..., ge=MIN_SETPOINT, le=MAX_SETPOINT)

class DeviceStateResponse(BaseModel):
    mac: str
    current_temperature: Optional[float]
    target_temperature: float
    state: dict


def _target_temperature(setpoint) -> float:
    if isinstance(setpoint, (int, float)) and not isinstance(setpoint, bool) and setpoint:
        return setpoint
    return DEFAULT_TARGET_TEMPERATURE

def _current_temperature(room_temperature) -> Optional[float]:
    if isinstance(room_temperature, (int, float)) and not isinstance(room_temperature, bool):
        return room_temperature
    return None

def _describe(controller) -> dict:
    device = controller.device
    return {
        "host": device.host,
        "id": device.id,
        "mac": device.mac,
        "sync": controller.get_status(),
        "state": controller.state.to_dict()
    }

def _state_response(controller) -> DeviceStateResponse:
    state = controller.state
    return DeviceStateResponse(
        mac=controller.device.mac,
        current_temperature=_current_temperature(state.room_temperature),
        target_temperature=_target_temperature(state.setpoint_temperature),
        state=state.to_dict()
    )


def create_device_routes(registry):
    """Create mesh device routes"""
    router = APIRouter(prefix="/api", tags=["devices"])

    def _lookup(mac: str):
        controller = registry.get(mac)
        if controller is None:
            raise HTTPException(status_code=404, detail="Device not found")
        return controller

    @router.get("/devices")
    async def list_devices():
        """List all registered mesh devices"""
        return [_describe(c) for c in registry.controllers()]

    @router.get("/devices/{mac}")
    async def get_device(mac: str):
        """Get identity, sync status and state for one device"""
        return _describe(_lookup(mac))

    @router.get("/devices/{mac}/state", response_model=DeviceStateResponse)
    async def get_device_state(mac: str):
        """Get the thermostat view of a device's state"""
        return _state_response(_lookup(mac))

    @router.post("/devices/{mac}/setpoint", response_model=DeviceStateResponse)
    async def set_device_setpoint(mac: str, request: SetpointRequest):
        """Set the heating setpoint; the write is sent in the background"""
        controller = _lookup(mac)
        logger.info(f"API setpoint {request.temperature} for {mac}")
        try:
            controller.set_setpoint(request.temperature)
        except RuntimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return _state_response(controller)

    @router.post("/devices/{mac}/sync")
    async def sync_device(mac: str):
        """Poll a device immediately"""
        controller = _lookup(mac)
        success = await controller.sync_once()
        return {
            "mac": mac,
            "status": "success" if success else "failed",
            "error": None if success else controller.last_error,
            "state": controller.state.to_dict()
        }

    return router
