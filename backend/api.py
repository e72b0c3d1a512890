"""
Thermostat API Endpoints
"""

import os
import sys

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.thermostat.control_service import ControlService
from core.thermostat.mqtt_client import MQTTBus

router = APIRouter()

# Set by app.py during startup
service: ControlService | None = None
bus: MQTTBus | None = None


class HealthResponse(BaseModel):
    """Response body of the health check."""
    status: str
    app: str
    version: str
    bus_connected: bool
    sensors_ready: bool


class StatusResponse(BaseModel):
    """Live controller state."""
    sensors: dict[str, float]
    settings: dict[str, float]
    actuators: dict[str, bool]
    sensors_ready: bool
    missing_sensors: list[str]
    control_state: str | None = None
    failsafe_total: float


def _require_service() -> ControlService:
    if service is None or not service.running:
        raise HTTPException(status_code=503, detail="Control service not running")
    return service


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    running = service is not None and service.running
    return HealthResponse(
        status="healthy" if running else "starting",
        app="thermostat",
        version="0.1.0",
        bus_connected=bus is not None and bus.connected,
        sensors_ready=running and service.sensors_ready,
    )


@router.get("/api/status", response_model=StatusResponse)
async def get_status():
    """Current sensors, settings, actuator states and last control decision."""
    return StatusResponse(**_require_service().status())
