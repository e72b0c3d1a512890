"""
Thermostat Backend Application

FastAPI application hosting the control loop, the status API and the
Prometheus metrics endpoint.
"""

import asyncio
import os
import sys
from contextlib import asynccontextmanager

import log_config  # noqa: F401
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import make_asgi_app

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import api
from api import router as api_router

from core.thermostat.control_service import ControlService
from core.thermostat.exceptions import ThermostatError
from core.thermostat.measurements import MeasurementStore
from core.thermostat.metrics import ThermostatMetrics
from core.thermostat.mqtt_client import MQTTBus
from core.thermostat.settings import load_config

load_dotenv()

MQTT_BROKER = os.environ.get("MQTT_BROKER", "tcp://127.0.0.1:1883")
MQTT_CLIENT_ID = os.environ.get("MQTT_CLIENT_ID", "heater")
CONFIG_PATH = os.environ.get("THERMOSTAT_CONFIG", "/config.yaml")
PORT = int(os.environ.get("PORT", "7002"))

metrics = ThermostatMetrics()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for startup/shutdown."""
    # Startup
    logger.info("Thermostat starting")

    try:
        config = load_config(CONFIG_PATH)
        store = MeasurementStore.from_config(config)

        bus = MQTTBus(MQTT_BROKER, MQTT_CLIENT_ID, store.addresses(), on_message=store.update)
        await asyncio.to_thread(bus.connect)

        service = ControlService(config, store, bus, metrics)
        await service.start()
    except ThermostatError as e:
        # Never enter the control loop without config, bus and actuators in a known state
        logger.critical(f"Cannot start thermostat: {e}")
        raise

    api.service = service
    api.bus = bus

    yield

    # Shutdown
    logger.info("Thermostat shutting down")
    await service.stop()
    bus.disconnect()
    api.service = None
    api.bus = None


# Create FastAPI application
app = FastAPI(
    title="Thermostat API",
    description="Safety-gated boiler controller for space heating and domestic hot water",
    version="0.1.0",
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions gracefully."""
    logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "message": "Internal server error",
        },
    )


# Include API router
app.include_router(api_router)

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())


# For development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
