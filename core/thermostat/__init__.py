"""Boiler thermostat controller package."""

# Define public API
__all__ = [
    "ThermostatConfig",
    "load_config",
    "MeasurementStore",
    "ActuatorStateMachine",
    "DecisionEngine",
    "ControlService",
    "ControlState",
    "MQTTBus",
    "ThermostatMetrics",
]

# Import settings
from .settings import ThermostatConfig, load_config

# Import models
from .models import ControlState

# Import control components
from .measurements import MeasurementStore
from .actuators import ActuatorStateMachine
from .decision_engine import DecisionEngine
from .control_service import ControlService
from .metrics import ThermostatMetrics

# Import MQTT client
from .mqtt_client import MQTTBus
