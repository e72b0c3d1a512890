"""Shared fixtures for the thermostat tests."""

from __future__ import annotations

import copy
import os
import sys

import pytest
from prometheus_client import CollectorRegistry

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND_DIR = os.path.join(ROOT_DIR, "backend")

# Make the core package and the backend modules importable
for path in (ROOT_DIR, BACKEND_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)


from core.thermostat.actuators import ActuatorStateMachine  # noqa: E402
from core.thermostat.decision_engine import DecisionEngine  # noqa: E402
from core.thermostat.exceptions import PublishError  # noqa: E402
from core.thermostat.measurements import SENSOR_NAMES, SETTING_NAMES, MeasurementStore  # noqa: E402
from core.thermostat.metrics import ThermostatMetrics  # noqa: E402
from core.thermostat.settings import ThermostatConfig  # noqa: E402

CONFIG = {
    "actuators": {"heater": "relay/heater", "switch": "relay/switch"},
    "sensors": {
        "heaterIn": {"address": "temp/heater_in"},
        "heaterOut": {"address": "temp/heater_out"},
        "roomTemp": {"address": "temp/room"},
        "tankUp": {"address": "temp/tank_up"},
    },
    "settings": {
        "tankMin": {"address": "settings/tank_min", "value": 45},
        "tankMax": {"address": "settings/tank_max", "value": 55},
        "heaterCritical": {"address": "settings/critical", "value": 80},
        "expected": {"address": "settings/expected", "value": 18},
        "hysteresis": {"address": "settings/hysteresis", "value": 2},
    },
    "control": {
        "cycleInterval": 1,
        "settleDelay": 0.5,
        "startupPollInterval": 15,
    },
}

# Sensor values that trigger no rule: outlet cool, tank inside its band, room on target
QUIET_SENSORS = {"heaterIn": 40.0, "heaterOut": 50.0, "roomTemp": 18.0, "tankUp": 50.0}


class FakeBus:
    """Records published messages; can be told to reject them."""

    def __init__(self):
        self.published: list[tuple[str, str]] = []
        self.fail = False
        self.connected = True

    def publish(self, address: str, payload: str) -> None:
        if self.fail:
            raise PublishError(f"Publish to {address} failed: not connected")
        self.published.append((address, payload))


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that returns immediately."""

    def __init__(self, on_sleep=None):
        self.calls: list[float] = []
        self.on_sleep = on_sleep

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.on_sleep is not None:
            self.on_sleep(seconds)


@pytest.fixture
def config_dict() -> dict:
    return copy.deepcopy(CONFIG)


@pytest.fixture
def config(config_dict) -> ThermostatConfig:
    return ThermostatConfig.from_dict(config_dict)


@pytest.fixture
def metrics() -> ThermostatMetrics:
    return ThermostatMetrics(CollectorRegistry())


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def store(config) -> MeasurementStore:
    return MeasurementStore.from_config(config)


@pytest.fixture
def feed(store):
    """Deliver values to the store by name, the way the bus handler would."""
    addresses = dict(zip(SENSOR_NAMES + SETTING_NAMES, store.addresses()))

    def _feed(**values):
        for name, value in values.items():
            assert store.update(addresses[name], str(value))

    return _feed


@pytest.fixture
def ready_store(store, feed) -> MeasurementStore:
    feed(**QUIET_SENSORS)
    return store


@pytest.fixture
def actuators(bus, config, metrics) -> ActuatorStateMachine:
    return ActuatorStateMachine(bus, config.actuators.heater, config.actuators.switch, metrics)


@pytest.fixture
def engine(ready_store, actuators, metrics, config, sleep) -> DecisionEngine:
    return DecisionEngine(ready_store, actuators, metrics, control=config.control, sleep=sleep)
