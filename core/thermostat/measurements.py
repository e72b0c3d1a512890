"""
Measurement Store

Latest known value for every sensor and setting, keyed by topic address.
Written from the MQTT network thread, read by the control loop.
"""

import logging
import math
import threading

from .exceptions import SensorError
from .models import DataPoint, Readings
from .settings import ThermostatConfig

logger = logging.getLogger(__name__)

# Order used when reporting missing sensors
SENSOR_NAMES = ("heaterIn", "heaterOut", "roomTemp", "tankUp")
SETTING_NAMES = ("tankMin", "tankMax", "heaterCritical", "expected", "hysteresis")


def parse_value(raw: str | bytes) -> float | None:
    """Parse a bus payload as a finite float, None if it is not one."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class MeasurementStore:
    """Thread-safe holder of the 4 sensors and 5 settings."""

    def __init__(
        self,
        sensors: dict[str, DataPoint],
        settings: dict[str, DataPoint],
        sentinel: float = 300.0,
    ):
        """Initialize the store.

        Args:
            sensors: Sensor name -> DataPoint (values are replaced by the sentinel)
            settings: Setting name -> DataPoint (values kept as startup defaults)
            sentinel: Placeholder value meaning "no reading received yet"
        """
        if set(sensors) != set(SENSOR_NAMES):
            raise ValueError(f"Sensors must be exactly {SENSOR_NAMES}")
        if set(settings) != set(SETTING_NAMES):
            raise ValueError(f"Settings must be exactly {SETTING_NAMES}")

        self.sentinel = sentinel
        self._points: dict[str, DataPoint] = {}
        for name, point in sensors.items():
            self._points[name] = DataPoint(address=point.address, value=sentinel)
        for name, point in settings.items():
            self._points[name] = DataPoint(address=point.address, value=point.value)

        self._by_address = {point.address: name for name, point in self._points.items()}
        if len(self._by_address) != len(self._points):
            raise ValueError("Sensor and setting addresses must be unique")

        self.lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ThermostatConfig) -> "MeasurementStore":
        """Build the store from validated configuration."""
        sensors = {
            "heaterIn": config.sensors.heater_in,
            "heaterOut": config.sensors.heater_out,
            "roomTemp": config.sensors.room_temp,
            "tankUp": config.sensors.tank_up,
        }
        settings = {
            "tankMin": config.settings.tank_min,
            "tankMax": config.settings.tank_max,
            "heaterCritical": config.settings.heater_critical,
            "expected": config.settings.expected,
            "hysteresis": config.settings.hysteresis,
        }
        return cls(sensors, settings, sentinel=config.control.sensor_sentinel)

    def addresses(self) -> list[str]:
        """Topics to subscribe to, sensors first."""
        return [self._points[name].address for name in SENSOR_NAMES + SETTING_NAMES]

    def update(self, address: str, raw: str | bytes) -> bool:
        """Store an inbound payload.

        Returns:
            True if a DataPoint was updated. Malformed payloads and unknown
            addresses are dropped and return False.
        """
        value = parse_value(raw)
        if value is None:
            logger.debug(f"Discarding non-numeric payload on {address}: {raw!r}")
            return False

        name = self._by_address.get(address)
        if name is None:
            return False

        with self.lock:
            self._points[name].value = value
        return True

    def value(self, name: str) -> float:
        """Current value of a sensor or setting by name (e.g. "roomTemp")."""
        with self.lock:
            point = self._points.get(name)
            if point is None:
                raise SensorError(f"Unknown sensor or setting: {name}")
            return point.value

    def missing_sensors(self) -> list[str]:
        """Sensors that still hold the sentinel value."""
        with self.lock:
            return [name for name in SENSOR_NAMES if self._points[name].value == self.sentinel]

    def snapshot(self) -> Readings:
        """Copy all values at once for a control cycle."""
        with self.lock:
            v = {name: point.value for name, point in self._points.items()}
        return Readings(
            room_temp=v["roomTemp"],
            tank_up=v["tankUp"],
            heater_in=v["heaterIn"],
            heater_out=v["heaterOut"],
            tank_min=v["tankMin"],
            tank_max=v["tankMax"],
            heater_critical=v["heaterCritical"],
            expected=v["expected"],
            hysteresis=v["hysteresis"],
        )

    def as_dict(self) -> dict:
        """Sensor and setting values grouped for the status API."""
        with self.lock:
            return {
                "sensors": {name: self._points[name].value for name in SENSOR_NAMES},
                "settings": {name: self._points[name].value for name in SETTING_NAMES},
            }
