"""
Thermostat Configuration Settings

Static configuration loaded from a YAML document at startup.
Every topic address must be given explicitly; unknown keys are rejected.
"""

import logging
import math
import re
from dataclasses import dataclass, fields

import yaml

from .exceptions import ConfigurationError
from .models import DataPoint

logger = logging.getLogger(__name__)


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _require_mapping(data, section: str) -> dict:
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{section}' must be a mapping, got {type(data).__name__}")
    return data


def _parse_float(value, where: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{where}: expected a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{where}: expected a number, got {value!r}")
    if not math.isfinite(result):
        raise ConfigurationError(f"{where}: value must be finite, got {value!r}")
    return result


def _parse_address(value, where: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{where}: address must be a non-empty string")
    return value


def _data_point(data, where: str) -> DataPoint:
    data = _require_mapping(data, where)
    unknown = set(data) - {"address", "value"}
    if unknown:
        raise ConfigurationError(f"{where}: unknown keys {sorted(unknown)}")
    if "address" not in data:
        raise ConfigurationError(f"{where}: missing 'address'")
    address = _parse_address(data["address"], where)
    value = _parse_float(data.get("value", 0.0), f"{where}.value")
    return DataPoint(address=address, value=value)


def _convert_section(cls, data, section: str, convert) -> dict:
    """Map a camelCase YAML section onto the fields of ``cls``, strictly."""
    data = _require_mapping(data, section)
    expected = {f.name for f in fields(cls)}
    converted = {_camel_to_snake(k): v for k, v in data.items()}

    unknown = set(converted) - expected
    if unknown:
        names = sorted(_snake_to_camel(k) for k in unknown)
        raise ConfigurationError(f"Section '{section}': unknown keys {names}")

    missing = expected - set(converted)
    if missing:
        names = sorted(_snake_to_camel(k) for k in missing)
        raise ConfigurationError(f"Section '{section}': missing keys {names}")

    return {k: convert(v, f"{section}.{_snake_to_camel(k)}") for k, v in converted.items()}


@dataclass
class ActuatorsConfig:
    """Topics of the two binary actuators."""

    heater: str
    switch: str  # False = space heating circuit, True = DHW circuit

    @classmethod
    def from_dict(cls, data: dict) -> "ActuatorsConfig":
        """Create from dictionary."""
        return cls(**_convert_section(cls, data, "actuators", _parse_address))


@dataclass
class SensorsConfig:
    """Topics of the four temperature sensors."""

    heater_in: DataPoint
    heater_out: DataPoint
    room_temp: DataPoint
    tank_up: DataPoint

    @classmethod
    def from_dict(cls, data: dict) -> "SensorsConfig":
        """Create from dictionary."""
        return cls(**_convert_section(cls, data, "sensors", _data_point))


@dataclass
class SettingsConfig:
    """Topics and startup values of the five operator settings."""

    tank_min: DataPoint
    tank_max: DataPoint
    heater_critical: DataPoint
    hysteresis: DataPoint
    expected: DataPoint

    @classmethod
    def from_dict(cls, data: dict) -> "SettingsConfig":
        """Create from dictionary."""
        return cls(**_convert_section(cls, data, "settings", _data_point))


@dataclass
class ControlConfig:
    """Timing and band parameters of the control loop."""

    cycle_interval: float = 1.0  # seconds between control cycles
    settle_delay: float = 1.0  # seconds to wait after an actuator transition
    startup_poll_interval: float = 15.0  # seconds between startup gate checks
    sensor_sentinel: float = 300.0  # placeholder meaning "no reading yet"
    hysteresis_divisor: float = 2.0  # 2 = symmetric half-band around expected

    @classmethod
    def from_dict(cls, data: dict | None) -> "ControlConfig":
        """Create from dictionary. Every key is optional."""
        if data is None:
            return cls()
        data = _require_mapping(data, "control")
        expected = {f.name for f in fields(cls)}
        converted = {}
        for key, value in data.items():
            name = _camel_to_snake(key)
            if name not in expected:
                raise ConfigurationError(f"Section 'control': unknown key '{key}'")
            converted[name] = _parse_float(value, f"control.{key}")

        config = cls(**converted)
        for name in ("cycle_interval", "startup_poll_interval", "hysteresis_divisor"):
            if getattr(config, name) <= 0:
                raise ConfigurationError(f"control.{_snake_to_camel(name)} must be positive")
        if config.settle_delay < 0:
            raise ConfigurationError("control.settleDelay must not be negative")
        return config


@dataclass
class ThermostatConfig:
    """Complete controller configuration."""

    actuators: ActuatorsConfig
    sensors: SensorsConfig
    settings: SettingsConfig
    control: ControlConfig

    @classmethod
    def from_dict(cls, data: dict) -> "ThermostatConfig":
        """Create from dictionary and check that no two topics collide."""
        data = _require_mapping(data, "root")
        unknown = set(data) - {"actuators", "sensors", "settings", "control"}
        if unknown:
            raise ConfigurationError(f"Unknown top-level keys {sorted(unknown)}")
        for section in ("actuators", "sensors", "settings"):
            if section not in data:
                raise ConfigurationError(f"Missing required section '{section}'")

        config = cls(
            actuators=ActuatorsConfig.from_dict(data["actuators"]),
            sensors=SensorsConfig.from_dict(data["sensors"]),
            settings=SettingsConfig.from_dict(data["settings"]),
            control=ControlConfig.from_dict(data.get("control")),
        )
        config._check_unique_addresses()
        return config

    def _check_unique_addresses(self) -> None:
        seen: dict[str, str] = {}
        for name, address in self.all_addresses():
            if address in seen:
                raise ConfigurationError(
                    f"Address '{address}' used by both {seen[address]} and {name}"
                )
            seen[address] = name

    def all_addresses(self) -> list[tuple[str, str]]:
        """(name, address) pairs for every actuator, sensor and setting."""
        pairs = [
            ("actuators.heater", self.actuators.heater),
            ("actuators.switch", self.actuators.switch),
        ]
        for section in ("sensors", "settings"):
            group = getattr(self, section)
            for f in fields(group):
                pairs.append((f"{section}.{_snake_to_camel(f.name)}", getattr(group, f.name).address))
        return pairs


def load_config(path: str) -> ThermostatConfig:
    """Read and validate the YAML configuration file.

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid
    """
    logger.info(f"Reading configuration from {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"File reading error: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}")

    if data is None:
        raise ConfigurationError(f"Configuration file {path} is empty")

    config = ThermostatConfig.from_dict(data)
    logger.info(f"Loaded configuration: {config}")
    return config
