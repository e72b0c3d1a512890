"""
Thermostat Custom Exceptions

Simple exception hierarchy for error handling.
"""


class ThermostatError(Exception):
    """Base exception for the thermostat controller."""

    pass


class ConfigurationError(ThermostatError):
    """Configuration is invalid."""

    pass


class BusConnectionError(ThermostatError):
    """Cannot connect to the MQTT broker."""

    pass


class PublishError(ThermostatError):
    """The bus did not accept an outbound message."""

    pass


class SensorError(ThermostatError):
    """Sensor or setting name is unknown."""

    pass
