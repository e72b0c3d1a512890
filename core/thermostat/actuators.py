"""
Actuator State Machine

Owns the last commanded state of the burner relay and the diverter switch.
A command is published only when it changes that state, and the state is
only recorded once the bus has accepted the message.
"""

import logging
from typing import Protocol

from .exceptions import PublishError
from .metrics import ThermostatMetrics

logger = logging.getLogger(__name__)

# Diverter positions
ROOM = False
WATER = True


class Publisher(Protocol):
    def publish(self, address: str, payload: str) -> None:
        """Send payload to address, raising PublishError if not accepted."""


class ActuatorStateMachine:
    """Idempotent commands for the heater and the switch."""

    def __init__(self, bus: Publisher, heater_address: str, switch_address: str, metrics: ThermostatMetrics):
        self.bus = bus
        self.heater_address = heater_address
        self.switch_address = switch_address
        self.metrics = metrics

        self._heater_state = False
        self._switch_state = ROOM

    @property
    def heater_state(self) -> bool:
        return self._heater_state

    @property
    def switch_state(self) -> bool:
        return self._switch_state

    def reset(self) -> None:
        """Command both actuators off regardless of the recorded state.

        Raises:
            PublishError: If either command is rejected; the controller must
                not start without actuators in a known state.
        """
        self.bus.publish(self.heater_address, "0")
        self._heater_state = False
        self.metrics.burner_mode.set(0)

        self.bus.publish(self.switch_address, "0")
        self._switch_state = ROOM
        self.metrics.actuator_mode.set(0)

        logger.info("Actuators reset to OFF")

    def set_heater(self, desired: bool, reason: str) -> bool:
        """Turn the burner on or off.

        Args:
            desired: Burner state to command
            reason: Human-readable cause, logged with the transition

        Returns:
            True if a transition was published
        """
        if desired == self._heater_state:
            return False

        if not self._publish("heater", self.heater_address, desired):
            return False

        self._heater_state = desired
        self.metrics.burner_mode.set(1 if desired else 0)
        if desired:
            logger.info(f"Starting: {reason}")
        else:
            logger.info(f"Stopping: {reason}")
        return True

    def set_switch(self, desired: bool) -> bool:
        """Move the diverter to the water (True) or room (False) circuit.

        Returns:
            True if a transition was published
        """
        if desired == self._switch_state:
            return False

        if not self._publish("switch", self.switch_address, desired):
            return False

        self._switch_state = desired
        self.metrics.actuator_mode.set(1 if desired else 0)
        if desired == WATER:
            logger.info("Switching actuator in water heating position")
        else:
            logger.info("Switching actuator in home heating position")
        return True

    def _publish(self, actuator: str, address: str, desired: bool) -> bool:
        try:
            self.bus.publish(address, "1" if desired else "0")
        except PublishError as e:
            logger.warning(f"Cannot command {actuator} {'ON' if desired else 'OFF'}, retrying next cycle: {e}")
            self.metrics.publish_failures.labels(actuator=actuator).inc()
            return False
        return True

    def as_dict(self) -> dict:
        return {"heater": self._heater_state, "switch": self._switch_state}
