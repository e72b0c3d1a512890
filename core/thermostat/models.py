"""
Thermostat Data Models

Runtime values shared between the bus handler, the store and the decision engine.
"""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class DataPoint:
    """A topic-addressed scalar measurement or setting."""

    address: str
    value: float = 0.0


class ControlState(str, Enum):
    """Outcome of one control cycle."""

    FAILSAFE = "failsafe"
    DHW_FILLING = "dhw_filling"
    ROOM_HEAT_ON = "room_heat_on"
    ROOM_HEAT_OFF = "room_heat_off"
    ROOM_HOLD = "room_hold"


@dataclass(frozen=True)
class Readings:
    """Copy of all sensor and setting values taken at the start of a cycle."""

    room_temp: float
    tank_up: float
    heater_in: float
    heater_out: float
    tank_min: float
    tank_max: float
    heater_critical: float
    expected: float
    hysteresis: float


@dataclass
class CycleResult:
    """Final state of a control cycle and the rules that ran to reach it."""

    state: ControlState
    rules_evaluated: list[str] = field(default_factory=list)

    @property
    def dhw_active(self) -> bool:
        return self.state == ControlState.DHW_FILLING
