"""
Decision Engine

One control cycle evaluates three rules in priority order:

1. failsafe - outlet temperature at or above the critical limit forces the
   burner off and ends the cycle
2. water    - domestic hot water has priority over space heating; while the
   tank is filling the cycle ends here
3. room     - symmetric hysteresis band around the expected room temperature

The first rule that returns a state ends the cycle.
"""

import asyncio
import logging

from .actuators import ROOM, WATER, ActuatorStateMachine
from .measurements import MeasurementStore
from .metrics import ThermostatMetrics
from .models import ControlState, CycleResult, Readings
from .settings import ControlConfig

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Turns sensor readings into actuator commands."""

    def __init__(
        self,
        store: MeasurementStore,
        actuators: ActuatorStateMachine,
        metrics: ThermostatMetrics,
        control: ControlConfig | None = None,
        sleep=asyncio.sleep,
    ):
        self.store = store
        self.actuators = actuators
        self.metrics = metrics
        self.control = control or ControlConfig()
        self._sleep = sleep

        self.rules = [
            ("failsafe", self._failsafe),
            ("water", self._water_heating),
            ("room", self._room_heating),
        ]
        self.last_result: CycleResult | None = None

    async def run_cycle(self) -> CycleResult:
        """Evaluate all rules against the current readings."""
        readings = self.store.snapshot()
        result = CycleResult(state=ControlState.ROOM_HOLD)

        for name, rule in self.rules:
            result.rules_evaluated.append(name)
            state = await rule(readings)
            if state is not None:
                result.state = state
                break

        self.metrics.cycles.labels(state=result.state.value).inc()
        if self.last_result is None or self.last_result.state != result.state:
            logger.debug(f"Control state: {result.state.value}")
        self.last_result = result
        return result

    async def _settle(self, transitioned: bool):
        # Give the relay time to move before the next dependent command
        if transitioned:
            await self._sleep(self.control.settle_delay)

    async def _failsafe(self, r: Readings) -> ControlState | None:
        if r.heater_out >= r.heater_critical:
            transitioned = self.actuators.set_heater(False, "critical heater temperature reached")
            self.metrics.failsafe_total.inc()
            await self._settle(transitioned)
            return ControlState.FAILSAFE
        return None

    async def _water_heating(self, r: Readings) -> ControlState | None:
        # Water heating start
        if r.tank_up < r.tank_min:
            await self._settle(self.actuators.set_heater(True, "water heating"))
            await self._settle(self.actuators.set_switch(WATER))
            return ControlState.DHW_FILLING

        # Water heating end: redirect flow, room rule decides about the burner
        if r.tank_up >= r.tank_max:
            await self._settle(self.actuators.set_switch(ROOM))
            return None

        # Inside the band: keep whatever circuit is selected
        if self.actuators.switch_state == WATER:
            return ControlState.DHW_FILLING
        return None

    async def _room_heating(self, r: Readings) -> ControlState:
        half_band = r.hysteresis / self.control.hysteresis_divisor

        if r.room_temp < r.expected - half_band:
            await self._settle(self.actuators.set_heater(True, "room temperature lower than expected"))
            return ControlState.ROOM_HEAT_ON

        if r.room_temp > r.expected + half_band:
            await self._settle(self.actuators.set_heater(False, "expected room temperature achieved"))
            return ControlState.ROOM_HEAT_OFF

        return ControlState.ROOM_HOLD
