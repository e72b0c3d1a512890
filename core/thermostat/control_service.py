"""
Control Service

Background service that owns the control loop:
reset actuators -> wait for sensor data -> run a decision cycle every second.
"""

import asyncio
import logging

from .actuators import ActuatorStateMachine, Publisher
from .decision_engine import DecisionEngine
from .measurements import MeasurementStore
from .metrics import ThermostatMetrics
from .settings import ThermostatConfig
from .startup_gate import wait_for_sensors

logger = logging.getLogger(__name__)


class ControlService:
    """
    Runs the thermostat decision loop as an asyncio task.

    The measurement store is shared with the bus adapter, which writes into it
    from its own thread; the loop only reads from it.
    """

    def __init__(
        self,
        config: ThermostatConfig,
        store: MeasurementStore,
        bus: Publisher,
        metrics: ThermostatMetrics,
        sleep=asyncio.sleep,
    ):
        self.config = config
        self.store = store
        self.bus = bus
        self.metrics = metrics
        self._sleep = sleep

        self.actuators = ActuatorStateMachine(
            bus,
            heater_address=config.actuators.heater,
            switch_address=config.actuators.switch,
            metrics=metrics,
        )
        self.engine = DecisionEngine(store, self.actuators, metrics, control=config.control, sleep=sleep)

        self._task: asyncio.Task | None = None
        self._running = False
        self.sensors_ready = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Reset the actuators and start the control loop.

        Raises:
            PublishError: If the actuators cannot be reset; the loop is not started
        """
        if self._running:
            logger.warning("Control service already running")
            return

        self.actuators.reset()

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Control service started")
        logger.info(f"   Cycle interval: {self.config.control.cycle_interval:g} seconds")

    async def stop(self):
        """Stop the control loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Control service stopped")

    async def _run_loop(self):
        """Main loop - gate on sensor data, then one cycle per interval."""
        await wait_for_sensors(
            self.store,
            poll_interval=self.config.control.startup_poll_interval,
            sleep=self._sleep,
        )
        self.sensors_ready = True

        while self._running:
            await self._sleep(self.config.control.cycle_interval)
            try:
                await self.engine.run_cycle()
            except Exception as e:
                logger.error(f"Error in control loop: {e}", exc_info=True)

    def status(self) -> dict:
        """Snapshot of the controller for the status API."""
        last = self.engine.last_result
        return {
            **self.store.as_dict(),
            "actuators": self.actuators.as_dict(),
            "sensors_ready": self.sensors_ready,
            "missing_sensors": self.store.missing_sensors(),
            "control_state": last.state.value if last else None,
            "failsafe_total": self.metrics.sample("heater_failsafe_total"),
        }
