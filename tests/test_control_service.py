"""Tests for the control service lifecycle and loop."""

from __future__ import annotations

import asyncio

import pytest
from conftest import QUIET_SENSORS, RecordingSleep

from core.thermostat.control_service import ControlService
from core.thermostat.exceptions import PublishError


def _service_stopping_after(config, store, bus, metrics, cycles: int, on_gate=None):
    """Build a service whose loop ends after the given number of cycles."""
    counts = {"gate": 0, "cycle": 0}
    holder = {}

    def on_sleep(seconds):
        service = holder["service"]
        if seconds == config.control.startup_poll_interval:
            counts["gate"] += 1
            if on_gate is not None:
                on_gate(service, counts["gate"])
        elif seconds == config.control.cycle_interval:
            counts["cycle"] += 1
            if counts["cycle"] == cycles:
                service._running = False

    sleep = RecordingSleep(on_sleep)
    service = ControlService(config, store, bus, metrics, sleep=sleep)
    holder["service"] = service
    return service, sleep, counts


async def _run_to_completion(service):
    await service.start()
    await service._task


def test_start_resets_actuators_before_loop(config, ready_store, bus, metrics) -> None:
    service, _, _ = _service_stopping_after(config, ready_store, bus, metrics, cycles=1)

    asyncio.run(_run_to_completion(service))

    assert bus.published[:2] == [("relay/heater", "0"), ("relay/switch", "0")]


def test_reset_failure_prevents_start(config, ready_store, bus, metrics, sleep) -> None:
    bus.fail = True
    service = ControlService(config, ready_store, bus, metrics, sleep=sleep)

    with pytest.raises(PublishError):
        asyncio.run(service.start())

    assert service.running is False
    assert sleep.calls == []


def test_no_cycle_runs_before_sensors_reported(config, store, feed, bus, metrics) -> None:
    seen_during_gate = []

    def on_gate(service, polls):
        seen_during_gate.append(service.engine.last_result)
        if polls == 2:
            feed(**QUIET_SENSORS)

    service, sleep, counts = _service_stopping_after(config, store, bus, metrics, cycles=3, on_gate=on_gate)

    asyncio.run(_run_to_completion(service))

    assert seen_during_gate == [None, None]
    assert sleep.calls == [15, 15, 1, 1, 1]
    assert counts["cycle"] == 3
    assert metrics.sample("heater_control_cycles_total", {"state": "room_hold"}) == 3
    assert service.sensors_ready is True


def test_loop_drives_actuators(config, ready_store, feed, bus, metrics) -> None:
    feed(tankUp=40)
    service, _, _ = _service_stopping_after(config, ready_store, bus, metrics, cycles=2)

    asyncio.run(_run_to_completion(service))

    assert bus.published == [
        ("relay/heater", "0"),
        ("relay/switch", "0"),
        ("relay/heater", "1"),
        ("relay/switch", "1"),
    ]


def test_loop_survives_cycle_errors(config, ready_store, bus, metrics) -> None:
    service, _, _ = _service_stopping_after(config, ready_store, bus, metrics, cycles=3)
    calls = []

    async def flaky_cycle():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("sensor glitch")

    service.engine.run_cycle = flaky_cycle

    asyncio.run(_run_to_completion(service))

    assert len(calls) == 3


def test_stop_cancels_loop_waiting_for_sensors(config, store, bus, metrics) -> None:
    service = ControlService(config, store, bus, metrics)

    async def main():
        await service.start()
        await asyncio.sleep(0)
        await service.stop()

    asyncio.run(main())

    assert service.running is False
    assert service.sensors_ready is False
    assert service._task.done()


def test_second_start_is_ignored(config, store, bus, metrics) -> None:
    service = ControlService(config, store, bus, metrics)

    async def main():
        await service.start()
        task = service._task
        await service.start()
        assert service._task is task
        await service.stop()

    asyncio.run(main())

    assert len(bus.published) == 2


def test_status_reports_live_state(config, ready_store, feed, bus, metrics) -> None:
    feed(heaterOut=95)
    service, _, _ = _service_stopping_after(config, ready_store, bus, metrics, cycles=2)

    asyncio.run(_run_to_completion(service))
    status = service.status()

    assert status["control_state"] == "failsafe"
    assert status["failsafe_total"] == 2
    assert status["actuators"] == {"heater": False, "switch": False}
    assert status["sensors"]["heaterOut"] == 95.0
    assert status["settings"]["tankMin"] == 45.0
    assert status["missing_sensors"] == []
    assert status["sensors_ready"] is True
