"""
Prometheus metrics for the thermostat controller.

Scraped through the /metrics endpoint of the backend.
"""

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


class ThermostatMetrics:
    """Counters and gauges describing the controller's decisions."""

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        """
        Args:
            registry: Registry to register into (tests pass a fresh one)
        """
        self.registry = registry
        self.failsafe_total = Counter(
            "heater_failsafe_total",
            "Increase when failsafe system kicked in",
            registry=registry,
        )
        self.burner_mode = Gauge(
            "heater_burner_mode_binary",
            "Last commanded state of the heater burner",
            registry=registry,
        )
        self.actuator_mode = Gauge(
            "heater_actuator_mode_binary",
            "Last commanded state of the diverter switch (1 = water heating)",
            registry=registry,
        )
        self.publish_failures = Counter(
            "heater_publish_failures_total",
            "Actuator commands the bus did not accept",
            ["actuator"],
            registry=registry,
        )
        self.cycles = Counter(
            "heater_control_cycles_total",
            "Control cycles by resulting state",
            ["state"],
            registry=registry,
        )

    def sample(self, name: str, labels: dict | None = None) -> float:
        """Current value of a sample, 0.0 if it was never recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0
