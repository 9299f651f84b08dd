"""Error taxonomy for the monitoring core."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for every error raised by the monitoring core."""


class ConfigurationError(MonitorError, ValueError):
    """A sensor type or location outside the static catalog was requested."""


class UnknownSensorType(MonitorError, LookupError):
    """No thresholds exist for a sensor type; evaluation falls back to normal."""

    def __init__(self, sensor_type: str) -> None:
        super().__init__(f"No thresholds configured for sensor type {sensor_type!r}.")
        self.sensor_type = sensor_type


class PersistenceError(MonitorError):
    """The readings database rejected a write or could not be queried."""


class DeliveryError(MonitorError):
    """An observer could not be sent an event."""

    def __init__(self, observer_id: str, event: str, reason: str) -> None:
        super().__init__(f"Delivery of {event!r} to observer {observer_id} failed: {reason}")
        self.observer_id = observer_id
        self.event = event
        self.reason = reason
