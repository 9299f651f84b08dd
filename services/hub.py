"""Observer registry and event fan-out."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Protocol, Sequence

from models.records import Alert, Reading
from services.errors import DeliveryError
from storage.history import (
    DEFAULT_WINDOW_HOURS,
    MAX_WINDOW_HOURS,
    HistoryStore,
    resolve_window_hours,
)

logger = logging.getLogger(__name__)

HISTORICAL_DATA_EVENT = "historical-data"
SENSOR_DATA_EVENT = "sensor-data"
ALERTS_EVENT = "alerts"


class Observer(Protocol):
    observer_id: str

    def send(self, event: str, payload: Sequence[Any]) -> None:
        """Deliver an event; raise ``DeliveryError`` when it cannot."""


class ObserverRegistry:
    """Lock-guarded set of connected observers keyed by id."""

    def __init__(self) -> None:
        self._observers: Dict[str, Observer] = {}
        self._lock = Lock()

    def add(self, observer: Observer) -> None:
        with self._lock:
            self._observers[observer.observer_id] = observer

    def discard(self, observer: Observer) -> bool:
        with self._lock:
            # A reconnect may reuse the id; only the registered instance is removed.
            if self._observers.get(observer.observer_id) is not observer:
                return False
            del self._observers[observer.observer_id]
            return True

    def snapshot(self) -> List[Observer]:
        with self._lock:
            return list(self._observers.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)


class SubscriptionHub:
    """Delivers live batches, alerts and history snapshots to observers."""

    def __init__(
        self,
        store: HistoryStore,
        registry: ObserverRegistry | None = None,
        default_hours: int = DEFAULT_WINDOW_HOURS,
        max_hours: int = MAX_WINDOW_HOURS,
    ) -> None:
        self.store = store
        self.registry = registry if registry is not None else ObserverRegistry()
        self.max_hours = max_hours
        self.default_hours = min(default_hours, max_hours)

    @property
    def observer_count(self) -> int:
        return len(self.registry)

    def register(self, observer: Observer) -> None:
        self.registry.add(observer)
        logger.info(
            "Observer connected",
            extra={"observer_id": observer.observer_id, "observer_count": len(self.registry)},
        )
        self._deliver(observer, HISTORICAL_DATA_EVENT, self.store.query(self.default_hours))

    def unregister(self, observer: Observer) -> None:
        if self.registry.discard(observer):
            logger.info(
                "Observer disconnected",
                extra={"observer_id": observer.observer_id, "observer_count": len(self.registry)},
            )

    def broadcast(self, batch: Sequence[Reading], alerts: Sequence[Alert]) -> int:
        """Send a batch (and alerts, if any) to every observer; return successes."""
        delivered = 0
        for observer in self.registry.snapshot():
            if not self._deliver(observer, SENSOR_DATA_EVENT, batch):
                continue
            if alerts and not self._deliver(observer, ALERTS_EVENT, alerts):
                continue
            delivered += 1
        return delivered

    def on_historical_request(self, observer: Observer, hours: Any = None) -> None:
        window = resolve_window_hours(hours, self.default_hours, self.max_hours)
        logger.debug(
            "Historical data requested",
            extra={"observer_id": observer.observer_id, "hours": window},
        )
        self._deliver(observer, HISTORICAL_DATA_EVENT, self.store.query(window))

    @staticmethod
    def _deliver(observer: Observer, event: str, payload: Sequence[Any]) -> bool:
        try:
            observer.send(event, payload)
        except DeliveryError as exc:
            logger.warning(
                "Delivery failed",
                extra={"observer_id": observer.observer_id, "event": event, "reason": exc.reason},
            )
            return False
        except Exception:  # noqa: BLE001 - one observer must not abort the fan-out
            logger.exception(
                "Unexpected delivery failure",
                extra={"observer_id": observer.observer_id, "event": event},
            )
            return False
        return True
