"""Periodic generation cycle driving persistence, alerting and broadcast."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Event, Lock, Thread
from typing import Iterable, List, Optional, Sequence

from models.records import Alert, Reading
from services.alerts import AlertDetector
from services.generator import ReadingGenerator
from services.hub import Observer, SubscriptionHub
from storage.history import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 3.0


class SchedulerState(str, Enum):
    idle = "idle"
    running = "running"
    stopped = "stopped"


@dataclass(frozen=True)
class TickResult:
    batch: List[Reading]
    alerts: List[Alert]


def build_tick(
    observers: Sequence[Observer],
    location_ids: Iterable[str],
    sensor_types: Iterable[str],
    generator: ReadingGenerator,
    store: HistoryStore,
    detector: AlertDetector,
    now: Optional[datetime] = None,
) -> Optional[TickResult]:
    """Build one complete batch, or nothing when no observer is connected."""
    if not observers:
        return None

    instant = now or datetime.now(timezone.utc)
    sensors = list(sensor_types)
    batch: List[Reading] = []
    for location_id in location_ids:
        for sensor_type in sensors:
            reading = generator.generate(sensor_type, location_id, instant)
            store.save(reading)
            batch.append(reading)

    return TickResult(batch=batch, alerts=detector.detect(batch))


class SimulationScheduler:
    """Fires a tick every ``interval`` seconds on a background thread."""

    def __init__(
        self,
        hub: SubscriptionHub,
        generator: ReadingGenerator,
        detector: AlertDetector,
        interval: float = DEFAULT_TICK_INTERVAL,
    ) -> None:
        self.hub = hub
        self.generator = generator
        self.detector = detector
        self.interval = interval
        self._state = SchedulerState.idle
        self._state_lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def start(self) -> None:
        with self._state_lock:
            if self._state is SchedulerState.running:
                return
            if self._state is SchedulerState.stopped:
                raise RuntimeError("A stopped scheduler cannot be restarted.")
            self._state = SchedulerState.running
            self._thread = Thread(target=self._run, name="simulation-scheduler", daemon=True)
            self._thread.start()
        logger.info("Simulation scheduler started")

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._state_lock:
            if self._state is SchedulerState.stopped:
                return
            self._state = SchedulerState.stopped
            self._stop_event.set()
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
        logger.info("Simulation scheduler stopped")

    def tick(self, now: Optional[datetime] = None) -> Optional[TickResult]:
        result = build_tick(
            self.hub.registry.snapshot(),
            self.generator.locations,
            self.generator.sensors,
            self.generator,
            self.hub.store,
            self.detector,
            now,
        )
        if result is None:
            return None

        delivered = self.hub.broadcast(result.batch, result.alerts)
        logger.debug(
            "Tick broadcast",
            extra={
                "reading_count": len(result.batch),
                "alert_count": len(result.alerts),
                "observer_count": delivered,
            },
        )
        return result

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.tick()
            except Exception:  # noqa: BLE001 - keep ticking after a failed cycle
                logger.exception("Simulation tick failed")
