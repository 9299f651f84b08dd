"""Wiring of the monitoring core and its externally consumed accessors."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, List, Mapping, Optional

from datastore.readings_db import ReadingsDatabase
from models.profiles import LOCATION_PROFILES, SENSOR_PROFILES, LocationProfile, SensorProfile
from models.records import Reading
from services.alerts import AlertDetector
from services.errors import PersistenceError
from services.generator import ReadingGenerator
from services.hub import SubscriptionHub
from services.scheduler import SimulationScheduler
from services.thresholds import ThresholdEvaluator
from settings import get_settings
from storage.history import (
    DEFAULT_MAX_BACKLOG,
    DEFAULT_WINDOW_HOURS,
    MAX_WINDOW_HOURS,
    HistoryStore,
    build_history_store,
    resolve_window_hours,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusSnapshot:
    status: str
    connections: int
    uptime: float
    timestamp: datetime
    history_mode: str


@dataclass(frozen=True)
class Catalog:
    locations: List[LocationProfile]
    sensors: List[SensorProfile]


class MonitorService:
    """Owns the generator, store, hub and scheduler for one process."""

    def __init__(
        self,
        generator: ReadingGenerator,
        store: HistoryStore,
        hub: SubscriptionHub,
        scheduler: SimulationScheduler,
    ) -> None:
        self.generator = generator
        self.store = store
        self.hub = hub
        self.scheduler = scheduler
        self._started_at = time.monotonic()

    @property
    def default_hours(self) -> int:
        return self.hub.default_hours

    @property
    def max_hours(self) -> int:
        return self.hub.max_hours

    def start(self) -> None:
        self.scheduler.start()

    def shutdown(self) -> None:
        """Stop future ticks; pending writes finish or fail on their own."""
        self.scheduler.stop(timeout=self.scheduler.interval)
        self.store.shutdown()

    def status(self) -> StatusSnapshot:
        return StatusSnapshot(
            status="running",
            connections=self.hub.observer_count,
            uptime=time.monotonic() - self._started_at,
            timestamp=datetime.now(timezone.utc),
            history_mode=self.store.mode,
        )

    def catalog(self) -> Catalog:
        return Catalog(
            locations=list(self.generator.locations.values()),
            sensors=list(self.generator.sensors.values()),
        )

    def latest_readings(self) -> List[Reading]:
        """Full matrix generated on demand, independent of the tick cycle."""
        return self.generator.generate_matrix()

    def history(self, hours: Any = None) -> List[Reading]:
        return self.store.query(resolve_window_hours(hours, self.default_hours, self.max_hours))


def build_monitor(
    database: Optional[ReadingsDatabase],
    sensors: Mapping[str, SensorProfile] = SENSOR_PROFILES,
    locations: Mapping[str, LocationProfile] = LOCATION_PROFILES,
    tick_interval: float = 3.0,
    default_hours: int = DEFAULT_WINDOW_HOURS,
    workers: int = 4,
    max_hours: int = MAX_WINDOW_HOURS,
    max_backlog: int = DEFAULT_MAX_BACKLOG,
) -> MonitorService:
    evaluator = ThresholdEvaluator(sensors)
    generator = ReadingGenerator(evaluator, sensors=sensors, locations=locations)
    store = build_history_store(
        database, generator, evaluator, workers=workers, max_backlog=max_backlog
    )
    hub = SubscriptionHub(store, default_hours=default_hours, max_hours=max_hours)
    detector = AlertDetector(evaluator, locations)
    scheduler = SimulationScheduler(hub, generator, detector, interval=tick_interval)
    return MonitorService(generator=generator, store=store, hub=hub, scheduler=scheduler)


@lru_cache
def build_default_monitor() -> MonitorService:
    """Factory that wires the monitor from environment settings."""
    settings = get_settings()
    database = ReadingsDatabase.from_url(
        settings.database_url, connect_timeout=settings.db_connect_timeout
    )
    if settings.db_create_schema:
        try:
            database.create_schema()
        except PersistenceError as exc:
            logger.warning("Schema creation skipped", extra={"reason": str(exc)})
    return build_monitor(
        database,
        tick_interval=settings.tick_interval,
        default_hours=settings.history_default_hours,
        workers=settings.persistence_workers,
        max_hours=settings.history_max_hours,
        max_backlog=settings.persistence_max_backlog,
    )
