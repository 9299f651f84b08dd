"""History store variants: database-backed and simulated."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, List, Optional

from datastore.readings_db import ReadingRow, ReadingsDatabase, parse_calibration_date
from models.records import Reading, ReadingMetadata
from services.errors import PersistenceError
from services.generator import CALIBRATION_AGE, ReadingGenerator
from services.thresholds import ThresholdEvaluator

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_HOURS = 24
MAX_WINDOW_HOURS = 168
DEFAULT_MAX_BACKLOG = 1000
SYNTHETIC_SPACING = timedelta(minutes=10)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_window_hours(
    raw: Any,
    default: int = DEFAULT_WINDOW_HOURS,
    maximum: int = MAX_WINDOW_HOURS,
) -> int:
    """Coerce a requested window to a positive integer capped at ``maximum``.

    Absent, malformed or non-positive values use ``default``.
    """
    return min(_parse_window(raw, default), maximum)


def _parse_window(raw: Any, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, float):
        if not raw.is_integer():
            return default
        raw = int(raw)
    if isinstance(raw, str):
        candidate = raw.strip()
        if not candidate:
            return default
        try:
            raw = int(candidate)
        except ValueError:
            return default
    if not isinstance(raw, int):
        return default
    return raw if raw > 0 else default


class HistoryStore(ABC):
    """Persists readings and serves trailing windows, newest first."""

    mode: str

    @abstractmethod
    def save(self, reading: Reading) -> None:
        """Best-effort, non-blocking persistence of a reading."""

    @abstractmethod
    def query(self, hours: int) -> List[Reading]:
        """Readings from the trailing ``hours`` window, newest first."""

    def shutdown(self) -> None:
        """Release background resources."""


class BackedStore(HistoryStore):
    """Store backed by the readings database.

    Writes run on a worker pool so a slow or unreachable database never
    delays the caller. Status and quality score are recomputed on read so
    threshold changes reclassify stored history.
    """

    mode = "database"

    def __init__(
        self,
        database: ReadingsDatabase,
        evaluator: ThresholdEvaluator,
        workers: int = 4,
        clock: Clock = _utcnow,
        max_backlog: int = DEFAULT_MAX_BACKLOG,
    ) -> None:
        self.database = database
        self.evaluator = evaluator
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="history-save")
        self.max_backlog = max_backlog
        self._clock = clock
        self._pending = 0
        self._pending_lock = Lock()

    @property
    def pending(self) -> int:
        with self._pending_lock:
            return self._pending

    def save(self, reading: Reading) -> None:
        context = {"sensor_type": reading.sensor_type, "location_id": reading.location_id}
        with self._pending_lock:
            if self._pending >= self.max_backlog:
                logger.warning(
                    "Dropping reading; write backlog full",
                    extra={**context, "reason": f"{self._pending} writes pending"},
                )
                return
            self._pending += 1
        try:
            future = self.executor.submit(self.database.insert_reading, reading)
        except RuntimeError:
            # Executor already shut down; late writes are dropped.
            self._release()
            logger.debug("Dropping reading after shutdown", extra=context)
            return
        future.add_done_callback(lambda f, r=reading: self._on_saved(f, r))

    def query(self, hours: int) -> List[Reading]:
        cutoff = self._clock() - timedelta(hours=hours)
        try:
            rows = self.database.fetch_since(cutoff)
        except PersistenceError as exc:
            logger.error("History query failed", extra={"hours": hours, "reason": str(exc)})
            return []
        return [self._to_reading(row) for row in rows]

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=False)
        self.database.dispose()

    def _to_reading(self, row: ReadingRow) -> Reading:
        evaluation = self.evaluator.evaluate(row.sensor_type, row.value)
        meta = row.metadata
        return Reading(
            location_id=row.location_id,
            sensor_type=row.sensor_type,
            value=row.value,
            unit=row.unit,
            quality_score=evaluation.quality_score,
            status=evaluation.status,
            timestamp=row.timestamp,
            metadata=ReadingMetadata(
                calibration_date=parse_calibration_date(
                    meta.get("calibration_date"), (row.timestamp - CALIBRATION_AGE).date()
                ),
                sensor_version=str(meta.get("sensor_version") or "unknown"),
                temperature_compensation=bool(meta.get("temperature_compensation", False)),
            ),
        )

    def _release(self) -> None:
        with self._pending_lock:
            self._pending -= 1

    def _on_saved(self, future: "Future[None]", reading: Reading) -> None:
        self._release()
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            return
        logger.error(
            "Failed to persist reading",
            extra={
                "sensor_type": reading.sensor_type,
                "location_id": reading.location_id,
                "reason": str(exc),
            },
        )


class SyntheticStore(HistoryStore):
    """Fallback that synthesizes a dense backfill instead of reading storage."""

    mode = "simulated"

    def __init__(self, generator: ReadingGenerator, clock: Clock = _utcnow) -> None:
        self.generator = generator
        self._clock = clock

    def save(self, reading: Reading) -> None:
        return None

    def query(self, hours: int) -> List[Reading]:
        now = self._clock()
        steps = hours * 6
        readings: List[Reading] = []
        for step in range(steps + 1):
            readings.extend(self.generator.generate_matrix(now - step * SYNTHETIC_SPACING))
        return readings


def build_history_store(
    database: Optional[ReadingsDatabase],
    generator: ReadingGenerator,
    evaluator: ThresholdEvaluator,
    workers: int = 4,
    max_backlog: int = DEFAULT_MAX_BACKLOG,
) -> HistoryStore:
    """Ping the database once and pick the store for the process lifetime."""
    if database is not None and database.ping():
        logger.info("Readings database reachable", extra={"mode": BackedStore.mode})
        return BackedStore(database, evaluator, workers=workers, max_backlog=max_backlog)

    if database is not None:
        database.dispose()
    logger.warning(
        "Readings database unreachable; serving simulated history",
        extra={"mode": SyntheticStore.mode},
    )
    return SyntheticStore(generator)
