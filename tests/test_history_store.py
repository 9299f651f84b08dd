"""Tests for the database-backed and simulated history stores."""

from __future__ import annotations

import random
import threading
import time
from datetime import date, datetime, timedelta, timezone
from typing import List

import pytest

from datastore.readings_db import ReadingRow, ReadingsDatabase
from models.profiles import LOCATION_PROFILES, SENSOR_PROFILES
from models.records import Reading, ReadingMetadata, ReadingStatus
from services.errors import PersistenceError
from services.generator import ReadingGenerator
from services.thresholds import ThresholdEvaluator
from storage.history import (
    BackedStore,
    SyntheticStore,
    build_history_store,
    resolve_window_hours,
)

_NOW = datetime(2024, 4, 10, 12, 0, tzinfo=timezone.utc)
_MATRIX = len(LOCATION_PROFILES) * len(SENSOR_PROFILES)


def _reading(value: float, timestamp: datetime, sensor_type: str = "CO2") -> Reading:
    return Reading(
        location_id="LOC_001",
        sensor_type=sensor_type,
        value=value,
        unit="ppm",
        quality_score=100,
        status=ReadingStatus.normal,
        timestamp=timestamp,
        metadata=ReadingMetadata(
            calibration_date=date(2024, 3, 11),
            sensor_version="v2.3",
            temperature_compensation=True,
        ),
    )


def _database(tmp_path) -> ReadingsDatabase:
    database = ReadingsDatabase.from_url(f"sqlite:///{tmp_path / 'readings.db'}")
    database.create_schema()
    return database


def _generator() -> ReadingGenerator:
    return ReadingGenerator(ThresholdEvaluator(), rng=random.Random(11))


class FailingDatabase:
    def __init__(self) -> None:
        self.disposed = False

    def ping(self) -> bool:
        return False

    def insert_reading(self, reading: Reading) -> None:
        raise PersistenceError("connection refused")

    def fetch_since(self, cutoff: datetime) -> List[ReadingRow]:
        raise PersistenceError("connection refused")

    def dispose(self) -> None:
        self.disposed = True


class BlockingDatabase(FailingDatabase):
    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()
        self.inserted: List[Reading] = []

    def insert_reading(self, reading: Reading) -> None:
        self.release.wait(5)
        self.inserted.append(reading)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 24),
        ("", 24),
        ("abc", 24),
        (0, 24),
        (-3, 24),
        ("-1", 24),
        (2.5, 24),
        (True, 24),
        (6, 6),
        ("6", 6),
        (" 12 ", 12),
        (2.0, 2),
        (168, 168),
        (169, 168),
        (20_000_000, 168),
        ("20000000", 168),
    ],
)
def test_resolve_window_hours(raw, expected: int) -> None:
    assert resolve_window_hours(raw) == expected


def test_resolve_window_hours_uses_custom_default() -> None:
    assert resolve_window_hours(None, default=6) == 6


def test_resolve_window_hours_uses_custom_maximum() -> None:
    assert resolve_window_hours(10**12, default=6, maximum=48) == 48
    assert resolve_window_hours(12, default=6, maximum=48) == 12


def test_synthetic_store_covers_full_matrix_at_ten_minute_spacing() -> None:
    store = SyntheticStore(_generator(), clock=lambda: _NOW)

    readings = store.query(24)

    assert len(readings) == (24 * 6 + 1) * _MATRIX
    timestamps = [reading.timestamp for reading in readings]
    assert timestamps == sorted(timestamps, reverse=True)
    assert timestamps[0] == _NOW
    assert timestamps[-1] == _NOW - timedelta(hours=24)

    distinct = sorted(set(timestamps), reverse=True)
    assert all(a - b == timedelta(minutes=10) for a, b in zip(distinct, distinct[1:]))

    first_instant = readings[:_MATRIX]
    assert {(r.location_id, r.sensor_type) for r in first_instant} == {
        (location_id, sensor_type)
        for location_id in LOCATION_PROFILES
        for sensor_type in SENSOR_PROFILES
    }


def test_synthetic_store_save_is_noop() -> None:
    store = SyntheticStore(_generator(), clock=lambda: _NOW)

    store.save(_reading(450.0, _NOW))

    assert len(store.query(1)) == 7 * _MATRIX


def test_unreachable_database_selects_simulated_history(tmp_path) -> None:
    database = ReadingsDatabase.from_url(f"sqlite:///{tmp_path / 'missing' / 'readings.db'}")

    store = build_history_store(database, _generator(), ThresholdEvaluator())

    assert isinstance(store, SyntheticStore)
    assert store.mode == "simulated"
    readings = store.query(24)
    assert readings
    assert [r.timestamp for r in readings] == sorted((r.timestamp for r in readings), reverse=True)


def test_missing_database_selects_simulated_history() -> None:
    store = build_history_store(None, _generator(), ThresholdEvaluator())

    assert isinstance(store, SyntheticStore)


def test_reachable_database_selects_backed_store(tmp_path) -> None:
    store = build_history_store(_database(tmp_path), _generator(), ThresholdEvaluator(), workers=1)
    try:
        assert isinstance(store, BackedStore)
        assert store.mode == "database"
    finally:
        store.shutdown()


def test_backed_store_saves_and_queries_newest_first(tmp_path) -> None:
    database = _database(tmp_path)
    store = BackedStore(database, ThresholdEvaluator(), workers=1, clock=lambda: _NOW)

    older = _reading(500.0, _NOW - timedelta(hours=1))
    newer = _reading(600.0, _NOW - timedelta(minutes=5))
    store.save(older)
    store.save(newer)
    store.executor.shutdown(wait=True)

    readings = store.query(24)

    assert [r.value for r in readings] == [600.0, 500.0]
    assert readings[0].timestamp == newer.timestamp
    assert readings[0].metadata == newer.metadata
    database.dispose()


def test_backed_store_excludes_rows_outside_window(tmp_path) -> None:
    database = _database(tmp_path)
    database.insert_reading(_reading(450.0, _NOW - timedelta(hours=3)))
    store = BackedStore(database, ThresholdEvaluator(), workers=1, clock=lambda: _NOW)

    try:
        assert store.query(2) == []
        assert len(store.query(4)) == 1
    finally:
        store.shutdown()


def test_backed_store_rederives_status_on_read(tmp_path) -> None:
    database = _database(tmp_path)
    # Stored with a stale classification; the value is in the warning band.
    database.insert_reading(_reading(2500.0, _NOW - timedelta(minutes=1)))
    store = BackedStore(database, ThresholdEvaluator(), workers=1, clock=lambda: _NOW)

    try:
        (reading,) = store.query(1)
    finally:
        store.shutdown()

    assert reading.status is ReadingStatus.warning
    assert reading.quality_score == 90


def test_backed_store_swallows_write_failures(caplog) -> None:
    store = BackedStore(FailingDatabase(), ThresholdEvaluator(), workers=1)

    with caplog.at_level("ERROR"):
        store.save(_reading(450.0, _NOW))
        store.executor.shutdown(wait=True)

    assert "Failed to persist reading" in caplog.text


def test_backed_store_query_failure_returns_empty() -> None:
    store = BackedStore(FailingDatabase(), ThresholdEvaluator(), workers=1)

    try:
        assert store.query(24) == []
    finally:
        store.shutdown()


def test_save_does_not_wait_for_slow_database() -> None:
    database = BlockingDatabase()
    store = BackedStore(database, ThresholdEvaluator(), workers=1)

    started = time.perf_counter()
    store.save(_reading(450.0, _NOW))
    elapsed = time.perf_counter() - started

    database.release.set()
    store.executor.shutdown(wait=True)
    assert elapsed < 1.0
    assert len(database.inserted) == 1


def test_save_after_shutdown_is_dropped() -> None:
    database = BlockingDatabase()
    database.release.set()
    store = BackedStore(database, ThresholdEvaluator(), workers=1)
    store.shutdown()

    store.save(_reading(450.0, _NOW))

    assert database.inserted == []
    assert database.disposed is True


def test_backed_store_query_accepts_largest_window(tmp_path) -> None:
    database = _database(tmp_path)
    database.insert_reading(_reading(450.0, _NOW - timedelta(days=6)))
    store = BackedStore(database, ThresholdEvaluator(), workers=1, clock=lambda: _NOW)

    try:
        assert len(store.query(resolve_window_hours(20_000_000))) == 1
    finally:
        store.shutdown()


def test_save_drops_readings_when_backlog_is_full(caplog) -> None:
    database = BlockingDatabase()
    store = BackedStore(database, ThresholdEvaluator(), workers=1, max_backlog=2)

    with caplog.at_level("WARNING"):
        for value in range(5):
            store.save(_reading(float(value), _NOW))

    assert store.pending == 2
    database.release.set()
    store.executor.shutdown(wait=True)

    assert [reading.value for reading in database.inserted] == [0.0, 1.0]
    assert store.pending == 0
    assert caplog.text.count("Dropping reading; write backlog full") == 3


def test_backlog_frees_up_after_writes_complete() -> None:
    database = BlockingDatabase()
    database.release.set()
    store = BackedStore(database, ThresholdEvaluator(), workers=1, max_backlog=1)

    store.save(_reading(1.0, _NOW))
    deadline = time.monotonic() + 5
    while store.pending and time.monotonic() < deadline:
        time.sleep(0.01)
    store.save(_reading(2.0, _NOW))
    store.executor.shutdown(wait=True)

    assert [reading.value for reading in database.inserted] == [1.0, 2.0]
