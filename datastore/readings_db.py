from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    insert,
    select,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from models.records import Reading
from services.errors import PersistenceError

metadata = MetaData()

sensor_readings = Table(
    "sensor_readings",
    metadata,
    Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
    Column("location_id", String(50), nullable=False),
    Column("sensor_type", String(50), nullable=False),
    Column("reading_value", Numeric(10, 3, asdecimal=False), nullable=False),
    Column("unit", String(20), nullable=False),
    Column("quality_score", Integer),
    Column("timestamp", DateTime(timezone=True), nullable=False, index=True),
    Column("metadata", JSON().with_variant(JSONB, "postgresql")),
)


@dataclass(frozen=True, slots=True)
class ReadingRow:
    """Raw stored reading; classification is derived by the caller."""

    location_id: str
    sensor_type: str
    value: float
    unit: str
    quality_score: int | None
    timestamp: datetime
    metadata: Dict[str, Any]


class ReadingsDatabase:
    """SQLAlchemy-backed time series of sensor readings."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, connect_timeout: int = 2) -> "ReadingsDatabase":
        connect_args: Dict[str, Any] = {}
        if url.startswith("postgresql"):
            connect_args["connect_timeout"] = connect_timeout
        elif url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        return cls(engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create readings table: {exc}") from exc

    def insert_reading(self, reading: Reading) -> None:
        statement = insert(sensor_readings).values(
            location_id=reading.location_id,
            sensor_type=reading.sensor_type,
            reading_value=reading.value,
            unit=reading.unit,
            quality_score=reading.quality_score,
            timestamp=reading.timestamp,
            metadata=_dump_metadata(reading),
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(statement)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not store reading: {exc}") from exc

    def fetch_since(self, cutoff: datetime) -> List[ReadingRow]:
        """Rows with ``timestamp >= cutoff``, newest first."""
        statement = (
            select(sensor_readings)
            .where(sensor_readings.c.timestamp >= cutoff)
            .order_by(sensor_readings.c.timestamp.desc(), sensor_readings.c.id.asc())
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not query readings: {exc}") from exc
        return [_to_row(row) for row in rows]

    def dispose(self) -> None:
        self.engine.dispose()


def _dump_metadata(reading: Reading) -> Dict[str, Any]:
    meta = reading.metadata
    return {
        "calibration_date": meta.calibration_date.isoformat(),
        "sensor_version": meta.sensor_version,
        "temperature_compensation": meta.temperature_compensation,
    }


def _to_row(row: Mapping[str, Any]) -> ReadingRow:
    timestamp: datetime = row["timestamp"]
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return ReadingRow(
        location_id=row["location_id"],
        sensor_type=row["sensor_type"],
        value=float(row["reading_value"]),
        unit=row["unit"],
        quality_score=row["quality_score"],
        timestamp=timestamp.astimezone(timezone.utc),
        metadata=dict(row["metadata"] or {}),
    )


def parse_calibration_date(raw: Any, fallback: date) -> date:
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            return date.fromisoformat(raw.strip()[:10])
        except ValueError:
            return fallback
    return fallback
