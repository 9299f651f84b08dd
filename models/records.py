"""Domain records passed between the generation, storage and delivery stages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class ReadingStatus(str, Enum):
    """Quality classification of a single reading."""

    normal = "normal"
    warning = "warning"
    critical = "critical"


@dataclass(frozen=True, slots=True)
class ReadingMetadata:
    """Informational sensor details; never used for classification."""

    calibration_date: date
    sensor_version: str
    temperature_compensation: bool


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped measurement with its derived classification."""

    location_id: str
    sensor_type: str
    value: float
    unit: str
    quality_score: int
    status: ReadingStatus
    timestamp: datetime
    metadata: ReadingMetadata


@dataclass(frozen=True, slots=True)
class Alert:
    """Notification derived from a warning or critical reading."""

    alert_id: str
    timestamp: datetime
    location: str
    location_id: str
    sensor_type: str
    value: float
    unit: str
    status: ReadingStatus
    threshold: float
    message: str
