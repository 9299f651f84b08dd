"""Alert detection for a generation cycle."""

from __future__ import annotations

from typing import Iterable, List, Mapping
from uuid import uuid4

from models.profiles import LOCATION_PROFILES, LocationProfile, location_name
from models.records import Alert, Reading, ReadingStatus
from services.thresholds import ThresholdEvaluator

_ALERTING = frozenset({ReadingStatus.warning, ReadingStatus.critical})


class AlertDetector:
    """Pure component: one alert per warning/critical reading, input order kept."""

    def __init__(
        self,
        evaluator: ThresholdEvaluator,
        locations: Mapping[str, LocationProfile] = LOCATION_PROFILES,
    ) -> None:
        self.evaluator = evaluator
        self.locations = locations

    def detect(self, readings: Iterable[Reading]) -> List[Alert]:
        return [self._build(reading) for reading in readings if reading.status in _ALERTING]

    def _build(self, reading: Reading) -> Alert:
        name = location_name(reading.location_id, self.locations)
        return Alert(
            alert_id=uuid4().hex,
            timestamp=reading.timestamp,
            location=name,
            location_id=reading.location_id,
            sensor_type=reading.sensor_type,
            value=reading.value,
            unit=reading.unit,
            status=reading.status,
            threshold=self.evaluator.threshold_for(reading.sensor_type, reading.status),
            message=f"{reading.sensor_type} {reading.status.value} at {name}: {reading.value}{reading.unit}",
        )
