"""Threshold classification of raw sensor values."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from models.profiles import SENSOR_PROFILES, SensorProfile, Thresholds
from models.records import ReadingStatus
from services.errors import UnknownSensorType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Evaluation:
    quality_score: int
    status: ReadingStatus


_UNCLASSIFIED = Evaluation(quality_score=100, status=ReadingStatus.normal)


class ThresholdEvaluator:
    """Maps a value to a quality score and status using per-sensor breakpoints.

    A value equal to a breakpoint stays in the lower band; only values
    strictly above a breakpoint escalate. Values between the normal and
    warning breakpoints and between warning and critical both report
    ``warning`` but are scored against different floors (70 and 40).
    """

    def __init__(self, sensors: Mapping[str, SensorProfile] = SENSOR_PROFILES) -> None:
        self._sensors = sensors

    def evaluate(self, sensor_type: str, value: float) -> Evaluation:
        try:
            thresholds = self._thresholds(sensor_type)
        except UnknownSensorType as exc:
            logger.warning(str(exc), extra={"sensor_type": sensor_type})
            return _UNCLASSIFIED

        if value > thresholds.critical:
            score = max(10.0, 100 - (value - thresholds.critical) / thresholds.critical * 80)
            status = ReadingStatus.critical
        elif value > thresholds.warning:
            score = max(40.0, 100 - (value - thresholds.warning) / thresholds.warning * 40)
            status = ReadingStatus.warning
        elif value > thresholds.normal:
            score = max(70.0, 100 - (value - thresholds.normal) / thresholds.normal * 20)
            status = ReadingStatus.warning
        else:
            score = 100.0
            status = ReadingStatus.normal

        return Evaluation(quality_score=int(round(score)), status=status)

    def threshold_for(self, sensor_type: str, status: ReadingStatus) -> float:
        """Return the breakpoint named like ``status`` for alert reporting."""
        thresholds = self._thresholds(sensor_type)
        return getattr(thresholds, status.value)

    def _thresholds(self, sensor_type: str) -> Thresholds:
        profile = self._sensors.get(sensor_type)
        if profile is None:
            raise UnknownSensorType(sensor_type)
        return profile.thresholds
