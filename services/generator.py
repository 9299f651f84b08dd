"""Synthetic reading generation for the sensor x location matrix."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import List, Mapping, Optional

from models.profiles import LOCATION_PROFILES, SENSOR_PROFILES, LocationProfile, SensorProfile
from models.records import Reading, ReadingMetadata
from services.errors import ConfigurationError
from services.thresholds import ThresholdEvaluator

CALIBRATION_AGE = timedelta(days=30)
NOISE_FRACTION = 0.3


def time_of_day_band(hour: int) -> tuple[float, float]:
    """Return the activity factor range for an hour of the day (0-23)."""
    if 8 <= hour <= 18:
        return (1.2, 1.5)
    if 19 <= hour <= 22:
        return (0.8, 1.0)
    return (0.6, 0.8)


class ReadingGenerator:
    """Produces physically plausible readings from the static profiles.

    Profiles are looked up on every call so catalog changes only affect
    future readings. The only shared state is the random source; the
    default is a private ``random.Random`` per generator, whose
    ``random()`` call is atomic so concurrent callers are safe.
    """

    def __init__(
        self,
        evaluator: ThresholdEvaluator,
        sensors: Mapping[str, SensorProfile] = SENSOR_PROFILES,
        locations: Mapping[str, LocationProfile] = LOCATION_PROFILES,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.evaluator = evaluator
        self.sensors = sensors
        self.locations = locations
        self._rng = rng or random.Random()

    def generate(self, sensor_type: str, location_id: str, now: Optional[datetime] = None) -> Reading:
        sensor = self.sensors.get(sensor_type)
        if sensor is None:
            raise ConfigurationError(f"Unknown sensor type {sensor_type!r}.")
        location = self.locations.get(location_id)
        if location is None:
            raise ConfigurationError(f"Unknown location {location_id!r}.")

        instant = _as_utc(now or datetime.now(timezone.utc))

        low, high = time_of_day_band(instant.hour)
        time_factor = self._rng.uniform(low, high)
        spread = sensor.variance * NOISE_FRACTION

        value = sensor.base * time_factor * location.intensity
        value += self._rng.uniform(-spread, spread)
        value = round(max(0.0, value), 3)

        evaluation = self.evaluator.evaluate(sensor_type, value)
        return Reading(
            location_id=location_id,
            sensor_type=sensor_type,
            value=value,
            unit=sensor.unit,
            quality_score=evaluation.quality_score,
            status=evaluation.status,
            timestamp=instant,
            metadata=ReadingMetadata(
                calibration_date=(instant - CALIBRATION_AGE).date(),
                sensor_version=f"v2.{self._rng.randint(1, 5)}",
                temperature_compensation=self._rng.random() > 0.5,
            ),
        )

    def generate_matrix(self, now: Optional[datetime] = None) -> List[Reading]:
        """One reading per (location, sensor type), locations outermost."""
        instant = now or datetime.now(timezone.utc)
        return [
            self.generate(sensor_type, location_id, instant)
            for location_id in self.locations
            for sensor_type in self.sensors
        ]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
