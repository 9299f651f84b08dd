"""Unit tests for synthetic reading generation."""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone
from typing import List

import pytest

from models.profiles import LOCATION_PROFILES, SENSOR_PROFILES, LocationProfile, SensorProfile, Thresholds
from models.records import ReadingStatus
from services.errors import ConfigurationError
from services.generator import ReadingGenerator, time_of_day_band
from services.thresholds import ThresholdEvaluator


class ScriptedRandom(random.Random):
    """Returns queued values from ``uniform`` regardless of the bounds."""

    script: List[float]

    def uniform(self, a: float, b: float) -> float:
        return self.script.pop(0)


class LowerBoundRandom(random.Random):
    def uniform(self, a: float, b: float) -> float:
        return a


def _scripted(*values: float) -> ScriptedRandom:
    rng = ScriptedRandom(7)
    rng.script = list(values)
    return rng


_EVENING = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)
_NEUTRAL_LOCATIONS = {"LOC_TEST": LocationProfile("LOC_TEST", "Test Bay", 1.0)}


def test_zero_noise_unit_factor_yields_base_value() -> None:
    generator = ReadingGenerator(
        ThresholdEvaluator(),
        locations=_NEUTRAL_LOCATIONS,
        rng=_scripted(1.0, 0.0),
    )

    reading = generator.generate("CO2", "LOC_TEST", _EVENING)

    assert reading.value == 450.0
    assert reading.status is ReadingStatus.normal
    assert reading.quality_score == 100
    assert reading.unit == "ppm"
    assert reading.timestamp == _EVENING


def test_value_combines_time_location_and_noise() -> None:
    generator = ReadingGenerator(ThresholdEvaluator(), rng=_scripted(1.25, 12.3456))

    reading = generator.generate("CO2", "LOC_001", _EVENING)

    assert reading.value == round(450 * 1.25 * 1.3 + 12.3456, 3)


@pytest.mark.parametrize(
    ("hour", "band"),
    [
        (0, (0.6, 0.8)),
        (7, (0.6, 0.8)),
        (8, (1.2, 1.5)),
        (13, (1.2, 1.5)),
        (18, (1.2, 1.5)),
        (19, (0.8, 1.0)),
        (22, (0.8, 1.0)),
        (23, (0.6, 0.8)),
    ],
)
def test_time_of_day_bands(hour: int, band: tuple[float, float]) -> None:
    assert time_of_day_band(hour) == band


def test_values_are_never_negative() -> None:
    generator = ReadingGenerator(ThresholdEvaluator(), rng=random.Random(1234))
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    for hour in range(24):
        now = start + timedelta(hours=hour)
        for reading in generator.generate_matrix(now):
            assert reading.value >= 0
            assert round(reading.value, 3) == reading.value


def test_negative_raw_value_is_clamped_to_zero() -> None:
    sensors = {
        "FAINT": SensorProfile("FAINT", "Faint gas", 1.0, 100.0, "ppb", Thresholds(10.0, 20.0, 30.0)),
    }
    generator = ReadingGenerator(
        ThresholdEvaluator(sensors),
        sensors=sensors,
        locations=_NEUTRAL_LOCATIONS,
        rng=LowerBoundRandom(3),
    )

    reading = generator.generate("FAINT", "LOC_TEST", _EVENING)

    assert reading.value == 0.0
    assert reading.status is ReadingStatus.normal


def test_metadata_is_populated() -> None:
    generator = ReadingGenerator(ThresholdEvaluator(), rng=random.Random(99))

    reading = generator.generate("HUMIDITY", "LOC_002", _EVENING)

    assert reading.metadata.calibration_date == date(2024, 1, 31)
    assert reading.metadata.sensor_version in {f"v2.{n}" for n in range(1, 6)}
    assert isinstance(reading.metadata.temperature_compensation, bool)


def test_status_is_consistent_with_evaluator() -> None:
    evaluator = ThresholdEvaluator()
    generator = ReadingGenerator(evaluator, rng=random.Random(5))

    for reading in generator.generate_matrix(datetime(2024, 5, 5, 10, tzinfo=timezone.utc)):
        evaluation = evaluator.evaluate(reading.sensor_type, reading.value)
        assert reading.status is evaluation.status
        assert reading.quality_score == evaluation.quality_score


def test_naive_now_is_treated_as_utc() -> None:
    generator = ReadingGenerator(ThresholdEvaluator(), rng=random.Random(1))

    reading = generator.generate("TEMPERATURE", "LOC_003", datetime(2024, 1, 1, 9, 30))

    assert reading.timestamp == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def test_unknown_sensor_or_location_fails() -> None:
    generator = ReadingGenerator(ThresholdEvaluator())

    with pytest.raises(ConfigurationError):
        generator.generate("RADON", "LOC_001")
    with pytest.raises(ConfigurationError):
        generator.generate("CO2", "LOC_999")


def test_matrix_orders_locations_outer_sensors_inner() -> None:
    generator = ReadingGenerator(ThresholdEvaluator(), rng=random.Random(2))
    now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    readings = generator.generate_matrix(now)

    expected = [
        (location_id, sensor_type)
        for location_id in LOCATION_PROFILES
        for sensor_type in SENSOR_PROFILES
    ]
    assert [(r.location_id, r.sensor_type) for r in readings] == expected
    assert {r.timestamp for r in readings} == {now}
