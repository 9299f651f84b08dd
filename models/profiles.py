"""Static sensor and location catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping

from services.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Ascending breakpoints; a value must exceed one to escalate past it."""

    normal: float
    warning: float
    critical: float

    def __post_init__(self) -> None:
        if not self.normal < self.warning < self.critical:
            raise ConfigurationError(
                "Thresholds must be strictly ascending: "
                f"normal={self.normal}, warning={self.warning}, critical={self.critical}"
            )


@dataclass(frozen=True, slots=True)
class SensorProfile:
    sensor_type: str
    description: str
    base: float
    variance: float
    unit: str
    thresholds: Thresholds


@dataclass(frozen=True, slots=True)
class LocationProfile:
    location_id: str
    name: str
    intensity: float
    zone: str = ""


def _index_sensors(*profiles: SensorProfile) -> Dict[str, SensorProfile]:
    return {profile.sensor_type: profile for profile in profiles}


def _index_locations(*profiles: LocationProfile) -> Dict[str, LocationProfile]:
    return {profile.location_id: profile for profile in profiles}


# Insertion order defines the broadcast matrix order.
SENSOR_PROFILES: Mapping[str, SensorProfile] = _index_sensors(
    SensorProfile("CO2", "Carbon Dioxide Concentration", 450.0, 200.0, "ppm", Thresholds(1000.0, 2000.0, 5000.0)),
    SensorProfile("HUMIDITY", "Relative Humidity", 50.0, 20.0, "%", Thresholds(70.0, 80.0, 90.0)),
    SensorProfile("AIR_QUALITY", "Air Quality Index", 25.0, 30.0, "AQI", Thresholds(50.0, 100.0, 150.0)),
    SensorProfile("TEMPERATURE", "Ambient Temperature", 22.0, 5.0, "°C", Thresholds(25.0, 30.0, 40.0)),
    SensorProfile("DUST_PM25", "Particulate Matter 2.5", 8.0, 10.0, "µg/m³", Thresholds(12.0, 25.0, 35.0)),
)

LOCATION_PROFILES: Mapping[str, LocationProfile] = _index_locations(
    LocationProfile("LOC_001", "Production Floor A", 1.3, "Manufacturing"),
    LocationProfile("LOC_002", "Storage Warehouse", 0.8, "Storage"),
    LocationProfile("LOC_003", "Quality Control Lab", 0.7, "QC"),
    LocationProfile("LOC_004", "Packaging Unit", 1.1, "Packaging"),
    LocationProfile("LOC_005", "Main Entrance", 0.9, "Reception"),
)


def location_name(location_id: str, locations: Mapping[str, LocationProfile] = LOCATION_PROFILES) -> str:
    profile = locations.get(location_id)
    return profile.name if profile is not None else location_id
