"""Pydantic schemas for the HTTP and WebSocket layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import List

from pydantic import BaseModel, Field

from models.profiles import LocationProfile, SensorProfile
from models.records import Alert, Reading, ReadingStatus


class ReadingMetadataPayload(BaseModel):
    calibration_date: date
    sensor_version: str
    temperature_compensation: bool


class ReadingPayload(BaseModel):
    """A single sensor measurement as delivered to clients."""

    location_id: str
    sensor_type: str
    value: float = Field(..., ge=0)
    unit: str
    quality_score: int = Field(..., ge=0, le=100)
    status: ReadingStatus
    timestamp: datetime
    metadata: ReadingMetadataPayload

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingPayload":
        meta = reading.metadata
        return cls(
            location_id=reading.location_id,
            sensor_type=reading.sensor_type,
            value=reading.value,
            unit=reading.unit,
            quality_score=reading.quality_score,
            status=reading.status,
            timestamp=reading.timestamp,
            metadata=ReadingMetadataPayload(
                calibration_date=meta.calibration_date,
                sensor_version=meta.sensor_version,
                temperature_compensation=meta.temperature_compensation,
            ),
        )


class AlertPayload(BaseModel):
    """Warning or critical notification derived from a reading."""

    id: str
    timestamp: datetime
    location: str
    location_id: str
    sensor_type: str
    value: float
    unit: str
    status: ReadingStatus
    threshold: float
    message: str

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertPayload":
        return cls(
            id=alert.alert_id,
            timestamp=alert.timestamp,
            location=alert.location,
            location_id=alert.location_id,
            sensor_type=alert.sensor_type,
            value=alert.value,
            unit=alert.unit,
            status=alert.status,
            threshold=alert.threshold,
            message=alert.message,
        )


class StatusResponse(BaseModel):
    status: str
    connections: int = Field(..., ge=0)
    uptime: float = Field(..., ge=0, description="Seconds since the monitor started.")
    timestamp: datetime
    history_mode: str


class ThresholdsPayload(BaseModel):
    normal: float
    warning: float
    critical: float


class LocationPayload(BaseModel):
    id: str
    name: str
    zone: str
    intensity: float

    @classmethod
    def from_profile(cls, profile: LocationProfile) -> "LocationPayload":
        return cls(
            id=profile.location_id,
            name=profile.name,
            zone=profile.zone,
            intensity=profile.intensity,
        )


class SensorTypePayload(BaseModel):
    type: str
    description: str
    base: float
    variance: float
    unit: str
    thresholds: ThresholdsPayload

    @classmethod
    def from_profile(cls, profile: SensorProfile) -> "SensorTypePayload":
        limits = profile.thresholds
        return cls(
            type=profile.sensor_type,
            description=profile.description,
            base=profile.base,
            variance=profile.variance,
            unit=profile.unit,
            thresholds=ThresholdsPayload(
                normal=limits.normal, warning=limits.warning, critical=limits.critical
            ),
        )


class CatalogResponse(BaseModel):
    locations: List[LocationPayload] = Field(default_factory=list)
    sensor_types: List[SensorTypePayload] = Field(default_factory=list)
