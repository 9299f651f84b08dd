"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool

from app.schemas import (
    CatalogResponse,
    LocationPayload,
    ReadingPayload,
    SensorTypePayload,
    StatusResponse,
)
from services.errors import ConfigurationError
from services.monitor import MonitorService, build_default_monitor

router = APIRouter()


def get_monitor() -> MonitorService:
    return build_default_monitor()


@router.get(
    "/api/status",
    response_model=StatusResponse,
    summary="Observer count, uptime and current server time.",
)
async def get_status(monitor: MonitorService = Depends(get_monitor)) -> StatusResponse:
    snapshot = monitor.status()
    return StatusResponse(
        status=snapshot.status,
        connections=snapshot.connections,
        uptime=snapshot.uptime,
        timestamp=snapshot.timestamp,
        history_mode=snapshot.history_mode,
    )


@router.get(
    "/api/sensors",
    response_model=CatalogResponse,
    summary="Static location and sensor type catalog.",
)
async def get_catalog(monitor: MonitorService = Depends(get_monitor)) -> CatalogResponse:
    catalog = monitor.catalog()
    return CatalogResponse(
        locations=[LocationPayload.from_profile(profile) for profile in catalog.locations],
        sensor_types=[SensorTypePayload.from_profile(profile) for profile in catalog.sensors],
    )


@router.get(
    "/api/readings/latest",
    response_model=List[ReadingPayload],
    summary="Generate a fresh reading for every location and sensor type.",
)
async def get_latest_readings(
    monitor: MonitorService = Depends(get_monitor),
) -> List[ReadingPayload]:
    try:
        readings = monitor.latest_readings()
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return [ReadingPayload.from_reading(reading) for reading in readings]


@router.get(
    "/api/readings/history",
    response_model=List[ReadingPayload],
    summary="Readings from the trailing window, newest first.",
)
async def get_history(
    hours: Optional[str] = Query(
        default=None,
        description="Window size in hours; invalid or non-positive values use the default.",
    ),
    monitor: MonitorService = Depends(get_monitor),
) -> List[ReadingPayload]:
    readings = await run_in_threadpool(monitor.history, hours)
    return [ReadingPayload.from_reading(reading) for reading in readings]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /api/status for monitor status."}
