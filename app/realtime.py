"""WebSocket transport binding observers to the subscription hub."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Dict, Sequence
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from app.api import get_monitor
from app.schemas import AlertPayload, ReadingPayload
from models.records import Alert, Reading
from services.errors import DeliveryError
from services.monitor import MonitorService

logger = logging.getLogger(__name__)

REQUEST_HISTORICAL_EVENT = "request-historical"

router = APIRouter()


def encode_event(event: str, payload: Sequence[Any]) -> Dict[str, Any]:
    data = []
    for item in payload:
        if isinstance(item, Alert):
            data.append(AlertPayload.from_alert(item).model_dump(mode="json"))
        elif isinstance(item, Reading):
            data.append(ReadingPayload.from_reading(item).model_dump(mode="json"))
        else:
            raise TypeError(f"Cannot encode {type(item).__name__} for event {event!r}.")
    return {"event": event, "data": data}


class WebSocketObserver:
    """Observer that hands encoded events to its connection's event loop.

    ``send`` may be called from any thread; the frames are written by the
    connection's own writer task in the order they were queued.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
        self.observer_id = uuid4().hex
        self._loop = loop
        self._queue = queue
        self._closed = False

    def send(self, event: str, payload: Sequence[Any]) -> None:
        if self._closed:
            raise DeliveryError(self.observer_id, event, "connection closed")
        message = encode_event(event, payload)
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, message)
        except RuntimeError as exc:
            raise DeliveryError(self.observer_id, event, str(exc)) from exc

    def close(self) -> None:
        self._closed = True


async def _pump(
    websocket: WebSocket,
    queue: "asyncio.Queue[Dict[str, Any]]",
    observer: WebSocketObserver,
) -> None:
    while True:
        message = await queue.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as exc:
            # Later sends raise DeliveryError so broadcasts skip this observer.
            observer.close()
            logger.warning(
                "Connection write failed; closing observer",
                extra={
                    "observer_id": observer.observer_id,
                    "event": message.get("event"),
                    "reason": str(exc) or type(exc).__name__,
                },
            )
            return


def _parse_frame(raw: str) -> Dict[str, Any] | None:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return message if isinstance(message, dict) else None


@router.websocket("/ws")
async def sensor_stream(
    websocket: WebSocket,
    monitor: MonitorService = Depends(get_monitor),
) -> None:
    await websocket.accept()
    queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    observer = WebSocketObserver(asyncio.get_running_loop(), queue)
    writer = asyncio.create_task(_pump(websocket, queue, observer))

    try:
        await run_in_threadpool(monitor.hub.register, observer)
        while True:
            message = _parse_frame(await websocket.receive_text())
            if message is None:
                logger.debug("Ignoring malformed frame", extra={"observer_id": observer.observer_id})
                continue
            if message.get("event") != REQUEST_HISTORICAL_EVENT:
                logger.debug(
                    "Ignoring unknown event",
                    extra={"observer_id": observer.observer_id, "event": message.get("event")},
                )
                continue
            await run_in_threadpool(
                monitor.hub.on_historical_request, observer, message.get("hours")
            )
    except WebSocketDisconnect:
        pass
    finally:
        observer.close()
        monitor.hub.unregister(observer)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
