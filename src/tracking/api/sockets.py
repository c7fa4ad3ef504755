"""WebSocket endpoint: live order updates.

Every frame is a JSON object ``{"event": ..., "data": {...}}``.

Client events:
    join-order-room    {"order_id"}                 subscribe to an order
    leave-order-room   {"order_id"}                 unsubscribe
    location-update    {"order_id", "latitude", "longitude", "timestamp"?}
    status-update      {"order_id", "status"}

Server events:
    status-changed, location-updated   relayed order updates
    ack                                a client event succeeded
    error                              a client event failed ({"kind", "reason"})

Joining an order's room is never refused; what a connection receives is
filtered by who it belongs to at the moment each update is published.
"""

import asyncio
import json
from contextlib import suppress
from datetime import datetime

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from protean.exceptions import ValidationError

from tracking.api.dependencies import actor_from
from tracking.domain import tracking
from tracking.errors import TrackingError
from tracking.location import tracker
from tracking.order import lifecycle
from tracking.realtime.channel import Connection, DistributionChannel
from tracking.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)

socket_router = APIRouter(tags=["realtime"])


def _require(data: dict, *keys: str) -> None:
    missing = [key for key in keys if data.get(key) in (None, "")]
    if missing:
        raise ValidationError({key: ["is required"] for key in missing})


def _join(channel: DistributionChannel, connection: Connection, data: dict) -> dict:
    _require(data, "order_id")
    channel.subscribe(connection, data["order_id"])
    return {"order_id": str(data["order_id"])}


def _leave(channel: DistributionChannel, connection: Connection, data: dict) -> dict:
    _require(data, "order_id")
    channel.unsubscribe(connection, data["order_id"])
    return {"order_id": str(data["order_id"])}


def _timestamp(value) -> datetime | None:
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError({"timestamp": ["must be an ISO 8601 string"]})
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError({"timestamp": [f"'{value}' is not an ISO 8601 timestamp"]}) from None


def _location_update(channel: DistributionChannel, connection: Connection, data: dict) -> dict:
    _require(data, "order_id", "latitude", "longitude")
    sample = tracker.record_location(
        connection.actor,
        data["order_id"],
        latitude=data["latitude"],
        longitude=data["longitude"],
        timestamp=_timestamp(data.get("timestamp")),
    )
    return {"order_id": str(sample.order_id), "location_id": str(sample.id), "sequence": sample.sequence}


def _status_update(channel: DistributionChannel, connection: Connection, data: dict) -> dict:
    _require(data, "order_id", "status")
    order = lifecycle.update_status(connection.actor, data["order_id"], data["status"])
    return {"order_id": str(order.id), "status": order.status}


_HANDLERS = {
    "join-order-room": _join,
    "leave-order-room": _leave,
    "location-update": _location_update,
    "status-update": _status_update,
}


def _error(request: str | None, kind: str, reason) -> dict:
    return {"event": "error", "data": {"request": request, "kind": kind, "reason": reason}}


def dispatch(channel: DistributionChannel, connection: Connection, frame: dict) -> dict:
    """Handle one client frame and return the reply frame."""
    event = frame.get("event") if isinstance(frame, dict) else None
    handler = _HANDLERS.get(event) if isinstance(event, str) else None
    if handler is None:
        return _error(event, "validation", f"Unknown event {event!r}")

    data = frame.get("data") or {}
    if not isinstance(data, dict):
        return _error(event, "validation", "data must be a JSON object")

    try:
        with tracking.domain_context(), channel.bound():
            result = handler(channel, connection, data)
    except TrackingError as exc:
        return _error(event, exc.kind, exc.reason)
    except ValidationError as exc:
        return _error(event, "validation", exc.messages)
    except (ValueError, TypeError) as exc:
        return _error(event, "validation", str(exc))
    return {"event": "ack", "data": {"request": event, **result}}


async def _forward(websocket: WebSocket, connection: Connection, send_lock: asyncio.Lock) -> None:
    while True:
        message = await connection.next_message()
        if message is None:
            return
        try:
            async with send_lock:
                await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError):
            return


@socket_router.websocket("/ws")
async def order_updates(websocket: WebSocket):
    actor = actor_from(websocket.headers.get("x-actor-id"), websocket.headers.get("x-actor-role"))
    if actor is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel: DistributionChannel = websocket.app.state.channel
    await websocket.accept()

    connection = Connection(actor)
    connection.attach()
    send_lock = asyncio.Lock()
    sender = asyncio.create_task(_forward(websocket, connection, send_lock))
    add_context(connection_id=connection.id, actor=str(actor))
    logger.info("WebSocket connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                reply = _error(None, "validation", "Frames must be JSON objects")
            else:
                reply = dispatch(channel, connection, frame)
            async with send_lock:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(connection)
        sender.cancel()
        with suppress(asyncio.CancelledError):
            await sender
        logger.info("WebSocket disconnected", dropped=connection.dropped)
        clear_context()
