"""Location procedures: record pings and answer latest/history queries."""

import os
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_view, require
from tracking.errors import NoLocationData, storage_errors
from tracking.location.recording import RecordLocation
from tracking.location.sample import LocationSample
from tracking.order.order import Order
from tracking.shared.geo import path_length_km
from tracking.utils.locks import order_locks

logger = structlog.get_logger(__name__)

HISTORY_LIMIT = int(os.environ.get("TRACKING_HISTORY_LIMIT", "10000"))


def record_location(
    actor: Actor,
    order_id: str,
    latitude: float,
    longitude: float,
    timestamp: datetime | None = None,
) -> LocationSample:
    with order_locks.hold(order_id), storage_errors():
        sample_id = current_domain.process(
            RecordLocation(
                actor_id=actor.identity_id,
                actor_role=actor.role,
                order_id=order_id,
                latitude=latitude,
                longitude=longitude,
                timestamp=timestamp,
            ),
            asynchronous=False,
        )
    logger.debug("Location recorded", order_id=str(order_id), location_id=sample_id)
    with storage_errors():
        return current_domain.repository_for(LocationSample).get(sample_id)


def _visible_order(actor: Actor, order_id: str) -> Order:
    with storage_errors():
        order = current_domain.repository_for(Order).get_order(order_id)
    require(can_view, actor, order)
    return order


def latest_location(actor: Actor, order_id: str) -> LocationSample:
    """The sample with the latest position time; the later arrival wins a tie."""
    order = _visible_order(actor, order_id)
    with storage_errors():
        sample = current_domain.repository_for(LocationSample).latest_for_order(order.id)
    if sample is None:
        raise NoLocationData(str(order.id))
    return sample


def location_history(actor: Actor, order_id: str) -> list[LocationSample]:
    """The most recent samples of an order, oldest first."""
    order = _visible_order(actor, order_id)
    with storage_errors():
        samples = current_domain.repository_for(LocationSample).for_order(order.id, limit=HISTORY_LIMIT)
    if not samples:
        raise NoLocationData(str(order.id))
    return samples


def distance_travelled_km(samples: list[LocationSample]) -> float:
    return path_length_km(sample.coordinates.as_tuple() for sample in samples)
