"""Relay handlers: committed order and location events out to observers.

Handlers run after the unit of work commits, so observers only ever hear
about persisted state. Relaying is a notification: when no channel is active
or publishing fails, the write still stands and the failure is logged.
"""

import structlog
from protean import handle

from tracking.domain import tracking
from tracking.location.events import LocationRecorded
from tracking.location.sample import LocationSample
from tracking.order.events import OrderStatusChanged
from tracking.order.order import Order
from tracking.realtime.channel import active_channel
from tracking.shared.clock import as_utc

logger = structlog.get_logger(__name__)

STATUS_CHANGED = "status-changed"
LOCATION_UPDATED = "location-updated"


def _relay(order_id: str, event_kind: str, payload: dict) -> None:
    """Publish to the active channel. Nothing raised here may reach the commit."""
    try:
        channel = active_channel()
        if channel is None:
            logger.debug("No active channel, event not relayed", order_id=order_id, kind=event_kind)
            return
        delivered = channel.publish(order_id, event_kind, payload)
        logger.debug("Event relayed", order_id=order_id, kind=event_kind, delivered=delivered)
    except Exception:
        logger.exception("Relaying event failed", order_id=order_id, kind=event_kind)


@tracking.event_handler(part_of=Order)
class OrderRelay:
    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        _relay(
            str(event.order_id),
            STATUS_CHANGED,
            {
                "order_id": str(event.order_id),
                "previous_status": event.previous_status,
                "status": event.status,
                "delivery_partner_id": str(event.delivery_partner_id) if event.delivery_partner_id else None,
                "changed_by": event.changed_by,
                "reason": event.reason,
                "changed_at": as_utc(event.changed_at).isoformat(),
            },
        )


@tracking.event_handler(part_of=LocationSample)
class LocationRelay:
    @handle(LocationRecorded)
    def on_location_recorded(self, event: LocationRecorded) -> None:
        _relay(
            str(event.order_id),
            LOCATION_UPDATED,
            {
                "id": str(event.location_id),
                "order_id": str(event.order_id),
                "delivery_partner_id": str(event.delivery_partner_id),
                "latitude": event.latitude,
                "longitude": event.longitude,
                "timestamp": as_utc(event.timestamp).isoformat(),
                "sequence": event.sequence,
            },
        )
