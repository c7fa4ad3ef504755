"""Location domain events."""

from protean.fields import DateTime, Float, Identifier, Integer

from tracking.domain import tracking


@tracking.event(part_of="LocationSample")
class LocationRecorded:
    """The delivery partner reported a position for an order."""

    __version__ = 1

    location_id = Identifier(required=True)
    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    timestamp = DateTime(required=True)
    sequence = Integer(required=True)
