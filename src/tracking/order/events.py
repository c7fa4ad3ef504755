"""Order domain events: immutable facts about order state changes.

OrderStatusChanged is raised for every status transition, assignment
included, and is what observers of an order are notified about.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from tracking.domain import tracking


@tracking.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order with a vendor."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@tracking.event(part_of="Order")
class DeliveryPartnerAssigned:
    """The vendor bound a delivery partner to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@tracking.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    delivery_partner_id = Identifier()
    changed_by = String(required=True)
    reason = String(max_length=500)
    changed_at = DateTime(required=True)
