"""Order placement: command and handler.

Only customers place orders, always for a registered vendor.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from tracking.access.policy import Actor
from tracking.domain import tracking
from tracking.errors import Forbidden, VendorNotFound
from tracking.order.order import Order
from tracking.participant.participant import Participant, Role


@tracking.command(part_of="Order")
class PlaceOrder:
    """Place a new order on behalf of the acting customer."""

    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    vendor_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"name", "quantity", "price"}, ...]
    total_amount = Float(required=True)
    delivery_address = Text(required=True)  # JSON: {"street", ..., "coordinates": {...}}


@tracking.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        actor = Actor.of(command)
        if actor.role_kind != Role.CUSTOMER:
            raise Forbidden(f"{actor} is not authorized to place orders")

        vendors = current_domain.repository_for(Participant)
        if vendors.find_with_role(command.vendor_id, Role.VENDOR) is None:
            raise VendorNotFound(str(command.vendor_id))

        order = Order.create(
            customer_id=actor.identity_id,
            vendor_id=command.vendor_id,
            items_data=json.loads(command.items),
            total_amount=command.total_amount,
            delivery_address=json.loads(command.delivery_address),
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
