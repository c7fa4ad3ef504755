"""Order lifecycle procedures: the callable surface of the order engine.

Each mutating procedure issues its command under the order's lock, so the
read-modify-write in the handler and the unit of work commit happen while no
other command can touch the same order. Handlers re-check state on the
aggregate they load, so the loser of a race fails with a ``Conflict``.
"""

import json
import os

import structlog
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_view, participant_slot, require
from tracking.errors import Forbidden, InvalidStatusValue, storage_errors
from tracking.order.assignment import AssignDeliveryPartner
from tracking.order.order import Order, parse_status
from tracking.order.placement import PlaceOrder
from tracking.order.status import CancelOrder, UpdateOrderStatus
from tracking.order.views import OrderView, order_views
from tracking.participant.participant import Role
from tracking.utils.locks import order_locks

logger = structlog.get_logger(__name__)

ORDER_LIST_LIMIT = int(os.environ.get("TRACKING_ORDER_LIST_LIMIT", "1000"))


def _load(order_id) -> Order:
    with storage_errors():
        return current_domain.repository_for(Order).get_order(order_id)


def _process(command):
    with storage_errors():
        return current_domain.process(command, asynchronous=False)


def place_order(actor: Actor, vendor_id: str, items: list[dict], total_amount: float, delivery_address: dict) -> Order:
    order_id = _process(
        PlaceOrder(
            actor_id=actor.identity_id,
            actor_role=actor.role,
            vendor_id=vendor_id,
            items=json.dumps(items),
            total_amount=total_amount,
            delivery_address=json.dumps(delivery_address),
        )
    )
    logger.info("Order placed", order_id=order_id, customer_id=str(actor.identity_id), vendor_id=str(vendor_id))
    return _load(order_id)


def assign_partner(actor: Actor, order_id: str, partner_id: str) -> Order:
    with order_locks.hold(order_id):
        _process(
            AssignDeliveryPartner(
                actor_id=actor.identity_id,
                actor_role=actor.role,
                order_id=order_id,
                partner_id=partner_id,
            )
        )
    logger.info("Delivery partner assigned", order_id=str(order_id), partner_id=str(partner_id))
    return _load(order_id)


def update_status(actor: Actor, order_id: str, target_status: str) -> Order:
    # Bad values are rejected before anything is read or locked
    if parse_status(target_status) is None:
        raise InvalidStatusValue(target_status)

    with order_locks.hold(order_id):
        status = _process(
            UpdateOrderStatus(
                actor_id=actor.identity_id,
                actor_role=actor.role,
                order_id=order_id,
                status=str(target_status),
            )
        )
    logger.info("Order status updated", order_id=str(order_id), status=status, actor=str(actor))
    return _load(order_id)


def cancel_order(actor: Actor, order_id: str, reason: str | None = None) -> Order:
    with order_locks.hold(order_id):
        _process(
            CancelOrder(
                actor_id=actor.identity_id,
                actor_role=actor.role,
                order_id=order_id,
                reason=reason,
            )
        )
    logger.info("Order cancelled", order_id=str(order_id), actor=str(actor), reason=reason)
    return _load(order_id)


def get_order(actor: Actor, order_id: str) -> OrderView:
    order = _load(order_id)
    require(can_view, actor, order)
    with storage_errors():
        return OrderView.of(order)


def list_orders(actor: Actor, role: str | None = None) -> list[OrderView]:
    """Orders in which the actor holds the slot of its own role, newest first."""
    if role is not None and role != actor.role:
        raise Forbidden(f"{actor} cannot list orders as {role}")

    slot = participant_slot(Role(actor.role))
    with storage_errors():
        orders = current_domain.repository_for(Order).for_participant(slot, actor.identity_id, limit=ORDER_LIST_LIMIT)
        return order_views(orders)
