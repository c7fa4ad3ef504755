"""Status changes after assignment: update and cancel commands with handlers.

The bound delivery partner drives the order along the status graph. The
customer and vendor can only call the order off while it is still pending.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_cancel, can_update_status, require
from tracking.domain import tracking
from tracking.errors import InvalidStatusValue
from tracking.order.order import Order, parse_status


@tracking.command(part_of="Order")
class UpdateOrderStatus:
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@tracking.command(part_of="Order")
class CancelOrder:
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@tracking.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = parse_status(command.status)
        if target is None:
            raise InvalidStatusValue(command.status)

        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        actor = Actor.of(command)
        require(can_update_status, actor, order)

        order.transition_to(target, changed_by=str(actor))
        repo.add(order)
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        actor = Actor.of(command)
        require(can_cancel, actor, order)

        order.cancel(command.reason, cancelled_by=str(actor))
        repo.add(order)
        return order.status
