"""Delivery partner assignment: command and handler.

The order's vendor binds a delivery partner exactly once. A second
assignment is a conflict no matter who asks.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_assign, require
from tracking.domain import tracking
from tracking.errors import AlreadyAssigned, PartnerNotFound
from tracking.order.order import Order
from tracking.participant.participant import Participant, Role


@tracking.command(part_of="Order")
class AssignDeliveryPartner:
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)


@tracking.command_handler(part_of=Order)
class AssignDeliveryPartnerHandler:
    @handle(AssignDeliveryPartner)
    def assign_delivery_partner(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)

        if order.delivery_partner_id:
            raise AlreadyAssigned(str(order.id))

        actor = Actor.of(command)
        require(can_assign, actor, order)

        partners = current_domain.repository_for(Participant)
        if partners.find_with_role(command.partner_id, Role.DELIVERY) is None:
            raise PartnerNotFound(str(command.partner_id))

        order.assign_partner(command.partner_id, assigned_by=str(actor))
        repo.add(order)
        return str(order.id)
