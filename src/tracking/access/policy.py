"""Authorization policy: who may see and change an order.

Every decision is a pure function of the acting identity and the order's
participant set. Nothing here reads or writes storage; callers perform their
writes only after a predicate has returned True.

Each role maps to exactly one participant slot on the order. An actor is a
participant of an order only through the slot of its own role: a vendor id
that happens to equal the order's customer id does not make that vendor the
customer.
"""

from collections.abc import Callable

from protean.fields import Identifier, String

from tracking.domain import tracking
from tracking.errors import Forbidden
from tracking.order.order import OrderStatus
from tracking.participant.participant import Role

_PARTICIPANT_SLOT = {
    Role.CUSTOMER: "customer_id",
    Role.VENDOR: "vendor_id",
    Role.DELIVERY: "delivery_partner_id",
}


@tracking.value_object
class Actor:
    """An authenticated caller: identity id plus its fixed role."""

    identity_id = Identifier(required=True)
    role = String(required=True, choices=Role)

    @property
    def role_kind(self) -> Role:
        return Role(self.role)

    def __str__(self) -> str:
        return f"{self.role}:{self.identity_id}"

    @classmethod
    def of(cls, command) -> "Actor":
        """The actor a command was issued by."""
        return cls(identity_id=command.actor_id, role=command.actor_role)


def participant_slot(role: Role) -> str:
    """Name of the order attribute that holds the participant for ``role``."""
    return _PARTICIPANT_SLOT[role]


def _occupies(actor: Actor, order, role: Role) -> bool:
    if actor.role != role.value:
        return False
    bound = getattr(order, participant_slot(role))
    return bound is not None and str(bound) == str(actor.identity_id)


def can_view(actor: Actor, order) -> bool:
    return _occupies(actor, order, actor.role_kind)


def can_assign(actor: Actor, order) -> bool:
    return _occupies(actor, order, Role.VENDOR) and not order.delivery_partner_id


def can_update_status(actor: Actor, order) -> bool:
    return _occupies(actor, order, Role.DELIVERY)


def can_report_location(actor: Actor, order) -> bool:
    return can_update_status(actor, order)


def can_cancel(actor: Actor, order) -> bool:
    """The bound partner may cancel at any time; customer and vendor only before assignment."""
    if _occupies(actor, order, Role.DELIVERY):
        return True
    if order.status != OrderStatus.PENDING.value:
        return False
    return _occupies(actor, order, Role.CUSTOMER) or _occupies(actor, order, Role.VENDOR)


_ACTIONS = {
    can_view: "view",
    can_assign: "assign a delivery partner to",
    can_update_status: "update the status of",
    can_report_location: "report locations for",
    can_cancel: "cancel",
}


def require(predicate: Callable[[Actor, object], bool], actor: Actor, order, action: str | None = None) -> None:
    """Raise Forbidden unless ``predicate`` allows ``actor`` on ``order``."""
    if not predicate(actor, order):
        action = action or _ACTIONS.get(predicate, "access")
        raise Forbidden(f"{actor} is not authorized to {action} order {order.id}")
