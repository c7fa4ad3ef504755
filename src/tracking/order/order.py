"""Order aggregate (CQRS): the core of the tracking domain.

An order binds three participants (customer, vendor, delivery partner) and
moves through a small, enforced status graph. The delivery partner is bound
exactly once, by assignment, and the binding changes together with the
status.

State Machine:
    PENDING → ASSIGNED → IN_TRANSIT → DELIVERED
    {PENDING, ASSIGNED, IN_TRANSIT} → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from tracking.domain import tracking
from tracking.errors import AlreadyAssigned, IllegalTransition, OrderNotFound
from tracking.order.events import DeliveryPartnerAssigned, OrderPlaced, OrderStatusChanged
from tracking.shared.clock import as_utc
from tracking.shared.geo import GeoPoint


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ASSIGNED, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

# Statuses in which a delivery partner must be bound
_PARTNER_BOUND_STATUSES = {
    OrderStatus.ASSIGNED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
}

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

_EPOCH = datetime.min.replace(tzinfo=UTC)


def parse_status(value) -> OrderStatus | None:
    """Map a wire value to an OrderStatus, or None when it is not one."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@tracking.value_object(part_of="Order")
class DeliveryAddress:
    """Where the order is delivered, with the coordinates of the drop point."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    coordinates = ValueObject(GeoPoint, required=True)

    @classmethod
    def from_dict(cls, data: dict) -> "DeliveryAddress":
        coordinates = data.get("coordinates") or {}
        if isinstance(coordinates, dict):
            coordinates = GeoPoint(
                latitude=coordinates.get("latitude"),
                longitude=coordinates.get("longitude"),
            )
        return cls(
            street=data.get("street"),
            city=data.get("city"),
            state=data.get("state"),
            zip_code=data.get("zip_code"),
            coordinates=coordinates,
        )

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "coordinates": {
                "latitude": self.coordinates.latitude,
                "longitude": self.coordinates.longitude,
            },
        }


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@tracking.entity(part_of="Order")
class OrderItem:
    """A line item: what is delivered, how many, at what unit price."""

    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@tracking.aggregate
class Order:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    delivery_partner_id = Identifier()
    items = HasMany(OrderItem)
    total_amount = Float(required=True, min_value=0.0)
    delivery_address = ValueObject(DeliveryAddress, required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    cancellation_reason = String(max_length=500)
    location_count = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def delivery_partner_bound_iff_assigned(self):
        status = OrderStatus(self.status)
        if status == OrderStatus.PENDING and self.delivery_partner_id:
            raise ValidationError({"delivery_partner_id": ["A pending order cannot have a delivery partner"]})
        if status in _PARTNER_BOUND_STATUSES and not self.delivery_partner_id:
            raise ValidationError({"delivery_partner_id": [f"An order that is {status.value} needs a delivery partner"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id: str,
        vendor_id: str,
        items_data: list[dict],
        total_amount: float,
        delivery_address: dict,
    ):
        """Place a new order. It always starts out pending and unassigned."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            vendor_id=vendor_id,
            items=[OrderItem(**item_data) for item_data in items_data],
            total_amount=total_amount,
            delivery_address=DeliveryAddress.from_dict(delivery_address),
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                vendor_id=str(vendor_id),
                item_count=len(items_data),
                total_amount=total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise IllegalTransition(current.value, target_status.value)

    def _change_status(self, target_status: OrderStatus, changed_by: str, reason: str | None = None) -> None:
        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                status=target_status.value,
                delivery_partner_id=str(self.delivery_partner_id) if self.delivery_partner_id else None,
                changed_by=changed_by,
                reason=reason,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------
    def assign_partner(self, partner_id: str, assigned_by: str) -> None:
        """Bind the delivery partner and move to ASSIGNED, together."""
        if self.delivery_partner_id:
            raise AlreadyAssigned(str(self.id))
        self._assert_can_transition(OrderStatus.ASSIGNED)

        with atomic_change(self):
            self.delivery_partner_id = partner_id
            self._change_status(OrderStatus.ASSIGNED, changed_by=assigned_by)

        self.raise_(
            DeliveryPartnerAssigned(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                delivery_partner_id=str(partner_id),
                assigned_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def transition_to(self, target_status: OrderStatus, changed_by: str) -> None:
        """Move along the status graph. Assignment has its own entry point."""
        if target_status == OrderStatus.ASSIGNED:
            # Only assign_partner may enter ASSIGNED: it binds the partner too
            raise IllegalTransition(self.status, target_status.value)
        self._assert_can_transition(target_status)
        self._change_status(target_status, changed_by=changed_by)

    def advance_on_movement(self, changed_by: str) -> bool:
        """A location ping implies movement: ASSIGNED becomes IN_TRANSIT.

        Any later status is left untouched. Returns True when the status changed.
        """
        if OrderStatus(self.status) != OrderStatus.ASSIGNED:
            return False
        self.transition_to(OrderStatus.IN_TRANSIT, changed_by=changed_by)
        return True

    def cancel(self, reason: str | None, cancelled_by: str) -> None:
        self._assert_can_transition(OrderStatus.CANCELLED)
        with atomic_change(self):
            self.cancellation_reason = reason
            self._change_status(OrderStatus.CANCELLED, changed_by=cancelled_by, reason=reason)

    def next_location_sequence(self) -> int:
        """Arrival counter for location samples on this order, 1-based."""
        self.location_count = (self.location_count or 0) + 1
        return self.location_count

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES


@tracking.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id) -> Order:
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError:
            raise OrderNotFound(str(order_id))

    def for_participant(self, slot: str, identity_id: str, limit: int) -> list[Order]:
        """Orders whose ``slot`` holds ``identity_id``, newest first."""
        orders = self._dao.query.filter(**{slot: str(identity_id)}).order_by("-created_at").limit(limit).all().items
        return sorted(orders, key=lambda order: as_utc(order.created_at) or _EPOCH, reverse=True)
