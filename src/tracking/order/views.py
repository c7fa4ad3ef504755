"""OrderView: an order as its participants see it.

Participant summaries are joined explicitly here, at the query boundary,
rather than stored on the order.
"""

from datetime import datetime

from pydantic import BaseModel

from tracking.participant.participant import summaries


class ParticipantSummary(BaseModel):
    id: str
    name: str | None = None
    email: str | None = None


class OrderItemView(BaseModel):
    name: str
    quantity: int
    price: float


class CoordinatesView(BaseModel):
    latitude: float
    longitude: float


class DeliveryAddressView(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    coordinates: CoordinatesView


class OrderView(BaseModel):
    id: str
    customer: ParticipantSummary
    vendor: ParticipantSummary
    delivery_partner: ParticipantSummary | None = None
    items: list[OrderItemView]
    total_amount: float
    delivery_address: DeliveryAddressView
    status: str
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def of(cls, order, participants: dict[str, dict] | None = None) -> "OrderView":
        if participants is None:
            participants = summaries(order.customer_id, order.vendor_id, order.delivery_partner_id)
        partner = participants.get(str(order.delivery_partner_id)) if order.delivery_partner_id else None
        return cls(
            id=str(order.id),
            customer=participants[str(order.customer_id)],
            vendor=participants[str(order.vendor_id)],
            delivery_partner=partner,
            items=[OrderItemView(name=item.name, quantity=item.quantity, price=item.price) for item in order.items],
            total_amount=order.total_amount,
            delivery_address=order.delivery_address.to_dict(),
            status=order.status,
            cancellation_reason=order.cancellation_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


def order_views(orders: list) -> list[OrderView]:
    """Views for many orders, resolving each participant once."""
    ids = set()
    for order in orders:
        ids.update({order.customer_id, order.vendor_id, order.delivery_partner_id})
    participants = summaries(*ids)
    return [OrderView.of(order, participants) for order in orders]
