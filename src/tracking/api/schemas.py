"""Pydantic API schemas for the tracking service.

These are the external API contracts, separate from domain commands.
Coordinate ranges and item rules are enforced by the domain, so violations
come back as domain validation errors rather than schema errors.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class RegisterParticipantRequest(BaseModel):
    id: str | None = None
    name: str
    email: str
    role: str


class CoordinatesRequest(BaseModel):
    latitude: float
    longitude: float


class DeliveryAddressRequest(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    coordinates: CoordinatesRequest


class OrderItemRequest(BaseModel):
    name: str
    quantity: int
    price: float


class PlaceOrderRequest(BaseModel):
    vendor_id: str
    items: list[OrderItemRequest]
    total_amount: float
    delivery_address: DeliveryAddressRequest


class AssignPartnerRequest(BaseModel):
    delivery_partner_id: str


class UpdateStatusRequest(BaseModel):
    status: str


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RecordLocationRequest(BaseModel):
    order_id: str
    latitude: float
    longitude: float
    timestamp: datetime | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class ParticipantResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str


class LocationResponse(BaseModel):
    id: str
    order_id: str
    delivery_partner_id: str
    latitude: float
    longitude: float
    timestamp: datetime
    recorded_at: datetime
    sequence: int


class LocationHistoryResponse(BaseModel):
    order_id: str
    count: int
    distance_km: float
    locations: list[LocationResponse]
