"""FastAPI routes for the tracking service."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from tracking.access.policy import Actor
from tracking.api.dependencies import get_actor
from tracking.api.schemas import (
    AssignPartnerRequest,
    CancelOrderRequest,
    LocationHistoryResponse,
    LocationResponse,
    ParticipantResponse,
    PlaceOrderRequest,
    RecordLocationRequest,
    RegisterParticipantRequest,
    UpdateStatusRequest,
)
from tracking.errors import ParticipantNotFound, storage_errors
from tracking.location import tracker
from tracking.order import lifecycle
from tracking.order.views import OrderView
from tracking.participant.participant import Participant
from tracking.participant.registration import RegisterParticipant


def _participant_response(participant: Participant) -> ParticipantResponse:
    return ParticipantResponse(
        id=str(participant.id),
        name=participant.name,
        email=participant.email,
        role=participant.role,
    )


# ---------------------------------------------------------------------------
# Participant Router
# ---------------------------------------------------------------------------
participant_router = APIRouter(prefix="/participants", tags=["participants"])


@participant_router.post("", status_code=201, response_model=ParticipantResponse)
async def register_participant(body: RegisterParticipantRequest) -> ParticipantResponse:
    """Register an identity from the identity provider with its role."""
    with storage_errors():
        participant_id = current_domain.process(
            RegisterParticipant(
                identity_id=body.id,
                name=body.name,
                email=body.email,
                role=body.role,
            ),
            asynchronous=False,
        )
        participant = current_domain.repository_for(Participant).get(participant_id)
    return _participant_response(participant)


@participant_router.get("/{participant_id}", response_model=ParticipantResponse)
async def get_participant(participant_id: str) -> ParticipantResponse:
    with storage_errors():
        participant = current_domain.repository_for(Participant).find(participant_id)
    if participant is None:
        raise ParticipantNotFound(participant_id)
    return _participant_response(participant)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderView)
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(get_actor)) -> OrderView:
    """Place an order as the calling customer."""
    order = lifecycle.place_order(
        actor,
        vendor_id=body.vendor_id,
        items=[item.model_dump() for item in body.items],
        total_amount=body.total_amount,
        delivery_address=body.delivery_address.model_dump(),
    )
    return OrderView.of(order)


@order_router.get("", response_model=list[OrderView])
async def list_orders(role: str | None = None, actor: Actor = Depends(get_actor)) -> list[OrderView]:
    """Orders the caller takes part in, newest first."""
    return lifecycle.list_orders(actor, role=role)


@order_router.get("/{order_id}", response_model=OrderView)
async def get_order(order_id: str, actor: Actor = Depends(get_actor)) -> OrderView:
    return lifecycle.get_order(actor, order_id)


@order_router.put("/{order_id}/assign", response_model=OrderView)
async def assign_partner(order_id: str, body: AssignPartnerRequest, actor: Actor = Depends(get_actor)) -> OrderView:
    """Bind a delivery partner to the order (vendor only, once)."""
    order = lifecycle.assign_partner(actor, order_id, body.delivery_partner_id)
    return OrderView.of(order)


@order_router.put("/{order_id}/status", response_model=OrderView)
async def update_status(order_id: str, body: UpdateStatusRequest, actor: Actor = Depends(get_actor)) -> OrderView:
    """Move the order along its status graph (bound delivery partner only)."""
    order = lifecycle.update_status(actor, order_id, body.status)
    return OrderView.of(order)


@order_router.put("/{order_id}/cancel", response_model=OrderView)
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(get_actor)) -> OrderView:
    order = lifecycle.cancel_order(actor, order_id, body.reason)
    return OrderView.of(order)


# ---------------------------------------------------------------------------
# Location Router
# ---------------------------------------------------------------------------
location_router = APIRouter(prefix="/locations", tags=["locations"])


@location_router.post("", status_code=201, response_model=LocationResponse)
async def record_location(body: RecordLocationRequest, actor: Actor = Depends(get_actor)) -> LocationResponse:
    """Record a position ping from the bound delivery partner."""
    sample = tracker.record_location(
        actor,
        body.order_id,
        latitude=body.latitude,
        longitude=body.longitude,
        timestamp=body.timestamp,
    )
    return LocationResponse(**sample.to_dict())


@location_router.get("/{order_id}", response_model=LocationResponse)
async def latest_location(order_id: str, actor: Actor = Depends(get_actor)) -> LocationResponse:
    sample = tracker.latest_location(actor, order_id)
    return LocationResponse(**sample.to_dict())


@location_router.get("/{order_id}/history", response_model=LocationHistoryResponse)
async def location_history(order_id: str, actor: Actor = Depends(get_actor)) -> LocationHistoryResponse:
    samples = tracker.location_history(actor, order_id)
    return LocationHistoryResponse(
        order_id=order_id,
        count=len(samples),
        distance_km=round(tracker.distance_travelled_km(samples), 3),
        locations=[LocationResponse(**sample.to_dict()) for sample in samples],
    )
