"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the domain's validation rules
(coordinate ranges, non-empty items, non-negative amounts) and match the
field names expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker
from tracking.shared.geo import random_point_within

fake = Faker()

# Pings wander within this radius of the delivery address
PING_RADIUS_KM = 5.0


# ---------- Participants ----------


def valid_email() -> str:
    """Generate unique emails; the directory rejects duplicates."""
    local = fake.user_name()[:20]
    domain = fake.free_email_domain()
    return f"{local}.{uuid.uuid4().hex[:4]}@{domain}"


def participant_data(role: str) -> dict:
    """Generate RegisterParticipantRequest payload for ``role``."""
    if role == "vendor":
        name = fake.company()[:100]
    else:
        name = fake.name()[:100]
    return {"name": name, "email": valid_email(), "role": role}


# ---------- Orders ----------


def coordinates() -> dict:
    return {
        "latitude": round(random.uniform(25.0, 48.0), 6),
        "longitude": round(random.uniform(-125.0, -70.0), 6),
    }


def delivery_address() -> dict:
    return {
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state_abbr(),
        "zip_code": fake.zipcode()[:20],
        "coordinates": coordinates(),
    }


def order_items(count: int | None = None) -> list[dict]:
    count = count or random.randint(1, 4)
    return [
        {
            "name": fake.word().capitalize(),
            "quantity": random.randint(1, 3),
            "price": round(random.uniform(2.0, 40.0), 2),
        }
        for _ in range(count)
    ]


def order_data(vendor_id: str) -> dict:
    """Generate PlaceOrderRequest payload; the total matches the items."""
    items = order_items()
    total = round(sum(item["quantity"] * item["price"] for item in items), 2)
    return {
        "vendor_id": vendor_id,
        "items": items,
        "total_amount": total,
        "delivery_address": delivery_address(),
    }


# ---------- Locations ----------


def location_ping(order_id: str, near: dict, radius_km: float = PING_RADIUS_KM) -> dict:
    """Generate RecordLocationRequest payload within ``radius_km`` of ``near``."""
    latitude, longitude = random_point_within(near["latitude"], near["longitude"], radius_km)
    return {
        "order_id": order_id,
        "latitude": round(max(-90.0, min(90.0, latitude)), 6),
        "longitude": round(((longitude + 180.0) % 360.0) - 180.0, 6),
    }


def cancellation_reason() -> str:
    return random.choice(
        [
            "Ordered by mistake",
            "Found a better price",
            "Delivery taking too long",
            "Changed my mind",
        ]
    )
