"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class Cast:
    """The three participants one simulated delivery needs."""

    customer_id: str | None = None
    vendor_id: str | None = None
    partner_id: str | None = None

    def headers(self, role: str) -> dict:
        identity = {"customer": self.customer_id, "vendor": self.vendor_id, "delivery": self.partner_id}[role]
        return {"X-Actor-Id": identity or "", "X-Actor-Role": role}


@dataclass
class DeliveryState:
    """Tracks state for a single simulated delivery."""

    cast: Cast = field(default_factory=Cast)
    order_id: str | None = None
    destination: dict | None = None
    pings_sent: int = 0
    current_status: str = "pending"
