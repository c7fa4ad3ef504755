"""Tracking bounded context: delivery orders, live positions, real-time relay.

Owns the order lifecycle (CQRS aggregate with an enforced status graph), the
append-only location track of each order, and the per-order distribution
channel that fans updates out to the order's participants.
"""

from protean.domain import Domain

from tracking.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

tracking = Domain(name="tracking")
