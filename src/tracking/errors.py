"""Error taxonomy for the tracking domain.

Every failure surfaced to a caller carries a stable ``kind`` and a
human-readable ``reason``. Input validation failures reuse Protean's
``ValidationError`` so field-level messages keep their usual shape.
"""

from contextlib import contextmanager

import structlog
from protean.exceptions import DatabaseError, ExpectedVersionError, TransactionError, ValidationError

logger = structlog.get_logger(__name__)


class TrackingError(Exception):
    kind = "error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def to_dict(self) -> dict:
        return {"kind": self.kind, "reason": self.reason}


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class NotFound(TrackingError):
    kind = "not_found"


class OrderNotFound(NotFound):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ParticipantNotFound(NotFound):
    def __init__(self, participant_id: str):
        super().__init__(f"Participant {participant_id} not found")
        self.participant_id = participant_id


class VendorNotFound(NotFound):
    def __init__(self, vendor_id: str):
        super().__init__(f"Vendor {vendor_id} not found")
        self.vendor_id = vendor_id


class PartnerNotFound(NotFound):
    def __init__(self, partner_id: str):
        super().__init__(f"Delivery partner {partner_id} not found")
        self.partner_id = partner_id


class NoLocationData(NotFound):
    def __init__(self, order_id: str):
        super().__init__(f"No location data available for order {order_id}")
        self.order_id = order_id


# ---------------------------------------------------------------------------
# Forbidden
# ---------------------------------------------------------------------------
class Forbidden(TrackingError):
    kind = "forbidden"


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------
class Conflict(TrackingError):
    kind = "conflict"


class AlreadyAssigned(Conflict):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} already has a delivery partner")
        self.order_id = order_id


class IllegalTransition(Conflict):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot transition from {current} to {target}")
        self.current = current
        self.target = target


class ConcurrentUpdate(Conflict):
    def __init__(self, reason: str = "The order was changed by another request, retry with fresh state"):
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Unavailable
# ---------------------------------------------------------------------------
class Unavailable(TrackingError):
    """A backend (storage or distribution) could not serve the request.

    The only kind a caller may retry.
    """

    kind = "unavailable"


class StorageUnavailable(Unavailable):
    def __init__(self, reason: str = "Storage is temporarily unavailable"):
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class InvalidStatusValue(ValidationError):
    def __init__(self, value):
        super().__init__({"status": [f"'{value}' is not a valid order status"]})
        self.value = value


# ---------------------------------------------------------------------------
# Storage translation
# ---------------------------------------------------------------------------
@contextmanager
def storage_errors():
    """Surface storage failures as taxonomy errors.

    A stale write (another writer committed first) becomes ``ConcurrentUpdate``;
    any other storage or commit failure becomes ``StorageUnavailable``.
    """
    try:
        yield
    except ExpectedVersionError as exc:
        raise ConcurrentUpdate() from exc
    except (DatabaseError, TransactionError) as exc:
        if isinstance(exc.__cause__, ExpectedVersionError):
            raise ConcurrentUpdate() from exc
        logger.exception("Storage failure", error=str(exc))
        raise StorageUnavailable() from exc
