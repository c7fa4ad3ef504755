"""BDD tests for live location tracking."""

from datetime import datetime

import pytest
from pytest_bdd import parsers, scenarios, then, when
from tracking.errors import TrackingError
from tracking.location import tracker
from tracking.shared.clock import as_utc

scenarios("features/location_tracking.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the delivery partner reports position {latitude:f}, {longitude:f} at "{timestamp}"'))
def partner_reports_at(cast, order_id, latitude, longitude, timestamp):
    tracker.record_location(
        cast["partner"],
        order_id,
        latitude,
        longitude,
        timestamp=datetime.fromisoformat(timestamp),
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the route of the order has {count:d} positions in time order"))
def route_in_time_order(cast, order_id, count):
    history = tracker.location_history(cast["vendor"], order_id)
    assert len(history) == count
    timestamps = [as_utc(sample.timestamp) for sample in history]
    assert timestamps == sorted(timestamps)


@then(parsers.cfparse('a stranger reading the latest position is refused with "{kind}"'))
def stranger_refused(order_id, register, kind):
    with pytest.raises(TrackingError) as exc:
        tracker.latest_location(register("customer"), order_id)
    assert exc.value.kind == kind


@then(parsers.cfparse('the customer reading the latest position is refused with "{kind}"'))
def customer_refused(cast, order_id, kind):
    with pytest.raises(TrackingError) as exc:
        tracker.latest_location(cast["customer"], order_id)
    assert exc.value.kind == kind
