"""Shared BDD fixtures and step definitions for the tracking domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when
from tracking.errors import TrackingError
from tracking.location import tracker
from tracking.order import lifecycle
from tracking.order.order import Order


@pytest.fixture()
def outcome():
    """Container for the error of the last attempted step."""
    return {"error": None}


def attempt(outcome, procedure, *args, **kwargs):
    outcome["error"] = None
    try:
        return procedure(*args, **kwargs)
    except TrackingError as exc:
        outcome["error"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a registered customer, vendor and delivery partner", target_fixture="cast")
def registered_cast(customer, vendor, partner):
    return {"customer": customer, "vendor": vendor, "partner": partner}


@given("the customer has placed an order with the vendor", target_fixture="order_id")
def placed_order(place):
    return str(place().id)


# ---------------------------------------------------------------------------
# Steps shared by Given and When
# ---------------------------------------------------------------------------
@given("the vendor assigns the delivery partner")
@when("the vendor assigns the delivery partner")
def vendor_assigns(cast, order_id, outcome):
    attempt(outcome, lifecycle.assign_partner, cast["vendor"], order_id, cast["partner"].identity_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the vendor assigns another delivery partner")
def vendor_assigns_another(cast, order_id, outcome, register):
    attempt(outcome, lifecycle.assign_partner, cast["vendor"], order_id, register("delivery").identity_id)


@when("another vendor assigns the delivery partner")
def other_vendor_assigns(cast, order_id, outcome, register):
    attempt(outcome, lifecycle.assign_partner, register("vendor"), order_id, cast["partner"].identity_id)


@when(parsers.cfparse("the delivery partner reports position {latitude:f}, {longitude:f}"))
def partner_reports(cast, order_id, outcome, latitude, longitude):
    attempt(outcome, tracker.record_location, cast["partner"], order_id, latitude, longitude)


@when(parsers.cfparse("another delivery partner reports position {latitude:f}, {longitude:f}"))
def other_partner_reports(order_id, outcome, register, latitude, longitude):
    attempt(outcome, tracker.record_location, register("delivery"), order_id, latitude, longitude)


@when(parsers.cfparse('the delivery partner marks the order "{status}"'))
def partner_marks(cast, order_id, outcome, status):
    attempt(outcome, lifecycle.update_status, cast["partner"], order_id, status)


@when("the customer cancels the order")
def customer_cancels(cast, order_id, outcome):
    attempt(outcome, lifecycle.cancel_order, cast["customer"], order_id, "changed my mind")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('the request fails with "{kind}"'))
def request_fails_with(outcome, kind):
    assert outcome["error"] is not None
    assert outcome["error"].kind == kind


@then(parsers.cfparse("the latest position of the order is {latitude:f}, {longitude:f}"))
def latest_position_is(cast, order_id, latitude, longitude):
    latest = tracker.latest_location(cast["customer"], order_id)
    assert latest.coordinates.as_tuple() == (latitude, longitude)
