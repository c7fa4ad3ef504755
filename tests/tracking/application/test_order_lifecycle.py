"""Application tests for the order lifecycle procedures."""

import pytest
from protean import current_domain
from protean.exceptions import DatabaseError, ExpectedVersionError, TransactionError, ValidationError
from tracking.access.policy import Actor
from tracking.errors import (
    AlreadyAssigned,
    ConcurrentUpdate,
    Conflict,
    Forbidden,
    IllegalTransition,
    InvalidStatusValue,
    OrderNotFound,
    PartnerNotFound,
    StorageUnavailable,
    Unavailable,
    VendorNotFound,
    storage_errors,
)
from tracking.order import lifecycle
from tracking.order.order import Order, OrderRepository, OrderStatus


class TestPlaceOrder:
    def test_creates_pending_order(self, place, customer, vendor):
        order = place()
        assert order.status == OrderStatus.PENDING.value
        assert order.delivery_partner_id is None
        assert order.customer_id == customer.identity_id
        assert order.vendor_id == vendor.identity_id

    def test_persisted(self, place):
        order = place()
        assert current_domain.repository_for(Order).get(order.id).total_amount == 10.0

    def test_only_customers_place_orders(self, place, vendor):
        with pytest.raises(Forbidden):
            place(actor=vendor)

    def test_unknown_vendor(self, place):
        with pytest.raises(VendorNotFound):
            place(vendor_id="no-such-vendor")

    def test_vendor_must_have_vendor_role(self, place, register):
        not_a_vendor = register("delivery")
        with pytest.raises(VendorNotFound):
            place(vendor_id=not_a_vendor.identity_id)

    def test_empty_items(self, place):
        with pytest.raises(ValidationError):
            place(items=[])

    def test_negative_total(self, place):
        with pytest.raises(ValidationError):
            place(total_amount=-1.0)


class TestAssignPartner:
    def test_binds_partner_and_assigns(self, place, vendor, partner):
        order = lifecycle.assign_partner(vendor, place().id, partner.identity_id)
        assert order.status == OrderStatus.ASSIGNED.value
        assert order.delivery_partner_id == partner.identity_id

    def test_second_assignment_conflicts_for_anyone(self, assigned_order, vendor, customer, register):
        other_partner = register("delivery")
        other_vendor = register("vendor")
        for requester in (vendor, other_vendor, customer):
            with pytest.raises(AlreadyAssigned):
                lifecycle.assign_partner(requester, assigned_order.id, other_partner.identity_id)

        reloaded = current_domain.repository_for(Order).get(assigned_order.id)
        assert reloaded.delivery_partner_id == assigned_order.delivery_partner_id

    def test_other_vendor_forbidden(self, place, partner, register):
        other_vendor = register("vendor")
        with pytest.raises(Forbidden):
            lifecycle.assign_partner(other_vendor, place().id, partner.identity_id)

    def test_customer_forbidden(self, place, customer, partner):
        with pytest.raises(Forbidden):
            lifecycle.assign_partner(customer, place().id, partner.identity_id)

    def test_partner_must_be_delivery_participant(self, place, vendor, customer):
        with pytest.raises(PartnerNotFound):
            lifecycle.assign_partner(vendor, place().id, customer.identity_id)

    def test_unknown_partner(self, place, vendor):
        with pytest.raises(PartnerNotFound):
            lifecycle.assign_partner(vendor, place().id, "ghost-partner")

    def test_unknown_order(self, vendor, partner):
        with pytest.raises(OrderNotFound):
            lifecycle.assign_partner(vendor, "no-such-order", partner.identity_id)

    def test_failed_assignment_changes_nothing(self, place, vendor):
        order = place()
        with pytest.raises(PartnerNotFound):
            lifecycle.assign_partner(vendor, order.id, "ghost-partner")
        reloaded = current_domain.repository_for(Order).get(order.id)
        assert reloaded.status == OrderStatus.PENDING.value
        assert reloaded.delivery_partner_id is None


class TestUpdateStatus:
    def test_partner_drives_delivery(self, assigned_order, partner):
        lifecycle.update_status(partner, assigned_order.id, "in-transit")
        order = lifecycle.update_status(partner, assigned_order.id, "delivered")
        assert order.status == OrderStatus.DELIVERED.value

    def test_invalid_value_rejected_before_any_read(self, partner):
        with pytest.raises(InvalidStatusValue) as exc:
            lifecycle.update_status(partner, "no-such-order", "flying")
        assert isinstance(exc.value, ValidationError)
        assert "status" in exc.value.messages

    def test_invalid_value_leaves_order_untouched(self, assigned_order, partner):
        with pytest.raises(ValidationError):
            lifecycle.update_status(partner, assigned_order.id, "teleported")
        reloaded = current_domain.repository_for(Order).get(assigned_order.id)
        assert reloaded.status == OrderStatus.ASSIGNED.value

    def test_illegal_transition(self, assigned_order, partner):
        with pytest.raises(IllegalTransition):
            lifecycle.update_status(partner, assigned_order.id, "delivered")

    def test_vendor_and_customer_cannot_set_status(self, assigned_order, vendor, customer):
        for actor in (vendor, customer):
            with pytest.raises(Forbidden):
                lifecycle.update_status(actor, assigned_order.id, "in-transit")

    def test_other_partner_forbidden(self, assigned_order, register):
        with pytest.raises(Forbidden):
            lifecycle.update_status(register("delivery"), assigned_order.id, "in-transit")

    def test_unknown_order(self, partner):
        with pytest.raises(OrderNotFound):
            lifecycle.update_status(partner, "no-such-order", "in-transit")

    def test_partner_can_cancel_through_status(self, assigned_order, partner):
        order = lifecycle.update_status(partner, assigned_order.id, "cancelled")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.delivery_partner_id == partner.identity_id


class TestCancelOrder:
    def test_customer_cancels_pending(self, place, customer):
        order = lifecycle.cancel_order(customer, place().id, "ordered twice")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "ordered twice"

    def test_vendor_cancels_pending(self, place, vendor):
        order = lifecycle.cancel_order(vendor, place().id)
        assert order.status == OrderStatus.CANCELLED.value

    def test_customer_cannot_cancel_after_assignment(self, assigned_order, customer):
        with pytest.raises(Forbidden):
            lifecycle.cancel_order(customer, assigned_order.id, "too slow")

    def test_partner_cancels_after_assignment(self, assigned_order, partner):
        order = lifecycle.cancel_order(partner, assigned_order.id, "vehicle broke down")
        assert order.status == OrderStatus.CANCELLED.value

    def test_delivered_order_cannot_be_cancelled(self, assigned_order, partner):
        lifecycle.update_status(partner, assigned_order.id, "in-transit")
        lifecycle.update_status(partner, assigned_order.id, "delivered")
        with pytest.raises(Conflict):
            lifecycle.cancel_order(partner, assigned_order.id)

    def test_cancelled_order_cannot_be_assigned(self, place, customer, vendor, partner):
        order = lifecycle.cancel_order(customer, place().id)
        with pytest.raises(IllegalTransition):
            lifecycle.assign_partner(vendor, order.id, partner.identity_id)


class TestGetOrder:
    def test_view_joins_participants(self, assigned_order, customer, vendor, partner):
        view = lifecycle.get_order(customer, assigned_order.id)
        assert view.id == str(assigned_order.id)
        assert view.customer.id == customer.identity_id
        assert view.customer.name.startswith("Customer")
        assert view.vendor.id == vendor.identity_id
        assert view.delivery_partner.id == partner.identity_id
        assert view.items[0].name == "Pizza"
        assert view.delivery_address.coordinates.latitude == 51.5237

    def test_unassigned_view_has_no_partner(self, place, vendor):
        view = lifecycle.get_order(vendor, place().id)
        assert view.delivery_partner is None

    def test_every_participant_may_view(self, assigned_order, customer, vendor, partner):
        for actor in (customer, vendor, partner):
            assert lifecycle.get_order(actor, assigned_order.id).status == "assigned"

    def test_strangers_forbidden(self, assigned_order, register):
        for role in ("customer", "vendor", "delivery"):
            with pytest.raises(Forbidden):
                lifecycle.get_order(register(role), assigned_order.id)

    def test_unknown_order(self, customer):
        with pytest.raises(OrderNotFound):
            lifecycle.get_order(customer, "no-such-order")


class TestListOrders:
    def test_newest_first(self, place, customer):
        first = place()
        second = place()
        views = lifecycle.list_orders(customer)
        assert [view.id for view in views] == [str(second.id), str(first.id)]

    def test_newest_first_past_the_list_limit(self, monkeypatch, place, customer):
        monkeypatch.setattr(lifecycle, "ORDER_LIST_LIMIT", 2)
        place()
        second = place()
        third = place()

        views = lifecycle.list_orders(customer)
        assert [view.id for view in views] == [str(third.id), str(second.id)]

    def test_only_own_slot(self, place, vendor, register):
        place()
        assert len(lifecycle.list_orders(vendor)) == 1
        assert lifecycle.list_orders(register("vendor")) == []

    def test_partner_sees_assigned_orders(self, assigned_order, partner):
        views = lifecycle.list_orders(partner, role="delivery")
        assert [view.id for view in views] == [str(assigned_order.id)]

    def test_role_must_match_actor(self, customer):
        with pytest.raises(Forbidden):
            lifecycle.list_orders(customer, role="vendor")

    def test_id_in_another_slot_not_listed(self, place, customer):
        place()
        impostor = Actor(identity_id=customer.identity_id, role="vendor")
        assert lifecycle.list_orders(impostor) == []


class TestStorageFailures:
    def test_stale_copy_cannot_overwrite_a_newer_write(self, place, vendor, partner, register):
        order = place()
        repo = current_domain.repository_for(Order)
        first = repo.get(order.id)
        second = repo.get(order.id)
        rival = register("delivery")

        first.assign_partner(partner.identity_id, assigned_by=str(vendor))
        second.assign_partner(rival.identity_id, assigned_by=str(vendor))

        with storage_errors():
            repo.add(first)
        with pytest.raises(ConcurrentUpdate) as exc:
            with storage_errors():
                repo.add(second)

        assert exc.value.kind == "conflict"
        assert repo.get(order.id).delivery_partner_id == partner.identity_id

    def test_version_conflict_surfaces_as_conflict(self, monkeypatch, place, vendor, partner):
        order = place()

        def stale_add(self, aggregate):
            raise ExpectedVersionError(f"Wrong expected version for {aggregate.id}")

        monkeypatch.setattr(OrderRepository, "add", stale_add)

        with pytest.raises(Conflict) as exc:
            lifecycle.assign_partner(vendor, order.id, partner.identity_id)
        assert exc.value.kind == "conflict"

    def test_database_failure_surfaces_as_unavailable(self, monkeypatch, place, vendor, partner):
        order = place()

        def broken_add(self, aggregate):
            raise DatabaseError("connection refused")

        monkeypatch.setattr(OrderRepository, "add", broken_add)

        with pytest.raises(Unavailable) as exc:
            lifecycle.assign_partner(vendor, order.id, partner.identity_id)
        assert exc.value.kind == "unavailable"

    def test_failed_commit_surfaces_as_unavailable(self):
        with pytest.raises(StorageUnavailable):
            with storage_errors():
                raise TransactionError("Unit of Work commit failed")

    def test_failed_read_surfaces_as_unavailable(self, monkeypatch, customer):
        def broken_query(self, slot, identity_id, limit):
            raise DatabaseError("connection reset")

        monkeypatch.setattr(OrderRepository, "for_participant", broken_query)

        with pytest.raises(Unavailable):
            lifecycle.list_orders(customer)

    def test_domain_errors_pass_through(self):
        with pytest.raises(Forbidden):
            with storage_errors():
                raise Forbidden("not yours")
