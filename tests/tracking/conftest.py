import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def tracking_bed():
    from tracking.domain import tracking

    bed = DomainFixture(tracking)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(tracking_bed):
    with tracking_bed.domain_context():
        yield


@pytest.fixture()
def channel():
    """A fresh distribution channel, active for the duration of the test."""
    from tracking.realtime.channel import DistributionChannel

    channel = DistributionChannel()
    with channel.bound():
        yield channel


ITEMS = [{"name": "Pizza", "quantity": 1, "price": 10.0}]

ADDRESS = {
    "street": "221B Baker Street",
    "city": "London",
    "state": "Greater London",
    "zip_code": "NW16XE",
    "coordinates": {"latitude": 51.5237, "longitude": -0.1585},
}


@pytest.fixture()
def register():
    """Register a participant with a given role and return its Actor."""
    from uuid import uuid4

    from protean import current_domain
    from tracking.access.policy import Actor
    from tracking.participant.registration import RegisterParticipant

    def _register(role: str, name: str | None = None) -> Actor:
        suffix = uuid4().hex[:8]
        participant_id = current_domain.process(
            RegisterParticipant(
                name=name or f"{role.title()} {suffix}",
                email=f"{role}-{suffix}@example.com",
                role=role,
            ),
            asynchronous=False,
        )
        return Actor(identity_id=participant_id, role=role)

    return _register


@pytest.fixture()
def customer(register):
    return register("customer")


@pytest.fixture()
def vendor(register):
    return register("vendor")


@pytest.fixture()
def partner(register):
    return register("delivery")


@pytest.fixture()
def place(customer, vendor):
    """Place an order from ``customer`` to ``vendor``."""
    from tracking.order import lifecycle

    def _place(**overrides):
        kwargs = {
            "vendor_id": vendor.identity_id,
            "items": ITEMS,
            "total_amount": 10.0,
            "delivery_address": ADDRESS,
        }
        kwargs.update(overrides)
        actor = kwargs.pop("actor", customer)
        return lifecycle.place_order(actor, **kwargs)

    return _place


@pytest.fixture()
def assigned_order(place, vendor, partner):
    from tracking.order import lifecycle

    order = place()
    return lifecycle.assign_partner(vendor, order.id, partner.identity_id)
