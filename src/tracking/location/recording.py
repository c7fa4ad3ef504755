"""Location recording: command and handler.

Appending a sample and the order's implied move to in-transit share one unit
of work and one authorization check.
"""

from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from tracking.access.policy import Actor, can_report_location, require
from tracking.domain import tracking
from tracking.location.sample import LocationSample
from tracking.order.order import Order


@tracking.command(part_of="LocationSample")
class RecordLocation:
    actor_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)
    order_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    timestamp = DateTime()


@tracking.command_handler(part_of=LocationSample)
class RecordLocationHandler:
    @handle(RecordLocation)
    def record_location(self, command):
        orders = current_domain.repository_for(Order)
        order = orders.get_order(command.order_id)

        actor = Actor.of(command)
        require(can_report_location, actor, order)

        sample = LocationSample.record(
            order_id=str(order.id),
            delivery_partner_id=str(order.delivery_partner_id),
            latitude=command.latitude,
            longitude=command.longitude,
            sequence=order.next_location_sequence(),
            timestamp=command.timestamp,
        )
        order.advance_on_movement(changed_by=str(actor))

        current_domain.repository_for(LocationSample).add(sample)
        orders.add(order)
        return str(sample.id)
