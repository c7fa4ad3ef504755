"""LocationSample aggregate: one GPS ping from the bound delivery partner.

Samples are append-only: they are created once and never changed or
removed. The current position of an order is derived from them (the sample
with the latest ``timestamp``), never stored.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, ValueObject

from tracking.domain import tracking
from tracking.location.events import LocationRecorded
from tracking.shared.clock import as_utc
from tracking.shared.geo import GeoPoint


@tracking.aggregate
class LocationSample:
    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    coordinates = ValueObject(GeoPoint, required=True)
    timestamp = DateTime(required=True)
    recorded_at = DateTime(required=True)
    sequence = Integer(required=True, min_value=1)

    @classmethod
    def record(
        cls,
        order_id: str,
        delivery_partner_id: str,
        latitude: float,
        longitude: float,
        sequence: int,
        timestamp: datetime | None = None,
    ):
        now = datetime.now(UTC)
        sample = cls(
            order_id=order_id,
            delivery_partner_id=delivery_partner_id,
            coordinates=GeoPoint(latitude=latitude, longitude=longitude),
            timestamp=as_utc(timestamp) or now,
            recorded_at=now,
            sequence=sequence,
        )
        sample.raise_(
            LocationRecorded(
                location_id=str(sample.id),
                order_id=str(order_id),
                delivery_partner_id=str(delivery_partner_id),
                latitude=sample.coordinates.latitude,
                longitude=sample.coordinates.longitude,
                timestamp=sample.timestamp,
                sequence=sequence,
            )
        )
        return sample

    @property
    def ordering_key(self) -> tuple[datetime, int]:
        """Position time first, arrival order to break ties."""
        return (as_utc(self.timestamp), self.sequence)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "delivery_partner_id": str(self.delivery_partner_id),
            "latitude": self.coordinates.latitude,
            "longitude": self.coordinates.longitude,
            "timestamp": as_utc(self.timestamp).isoformat(),
            "recorded_at": as_utc(self.recorded_at).isoformat(),
            "sequence": self.sequence,
        }


@tracking.repository(part_of=LocationSample)
class LocationSampleRepository:
    def for_order(self, order_id: str, limit: int) -> list[LocationSample]:
        """The ``limit`` most recent samples of one order, ascending by timestamp with arrival tie-break."""
        samples = self._dao.query.filter(order_id=str(order_id)).order_by("-timestamp").limit(limit).all().items
        return sorted(samples, key=lambda sample: sample.ordering_key)

    def latest_for_order(self, order_id: str) -> LocationSample | None:
        """The sample with the latest timestamp; the later arrival wins a tie."""
        batch = 8
        while True:
            result = self._dao.query.filter(order_id=str(order_id)).order_by("-timestamp").limit(batch).all()
            samples = result.items
            if not samples:
                return None
            newest = max(as_utc(sample.timestamp) for sample in samples)
            tied = [sample for sample in samples if as_utc(sample.timestamp) == newest]
            # A batch made only of ties may have cut off later arrivals at the same instant
            if len(tied) < len(samples) or len(samples) >= result.total:
                return max(tied, key=lambda sample: sample.sequence)
            batch *= 2
