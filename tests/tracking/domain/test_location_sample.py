"""Tests for the LocationSample aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from tracking.location.events import LocationRecorded
from tracking.location.sample import LocationSample
from tracking.shared.clock import as_utc

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _record(**overrides):
    kwargs = {
        "order_id": "order-001",
        "delivery_partner_id": "partner-001",
        "latitude": 12.34,
        "longitude": 56.78,
        "sequence": 1,
    }
    kwargs.update(overrides)
    return LocationSample.record(**kwargs)


class TestRecord:
    def test_fields(self):
        sample = _record(timestamp=T0)
        assert sample.coordinates.as_tuple() == (12.34, 56.78)
        assert sample.timestamp == T0
        assert sample.sequence == 1
        assert sample.recorded_at is not None

    def test_timestamp_defaults_to_arrival(self):
        sample = _record()
        assert sample.timestamp == sample.recorded_at

    def test_naive_timestamp_treated_as_utc(self):
        sample = _record(timestamp=datetime(2026, 3, 1, 12, 0))
        assert as_utc(sample.timestamp) == T0

    def test_raises_location_recorded(self):
        sample = _record(timestamp=T0, sequence=3)
        assert len(sample._events) == 1
        event = sample._events[0]
        assert isinstance(event, LocationRecorded)
        assert event.location_id == str(sample.id)
        assert event.order_id == "order-001"
        assert (event.latitude, event.longitude) == (12.34, 56.78)
        assert event.sequence == 3

    @pytest.mark.parametrize("latitude,longitude", [(-90.5, 0), (90.5, 0), (0, -180.5), (0, 180.5)])
    def test_out_of_range_rejected(self, latitude, longitude):
        with pytest.raises(ValidationError):
            _record(latitude=latitude, longitude=longitude)

    def test_sequence_starts_at_one(self):
        with pytest.raises(ValidationError):
            _record(sequence=0)


class TestOrdering:
    def test_timestamp_before_arrival(self):
        late_arrival = _record(timestamp=T0, sequence=2)
        early_arrival = _record(timestamp=T0 + timedelta(seconds=5), sequence=1)
        ordered = sorted([early_arrival, late_arrival], key=lambda s: s.ordering_key)
        assert ordered == [late_arrival, early_arrival]

    def test_arrival_breaks_ties(self):
        first = _record(timestamp=T0, sequence=1)
        second = _record(timestamp=T0, sequence=2)
        assert max([second, first], key=lambda s: s.ordering_key) is second


class TestToDict:
    def test_shape(self):
        sample = _record(timestamp=T0)
        data = sample.to_dict()
        assert data["id"] == str(sample.id)
        assert data["order_id"] == "order-001"
        assert data["delivery_partner_id"] == "partner-001"
        assert data["latitude"] == 12.34
        assert data["longitude"] == 56.78
        assert data["timestamp"] == T0.isoformat()
        assert data["sequence"] == 1
