"""Timestamps as the tracking domain compares them."""

from datetime import UTC, datetime


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so device and server clocks compare."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
