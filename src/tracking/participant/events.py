"""Domain events for the Participant aggregate."""

from protean.fields import DateTime, Identifier, String

from tracking.domain import tracking


@tracking.event(part_of="Participant")
class ParticipantRegistered:
    """An external identity was registered with its role."""

    __version__ = 1

    participant_id = Identifier(required=True)
    name = String(required=True)
    email = String(required=True)
    role = String(required=True)
    registered_at = DateTime(required=True)
