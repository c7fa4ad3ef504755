"""Participant aggregate: the directory of identities that can take part in an order.

Credentials live with the external identity provider; this record only pins
an identity id to its fixed role so that vendor and delivery partner ids can
be resolved when an order is placed or assigned.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from tracking.domain import tracking
from tracking.participant.events import ParticipantRegistered


class Role(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    DELIVERY = "delivery"


@tracking.aggregate
class Participant:
    name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    role = String(required=True, choices=Role)
    registered_at = DateTime()

    @classmethod
    def register(cls, name: str, email: str, role: str, identity_id: str | None = None):
        now = datetime.now(UTC)
        kwargs = {"id": identity_id} if identity_id else {}
        participant = cls(
            name=name,
            email=email,
            role=role,
            registered_at=now,
            **kwargs,
        )
        participant.raise_(
            ParticipantRegistered(
                participant_id=str(participant.id),
                name=name,
                email=email,
                role=participant.role,
                registered_at=now,
            )
        )
        return participant

    def summary(self) -> dict:
        return {"id": str(self.id), "name": self.name, "email": self.email}


@tracking.repository(part_of=Participant)
class ParticipantRepository:
    def find(self, participant_id) -> Participant | None:
        if not participant_id:
            return None
        try:
            return self.get(str(participant_id))
        except ObjectNotFoundError:
            return None

    def find_with_role(self, participant_id, role: Role) -> Participant | None:
        participant = self.find(participant_id)
        if participant is None or participant.role != role.value:
            return None
        return participant

    def find_by_email(self, email: str) -> Participant | None:
        return self._dao.query.filter(email=email).all().first


def summaries(*participant_ids) -> dict[str, dict]:
    """Resolve participant ids to ``{id, name, email}`` summaries in one pass.

    Unknown ids map to a summary carrying only the id.
    """
    repo = current_domain.repository_for(Participant)
    resolved = {}
    for participant_id in participant_ids:
        if not participant_id or str(participant_id) in resolved:
            continue
        participant = repo.find(participant_id)
        resolved[str(participant_id)] = (
            participant.summary() if participant else {"id": str(participant_id), "name": None, "email": None}
        )
    return resolved
