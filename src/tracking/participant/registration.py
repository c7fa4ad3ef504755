"""Participant registration: command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from tracking.domain import tracking
from tracking.participant.participant import Participant


@tracking.command(part_of="Participant")
class RegisterParticipant:
    """Pin an external identity to a role in the participant directory."""

    identity_id = Identifier()
    name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    role = String(required=True, max_length=20)


@tracking.command_handler(part_of=Participant)
class RegisterParticipantHandler:
    @handle(RegisterParticipant)
    def register_participant(self, command):
        repo = current_domain.repository_for(Participant)

        # One directory entry per email and per identity
        if repo.find_by_email(command.email) is not None:
            raise ValidationError({"email": ["A participant with this email is already registered"]})
        if command.identity_id and repo.find(command.identity_id) is not None:
            raise ValidationError({"identity_id": ["This identity is already registered"]})

        participant = Participant.register(
            name=command.name,
            email=command.email,
            role=command.role,
            identity_id=command.identity_id,
        )
        repo.add(participant)
        return str(participant.id)
