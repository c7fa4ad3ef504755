"""Request identity and error mapping for the tracking API.

Identity comes from the ``X-Actor-Id`` and ``X-Actor-Role`` headers, which
the upstream identity provider sets after authenticating the caller. They
are trusted as given.
"""

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from tracking.access.policy import Actor
from tracking.errors import Conflict, Forbidden, NotFound, TrackingError, Unavailable
from tracking.participant.participant import Role

_ROLES = {role.value for role in Role}

_STATUS_CODES = {
    NotFound: 404,
    Forbidden: 403,
    Conflict: 409,
    Unavailable: 503,
}


def actor_from(identity_id: str | None, role: str | None) -> Actor | None:
    """Build an Actor from raw identity values, or None when they are unusable."""
    if not identity_id or role not in _ROLES:
        return None
    return Actor(identity_id=identity_id, role=role)


async def get_actor(
    x_actor_id: str = Header(default=""),
    x_actor_role: str = Header(default=""),
) -> Actor:
    actor = actor_from(x_actor_id, x_actor_role)
    if actor is None:
        raise HTTPException(status_code=401, detail="Missing or invalid actor identity")
    return actor


def status_code_for(exc: TrackingError) -> int:
    for kind, status_code in _STATUS_CODES.items():
        if isinstance(exc, kind):
            return status_code
    return 500


async def _tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content={"error": exc.to_dict()})


def register_error_handlers(app: FastAPI) -> None:
    """Protean's handlers for its own exceptions, plus the tracking taxonomy."""
    register_exception_handlers(app)
    app.add_exception_handler(TrackingError, _tracking_error_handler)
