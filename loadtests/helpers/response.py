"""Response error extraction for load test observability.

Parses LiveTrack API error responses into human-readable messages.
Handles three response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Missing identity (401): {"detail": "msg"}
- Domain errors (400/403/404/409): {"error": {"kind": "...", "reason": "..."}}
  or {"error": {"field": ["msg"]}} for field validation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    detail = body.get("detail")
    if isinstance(detail, list):
        parts = []
        for err in detail:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)
    if isinstance(detail, str):
        return detail

    if "error" in body:
        error = body["error"]
        if isinstance(error, dict) and "reason" in error:
            return f"{error.get('kind', 'error')}: {error['reason']}"
        if isinstance(error, dict):
            return " | ".join(f"{k}: {v}" for k, v in error.items())
        return str(error)

    return str(body)[:300]
