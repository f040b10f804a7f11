from __future__ import annotations

from fastapi import Header

from .errors import MissingIdentity

PLAYER_HEADER = "X-Player-Id"


def caller_identity(x_player_id: str | None = Header(default=None)) -> str:
    """Resolve the calling player from the request header."""
    identity = (x_player_id or "").strip()
    if not identity:
        raise MissingIdentity(f"Missing {PLAYER_HEADER} header.")
    return identity
