from __future__ import annotations


class ChopsticksError(Exception):
    """Base class for failures surfaced to callers."""

    code = "CHOPSTICKS_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__doc__ or self.code)


class SessionNotFound(ChopsticksError):
    """Game session not found."""

    code = "SESSION_NOT_FOUND"


class NotJoinable(ChopsticksError):
    """Game session cannot be joined."""

    code = "NOT_JOINABLE"


class NotInProgress(ChopsticksError):
    """Game session is not in progress."""

    code = "NOT_IN_PROGRESS"


class NotYourTurn(ChopsticksError):
    """Not this player's turn."""

    code = "NOT_YOUR_TURN"


class EmptySourceSlot(ChopsticksError):
    """Cannot move from an empty slot."""

    code = "EMPTY_SOURCE_SLOT"


class DuplicateSession(ChopsticksError):
    """Session id already exists."""

    code = "DUPLICATE_SESSION"


class MissingIdentity(ChopsticksError):
    """Caller identity header is missing."""

    code = "MISSING_IDENTITY"


class StorageError(ChopsticksError):
    """Session storage is unreadable or could not be written."""

    code = "STORAGE_ERROR"


__all__ = [
    "ChopsticksError",
    "SessionNotFound",
    "NotJoinable",
    "NotInProgress",
    "NotYourTurn",
    "EmptySourceSlot",
    "DuplicateSession",
    "StorageError",
    "MissingIdentity",
]
