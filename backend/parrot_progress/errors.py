"""Exceptions raised by the progression engine and its stores."""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for progression engine failures."""


class PersistenceFailure(ProgressionError):
    """A store read or write did not complete."""

    def __init__(self, operation: str, user_id: str | None = None, detail: str = "") -> None:
        self.operation = operation
        self.user_id = user_id
        self.detail = detail
        message = f"{operation} failed"
        if user_id is not None:
            message += f" for user '{user_id}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NoCollectiblesAvailableError(ProgressionError):
    """The collectible catalog is empty, so nothing can be drawn."""
