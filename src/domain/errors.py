"""Error taxonomy shared by domain logic, services and the CLI."""

from __future__ import annotations


class DraftyError(Exception):
    """Base class for every user-visible failure."""

    code = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DraftyError):
    """Missing or malformed input. Nothing was changed."""

    code = "invalid-argument"


class PreconditionError(DraftyError):
    """Valid input against the wrong state; the caller must re-read and retry."""

    code = "failed-precondition"


class NotFoundError(DraftyError):
    code = "not-found"


class PermissionDeniedError(DraftyError):
    """The acting identity is not allowed to perform the operation."""

    code = "permission-denied"


class ConflictError(DraftyError):
    """Optimistic-concurrency collisions outlasted the retry budget."""

    code = "aborted"


class ExpiredError(DraftyError):
    """A time-bounded operation arrived after its deadline."""

    code = "deadline-exceeded"


__all__ = [
    "ConflictError",
    "DraftyError",
    "ExpiredError",
    "NotFoundError",
    "PermissionDeniedError",
    "PreconditionError",
    "ValidationError",
]
