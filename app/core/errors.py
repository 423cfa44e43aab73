"""Error taxonomy for the progress & completion engine.

Services raise these BEFORE mutating anything, so a caller that sees one
knows no state changed.  The API layer maps each class to an HTTP status
(see app/api/errors.py); the ``code`` travels in the response body so
clients can tell causes apart without parsing messages.

DependencyFailure is the odd one out: it is never raised to the caller.
Post-commit hooks (badge evaluation, notifications) catch their own
failures and report them on the operation result as a degraded success.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all domain errors surfaced to callers."""

    code = "engine_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class NotFoundError(EngineError):
    code = "not_found"


class ConflictError(EngineError):
    code = "conflict"


class InvalidInputError(EngineError, ValueError):
    code = "invalid_input"


class InvalidStateError(EngineError):
    code = "invalid_state"


class UnauthorizedError(EngineError):
    code = "unauthorized"


class DependencyFailure(EngineError):
    code = "dependency_failure"
