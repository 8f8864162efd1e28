# Overview: Error taxonomy and typed results for order and staff authorization decisions.

"""
Tillflow error taxonomy.

State-machine and permission failures are returned to callers inside a
Result so request handlers can branch on the kind. Anything that is a
storage failure is passed through as StorageError and is never retried
here; retry policy belongs to the persistence collaborator.

    InvalidTransition   target not reachable from the current status
    Forbidden           actor lacks permission for this edge or action
    StaleState          compare-and-swap lost a race; refetch and re-evaluate
    Unauthorized        no valid staff session or credential
    SessionNotFound     release/renew on a session that no longer exists
    StorageError        opaque database failure
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class TillflowError(Exception):
    """Base class; `user_message` is safe to show to staff."""

    kind = "error"
    user_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "error": self.user_message, "detail": str(self)}


class TransitionError(TillflowError):
    """Failure to move an order from one status to another."""

    def __init__(self, message: str | None = None, current_status=None, target_status=None):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = getattr(self.current_status, "value", self.current_status)
        data["target_status"] = getattr(self.target_status, "value", self.target_status)
        return data


class InvalidTransition(TransitionError):
    kind = "invalid_transition"
    user_message = "This change is not allowed from the order's current state"


class Forbidden(TransitionError):
    kind = "forbidden"
    user_message = "You do not have permission to do this"


class StaleState(TransitionError):
    kind = "stale_state"
    user_message = "This order was updated by someone else. Refresh and try again"


class Unauthorized(TillflowError):
    kind = "unauthorized"
    user_message = "Please sign in again"


class SessionNotFound(TillflowError):
    kind = "session_not_found"
    user_message = "No active session"


class StorageError(TillflowError):
    kind = "storage_error"
    user_message = "The change could not be saved"


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a decision: either a value or a TransitionError.

    Never both. `unwrap()` converts a failure back into exception flow for
    callers that prefer it.
    """

    value: T | None = None
    error: TransitionError | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TransitionError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value
