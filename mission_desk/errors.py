"""Error taxonomy for lifecycle operations.

Each error carries a machine-checkable `code` and a human-readable message.
The request-handling layer maps codes to transport responses; nothing in the
orchestrators catches these.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ErrorCode = Literal[
    "not_found",
    "invalid_transition",
    "precondition_failed",
    "conflicting_active_work",
    "persistence_failure",
]


class Failure(BaseModel):
    """Structured failure payload returned to callers."""

    kind: Literal["failure"] = "failure"
    code: ErrorCode
    message: str


class LifecycleError(Exception):
    """Base class for every failure an orchestrator operation can raise."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_failure(self) -> Failure:
        return Failure(code=self.code, message=self.message)


class NotFound(LifecycleError):
    """A referenced Curse, Request, Mission, Sorcerer or Location does not exist."""

    code = "not_found"


class InvalidTransition(LifecycleError):
    """The requested state change is not permitted from the current state."""

    code = "invalid_transition"

    def __init__(self, entity: str, entity_id: int, current: str, requested: str) -> None:
        super().__init__(
            f"{entity} {entity_id} cannot move from {current!r} to {requested!r}"
        )
        self.current = current
        self.requested = requested


class PreconditionFailed(LifecycleError):
    """Required inputs for a transition are missing or invalid."""

    code = "precondition_failed"


class ConflictingActiveWork(LifecycleError):
    """An active Mission already exists for the Request being assigned."""

    code = "conflicting_active_work"


class PersistenceFailure(LifecycleError):
    """The store could not read or commit a transaction."""

    code = "persistence_failure"
