"""Core domain models.

Every orchestrator, store method and route operates on these types.
Pydantic is used for validation and serialisation at every data boundary:
records are validated when they are written, so a cascade that would persist
an inconsistent Mission fails before its transaction commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, model_validator

CurseGrade = Literal["grade_1", "grade_2", "grade_3", "semi_special", "special"]
CurseType = Literal["malign", "semi_curse", "residual", "unknown"]
DangerLevel = Literal["low", "moderate", "high"]
CurseState = Literal["active", "exorcism_in_progress", "exorcised"]

RequestState = Literal["pending", "being_handled", "handled"]

MissionState = Literal["pending", "in_progress", "success", "failure", "canceled"]
Urgency = Literal["planned", "urgent", "critical_emergency"]

SorcererGrade = Literal["student", "apprentice", "mid", "high", "special"]
SorcererStatus = Literal["active", "injured", "recovering", "casualty", "inactive"]

AuditAction = Literal["create", "update", "delete"]

TERMINAL_MISSION_STATES: frozenset[str] = frozenset({"success", "failure", "canceled"})


def is_terminal(state: str) -> bool:
    return state in TERMINAL_MISSION_STATES


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

class Location(BaseModel):
    id: int
    name: str


class Sorcerer(BaseModel):
    id: int
    name: str
    grade: SorcererGrade = "student"
    experience: int = Field(default=0, ge=0)
    status: SorcererStatus = "active"


# ---------------------------------------------------------------------------
# The linked aggregate: Curse → Request → Mission (+ assignments, roster)
# ---------------------------------------------------------------------------

class Curse(BaseModel):
    """A reported incident. Its state follows its Request and Mission."""

    id: int
    name: str
    appeared_at: datetime
    grade: CurseGrade
    type: CurseType
    danger_level: DangerLevel
    state: CurseState = "active"
    location_id: int


class Request(BaseModel):
    """The ticket raised for exactly one Curse."""

    id: int
    curse_id: int
    state: RequestState = "pending"


class Mission(BaseModel):
    """An operational dispatch created on behalf of a Request.

    `request_id` is the owning Request; it is cleared when that Request is
    deleted and the Mission is kept as history.
    """

    id: int
    request_id: int | None = None
    started_at: datetime
    ended_at: datetime | None = None
    location_id: int
    state: MissionState = "pending"
    urgency: Urgency
    events: str = ""
    collateral_damage: str = ""

    @model_validator(mode="after")
    def _end_matches_state(self) -> Mission:
        if is_terminal(self.state) and self.ended_at is None:
            raise ValueError(f"mission in state {self.state!r} needs an end timestamp")
        if not is_terminal(self.state) and self.ended_at is not None:
            raise ValueError(f"mission in state {self.state!r} cannot have an end timestamp")
        if self.ended_at is not None and self.ended_at < self.started_at:
            raise ValueError("mission cannot end before it starts")
        return self


class SorcererAssignment(BaseModel):
    """The sorcerer accountable for a Request's current Mission."""

    id: int
    sorcerer_id: int
    request_id: int
    mission_id: int


class MissionParticipant(BaseModel):
    """A sorcerer physically dispatched on a Mission."""

    id: int
    sorcerer_id: int
    mission_id: int


class AuditEntry(BaseModel):
    id: int
    timestamp: datetime
    entity: str
    action: AuditAction
    entity_id: int
    actor_role: str
    actor_rank: str | None = None
    actor_name: str | None = None
    summary: str | None = None


# ---------------------------------------------------------------------------
# Inputs and listing
# ---------------------------------------------------------------------------

class CurseDraft(BaseModel):
    """Caller-supplied fields for a newly reported curse."""

    name: str = Field(min_length=1)
    appeared_at: datetime | None = None  # defaults to the time of reporting
    grade: CurseGrade
    type: CurseType
    danger_level: DangerLevel
    location_id: int


class CurseChanges(BaseModel):
    """Editable descriptive fields of a curse. State is never editable."""

    name: str | None = Field(default=None, min_length=1)
    appeared_at: datetime | None = None
    grade: CurseGrade | None = None
    type: CurseType | None = None
    danger_level: DangerLevel | None = None
    location_id: int | None = None


T = TypeVar("T", bound=BaseModel)


class Page(BaseModel, Generic[T]):
    """One cursor page of records ordered by id."""

    items: list[T]
    next_cursor: int | None = None
    has_more: bool = False
