"""Success payloads, one model per public operation.

`kind` tags each payload so callers can match on it; failures are raised as
`LifecycleError` and converted to `errors.Failure` at the boundary.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from mission_desk.models import Urgency

MissingLinkKind = Literal["request", "curse"]


class CurseReported(BaseModel):
    kind: Literal["curse_reported"] = "curse_reported"
    curse_id: int
    request_id: int


class CurseDeleted(BaseModel):
    kind: Literal["curse_deleted"] = "curse_deleted"
    curse_id: int
    request_id: int | None = None


class SorcererAssigned(BaseModel):
    kind: Literal["sorcerer_assigned"] = "sorcerer_assigned"
    request_id: int
    mission_id: int
    assignment_id: int


class AssignmentModified(BaseModel):
    kind: Literal["assignment_modified"] = "assignment_modified"
    request_id: int
    assignment_id: int
    urgency: Urgency
    changed: bool


class RequestWithdrawn(BaseModel):
    kind: Literal["request_withdrawn"] = "request_withdrawn"
    request_id: int
    removed_mission_ids: list[int] = Field(default_factory=list)
    kept_mission_ids: list[int] = Field(default_factory=list)


class RequestHandled(BaseModel):
    kind: Literal["request_handled"] = "request_handled"
    request_id: int


class RequestDeleted(BaseModel):
    kind: Literal["request_deleted"] = "request_deleted"
    request_id: int
    canceled_mission_ids: list[int] = Field(default_factory=list)


class MissionDeployed(BaseModel):
    kind: Literal["mission_deployed"] = "mission_deployed"
    mission_id: int
    participant_ids: list[int]
    missing_link: MissingLinkKind | None = None


class MissionCompleted(BaseModel):
    kind: Literal["mission_completed"] = "mission_completed"
    mission_id: int
    outcome: Literal["success", "failure"]
    missing_link: MissingLinkKind | None = None


class MissionCanceled(BaseModel):
    kind: Literal["mission_canceled"] = "mission_canceled"
    mission_id: int
    missing_link: MissingLinkKind | None = None


class MissionDeleted(BaseModel):
    kind: Literal["mission_deleted"] = "mission_deleted"
    mission_id: int
    missing_link: MissingLinkKind | None = None
