"""Pydantic request bodies for API endpoints."""

from pydantic import BaseModel, Field

from mission_desk.models import SorcererGrade, SorcererStatus


class CreateLocation(BaseModel):
    name: str = Field(min_length=1)


class CreateSorcerer(BaseModel):
    name: str = Field(min_length=1)
    grade: SorcererGrade = "student"
    experience: int = Field(default=0, ge=0)
    status: SorcererStatus = "active"


class RequestTransitionBody(BaseModel):
    state: str
    sorcerer_id: int | None = None
    urgency: str | None = None


class MissionTransitionBody(BaseModel):
    state: str
    location_id: int | None = None
    sorcerer_ids: list[int] | None = None


class MissionReportBody(BaseModel):
    events: str | None = None
    collateral_damage: str | None = None
