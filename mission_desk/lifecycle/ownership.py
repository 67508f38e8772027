"""Walking the Curse → Request → Mission chain in both directions."""

from __future__ import annotations

from pydantic import BaseModel

from mission_desk.models import Curse, Mission, Request, SorcererAssignment
from mission_desk.results import MissingLinkKind
from mission_desk.storage import Storage

from .effects import Effect, Update


class OwnerChain(BaseModel):
    """The Request that owns a Mission and the Curse behind it."""

    request: Request
    curse: Curse


class MissingLink(BaseModel):
    """A Mission whose owning Request or Curse cannot be reached."""

    mission_id: int
    missing: MissingLinkKind


def resolve_owner(storage: Storage, mission: Mission) -> OwnerChain | MissingLink:
    if mission.request_id is None:
        return MissingLink(mission_id=mission.id, missing="request")
    request = storage.get_request(mission.request_id)
    if request is None:
        return MissingLink(mission_id=mission.id, missing="request")
    curse = storage.get_curse(request.curse_id)
    if curse is None:
        return MissingLink(mission_id=mission.id, missing="curse")
    return OwnerChain(request=request, curse=curse)


def request_missions(
    storage: Storage, request_id: int
) -> list[tuple[SorcererAssignment, Mission | None]]:
    """Every assignment of a request with the mission it points at (None if gone)."""
    return [
        (assignment, storage.get_mission(assignment.mission_id))
        for assignment in storage.get_assignments_for_request(request_id)
    ]


def reopen(chain: OwnerChain) -> list[Effect]:
    """Send the owning request back for reassignment and the curse back to active."""
    return [
        Update(table="requests", id=chain.request.id, fields={"state": "pending"}),
        Update(table="curses", id=chain.curse.id, fields={"state": "active"}),
    ]
