"""Mission endpoints.

PATCH /missions/{id} takes a target state and runs the matching operation:
  pending → in_progress           deploy (location_id + sorcerer_ids)
  in_progress → success | failure complete
  in_progress → canceled          cancel
"""

from fastapi import APIRouter, Depends, HTTPException

from backend import services
from backend.config import page_size
from mission_desk import lifecycle
from mission_desk.errors import LifecycleError

from .common import actor_role, http_error
from .models import MissionReportBody, MissionTransitionBody

router = APIRouter()


@router.get("/missions")
async def list_missions(cursor: int | None = None, limit: int | None = None):
    return services.store().list_page("missions", cursor, page_size(limit))


@router.get("/missions/{mission_id}")
async def get_mission(mission_id: int):
    mission = services.store().get_mission(mission_id)
    if not mission:
        raise HTTPException(404, "Mission not found")
    return mission


@router.get("/missions/{mission_id}/participants")
async def list_participants(mission_id: int):
    """Sorcerers dispatched on a mission."""
    store = services.store()
    if not store.get_mission(mission_id):
        raise HTTPException(404, "Mission not found")
    return store.get_participants(mission_id)


@router.patch("/missions/{mission_id}")
async def transition_mission(
    mission_id: int, body: MissionTransitionBody, role: str = Depends(actor_role)
):
    try:
        return lifecycle.transition_mission(
            services.store(),
            mission_id,
            body.state,
            location_id=body.location_id,
            sorcerer_ids=body.sorcerer_ids,
            audit=services.audit_sink(role),
        )
    except LifecycleError as e:
        raise http_error(e) from e


@router.patch("/missions/{mission_id}/report")
async def update_report(
    mission_id: int, body: MissionReportBody, role: str = Depends(actor_role)
):
    """Edit the events and collateral damage write-up of a mission."""
    try:
        return lifecycle.record_report(
            services.store(),
            mission_id,
            events=body.events,
            collateral_damage=body.collateral_damage,
            audit=services.audit_sink(role),
        )
    except LifecycleError as e:
        raise http_error(e) from e


@router.delete("/missions/{mission_id}")
async def delete_mission(mission_id: int, role: str = Depends(actor_role)):
    try:
        return lifecycle.delete_mission(
            services.store(), mission_id, audit=services.audit_sink(role)
        )
    except LifecycleError as e:
        raise http_error(e) from e
