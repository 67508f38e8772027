"""Curse endpoints: reporting, listing, editing and administrative delete."""

from fastapi import APIRouter, Depends, HTTPException

from backend import services
from backend.config import page_size
from mission_desk import lifecycle
from mission_desk.errors import LifecycleError
from mission_desk.models import CurseChanges, CurseDraft

from .common import actor_role, http_error

router = APIRouter()


@router.get("/curses")
async def list_curses(cursor: int | None = None, limit: int | None = None):
    """List curses ordered by id, `limit` at a time after `cursor`."""
    return services.store().list_page("curses", cursor, page_size(limit))


@router.post("/curses", status_code=201)
async def report_curse(body: CurseDraft, role: str = Depends(actor_role)):
    """Report a curse; its request is opened in the same step."""
    try:
        return lifecycle.report_curse(
            services.store(), body, audit=services.audit_sink(role)
        )
    except LifecycleError as e:
        raise http_error(e) from e


@router.get("/curses/{curse_id}")
async def get_curse(curse_id: int):
    curse = services.store().get_curse(curse_id)
    if not curse:
        raise HTTPException(404, "Curse not found")
    return curse


@router.patch("/curses/{curse_id}")
async def update_curse(curse_id: int, body: CurseChanges, role: str = Depends(actor_role)):
    """Edit descriptive fields. The curse state follows its request and missions."""
    try:
        return lifecycle.update_curse(
            services.store(), curse_id, body, audit=services.audit_sink(role)
        )
    except LifecycleError as e:
        raise http_error(e) from e


@router.delete("/curses/{curse_id}")
async def delete_curse(curse_id: int, role: str = Depends(actor_role)):
    """Delete a curse with its request; open missions are canceled, not deleted."""
    try:
        return lifecycle.delete_curse(
            services.store(), curse_id, audit=services.audit_sink(role)
        )
    except LifecycleError as e:
        raise http_error(e) from e
