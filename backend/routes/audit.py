"""Audit log reader. Entries are newest first."""

from fastapi import APIRouter, HTTPException, Response

from backend import services
from backend.config import page_size

router = APIRouter()


@router.get("/audit")
async def list_audit(
    response: Response,
    limit: int | None = None,
    offset: int = 0,
    entity: str | None = None,
):
    """List audit entries, optionally for one entity type."""
    store = services.store()
    limit = page_size(limit)
    offset = max(offset, 0)
    response.headers["X-Total-Count"] = str(store.count_audit(entity))
    response.headers["X-Limit"] = str(limit)
    response.headers["X-Offset"] = str(offset)
    return store.list_audit(limit=limit, offset=offset, entity=entity)


@router.get("/audit/{entry_id}")
async def get_audit_entry(entry_id: int):
    entry = services.store().get_audit(entry_id)
    if not entry:
        raise HTTPException(404, "Audit entry not found")
    return entry
