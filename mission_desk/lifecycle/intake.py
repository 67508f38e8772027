"""Curse intake: reporting a curse opens its request.

Also the administrative edits that sit outside the request/mission workflow:
changing a curse's descriptive fields and deleting a curse outright.
"""

from __future__ import annotations

import logging

from mission_desk.audit import AuditSink, notify
from mission_desk.errors import NotFound
from mission_desk.models import Curse, CurseChanges, CurseDraft
from mission_desk.results import CurseDeleted, CurseReported
from mission_desk.storage import Storage

from .effects import Create, Delete, Effect, Ref, Update, apply_effects, utcnow
from .ownership import request_missions
from .requests import plan_request_removal

logger = logging.getLogger(__name__)


def _require_location(storage: Storage, location_id: int) -> None:
    if storage.get_location(location_id) is None:
        raise NotFound(f"Location {location_id} not found")


def report_curse(
    storage: Storage, draft: CurseDraft, *, audit: AuditSink | None = None
) -> CurseReported:
    """Create a curse and its pending request in one transaction."""
    with storage.transaction():
        _require_location(storage, draft.location_id)
        fields = draft.model_dump()
        fields["appeared_at"] = draft.appeared_at or utcnow()
        fields["state"] = "active"
        created = apply_effects(storage, [
            Create(table="curses", fields=fields, ref="curse"),
            Create(
                table="requests",
                fields={"curse_id": Ref(name="curse"), "state": "pending"},
                ref="request",
            ),
        ])

    result = CurseReported(curse_id=created["curse"], request_id=created["request"])
    logger.debug("reported curse %d with request %d", result.curse_id, result.request_id)
    notify(
        audit, "curse", "create", result.curse_id,
        f"Curse '{draft.name}' reported; request {result.request_id} opened",
    )
    return result


def update_curse(
    storage: Storage,
    curse_id: int,
    changes: CurseChanges,
    *,
    audit: AuditSink | None = None,
) -> Curse:
    """Edit descriptive fields. The curse state is never set from here."""
    fields = changes.model_dump(exclude_none=True)
    with storage.transaction():
        if storage.get_curse(curse_id) is None:
            raise NotFound(f"Curse {curse_id} not found")
        if "location_id" in fields:
            _require_location(storage, fields["location_id"])
        if fields:
            apply_effects(storage, [Update(table="curses", id=curse_id, fields=fields)])
        curse = storage.get_curse(curse_id)

    if fields:
        notify(audit, "curse", "update", curse_id, f"Updated {', '.join(sorted(fields))}")
    return curse


def delete_curse(
    storage: Storage, curse_id: int, *, audit: AuditSink | None = None
) -> CurseDeleted:
    """Remove a curse together with its request and assignments.

    Open missions of the request are canceled, not deleted.
    """
    with storage.transaction():
        if storage.get_curse(curse_id) is None:
            raise NotFound(f"Curse {curse_id} not found")
        request = storage.get_request_for_curse(curse_id)
        effects: list[Effect] = []
        if request is not None:
            removal, _ = plan_request_removal(
                request, None, request_missions(storage, request.id), utcnow()
            )
            effects.extend(removal)
        effects.append(Delete(table="curses", id=curse_id))
        apply_effects(storage, effects)

    request_id = request.id if request is not None else None
    notify(audit, "curse", "delete", curse_id, f"Curse deleted with request {request_id}")
    return CurseDeleted(curse_id=curse_id, request_id=request_id)
