"""Request lifecycle: assignment, reassignment, withdrawal, closing, deletion.

State machine over Request.state:

    pending ──assign_sorcerer──▶ being_handled ──mark_handled──▶ handled
       ▲                            │    ▲
       └───────────withdraw─────────┘    └── modify_assignment

Assigning opens a pending Mission and the SorcererAssignment that owns it.
Withdrawing deletes whatever of that is still open. Each public function
checks every precondition, plans its effects, applies them in one
transaction and only then notifies the audit sink.
"""

from __future__ import annotations

import logging
from datetime import datetime

from mission_desk import transitions
from mission_desk.audit import AuditSink, notify
from mission_desk.errors import NotFound
from mission_desk.models import (
    Curse,
    Mission,
    MissionParticipant,
    Request,
    SorcererAssignment,
    is_terminal,
)
from mission_desk.results import (
    AssignmentModified,
    RequestDeleted,
    RequestHandled,
    RequestWithdrawn,
    SorcererAssigned,
)
from mission_desk.storage import Storage

from .effects import Create, Delete, Effect, Ref, Update, apply_effects, utcnow
from .ownership import request_missions

logger = logging.getLogger(__name__)

Linked = list[tuple[SorcererAssignment, Mission | None]]


def _load_request(storage: Storage, request_id: int) -> Request:
    request = storage.get_request(request_id)
    if request is None:
        raise NotFound(f"Request {request_id} not found")
    return request


def _current_assignment(
    storage: Storage, request: Request
) -> tuple[SorcererAssignment, Mission]:
    for assignment, mission in request_missions(storage, request.id):
        if mission is not None and not is_terminal(mission.state):
            return assignment, mission
    raise NotFound(f"Request {request.id} has no active assignment")


def _open_ownerships(storage: Storage, sorcerer_id: int) -> int:
    """Count non-terminal missions the sorcerer owns, across all requests."""
    count = 0
    for assignment in storage.get_assignments_for_sorcerer(sorcerer_id):
        mission = storage.get_mission(assignment.mission_id)
        if mission is not None and not is_terminal(mission.state):
            count += 1
    return count


# ---------------------------------------------------------------------------
# Planning (pure)
# ---------------------------------------------------------------------------

def plan_assignment(
    request: Request, curse: Curse, sorcerer_id: int, urgency: str, now: datetime
) -> list[Effect]:
    return [
        Update(table="requests", id=request.id, fields={"state": "being_handled"}),
        Create(
            table="missions",
            fields={
                "request_id": request.id,
                "started_at": now,
                "location_id": curse.location_id,
                "state": "pending",
                "urgency": urgency,
            },
            ref="mission",
        ),
        Create(
            table="assignments",
            fields={
                "sorcerer_id": sorcerer_id,
                "request_id": request.id,
                "mission_id": Ref(name="mission"),
            },
            ref="assignment",
        ),
    ]


def plan_sorcerer_change(
    assignment: SorcererAssignment, sorcerer_id: int, incumbent_open: int
) -> list[Effect]:
    """Hand a mission to another sorcerer.

    An incumbent who owns several open missions gets a fresh assignment row
    for the newcomer, so their other ownerships are left alone; otherwise the
    row is repointed in place.
    """
    if incumbent_open > 1:
        return [
            Create(
                table="assignments",
                fields={
                    "sorcerer_id": sorcerer_id,
                    "request_id": assignment.request_id,
                    "mission_id": assignment.mission_id,
                },
                ref="assignment",
            ),
            Delete(table="assignments", id=assignment.id),
        ]
    return [Update(table="assignments", id=assignment.id, fields={"sorcerer_id": sorcerer_id})]


def plan_withdrawal(
    request: Request,
    linked: Linked,
    participants: dict[int, list[MissionParticipant]],
) -> tuple[list[Effect], list[int], list[int]]:
    """Delete open missions and their assignments; finished ones stay as history."""
    effects: list[Effect] = []
    removed: list[int] = []
    kept: list[int] = []
    for assignment, mission in linked:
        if mission is not None and is_terminal(mission.state):
            kept.append(mission.id)
            continue
        if mission is not None:
            effects.extend(
                Delete(table="participants", id=p.id) for p in participants.get(mission.id, [])
            )
            effects.append(Delete(table="missions", id=mission.id))
            removed.append(mission.id)
        effects.append(Delete(table="assignments", id=assignment.id))
    effects.append(Update(table="requests", id=request.id, fields={"state": "pending"}))
    return effects, removed, kept


def plan_request_removal(
    request: Request, curse: Curse | None, linked: Linked, now: datetime
) -> tuple[list[Effect], list[int]]:
    """Cancel open missions, drop assignments, then the request itself.

    Missions are kept with their owner reference cleared. When a running
    mission is canceled and `curse` is given, the curse goes back to active.
    """
    effects: list[Effect] = []
    canceled: list[int] = []
    was_running = False
    for assignment, mission in linked:
        if mission is not None:
            fields: dict = {"request_id": None}
            if not is_terminal(mission.state) and mission.id not in canceled:
                fields.update(state="canceled", ended_at=now)
                canceled.append(mission.id)
                was_running = was_running or mission.state == "in_progress"
            effects.append(Update(table="missions", id=mission.id, fields=fields))
        effects.append(Delete(table="assignments", id=assignment.id))
    if was_running and curse is not None and curse.state == "exorcism_in_progress":
        effects.append(Update(table="curses", id=curse.id, fields={"state": "active"}))
    effects.append(Delete(table="requests", id=request.id))
    return effects, canceled


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def assign_sorcerer(
    storage: Storage,
    request_id: int,
    sorcerer_id: int | None,
    urgency: str | None,
    *,
    audit: AuditSink | None = None,
) -> SorcererAssigned:
    """pending → being_handled: open a mission owned by `sorcerer_id`."""
    with storage.transaction():
        request = _load_request(storage, request_id)
        transitions.require_assignment_inputs(sorcerer_id, urgency)
        missions = [m for _, m in request_missions(storage, request.id) if m is not None]
        transitions.check_no_active_mission(request, missions)
        transitions.check_assignment(request)
        if storage.get_sorcerer(sorcerer_id) is None:
            raise NotFound(f"Sorcerer {sorcerer_id} not found")
        curse = storage.get_curse(request.curse_id)
        if curse is None:
            raise NotFound(f"Curse {request.curse_id} of request {request.id} not found")
        created = apply_effects(
            storage, plan_assignment(request, curse, sorcerer_id, urgency, utcnow())
        )

    result = SorcererAssigned(
        request_id=request.id,
        mission_id=created["mission"],
        assignment_id=created["assignment"],
    )
    logger.debug(
        "request %d assigned to sorcerer %d, mission %d",
        request.id, sorcerer_id, result.mission_id,
    )
    notify(
        audit, "request", "update", request.id,
        f"Sorcerer {sorcerer_id} assigned; mission {result.mission_id} opened ({urgency})",
    )
    return result


def modify_assignment(
    storage: Storage,
    request_id: int,
    sorcerer_id: int | None = None,
    urgency: str | None = None,
    *,
    audit: AuditSink | None = None,
) -> AssignmentModified:
    """being_handled → being_handled: change the owner or the urgency.

    Values equal to the current ones are not changes; a call with nothing
    to change writes nothing.
    """
    with storage.transaction():
        request = _load_request(storage, request_id)
        transitions.check_reassignment(request)
        transitions.check_urgency(urgency)
        assignment, mission = _current_assignment(storage, request)

        sorcerer_changes = sorcerer_id is not None and sorcerer_id != assignment.sorcerer_id
        urgency_changes = urgency is not None and urgency != mission.urgency
        transitions.check_single_change(sorcerer_changes, urgency_changes)

        effects: list[Effect] = []
        if sorcerer_changes:
            if storage.get_sorcerer(sorcerer_id) is None:
                raise NotFound(f"Sorcerer {sorcerer_id} not found")
            effects = plan_sorcerer_change(
                assignment, sorcerer_id, _open_ownerships(storage, assignment.sorcerer_id)
            )
        elif urgency_changes:
            effects = [Update(table="missions", id=mission.id, fields={"urgency": urgency})]
        created = apply_effects(storage, effects) if effects else {}

    result = AssignmentModified(
        request_id=request.id,
        assignment_id=created.get("assignment", assignment.id),
        urgency=urgency if urgency_changes else mission.urgency,
        changed=bool(effects),
    )
    if sorcerer_changes:
        notify(
            audit, "request", "update", request.id,
            f"Mission {mission.id} handed from sorcerer {assignment.sorcerer_id} to {sorcerer_id}",
        )
    elif urgency_changes:
        notify(
            audit, "request", "update", request.id,
            f"Mission {mission.id} urgency {mission.urgency} → {urgency}",
        )
    return result


def withdraw(
    storage: Storage, request_id: int, *, audit: AuditSink | None = None
) -> RequestWithdrawn:
    """being_handled → pending: undo an assignment that has not finished."""
    with storage.transaction():
        request = _load_request(storage, request_id)
        transitions.check_request_transition(request, "pending")
        linked = request_missions(storage, request.id)
        participants = {
            mission.id: storage.get_participants(mission.id)
            for _, mission in linked
            if mission is not None
        }
        effects, removed, kept = plan_withdrawal(request, linked, participants)
        apply_effects(storage, effects)

    notify(
        audit, "request", "update", request.id,
        f"Withdrawn; removed missions {removed}, kept {kept}",
    )
    return RequestWithdrawn(
        request_id=request.id, removed_mission_ids=removed, kept_mission_ids=kept
    )


def mark_handled(
    storage: Storage, request_id: int, *, audit: AuditSink | None = None
) -> RequestHandled:
    """being_handled → handled, with no cascade."""
    with storage.transaction():
        request = _load_request(storage, request_id)
        transitions.check_request_transition(request, "handled")
        apply_effects(storage, [
            Update(table="requests", id=request.id, fields={"state": "handled"}),
        ])

    notify(audit, "request", "update", request.id, "Marked handled")
    return RequestHandled(request_id=request.id)


def delete_request(
    storage: Storage, request_id: int, *, audit: AuditSink | None = None
) -> RequestDeleted:
    with storage.transaction():
        request = _load_request(storage, request_id)
        curse = storage.get_curse(request.curse_id)
        effects, canceled = plan_request_removal(
            request, curse, request_missions(storage, request.id), utcnow()
        )
        apply_effects(storage, effects)

    notify(
        audit, "request", "delete", request.id,
        f"Request deleted; canceled missions {canceled}",
    )
    return RequestDeleted(request_id=request.id, canceled_mission_ids=canceled)


def transition_request(
    storage: Storage,
    request_id: int,
    state: str,
    *,
    sorcerer_id: int | None = None,
    urgency: str | None = None,
    audit: AuditSink | None = None,
):
    """Move a request to `state`, running whichever operation that pair means.

    Targeting being_handled with both a sorcerer and an urgency is an
    assignment, which a busy request rejects with ConflictingActiveWork;
    with only one of them it changes the current assignment.

    The routing read happens before the operation takes the store lock; the
    operation re-checks state under the lock, so a stale route fails with a
    typed error instead of writing.
    """
    request = _load_request(storage, request_id)
    assigning = sorcerer_id is not None and urgency is not None
    if state == "being_handled" and (assigning or request.state != "being_handled"):
        return assign_sorcerer(storage, request_id, sorcerer_id, urgency, audit=audit)
    transitions.check_request_transition(request, state)
    if state == "being_handled":
        return modify_assignment(
            storage, request_id, sorcerer_id=sorcerer_id, urgency=urgency, audit=audit
        )
    if state == "pending":
        return withdraw(storage, request_id, audit=audit)
    return mark_handled(storage, request_id, audit=audit)
