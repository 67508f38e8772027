"""Mission lifecycle: deploying, completing, canceling and deleting missions.

State machine over Mission.state:

    pending ──deploy──▶ in_progress ──complete──▶ success | failure
                             └───────cancel─────▶ canceled

Each move also settles the owning Request and its Curse. The owner is
resolved through `Mission.request_id`; a mission whose chain is broken still
changes state, the Request/Curse side is skipped and the result reports
which link was missing.
"""

from __future__ import annotations

import logging
from datetime import datetime

from mission_desk import transitions
from mission_desk.audit import AuditSink, notify
from mission_desk.errors import NotFound
from mission_desk.models import Mission, MissionParticipant, SorcererAssignment, is_terminal
from mission_desk.results import (
    MissionCanceled,
    MissionCompleted,
    MissionDeleted,
    MissionDeployed,
    MissingLinkKind,
)
from mission_desk.storage import Storage

from .effects import Create, Delete, Effect, Update, apply_effects, utcnow
from .ownership import MissingLink, OwnerChain, reopen, resolve_owner

logger = logging.getLogger(__name__)


def _load_mission(storage: Storage, mission_id: int) -> Mission:
    mission = storage.get_mission(mission_id)
    if mission is None:
        raise NotFound(f"Mission {mission_id} not found")
    return mission


def _missing(owner: OwnerChain | MissingLink, operation: str) -> MissingLinkKind | None:
    if isinstance(owner, MissingLink):
        logger.warning(
            "%s of mission %d: owning %s not found, skipping request/curse cascade",
            operation, owner.mission_id, owner.missing,
        )
        return owner.missing
    return None


# ---------------------------------------------------------------------------
# Planning (pure)
# ---------------------------------------------------------------------------

def plan_deploy(
    mission: Mission,
    location_id: int,
    sorcerer_ids: list[int],
    owner: OwnerChain | MissingLink,
) -> list[Effect]:
    effects: list[Effect] = [
        Update(
            table="missions",
            id=mission.id,
            fields={"state": "in_progress", "location_id": location_id},
        ),
    ]
    effects.extend(
        Create(
            table="participants",
            fields={"sorcerer_id": sid, "mission_id": mission.id},
            ref=f"participant:{sid}",
        )
        for sid in sorcerer_ids
    )
    if isinstance(owner, OwnerChain):
        effects.append(Update(table="requests", id=owner.request.id, fields={"state": "handled"}))
        effects.append(
            Update(table="curses", id=owner.curse.id, fields={"state": "exorcism_in_progress"})
        )
    return effects


def plan_conclusion(
    mission: Mission, state: str, owner: OwnerChain | MissingLink, now: datetime
) -> list[Effect]:
    """End a running mission as success, failure or canceled."""
    effects: list[Effect] = [
        Update(table="missions", id=mission.id, fields={"state": state, "ended_at": now}),
    ]
    if isinstance(owner, OwnerChain):
        if state == "success":
            effects.append(Update(table="curses", id=owner.curse.id, fields={"state": "exorcised"}))
        else:
            effects.extend(reopen(owner))
    return effects


def plan_mission_removal(
    mission: Mission,
    owner: OwnerChain | MissingLink,
    participants: list[MissionParticipant],
    assignments: list[SorcererAssignment],
) -> list[Effect]:
    effects: list[Effect] = []
    if isinstance(owner, OwnerChain):
        if mission.state == "in_progress":
            effects.extend(reopen(owner))
        elif mission.state == "pending":
            effects.append(
                Update(table="requests", id=owner.request.id, fields={"state": "pending"})
            )
    effects.extend(Delete(table="participants", id=p.id) for p in participants)
    effects.extend(Delete(table="assignments", id=a.id) for a in assignments)
    effects.append(Delete(table="missions", id=mission.id))
    return effects


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def deploy(
    storage: Storage,
    mission_id: int,
    location_id: int | None,
    sorcerer_ids: list[int] | None,
    *,
    audit: AuditSink | None = None,
) -> MissionDeployed:
    """pending → in_progress with the given roster at the given location."""
    with storage.transaction():
        mission = _load_mission(storage, mission_id)
        transitions.check_mission_transition(mission, "in_progress")
        transitions.require_deploy_inputs(location_id, sorcerer_ids)
        if storage.get_location(location_id) is None:
            raise NotFound(f"Location {location_id} not found")
        roster = list(dict.fromkeys(sorcerer_ids))
        for sid in roster:
            if storage.get_sorcerer(sid) is None:
                raise NotFound(f"Sorcerer {sid} not found")
        owner = resolve_owner(storage, mission)
        created = apply_effects(storage, plan_deploy(mission, location_id, roster, owner))

    result = MissionDeployed(
        mission_id=mission.id,
        participant_ids=[created[f"participant:{sid}"] for sid in roster],
        missing_link=_missing(owner, "deploy"),
    )
    logger.debug(
        "mission %d deployed at location %d with %d sorcerers",
        mission.id, location_id, len(roster),
    )
    notify(
        audit, "mission", "update", mission.id,
        f"Deployed at location {location_id} with sorcerers {roster}",
    )
    return result


def complete(
    storage: Storage, mission_id: int, outcome: str, *, audit: AuditSink | None = None
) -> MissionCompleted:
    """in_progress → success | failure. Failure reopens the request and curse."""
    with storage.transaction():
        mission = _load_mission(storage, mission_id)
        transitions.check_outcome(outcome)
        transitions.check_mission_transition(mission, outcome)
        owner = resolve_owner(storage, mission)
        apply_effects(storage, plan_conclusion(mission, outcome, owner, utcnow()))

    notify(audit, "mission", "update", mission.id, f"Concluded with {outcome}")
    return MissionCompleted(
        mission_id=mission.id, outcome=outcome, missing_link=_missing(owner, "complete")
    )


def cancel(
    storage: Storage, mission_id: int, *, audit: AuditSink | None = None
) -> MissionCanceled:
    with storage.transaction():
        mission = _load_mission(storage, mission_id)
        transitions.check_mission_transition(mission, "canceled")
        owner = resolve_owner(storage, mission)
        apply_effects(storage, plan_conclusion(mission, "canceled", owner, utcnow()))

    notify(audit, "mission", "update", mission.id, "Canceled")
    return MissionCanceled(mission_id=mission.id, missing_link=_missing(owner, "cancel"))


def delete_mission(
    storage: Storage, mission_id: int, *, audit: AuditSink | None = None
) -> MissionDeleted:
    """Remove a mission with its roster and assignments.

    A running mission reopens its request and curse first; a pending one
    sends its request back to pending. Finished missions just go.
    """
    with storage.transaction():
        mission = _load_mission(storage, mission_id)
        owner = resolve_owner(storage, mission)
        apply_effects(storage, plan_mission_removal(
            mission,
            owner,
            storage.get_participants(mission.id),
            storage.get_assignments_for_mission(mission.id),
        ))

    missing = None
    if not is_terminal(mission.state):
        missing = _missing(owner, "delete")
    notify(audit, "mission", "delete", mission.id, f"Mission deleted while {mission.state}")
    return MissionDeleted(mission_id=mission.id, missing_link=missing)


def record_report(
    storage: Storage,
    mission_id: int,
    *,
    events: str | None = None,
    collateral_damage: str | None = None,
    audit: AuditSink | None = None,
) -> Mission:
    """Edit the field report. State, times and roster are left alone."""
    fields = {}
    if events is not None:
        fields["events"] = events
    if collateral_damage is not None:
        fields["collateral_damage"] = collateral_damage
    with storage.transaction():
        _load_mission(storage, mission_id)
        if fields:
            apply_effects(storage, [Update(table="missions", id=mission_id, fields=fields)])
        mission = storage.get_mission(mission_id)

    if fields:
        notify(audit, "mission", "update", mission_id, f"Report updated: {', '.join(fields)}")
    return mission


def transition_mission(
    storage: Storage,
    mission_id: int,
    state: str,
    *,
    location_id: int | None = None,
    sorcerer_ids: list[int] | None = None,
    audit: AuditSink | None = None,
):
    """Move a mission to `state`, running whichever operation that pair means.

    Routing reads the mission outside the store lock; deploy, cancel and
    complete re-check the pair under the lock before writing.
    """
    mission = _load_mission(storage, mission_id)
    transitions.check_mission_transition(mission, state)
    if state == "in_progress":
        return deploy(storage, mission_id, location_id, sorcerer_ids, audit=audit)
    if state == "canceled":
        return cancel(storage, mission_id, audit=audit)
    return complete(storage, mission_id, state, audit=audit)
