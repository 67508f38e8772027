"""Transition rules for Requests and Missions.

Pure functions only: they look at records already loaded from the store and
either return quietly or raise. Transitions are fail-closed; any
(current, requested) pair missing from the tables below is rejected.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import get_args

from mission_desk.errors import (
    ConflictingActiveWork,
    InvalidTransition,
    PreconditionFailed,
)
from mission_desk.models import (
    Mission,
    MissionState,
    Request,
    RequestState,
    Urgency,
    is_terminal,
)

REQUEST_TRANSITIONS: frozenset[tuple[str, str]] = frozenset({
    ("pending", "being_handled"),        # assign a sorcerer
    ("being_handled", "being_handled"),  # change sorcerer or urgency
    ("being_handled", "pending"),        # withdraw
    ("being_handled", "handled"),        # administrative close
})

MISSION_TRANSITIONS: frozenset[tuple[str, str]] = frozenset({
    ("pending", "in_progress"),
    ("in_progress", "success"),
    ("in_progress", "failure"),
    ("in_progress", "canceled"),
})

MISSION_OUTCOMES: frozenset[str] = frozenset({"success", "failure"})

REQUEST_STATES: tuple[str, ...] = get_args(RequestState)
MISSION_STATES: tuple[str, ...] = get_args(MissionState)
URGENCIES: tuple[str, ...] = get_args(Urgency)


def check_request_transition(request: Request, target: str) -> None:
    if target not in REQUEST_STATES:
        raise PreconditionFailed(f"Unknown request state {target!r}")
    if (request.state, target) not in REQUEST_TRANSITIONS:
        raise InvalidTransition("Request", request.id, request.state, target)


def check_assignment(request: Request) -> None:
    """Opening a mission is only defined on a request that is not yet handled."""
    if request.state == "being_handled":
        raise InvalidTransition("Request", request.id, request.state, "being_handled")
    check_request_transition(request, "being_handled")


def check_reassignment(request: Request) -> None:
    """Changing owner or urgency is only defined on a request already being handled."""
    if request.state != "being_handled":
        raise InvalidTransition("Request", request.id, request.state, "being_handled")
    check_request_transition(request, "being_handled")


def check_mission_transition(mission: Mission, target: str) -> None:
    if target not in MISSION_STATES:
        raise PreconditionFailed(f"Unknown mission state {target!r}")
    if (mission.state, target) not in MISSION_TRANSITIONS:
        raise InvalidTransition("Mission", mission.id, mission.state, target)


def check_urgency(urgency: str | None) -> None:
    if urgency is not None and urgency not in URGENCIES:
        raise PreconditionFailed(
            f"Invalid urgency {urgency!r}; expected one of {', '.join(URGENCIES)}"
        )


def require_assignment_inputs(sorcerer_id: int | None, urgency: str | None) -> None:
    """Both a sorcerer and an urgency are needed to open a mission."""
    missing = []
    if sorcerer_id is None:
        missing.append("sorcerer_id")
    if urgency is None:
        missing.append("urgency")
    if missing:
        raise PreconditionFailed(f"{' and '.join(missing)} required to assign a sorcerer")
    if sorcerer_id <= 0:
        raise PreconditionFailed(f"Invalid sorcerer_id {sorcerer_id}")
    check_urgency(urgency)


def require_deploy_inputs(location_id: int | None, sorcerer_ids: list[int] | None) -> None:
    if location_id is None or not sorcerer_ids:
        raise PreconditionFailed("location_id and a non-empty sorcerer_ids list are required to deploy")


def check_outcome(outcome: str) -> None:
    if outcome not in MISSION_OUTCOMES:
        raise PreconditionFailed(f"Mission outcome must be 'success' or 'failure', got {outcome!r}")


def check_no_active_mission(request: Request, missions: Iterable[Mission]) -> None:
    """Reject a new assignment while any mission of the request is still open."""
    active = [m for m in missions if not is_terminal(m.state)]
    if active:
        raise ConflictingActiveWork(
            f"Request {request.id} already has active mission {active[0].id} "
            f"({active[0].state})"
        )


def check_single_change(sorcerer_changes: bool, urgency_changes: bool) -> None:
    if sorcerer_changes and urgency_changes:
        raise PreconditionFailed(
            "Change either the sorcerer or the urgency in one call, not both"
        )
