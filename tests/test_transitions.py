"""Tests for the request and mission transition tables."""

from datetime import datetime, timezone

import pytest

from mission_desk import transitions
from mission_desk.errors import (
    ConflictingActiveWork,
    InvalidTransition,
    PreconditionFailed,
)
from mission_desk.models import Mission, Request

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _request(state: str) -> Request:
    return Request(id=1, curse_id=1, state=state)


def _mission(state: str, mission_id: int = 1) -> Mission:
    ended = T0 if state in ("success", "failure", "canceled") else None
    return Mission(
        id=mission_id, started_at=T0, ended_at=ended,
        location_id=1, state=state, urgency="planned",
    )


# ── Request pairs ───────────────────────────────────────────


@pytest.mark.parametrize("current,target", sorted(transitions.REQUEST_TRANSITIONS))
def test_request_legal_pairs(current, target):
    transitions.check_request_transition(_request(current), target)


@pytest.mark.parametrize("current,target", [
    ("pending", "pending"),
    ("pending", "handled"),
    ("handled", "pending"),
    ("handled", "being_handled"),
    ("handled", "handled"),
])
def test_request_illegal_pairs_name_both_states(current, target):
    with pytest.raises(InvalidTransition) as exc:
        transitions.check_request_transition(_request(current), target)
    assert exc.value.current == current
    assert exc.value.requested == target
    assert repr(current) in exc.value.message
    assert repr(target) in exc.value.message


def test_unknown_request_state_is_precondition():
    with pytest.raises(PreconditionFailed):
        transitions.check_request_transition(_request("pending"), "archived")


def test_reassignment_only_from_being_handled():
    transitions.check_reassignment(_request("being_handled"))
    for state in ("pending", "handled"):
        with pytest.raises(InvalidTransition) as exc:
            transitions.check_reassignment(_request(state))
        assert exc.value.current == state
        assert exc.value.requested == "being_handled"


def test_assignment_only_from_pending():
    transitions.check_assignment(_request("pending"))
    for state in ("being_handled", "handled"):
        with pytest.raises(InvalidTransition) as exc:
            transitions.check_assignment(_request(state))
        assert exc.value.current == state


# ── Mission pairs ───────────────────────────────────────────


@pytest.mark.parametrize("current,target", sorted(transitions.MISSION_TRANSITIONS))
def test_mission_legal_pairs(current, target):
    transitions.check_mission_transition(_mission(current), target)


@pytest.mark.parametrize("current,target", [
    ("pending", "success"),
    ("pending", "canceled"),
    ("in_progress", "pending"),
    ("success", "in_progress"),
    ("failure", "failure"),
    ("canceled", "in_progress"),
])
def test_mission_illegal_pairs(current, target):
    with pytest.raises(InvalidTransition) as exc:
        transitions.check_mission_transition(_mission(current), target)
    assert exc.value.code == "invalid_transition"
    assert exc.value.current == current


def test_unknown_mission_state_is_precondition():
    with pytest.raises(PreconditionFailed):
        transitions.check_mission_transition(_mission("pending"), "paused")


# ── Inputs ──────────────────────────────────────────────────


def test_assignment_inputs_required():
    with pytest.raises(PreconditionFailed, match="sorcerer_id and urgency"):
        transitions.require_assignment_inputs(None, None)
    with pytest.raises(PreconditionFailed, match="urgency"):
        transitions.require_assignment_inputs(7, None)
    with pytest.raises(PreconditionFailed, match="Invalid sorcerer_id"):
        transitions.require_assignment_inputs(0, "urgent")
    with pytest.raises(PreconditionFailed, match="Invalid urgency"):
        transitions.require_assignment_inputs(7, "eventually")
    transitions.require_assignment_inputs(7, "urgent")


def test_deploy_inputs_required():
    with pytest.raises(PreconditionFailed):
        transitions.require_deploy_inputs(None, [7])
    with pytest.raises(PreconditionFailed):
        transitions.require_deploy_inputs(3, [])
    with pytest.raises(PreconditionFailed):
        transitions.require_deploy_inputs(3, None)
    transitions.require_deploy_inputs(3, [7, 9])


def test_outcome_must_be_success_or_failure():
    transitions.check_outcome("success")
    transitions.check_outcome("failure")
    with pytest.raises(PreconditionFailed):
        transitions.check_outcome("canceled")


def test_no_active_mission():
    request = _request("pending")
    transitions.check_no_active_mission(request, [_mission("failure"), _mission("canceled", 2)])
    with pytest.raises(ConflictingActiveWork, match="active mission 3"):
        transitions.check_no_active_mission(
            request, [_mission("success"), _mission("in_progress", 3)]
        )


def test_single_change():
    transitions.check_single_change(True, False)
    transitions.check_single_change(False, True)
    transitions.check_single_change(False, False)
    with pytest.raises(PreconditionFailed):
        transitions.check_single_change(True, True)
