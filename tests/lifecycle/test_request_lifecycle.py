"""Tests for the request state machine and its cascades."""

from unittest.mock import patch

import pytest

from mission_desk import lifecycle
from mission_desk.errors import (
    ConflictingActiveWork,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
)


@pytest.fixture
def reported(store, draft):
    return lifecycle.report_curse(store, draft("Alpha"))


@pytest.fixture
def assigned(store, reported):
    return lifecycle.assign_sorcerer(store, reported.request_id, 7, "urgent")


# ── assign_sorcerer ─────────────────────────────────────────


def test_assign_opens_pending_mission(store, reported, assigned):
    assert assigned.kind == "sorcerer_assigned"
    assert store.get_request(reported.request_id).state == "being_handled"

    mission = store.get_mission(assigned.mission_id)
    assert mission.state == "pending"
    assert mission.urgency == "urgent"
    assert mission.request_id == reported.request_id
    assert mission.location_id == store.get_curse(reported.curse_id).location_id
    assert mission.ended_at is None

    assignment = store.get_assignment(assigned.assignment_id)
    assert assignment.sorcerer_id == 7
    assert assignment.request_id == reported.request_id
    assert assignment.mission_id == mission.id


def test_assign_missing_request(store, world):
    with pytest.raises(NotFound, match="Request 3"):
        lifecycle.assign_sorcerer(store, 3, 7, "urgent")


def test_assign_requires_inputs(store, reported):
    with pytest.raises(PreconditionFailed):
        lifecycle.assign_sorcerer(store, reported.request_id, None, "urgent")
    with pytest.raises(PreconditionFailed):
        lifecycle.assign_sorcerer(store, reported.request_id, 7, None)
    with pytest.raises(PreconditionFailed):
        lifecycle.assign_sorcerer(store, reported.request_id, 7, "someday")
    assert store.get_request(reported.request_id).state == "pending"


def test_assign_unknown_sorcerer_writes_nothing(store, reported):
    with pytest.raises(NotFound, match="Sorcerer 42"):
        lifecycle.assign_sorcerer(store, reported.request_id, 42, "planned")
    assert store.get_request(reported.request_id).state == "pending"
    assert store.list_page("missions").items == []
    assert store.list_page("assignments").items == []


def test_assign_twice_conflicts(store, reported, assigned):
    with pytest.raises(ConflictingActiveWork):
        lifecycle.assign_sorcerer(store, reported.request_id, 9, "planned")
    assert len(store.list_page("missions").items) == 1


def test_assign_handled_request_is_invalid(store, reported, assigned):
    lifecycle.deploy(store, assigned.mission_id, 3, [7])
    lifecycle.complete(store, assigned.mission_id, "success")
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.assign_sorcerer(store, reported.request_id, 9, "planned")
    assert exc.value.current == "handled"


# ── modify_assignment ───────────────────────────────────────


def test_modify_urgency(store, reported, assigned):
    result = lifecycle.modify_assignment(store, reported.request_id, urgency="critical_emergency")
    assert result.changed is True
    assert result.urgency == "critical_emergency"
    mission = store.get_mission(assigned.mission_id)
    assert mission.urgency == "critical_emergency"
    assert mission.state == "pending"


def test_modify_sorcerer_in_place(store, reported, assigned):
    result = lifecycle.modify_assignment(store, reported.request_id, sorcerer_id=9)
    assert result.changed is True
    assert result.assignment_id == assigned.assignment_id
    assert store.get_assignment(assigned.assignment_id).sorcerer_id == 9


def test_modify_sorcerer_forks_when_incumbent_busy(store, draft, reported, assigned):
    other = lifecycle.report_curse(store, draft("Beta", location_id=2))
    lifecycle.assign_sorcerer(store, other.request_id, 7, "planned")

    result = lifecycle.modify_assignment(store, reported.request_id, sorcerer_id=9)

    assert result.assignment_id != assigned.assignment_id
    assert store.get_assignment(assigned.assignment_id) is None
    fresh = store.get_assignment(result.assignment_id)
    assert fresh.sorcerer_id == 9
    assert fresh.mission_id == assigned.mission_id
    assert [a.request_id for a in store.get_assignments_for_sorcerer(7)] == [other.request_id]


def test_modify_identical_values_changes_nothing(store, reported, assigned):
    before = (store._base / "records.json").read_text()
    calls = []
    with patch.object(store, "_write_json", wraps=store._write_json) as write:
        result = lifecycle.modify_assignment(
            store, reported.request_id, sorcerer_id=7, urgency="urgent",
            audit=lambda *args: calls.append(args),
        )
    write.assert_not_called()
    assert result.changed is False
    assert result.assignment_id == assigned.assignment_id
    assert (store._base / "records.json").read_text() == before
    assert calls == []


def test_modify_both_at_once_rejected(store, reported, assigned):
    with pytest.raises(PreconditionFailed):
        lifecycle.modify_assignment(store, reported.request_id, sorcerer_id=9, urgency="planned")
    assert store.get_assignment(assigned.assignment_id).sorcerer_id == 7
    assert store.get_mission(assigned.mission_id).urgency == "urgent"


def test_modify_unknown_sorcerer(store, reported, assigned):
    with pytest.raises(NotFound):
        lifecycle.modify_assignment(store, reported.request_id, sorcerer_id=99)


def test_modify_pending_request_is_invalid(store, reported):
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.modify_assignment(store, reported.request_id, urgency="planned")
    assert exc.value.current == "pending"
    assert exc.value.requested == "being_handled"


def test_modify_handled_request_is_invalid(store, reported, assigned):
    lifecycle.mark_handled(store, reported.request_id)
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.modify_assignment(store, reported.request_id, sorcerer_id=9)
    assert exc.value.current == "handled"
    assert store.get_assignment(assigned.assignment_id).sorcerer_id == 7


# ── withdraw ────────────────────────────────────────────────


def test_withdraw_pending_mission(store, reported, assigned):
    result = lifecycle.withdraw(store, reported.request_id)
    assert result.removed_mission_ids == [assigned.mission_id]
    assert result.kept_mission_ids == []
    assert store.get_mission(assigned.mission_id) is None
    assert store.get_assignment(assigned.assignment_id) is None
    assert store.get_request(reported.request_id).state == "pending"


def test_withdraw_keeps_finished_missions(store, reported, assigned):
    lifecycle.deploy(store, assigned.mission_id, 3, [7])
    lifecycle.complete(store, assigned.mission_id, "failure")
    second = lifecycle.assign_sorcerer(store, reported.request_id, 9, "planned")

    result = lifecycle.withdraw(store, reported.request_id)

    assert result.removed_mission_ids == [second.mission_id]
    assert result.kept_mission_ids == [assigned.mission_id]
    assert store.get_mission(assigned.mission_id).state == "failure"
    assert store.get_assignment(assigned.assignment_id) is not None
    assert store.get_mission(second.mission_id) is None


def test_withdraw_pending_request_is_invalid(store, reported):
    with pytest.raises(InvalidTransition):
        lifecycle.withdraw(store, reported.request_id)


# ── mark_handled ────────────────────────────────────────────


def test_mark_handled(store, reported, assigned):
    result = lifecycle.mark_handled(store, reported.request_id)
    assert result.kind == "request_handled"
    assert store.get_request(reported.request_id).state == "handled"
    assert store.get_mission(assigned.mission_id).state == "pending"


def test_mark_handled_from_pending_is_invalid(store, reported):
    with pytest.raises(InvalidTransition):
        lifecycle.mark_handled(store, reported.request_id)


# ── delete_request ──────────────────────────────────────────


def test_delete_request_cancels_pending_mission(store, reported, assigned):
    result = lifecycle.delete_request(store, reported.request_id)
    assert result.canceled_mission_ids == [assigned.mission_id]
    assert store.get_request(reported.request_id) is None
    mission = store.get_mission(assigned.mission_id)
    assert mission.state == "canceled"
    assert mission.ended_at is not None
    assert mission.request_id is None
    assert store.get_assignment(assigned.assignment_id) is None
    assert store.get_curse(reported.curse_id).state == "active"


def test_delete_request_reactivates_curse_of_running_mission(store, reported, assigned):
    lifecycle.deploy(store, assigned.mission_id, 3, [7])
    assert store.get_curse(reported.curse_id).state == "exorcism_in_progress"
    lifecycle.delete_request(store, reported.request_id)
    assert store.get_curse(reported.curse_id).state == "active"
    assert store.get_mission(assigned.mission_id).state == "canceled"


def test_delete_request_leaves_finished_mission_state(store, reported, assigned):
    lifecycle.deploy(store, assigned.mission_id, 3, [7])
    lifecycle.complete(store, assigned.mission_id, "success")
    result = lifecycle.delete_request(store, reported.request_id)
    assert result.canceled_mission_ids == []
    assert store.get_mission(assigned.mission_id).state == "success"
    assert store.get_curse(reported.curse_id).state == "exorcised"


def test_delete_missing_request(store, world):
    with pytest.raises(NotFound):
        lifecycle.delete_request(store, 1)


# ── transition_request ──────────────────────────────────────


def test_transition_dispatches_each_pair(store, reported):
    r = reported.request_id
    assigned = lifecycle.transition_request(store, r, "being_handled", sorcerer_id=7, urgency="urgent")
    assert assigned.kind == "sorcerer_assigned"

    modified = lifecycle.transition_request(store, r, "being_handled", urgency="planned")
    assert modified.kind == "assignment_modified"

    withdrawn = lifecycle.transition_request(store, r, "pending")
    assert withdrawn.kind == "request_withdrawn"

    lifecycle.transition_request(store, r, "being_handled", sorcerer_id=7, urgency="urgent")
    handled = lifecycle.transition_request(store, r, "handled")
    assert handled.kind == "request_handled"


def test_transition_rejects_illegal_pair(store, reported):
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.transition_request(store, reported.request_id, "handled")
    assert exc.value.current == "pending"
    assert exc.value.requested == "handled"


def test_transition_unknown_state(store, reported):
    with pytest.raises(PreconditionFailed):
        lifecycle.transition_request(store, reported.request_id, "closed")


def test_transition_assign_without_sorcerer_on_pending(store, reported):
    with pytest.raises(PreconditionFailed, match="sorcerer_id"):
        lifecycle.transition_request(store, reported.request_id, "being_handled", urgency="urgent")
    assert store.get_request(reported.request_id).state == "pending"
    assert store.list_page("missions").items == []


def test_transition_second_assignment_conflicts(store, reported, assigned):
    with pytest.raises(ConflictingActiveWork):
        lifecycle.transition_request(
            store, reported.request_id, "being_handled", sorcerer_id=9, urgency="urgent",
        )
    assert store.get_assignment(assigned.assignment_id).sorcerer_id == 7
    assert len(store.list_page("missions").items) == 1


def test_transition_single_field_reassigns(store, reported, assigned):
    result = lifecycle.transition_request(store, reported.request_id, "being_handled", sorcerer_id=9)
    assert result.kind == "assignment_modified"
    assert store.get_assignment(result.assignment_id).sorcerer_id == 9


def test_assign_on_busy_request_without_open_mission_is_invalid(store, reported, assigned):
    store.remove("missions", assigned.mission_id)
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.assign_sorcerer(store, reported.request_id, 9, "planned")
    assert exc.value.current == "being_handled"
    assert store.list_page("missions").items == []
