import uuid
from types import SimpleNamespace

import pytest

from worktime.core.timesheets import workflow
from worktime.errors import InvalidTransition


def _actor(role_code, *, is_superadmin=False, is_active=True, name=None):
    return SimpleNamespace(id=uuid.uuid4(), role_code=role_code, is_superadmin=is_superadmin,
                           is_active=is_active, name=name or role_code)


def _setup(status="pending"):
    employee = _actor("employee", name="E")
    supervisor = _actor("supervisor", name="S")
    chief = _actor("section_chief", name="C")
    record = SimpleNamespace(status=status, user_id=employee.id,
                             supervisor_id=supervisor.id, section_chief_id=chief.id)
    return record, employee, supervisor, chief


def test_owner_submits_draft():
    record, employee, _, _ = _setup("draft")
    result = workflow.transition(record, employee, "submit")
    assert result.new_status == "pending"
    assert not result.is_approval_step


def test_supervisor_cannot_submit_for_employee():
    record, _, supervisor, _ = _setup("draft")
    with pytest.raises(InvalidTransition):
        workflow.transition(record, supervisor, "submit")


def test_supervisor_approves_pending():
    record, _, supervisor, _ = _setup("pending")
    result = workflow.transition(record, supervisor, "approve")
    assert result.previous_status == "pending"
    assert result.new_status == "approved"
    assert result.stage == "supervisor"
    assert result.actor_name == "S"
    assert not result.override


def test_section_chief_approves_approved():
    record, _, _, chief = _setup("approved")
    result = workflow.transition(record, chief, "approve")
    assert result.new_status == "section_chief_approved"
    assert result.stage == "section_chief"


def test_section_chief_cannot_skip_supervisor_stage():
    record, _, _, chief = _setup("pending")
    with pytest.raises(InvalidTransition) as exc:
        workflow.transition(record, chief, "approve")
    assert exc.value.status_code == 409
    assert exc.value.detail["current_status"] == "pending"


def test_other_supervisor_cannot_approve():
    record, _, _, _ = _setup("pending")
    stranger = _actor("supervisor")
    with pytest.raises(InvalidTransition):
        workflow.transition(record, stranger, "approve")


def test_assigned_user_without_role_cannot_approve():
    record, _, supervisor, _ = _setup("pending")
    supervisor.role_code = "employee"
    with pytest.raises(InvalidTransition):
        workflow.transition(record, supervisor, "approve")


@pytest.mark.parametrize("status", ["section_chief_approved", "rejected"])
def test_terminal_statuses_refuse_everything(status):
    record, _, supervisor, chief = _setup(status)
    for actor in (supervisor, chief):
        for action in ("approve", "reject"):
            with pytest.raises(InvalidTransition):
                workflow.transition(record, actor, action, "x")


def test_unknown_action():
    record, _, supervisor, _ = _setup("pending")
    with pytest.raises(InvalidTransition) as exc:
        workflow.transition(record, supervisor, "escalate")
    assert exc.value.detail["action"] == "escalate"


def test_reject_needs_comment():
    record, _, supervisor, _ = _setup("pending")
    with pytest.raises(InvalidTransition):
        workflow.transition(record, supervisor, "reject", "   ")
    result = workflow.transition(record, supervisor, "reject", " wrong quantity ")
    assert result.new_status == "rejected"
    assert result.comment == "wrong quantity"


def test_section_chief_rejects_approved():
    record, _, _, chief = _setup("approved")
    assert workflow.transition(record, chief, "reject", "duplicate").new_status == "rejected"


def test_superadmin_overrides_either_stage():
    admin = _actor("admin", is_superadmin=True, name="Root")
    record, _, _, _ = _setup("pending")
    result = workflow.transition(record, admin, "approve")
    assert result.override
    assert result.stage == "supervisor"


def test_transition_does_not_mutate_record():
    record, _, supervisor, _ = _setup("pending")
    workflow.transition(record, supervisor, "approve")
    assert record.status == "pending"


def test_no_transition_skips_a_stage():
    order = ["draft", "pending", "approved", "section_chief_approved"]
    for (status, _action), (_stage, nxt) in workflow.TRANSITIONS.items():
        if nxt == "rejected":
            continue
        assert order.index(nxt) == order.index(status) + 1
