"""
Two-stage approval chain for timesheet records.

    draft ──submit──▶ pending ──approve──▶ approved ──approve──▶ section_chief_approved
                         │                    │
                         └──reject──▶ rejected ◀──reject──┘

`transition` is pure: it checks the requested change against the record and
the actor and describes the outcome. Callers lock the row, apply the result
and write history.
"""
from dataclasses import dataclass

from worktime.core.rbac.permissions import ROLE_EMPLOYEE, ROLE_SECTION_CHIEF, ROLE_SUPERVISOR
from worktime.errors import InvalidTransition

DRAFT = "draft"
PENDING = "pending"
APPROVED = "approved"
SECTION_CHIEF_APPROVED = "section_chief_approved"
REJECTED = "rejected"

STATUSES = (DRAFT, PENDING, APPROVED, SECTION_CHIEF_APPROVED, REJECTED)
TERMINAL_STATUSES = frozenset({SECTION_CHIEF_APPROVED, REJECTED})

SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
ACTIONS = (SUBMIT, APPROVE, REJECT)

# (current status, action) → (stage that may act, next status)
TRANSITIONS: dict[tuple[str, str], tuple[str, str]] = {
    (DRAFT, SUBMIT): (ROLE_EMPLOYEE, PENDING),
    (PENDING, APPROVE): (ROLE_SUPERVISOR, APPROVED),
    (PENDING, REJECT): (ROLE_SUPERVISOR, REJECTED),
    (APPROVED, APPROVE): (ROLE_SECTION_CHIEF, SECTION_CHIEF_APPROVED),
    (APPROVED, REJECT): (ROLE_SECTION_CHIEF, REJECTED),
}

# stage → attribute on the record naming who acts at that stage
STAGE_ASSIGNEE = {
    ROLE_EMPLOYEE: "user_id",
    ROLE_SUPERVISOR: "supervisor_id",
    ROLE_SECTION_CHIEF: "section_chief_id",
}


@dataclass(frozen=True)
class TransitionResult:
    previous_status: str
    new_status: str
    action: str
    stage: str
    actor_id: object
    actor_name: str
    comment: str | None = None
    # a superadmin acting in place of the assigned approver
    override: bool = False

    @property
    def is_approval_step(self) -> bool:
        return self.stage in (ROLE_SUPERVISOR, ROLE_SECTION_CHIEF)


def transition(record, actor, action: str, comment: str | None = None) -> TransitionResult:
    status = record.status
    if action not in ACTIONS:
        raise InvalidTransition(f"Unknown action '{action}'", current_status=status, action=action)
    if status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Record is already {status}", current_status=status, action=action)

    key = (status, action)
    if key not in TRANSITIONS:
        raise InvalidTransition(f"Cannot {action} a record that is {status}", current_status=status, action=action)
    stage, next_status = TRANSITIONS[key]

    assigned = getattr(record, STAGE_ASSIGNEE[stage]) == actor.id
    override = False
    if stage == ROLE_EMPLOYEE:
        if not assigned:
            raise InvalidTransition("Only the record owner can submit it", current_status=status, action=action)
    else:
        acts_in_role = assigned and actor.is_active and actor.role_code == stage
        if not acts_in_role:
            if not actor.is_superadmin:
                raise InvalidTransition(
                    f"Only the assigned {stage} can {action} a record that is {status}",
                    current_status=status, action=action,
                )
            override = True

    if action == REJECT and not (comment and comment.strip()):
        raise InvalidTransition("A reason is required to reject", current_status=status, action=action)

    return TransitionResult(
        previous_status=status,
        new_status=next_status,
        action=action,
        stage=stage,
        actor_id=actor.id,
        actor_name=actor.name,
        comment=comment.strip() if comment else None,
        override=override,
    )
