"""
Reassignment resolver.

Before an approver is deleted, deactivated, given another role or moved to
another production line, every record still waiting on them is handed to a
peer: an active user of the same company, production line and role. If there
is work to hand over and nobody to take it, the operation is refused.
"""
import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.rbac.models import Role, User
from worktime.core.rbac.permissions import ROLE_SECTION_CHIEF, ROLE_SUPERVISOR
from worktime.core.timesheets.models import ApprovalHistory, TimesheetRecord
from worktime.errors import NoSubstituteAvailable

logger = logging.getLogger(__name__)

# Statuses in which a record still needs something from the approver.
OUTSTANDING_STATUSES: dict[str, tuple[str, ...]] = {
    ROLE_SUPERVISOR: ("draft", "pending"),
    ROLE_SECTION_CHIEF: ("draft", "pending", "approved"),
}

# role code → (fk attribute, name snapshot attribute) on TimesheetRecord
APPROVER_COLUMNS: dict[str, tuple[str, str]] = {
    ROLE_SUPERVISOR: ("supervisor_id", "supervisor_name"),
    ROLE_SECTION_CHIEF: ("section_chief_id", "section_chief_name"),
}


async def outstanding_records(
    db: AsyncSession,
    approver: User,
    role_code: str | None = None,
    lock: bool = True,
) -> list[TimesheetRecord]:
    """Records waiting on the approver, locked for the rest of the transaction unless lock=False."""
    role_code = role_code or approver.role_code
    if role_code not in APPROVER_COLUMNS:
        return []
    fk_attr, _ = APPROVER_COLUMNS[role_code]
    q = (
        select(TimesheetRecord)
        .where(
            getattr(TimesheetRecord, fk_attr) == approver.id,
            TimesheetRecord.status.in_(OUTSTANDING_STATUSES[role_code]),
        )
        .order_by(TimesheetRecord.work_date, TimesheetRecord.created_at, TimesheetRecord.id)
    )
    if lock:
        q = q.with_for_update()
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_substitutes(
    db: AsyncSession,
    company_id: uuid.UUID,
    production_line: str | None,
    role_code: str,
    exclude_user_id: uuid.UUID | None = None,
) -> list[User]:
    """Eligible peers, earliest-created first."""
    q = (
        select(User)
        .join(Role, User.role_id == Role.id)
        .where(
            User.company_id == company_id,
            User.is_active == True,
            Role.code == role_code,
        )
    )
    if production_line is None:
        q = q.where(User.production_line.is_(None))
    else:
        q = q.where(User.production_line == production_line)
    if exclude_user_id is not None:
        q = q.where(User.id != exclude_user_id)
    result = await db.execute(q.order_by(User.created_at, User.id))
    return list(result.scalars().all())


async def find_substitute(
    db: AsyncSession,
    company_id: uuid.UUID,
    production_line: str | None,
    role_code: str,
    exclude_user_id: uuid.UUID | None = None,
    preferred_id: uuid.UUID | None = None,
) -> User | None:
    candidates = await list_substitutes(db, company_id, production_line, role_code, exclude_user_id)
    if preferred_id is not None:
        for candidate in candidates:
            if candidate.id == preferred_id:
                return candidate
        raise HTTPException(
            status_code=400,
            detail=f"User {preferred_id} cannot take over: needs to be an active {role_code} "
                   f"of the same company on line '{production_line}'",
        )
    return candidates[0] if candidates else None


async def reassign_pending(
    db: AsyncSession,
    approver: User,
    substitute: User,
    *,
    role_code: str | None = None,
    performed_by: User | None = None,
    reason: str | None = None,
    records: list[TimesheetRecord] | None = None,
) -> int:
    """
    Point every outstanding record of `approver` at `substitute`, refresh the
    name snapshot and append one `reassigned` history entry per record.
    Returns the number of records moved.
    """
    role_code = role_code or approver.role_code
    if records is None:
        records = await outstanding_records(db, approver, role_code)
    fk_attr, name_attr = APPROVER_COLUMNS[role_code]

    comment = f"Reassigned from {approver.name} to {substitute.name}"
    if reason:
        comment = f"{comment} ({reason})"

    for record in records:
        setattr(record, fk_attr, substitute.id)
        setattr(record, name_attr, substitute.name)
        db.add(ApprovalHistory(
            timesheet_record_id=record.id,
            approver_id=performed_by.id if performed_by else None,
            approver_name=performed_by.name if performed_by else "system",
            approver_type=role_code,
            action="reassigned",
            comment=comment,
            previous_approver_id=approver.id,
            previous_approver_name=approver.name,
            new_approver_id=substitute.id,
            new_approver_name=substitute.name,
        ))
    await db.flush()
    return len(records)


def _employee_names(records: list[TimesheetRecord]) -> list[str]:
    names: list[str] = []
    for record in records:
        name = record.user_name or "unknown"
        if name not in names:
            names.append(name)
    return names


async def hand_over(
    db: AsyncSession,
    departing: User,
    *,
    reason: str,
    performed_by: User | None = None,
    substitute_id: uuid.UUID | None = None,
) -> tuple[User | None, int]:
    """
    Move everything waiting on `departing` to a peer, or refuse.

    Must run before the departing user's role, line, company or activity is
    changed: eligibility is judged on the current values. Raises
    NoSubstituteAvailable without touching anything when there is work and
    no peer.
    """
    role_code = departing.role_code
    if role_code not in APPROVER_COLUMNS:
        return None, 0

    records = await outstanding_records(db, departing, role_code)
    if not records:
        return None, 0

    substitute = await find_substitute(
        db, departing.company_id, departing.production_line, role_code,
        exclude_user_id=departing.id, preferred_id=substitute_id,
    )
    if substitute is None:
        employees = _employee_names(records)
        logger.warning(
            "Refused %s of %s (%s): %d outstanding records, no substitute on line %r",
            reason, departing.id, role_code, len(records), departing.production_line,
        )
        raise NoSubstituteAvailable(
            f"{departing.name} still has {len(records)} outstanding timesheet records "
            f"from {', '.join(employees)} and no other active {role_code} on line "
            f"'{departing.production_line}' can take them over",
            record_ids=[r.id for r in records],
            employee_names=employees,
            role=role_code,
            production_line=departing.production_line,
        )

    count = await reassign_pending(
        db, departing, substitute,
        role_code=role_code, performed_by=performed_by, reason=reason, records=records,
    )
    logger.info(
        "Reassigned %d records from %s to %s (%s, %s)",
        count, departing.id, substitute.id, role_code, reason,
    )
    return substitute, count


async def handover_preview(db: AsyncSession, user: User) -> dict:
    role_code = user.role_code
    records = await outstanding_records(db, user, role_code, lock=False)
    candidates = []
    if role_code in APPROVER_COLUMNS:
        candidates = await list_substitutes(db, user.company_id, user.production_line, role_code, user.id)
    return {
        "user_id": user.id,
        "role_code": role_code,
        "production_line": user.production_line,
        "outstanding_count": len(records),
        "record_ids": [r.id for r in records],
        "employees": _employee_names(records),
        "candidates": candidates,
    }
