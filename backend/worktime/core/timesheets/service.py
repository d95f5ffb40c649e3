import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.rbac.models import User
from worktime.core.rbac.permissions import ROLE_SECTION_CHIEF, ROLE_SUPERVISOR
from worktime.core.timesheets import workflow
from worktime.core.timesheets.models import ApprovalHistory, TimesheetRecord, TimesheetRecordItem
from worktime.core.timesheets.schemas import ItemInput, RecordCreate, RecordUpdate
from worktime.errors import InvalidTransition

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _amount(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(unit_price)).quantize(CENT)


# ── Lookups ───────────────────────────────────────────────────────────────────

async def get_record(db: AsyncSession, record_id: uuid.UUID) -> TimesheetRecord | None:
    return await db.get(TimesheetRecord, record_id)


async def get_record_locked(db: AsyncSession, record_id: uuid.UUID) -> TimesheetRecord | None:
    """Row-level lock for state transitions."""
    result = await db.execute(
        select(TimesheetRecord)
        .where(TimesheetRecord.id == record_id)
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def list_records(
    db: AsyncSession,
    company_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[TimesheetRecord]:
    q = select(TimesheetRecord)
    if company_id:
        q = q.where(TimesheetRecord.company_id == company_id)
    if user_id:
        q = q.where(TimesheetRecord.user_id == user_id)
    if status:
        q = q.where(TimesheetRecord.status == status)
    if date_from:
        q = q.where(TimesheetRecord.work_date >= date_from)
    if date_to:
        q = q.where(TimesheetRecord.work_date <= date_to)
    q = q.order_by(TimesheetRecord.work_date.desc(), TimesheetRecord.created_at.desc())
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_approval_queue(db: AsyncSession, actor: User) -> list[TimesheetRecord]:
    """Records waiting on the actor's stage."""
    q = select(TimesheetRecord)
    if actor.is_superadmin:
        q = q.where(TimesheetRecord.status.in_((workflow.PENDING, workflow.APPROVED)))
    elif actor.role_code == ROLE_SUPERVISOR:
        q = q.where(TimesheetRecord.supervisor_id == actor.id, TimesheetRecord.status == workflow.PENDING)
    elif actor.role_code == ROLE_SECTION_CHIEF:
        q = q.where(TimesheetRecord.section_chief_id == actor.id, TimesheetRecord.status == workflow.APPROVED)
    else:
        return []
    result = await db.execute(q.order_by(TimesheetRecord.work_date, TimesheetRecord.created_at))
    return list(result.scalars().all())


async def list_items(db: AsyncSession, record_id: uuid.UUID) -> list[TimesheetRecordItem]:
    result = await db.execute(
        select(TimesheetRecordItem)
        .where(TimesheetRecordItem.timesheet_record_id == record_id)
        .order_by(TimesheetRecordItem.created_at, TimesheetRecordItem.id)
    )
    return list(result.scalars().all())


async def list_history(db: AsyncSession, record_id: uuid.UUID) -> list[ApprovalHistory]:
    result = await db.execute(
        select(ApprovalHistory)
        .where(ApprovalHistory.timesheet_record_id == record_id)
        .order_by(ApprovalHistory.created_at, ApprovalHistory.id)
    )
    return list(result.scalars().all())


# ── Creation and drafts ───────────────────────────────────────────────────────

async def _approver(
    db: AsyncSession,
    user_id: uuid.UUID,
    role_code: str,
    employee_id: uuid.UUID,
    company_id: uuid.UUID,
    production_line: str | None,
) -> User:
    """An active user of the given role on the record's company and line, other than the employee."""
    from fastapi import HTTPException
    if user_id == employee_id:
        raise HTTPException(400, f"You cannot be the {role_code} of your own record")
    user = await db.get(User, user_id)
    if not user or not user.is_active or user.role_code != role_code or user.company_id != company_id:
        raise HTTPException(400, f"{user_id} is not an active {role_code} of this company")
    if user.production_line != production_line:
        raise HTTPException(400, f"{user.name} is not a {role_code} of production line {production_line}")
    return user


async def _build_items(
    db: AsyncSession,
    company_id: uuid.UUID,
    inputs: list[ItemInput],
) -> list[TimesheetRecordItem]:
    from fastapi import HTTPException
    from worktime.core.processes.models import Process
    items = []
    for entry in inputs:
        process = await db.get(Process, entry.process_id)
        if not process or process.company_id != company_id or not process.is_active:
            raise HTTPException(400, f"Process {entry.process_id} is not available")
        items.append(TimesheetRecordItem(
            process_id=process.id,
            quantity=entry.quantity,
            unit_price=process.unit_price,
            amount=_amount(entry.quantity, process.unit_price),
        ))
    return items


async def _recompute_total(db: AsyncSession, record: TimesheetRecord) -> Decimal:
    total = await db.scalar(
        select(func.coalesce(func.sum(TimesheetRecordItem.amount), 0))
        .where(TimesheetRecordItem.timesheet_record_id == record.id)
    )
    record.total_amount = Decimal(total).quantize(CENT)
    return record.total_amount


async def create_record(db: AsyncSession, employee: User, data: RecordCreate) -> TimesheetRecord:
    line = data.production_line or employee.production_line
    supervisor = await _approver(db, data.supervisor_id, ROLE_SUPERVISOR, employee.id, employee.company_id, line)
    section_chief = await _approver(db, data.section_chief_id, ROLE_SECTION_CHIEF, employee.id, employee.company_id, line)
    items = await _build_items(db, employee.company_id, data.items)

    record = TimesheetRecord(
        company_id=employee.company_id,
        user_id=employee.id,
        supervisor_id=supervisor.id,
        section_chief_id=section_chief.id,
        work_date=data.work_date,
        production_line=line,
        shift_type=data.shift_type,
        status=workflow.DRAFT,
        user_name=employee.name,
        supervisor_name=supervisor.name,
        section_chief_name=section_chief.name,
        total_amount=sum((i.amount for i in items), Decimal("0")),
    )
    db.add(record)
    await db.flush()
    for item in items:
        item.timesheet_record_id = record.id
        db.add(item)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=record.company_id, user_id=employee.id,
        action="timesheet.create", resource_type="timesheet_record",
        resource_id=str(record.id),
        detail={"work_date": str(data.work_date), "items": len(items), "total": str(record.total_amount)},
    )

    if data.submit:
        record = await submit_record(db, record.id, employee)
    return record


async def update_draft(db: AsyncSession, record_id: uuid.UUID, actor: User, data: RecordUpdate) -> TimesheetRecord:
    from fastapi import HTTPException
    record = await get_record_locked(db, record_id)
    if not record:
        raise HTTPException(404, "Timesheet record not found")
    if record.user_id != actor.id:
        raise HTTPException(403, "Only the owner can edit a draft")
    if record.status != workflow.DRAFT:
        raise InvalidTransition(f"Cannot edit a record that is {record.status}", current_status=record.status, action="edit")

    if data.work_date is not None:
        record.work_date = data.work_date
    if data.shift_type is not None:
        record.shift_type = data.shift_type
    if data.supervisor_id is not None:
        supervisor = await _approver(db, data.supervisor_id, ROLE_SUPERVISOR, record.user_id, record.company_id, record.production_line)
        record.supervisor_id, record.supervisor_name = supervisor.id, supervisor.name
    if data.section_chief_id is not None:
        section_chief = await _approver(db, data.section_chief_id, ROLE_SECTION_CHIEF, record.user_id, record.company_id, record.production_line)
        record.section_chief_id, record.section_chief_name = section_chief.id, section_chief.name
    if data.items is not None:
        items = await _build_items(db, record.company_id, data.items)
        await db.execute(delete(TimesheetRecordItem).where(TimesheetRecordItem.timesheet_record_id == record.id))
        for item in items:
            item.timesheet_record_id = record.id
            db.add(item)
        await db.flush()
        await _recompute_total(db, record)
    await db.flush()
    return record


# ── State machine ─────────────────────────────────────────────────────────────

def _apply(record: TimesheetRecord, result: workflow.TransitionResult, now: datetime) -> None:
    record.status = result.new_status
    if result.action == workflow.SUBMIT:
        record.submitted_at = now
        return
    if result.action == workflow.REJECT:
        record.rejected_at = now
    if result.stage == ROLE_SUPERVISOR:
        if result.action == workflow.APPROVE:
            record.supervisor_approved_at = now
        if not result.override:
            record.supervisor_name = result.actor_name
    elif result.stage == ROLE_SECTION_CHIEF:
        if result.action == workflow.APPROVE:
            record.section_chief_approved_at = now
        if not result.override:
            record.section_chief_name = result.actor_name


async def submit_record(db: AsyncSession, record_id: uuid.UUID, actor: User) -> TimesheetRecord:
    from fastapi import HTTPException
    record = await get_record_locked(db, record_id)
    if not record:
        raise HTTPException(404, "Timesheet record not found")

    result = workflow.transition(record, actor, workflow.SUBMIT)

    item_count = await db.scalar(
        select(func.count()).select_from(TimesheetRecordItem)
        .where(TimesheetRecordItem.timesheet_record_id == record.id)
    )
    if not item_count:
        raise InvalidTransition("Cannot submit a record without items", current_status=record.status, action=workflow.SUBMIT)
    for fk_id, role_code in ((record.supervisor_id, ROLE_SUPERVISOR), (record.section_chief_id, ROLE_SECTION_CHIEF)):
        approver = await db.get(User, fk_id) if fk_id else None
        if (not approver or not approver.is_active or approver.role_code != role_code
                or approver.production_line != record.production_line):
            raise InvalidTransition(
                f"The assigned {role_code} is no longer available; pick another before submitting",
                current_status=record.status, action=workflow.SUBMIT,
            )

    _apply(record, result, datetime.now(timezone.utc))
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=record.company_id, user_id=actor.id,
        action="timesheet.submit", resource_type="timesheet_record",
        resource_id=str(record.id), detail={},
    )
    return record


async def act_on_record(
    db: AsyncSession,
    record_id: uuid.UUID,
    actor: User,
    action: str,
    comment: str | None = None,
) -> TimesheetRecord:
    """Approve or reject under a row lock and append exactly one history entry."""
    from fastapi import HTTPException
    record = await get_record_locked(db, record_id)
    if not record:
        raise HTTPException(404, "Timesheet record not found")
    if action == workflow.SUBMIT:
        raise InvalidTransition("Use submit for drafts", current_status=record.status, action=action)

    result = workflow.transition(record, actor, action, comment)
    _apply(record, result, datetime.now(timezone.utc))
    db.add(ApprovalHistory(
        timesheet_record_id=record.id,
        approver_id=actor.id,
        approver_name=actor.name,
        approver_type=result.stage,
        action="approved" if action == workflow.APPROVE else "rejected",
        comment=result.comment,
    ))
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=record.company_id, user_id=actor.id,
        action=f"timesheet.{action}", resource_type="timesheet_record",
        resource_id=str(record.id),
        detail={"from": result.previous_status, "to": result.new_status,
                "stage": result.stage, "override": result.override},
    )
    return record


async def approve_record(db: AsyncSession, record_id: uuid.UUID, actor: User, comment: str | None = None) -> TimesheetRecord:
    return await act_on_record(db, record_id, actor, workflow.APPROVE, comment)


async def reject_record(db: AsyncSession, record_id: uuid.UUID, actor: User, comment: str) -> TimesheetRecord:
    return await act_on_record(db, record_id, actor, workflow.REJECT, comment)


async def batch_approve(
    db: AsyncSession,
    record_ids: list[uuid.UUID],
    actor: User,
    comment: str | None = None,
) -> list[TimesheetRecord]:
    """All or nothing: the first failure propagates and the request transaction rolls back."""
    records = []
    # stable lock order
    for record_id in sorted(set(record_ids)):
        records.append(await approve_record(db, record_id, actor, comment))
    logger.info("Batch approved %d records by %s", len(records), actor.id)
    return records


# ── Pending-stage corrections ─────────────────────────────────────────────────

async def _editable_item(db: AsyncSession, item_id: uuid.UUID, actor: User) -> tuple[TimesheetRecordItem, TimesheetRecord]:
    """Owner may edit drafts; the supervisor (or a superadmin) may correct pending records."""
    from fastapi import HTTPException
    item = await db.get(TimesheetRecordItem, item_id)
    if not item:
        raise HTTPException(404, "Item not found")
    record = await get_record_locked(db, item.timesheet_record_id)

    if record.status == workflow.DRAFT and record.user_id == actor.id:
        return item, record
    if record.status == workflow.PENDING:
        if actor.is_superadmin or (record.supervisor_id == actor.id and actor.role_code == ROLE_SUPERVISOR):
            return item, record
        raise HTTPException(403, "Only the assigned supervisor can correct a pending record")
    raise InvalidTransition(f"Items of a {record.status} record cannot be changed", current_status=record.status, action="edit_item")


async def update_item_quantity(db: AsyncSession, item_id: uuid.UUID, actor: User, quantity: Decimal) -> TimesheetRecordItem:
    item, record = await _editable_item(db, item_id, actor)
    previous = item.quantity
    item.quantity = quantity
    item.amount = _amount(quantity, item.unit_price)
    await db.flush()
    await _recompute_total(db, record)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=record.company_id, user_id=actor.id,
        action="timesheet.item_update", resource_type="timesheet_record_item",
        resource_id=str(item.id),
        detail={"record_id": str(record.id), "from": str(previous), "to": str(quantity)},
    )
    return item


async def delete_item(db: AsyncSession, item_id: uuid.UUID, actor: User) -> TimesheetRecord | None:
    """Delete one item. Returns the record, or None when it was the last item and the record went too."""
    item, record = await _editable_item(db, item_id, actor)
    await db.delete(item)
    await db.flush()

    remaining = await db.scalar(
        select(func.count()).select_from(TimesheetRecordItem)
        .where(TimesheetRecordItem.timesheet_record_id == record.id)
    )

    from worktime.core.audit.service import audit
    if not remaining:
        record_id, company_id = record.id, record.company_id
        await db.execute(delete(ApprovalHistory).where(ApprovalHistory.timesheet_record_id == record_id))
        await db.delete(record)
        await db.flush()
        await audit(db, company_id=company_id, user_id=actor.id,
            action="timesheet.delete", resource_type="timesheet_record",
            resource_id=str(record_id), detail={"reason": "last item deleted"},
        )
        return None

    await _recompute_total(db, record)
    await db.flush()
    await audit(db, company_id=record.company_id, user_id=actor.id,
        action="timesheet.item_delete", resource_type="timesheet_record_item",
        resource_id=str(item_id), detail={"record_id": str(record.id)},
    )
    return record


# ── Reports ───────────────────────────────────────────────────────────────────

async def summarize(
    db: AsyncSession,
    company_id: uuid.UUID,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[dict]:
    q = (
        select(
            TimesheetRecord.status,
            func.count(TimesheetRecord.id),
            func.coalesce(func.sum(TimesheetRecord.total_amount), 0),
        )
        .where(TimesheetRecord.company_id == company_id)
        .group_by(TimesheetRecord.status)
    )
    if date_from:
        q = q.where(TimesheetRecord.work_date >= date_from)
    if date_to:
        q = q.where(TimesheetRecord.work_date <= date_to)
    result = await db.execute(q)
    by_status = {row[0]: (row[1], Decimal(row[2]).quantize(CENT)) for row in result.all()}
    return [
        {"status": s, "count": by_status.get(s, (0, Decimal("0.00")))[0],
         "total_amount": by_status.get(s, (0, Decimal("0.00")))[1]}
        for s in workflow.STATUSES
    ]
