import uuid
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.rbac import permissions as perms
from worktime.core.timesheets import service
from worktime.core.timesheets.models import TimesheetRecord
from worktime.core.timesheets.schemas import (
    RecordCreate, RecordUpdate, RecordRead,
    ItemRead, ItemQuantityUpdate,
    ApprovalAction, RejectAction, BatchApproveRequest, BatchApproveResult,
    HistoryRead, StatusSummary,
)
from worktime.db.retry import run_read
from worktime.dependencies import get_db, get_current_user, require_permission, require_any_permission, CurrentUser

router = APIRouter(tags=["timesheets"])

require_reviewer = require_any_permission(perms.SUPERVISOR_REVIEW, perms.MANAGER_REVIEW)


def _can_view(current: CurrentUser, record: TimesheetRecord) -> bool:
    if current.user.is_superadmin:
        return True
    if current.user_id in (record.user_id, record.supervisor_id, record.section_chief_id):
        return True
    return record.company_id == current.company_id and perms.has_permission(current.user, perms.REPORTS)


async def _load_visible(db: AsyncSession, record_id: uuid.UUID, current: CurrentUser) -> TimesheetRecord:
    record = await service.get_record(db, record_id)
    if not record or not _can_view(current, record):
        raise HTTPException(404, "Timesheet record not found")
    return record


# ── Records ───────────────────────────────────────────────────────────────────

@router.post("/timesheets", response_model=RecordRead, status_code=201)
async def create_record(
    data: RecordCreate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.TIME_RECORD)),
):
    return await service.create_record(db, current.user, data)


@router.get("/timesheets", response_model=list[RecordRead])
async def list_records(
    status: str | None = Query(None),
    user_id: uuid.UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    # Without the reports permission users only see their own records
    if user_id != current.user_id and not perms.has_permission(current.user, perms.REPORTS):
        user_id = current.user_id
    scope = None if current.user.is_superadmin else current.company_id
    return await service.list_records(db, scope, user_id, status, date_from, date_to)


@router.get("/timesheets/{record_id}", response_model=RecordRead)
async def get_record(record_id: uuid.UUID, db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    return await _load_visible(db, record_id, current)


@router.patch("/timesheets/{record_id}", response_model=RecordRead)
async def update_draft(
    record_id: uuid.UUID,
    data: RecordUpdate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.TIME_RECORD)),
):
    return await service.update_draft(db, record_id, current.user, data)


@router.post("/timesheets/{record_id}/submit", response_model=RecordRead)
async def submit_record(
    record_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.TIME_RECORD)),
):
    return await service.submit_record(db, record_id, current.user)


@router.get("/timesheets/{record_id}/items", response_model=list[ItemRead])
async def list_items(record_id: uuid.UUID, db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    await _load_visible(db, record_id, current)
    return await service.list_items(db, record_id)


@router.get("/timesheets/{record_id}/history", response_model=list[HistoryRead])
async def list_history(record_id: uuid.UUID, db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    await _load_visible(db, record_id, current)
    return await service.list_history(db, record_id)


# ── Items ─────────────────────────────────────────────────────────────────────

@router.patch("/timesheet-items/{item_id}", response_model=ItemRead)
async def update_item(
    item_id: uuid.UUID,
    data: ItemQuantityUpdate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    return await service.update_item_quantity(db, item_id, current.user, data.quantity)


@router.delete("/timesheet-items/{item_id}", status_code=204)
async def delete_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    await service.delete_item(db, item_id, current.user)


# ── Approvals ─────────────────────────────────────────────────────────────────

@router.get("/approvals/queue", response_model=list[RecordRead])
async def approval_queue(current: CurrentUser = Depends(require_reviewer)):
    return await run_read(service.list_approval_queue, current.user)


@router.post("/approvals/batch-approve", response_model=BatchApproveResult)
async def batch_approve(
    body: BatchApproveRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_reviewer),
):
    records = await service.batch_approve(db, body.record_ids, current.user, body.comment)
    return BatchApproveResult(approved=len(records), records=records)


@router.post("/approvals/{record_id}/approve", response_model=RecordRead)
async def approve_record(
    record_id: uuid.UUID,
    body: ApprovalAction | None = None,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_reviewer),
):
    return await service.approve_record(db, record_id, current.user, body.comment if body else None)


@router.post("/approvals/{record_id}/reject", response_model=RecordRead)
async def reject_record(
    record_id: uuid.UUID,
    body: RejectAction,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_reviewer),
):
    return await service.reject_record(db, record_id, current.user, body.comment)


# ── Reports ───────────────────────────────────────────────────────────────────

@router.get("/reports/summary", response_model=list[StatusSummary])
async def summary(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    company_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.REPORTS)),
):
    scope = company_id if (company_id and current.user.is_superadmin) else current.company_id
    return await service.summarize(db, scope, date_from, date_to)
