import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, Field

RecordStatus = Literal["draft", "pending", "approved", "section_chief_approved", "rejected"]


# ── Records ───────────────────────────────────────────────────────────────────

class ItemInput(BaseModel):
    process_id: uuid.UUID
    quantity: Decimal = Field(..., gt=0)


class RecordCreate(BaseModel):
    work_date: date
    shift_type: str = Field("day", min_length=1, max_length=50)
    production_line: str | None = None  # defaults to the employee's line
    supervisor_id: uuid.UUID
    section_chief_id: uuid.UUID
    items: list[ItemInput] = Field(..., min_length=1)
    submit: bool = False


class RecordUpdate(BaseModel):
    """Drafts only. Sending items replaces all of them."""
    work_date: date | None = None
    shift_type: str | None = Field(None, min_length=1, max_length=50)
    supervisor_id: uuid.UUID | None = None
    section_chief_id: uuid.UUID | None = None
    items: list[ItemInput] | None = Field(None, min_length=1)


class ItemRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    timesheet_record_id: uuid.UUID
    process_id: uuid.UUID
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal


class ItemQuantityUpdate(BaseModel):
    quantity: Decimal = Field(..., gt=0)


class RecordRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    company_id: uuid.UUID
    user_id: uuid.UUID | None
    supervisor_id: uuid.UUID | None
    section_chief_id: uuid.UUID | None
    work_date: date
    production_line: str | None
    shift_type: str
    status: str
    user_name: str | None
    supervisor_name: str | None
    section_chief_name: str | None
    submitted_at: datetime | None
    supervisor_approved_at: datetime | None
    section_chief_approved_at: datetime | None
    rejected_at: datetime | None
    total_amount: Decimal
    created_at: datetime


# ── Approvals ─────────────────────────────────────────────────────────────────

class ApprovalAction(BaseModel):
    comment: str | None = None


class RejectAction(BaseModel):
    comment: str = Field(..., min_length=1)


class BatchApproveRequest(BaseModel):
    record_ids: list[uuid.UUID] = Field(..., min_length=1)
    comment: str | None = None


class BatchApproveResult(BaseModel):
    approved: int
    records: list[RecordRead]


class HistoryRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    timesheet_record_id: uuid.UUID
    approver_id: uuid.UUID | None
    approver_name: str
    approver_type: str
    action: str
    comment: str | None
    previous_approver_id: uuid.UUID | None
    previous_approver_name: str | None
    new_approver_id: uuid.UUID | None
    new_approver_name: str | None
    created_at: datetime


# ── Reports ───────────────────────────────────────────────────────────────────

class StatusSummary(BaseModel):
    status: str
    count: int
    total_amount: Decimal
