import uuid
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worktime.db.base import Base, TimestampMixin, CompanyScopedMixin, utcnow


class TimesheetRecord(Base, TimestampMixin, CompanyScopedMixin):
    """
    One employee's work on one date, approved in two stages.
    status: draft → pending → approved → section_chief_approved
            pending | approved → rejected
    *_name columns are snapshots of the referenced user's name. They are set
    together with the id, fixed once that person acts, and outlive the user row.
    """
    __tablename__ = "timesheet_records"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    supervisor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    section_chief_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    production_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shift_type: Mapped[str] = mapped_column(String(50), nullable=False, default="day")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    supervisor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    section_chief_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    supervisor_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    section_chief_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    items: Mapped[list["TimesheetRecordItem"]] = relationship(back_populates="record", lazy="noload")
    __table_args__ = (
        Index("ix_timesheet_records_company_status", "company_id", "status"),
        Index("ix_timesheet_records_user_date", "user_id", "work_date"),
    )


class TimesheetRecordItem(Base, TimestampMixin):
    """
    unit_price is copied from the process when the item is written;
    amount = quantity × unit_price.
    """
    __tablename__ = "timesheet_record_items"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timesheet_record_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("timesheet_records.id", ondelete="CASCADE"), nullable=False, index=True)
    process_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("processes.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    record: Mapped["TimesheetRecord"] = relationship(back_populates="items")


class ApprovalHistory(Base):
    """
    Append-only log of approvals, rejections and reassignments.
    approver_name is always written; approver_id goes NULL when the user is deleted.
    action: approved | rejected | reassigned
    approver_type: supervisor | section_chief (stage the entry belongs to)
    previous_/new_approver_*: only for reassigned.
    """
    __tablename__ = "approval_history"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    timesheet_record_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("timesheet_records.id", ondelete="CASCADE"), nullable=False, index=True)
    approver_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    approver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    approver_type: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_approver_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    previous_approver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_approver_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    new_approver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
