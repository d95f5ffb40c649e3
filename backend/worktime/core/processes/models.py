import uuid
from decimal import Decimal
from sqlalchemy import Boolean, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from worktime.db.base import Base, TimestampMixin, CompanyScopedMixin


class Process(Base, TimestampMixin, CompanyScopedMixin):
    """A priced unit of work on a production line. Deactivated, never deleted."""
    __tablename__ = "processes"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    production_line: Mapped[str] = mapped_column(String(255), nullable=False)
    production_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_process: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    __table_args__ = (Index("ix_processes_company_line", "company_id", "production_line"),)
