import uuid
from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worktime.db.base import Base, TimestampMixin, CompanyScopedMixin


class Role(Base, TimestampMixin):
    """
    code: employee | supervisor | section_chief | admin
    permissions: list of permission strings (see rbac.permissions)
    """
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class User(Base, TimestampMixin, CompanyScopedMixin):
    """
    Users are hard-deleted. Before the row goes, names are copied into every
    record/history row that still references it (see reassignment.snapshots).
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    id_card: Mapped[str | None] = mapped_column(String(32), nullable=True)
    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=True, index=True)
    production_line: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_superadmin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    role: Mapped[Role | None] = relationship(lazy="selectin")

    @property
    def role_code(self) -> str | None:
        return self.role.code if self.role else None
