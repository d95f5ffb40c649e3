import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

RoleCode = Literal["employee", "supervisor", "section_chief", "admin"]
PHONE_PATTERN = r"^\+?[0-9]{6,20}$"


class RoleCreate(BaseModel):
    name: str = Field(..., max_length=100)
    code: RoleCode
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    description: str | None = None
    permissions: list[str] | None = None


class RoleRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    name: str
    code: str
    description: str | None
    permissions: list[str]
    created_at: datetime


class UserCreate(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    id_card: str | None = Field(None, max_length=32)
    company_id: uuid.UUID | None = None  # defaults to the creator's company
    role_code: RoleCode = "employee"
    production_line: str | None = None
    is_active: bool = True


class UserUpdate(BaseModel):
    """Only fields that are sent are applied; production_line may be sent as null."""
    phone: str | None = Field(None, pattern=PHONE_PATTERN)
    name: str | None = Field(None, min_length=1, max_length=255)
    id_card: str | None = Field(None, max_length=32)
    role_code: RoleCode | None = None
    production_line: str | None = None
    is_active: bool | None = None
    company_id: uuid.UUID | None = None  # superadmin only
    # receiver for outstanding approvals when this change moves an approver away
    handover_to: uuid.UUID | None = None


class UserRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    company_id: uuid.UUID
    phone: str
    name: str
    id_card: str | None
    role_code: str | None
    production_line: str | None
    is_active: bool
    is_superadmin: bool
    created_at: datetime


class SubstituteRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    name: str
    phone: str
    production_line: str | None


class HandoverPreview(BaseModel):
    """What deleting or moving an approver would hand over, and to whom."""
    user_id: uuid.UUID
    role_code: str | None
    production_line: str | None
    outstanding_count: int
    record_ids: list[uuid.UUID]
    employees: list[str]
    candidates: list[SubstituteRead]
