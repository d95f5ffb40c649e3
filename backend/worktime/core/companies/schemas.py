import uuid
from datetime import datetime
from pydantic import BaseModel, Field


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    order_index: int = 0
    notes: str | None = None


class CompanyUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    order_index: int | None = None
    notes: str | None = None


class CompanyRead(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    order_index: int
    notes: str | None
    created_at: datetime
    updated_at: datetime
