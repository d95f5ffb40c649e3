import uuid
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class ProcessCreate(BaseModel):
    company_id: uuid.UUID | None = None  # defaults to the creator's company
    production_line: str = Field(..., min_length=1, max_length=255)
    production_category: str | None = Field(None, max_length=255)
    product_name: str = Field(..., min_length=1, max_length=255)
    product_process: str = Field(..., min_length=1, max_length=255)
    unit_price: Decimal = Field(..., ge=0)


class ProcessUpdate(BaseModel):
    production_line: str | None = Field(None, min_length=1, max_length=255)
    production_category: str | None = Field(None, max_length=255)
    product_name: str | None = Field(None, min_length=1, max_length=255)
    product_process: str | None = Field(None, min_length=1, max_length=255)
    unit_price: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None


class ProcessRead(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    company_id: uuid.UUID
    production_line: str
    production_category: str | None
    product_name: str
    product_process: str
    unit_price: Decimal
    is_active: bool
    created_at: datetime
