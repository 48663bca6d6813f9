"""Fee structure schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import FeeFrequency


class FeeComponentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0)
    frequency: FeeFrequency = FeeFrequency.monthly


class FeeStructureCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    classes: List[str] = Field(..., min_length=1, description="Class labels this template applies to")
    components: List[FeeComponentCreate] = Field(..., min_length=1)


class FeeComponentResponse(BaseModel):
    id: UUID
    name: str
    amount: Decimal
    frequency: FeeFrequency

    class Config:
        from_attributes = True


class FeeStructureResponse(BaseModel):
    id: UUID
    name: str
    classes: List[str]
    components: List[FeeComponentResponse]
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
