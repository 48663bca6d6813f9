"""Discounts schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.enums import DiscountType


class DiscountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    discount_type: DiscountType = DiscountType.percentage
    value: Decimal = Field(..., ge=0)
    applicability: Optional[str] = None

    @model_validator(mode="after")
    def validate_percentage(self) -> "DiscountCreate":
        if self.discount_type == DiscountType.percentage and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class DiscountResponse(BaseModel):
    id: UUID
    name: str
    discount_type: DiscountType
    value: Decimal
    applicability: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
