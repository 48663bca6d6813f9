"""Payments schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import InvoiceStatus, PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    invoice_id: UUID
    amount: Decimal
    payment_method: PaymentMethod = PaymentMethod.upi
    reference_number: Optional[str] = Field(None, max_length=100)


class PaymentResponse(BaseModel):
    id: UUID
    invoice_id: UUID
    transaction_id: str
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    reference_number: Optional[str] = None
    recorded_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentRecordedResponse(PaymentResponse):
    """Payment plus the invoice state it produced."""

    invoice_number: str
    invoice_amount: Decimal
    invoice_paid_amount: Decimal
    invoice_status: InvoiceStatus
    balance_due: Decimal


class PaymentListItem(PaymentResponse):
    invoice_number: Optional[str] = None
    student_id: Optional[UUID] = None
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    section: Optional[str] = None
