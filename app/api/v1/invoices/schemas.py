"""Invoices schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.payments.schemas import PaymentResponse
from app.core.enums import InvoiceStatus


class InvoiceItemCreate(BaseModel):
    description: str = Field(..., max_length=255)
    # Sign and precision are checked by the invoice service
    amount: Decimal


class InvoiceCreate(BaseModel):
    student_id: UUID
    due_date: date
    description: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceItemResponse(BaseModel):
    id: UUID
    description: str
    amount: Decimal

    class Config:
        from_attributes = True


class InvoiceStudent(BaseModel):
    id: UUID
    admission_number: str
    first_name: str
    last_name: str
    class_name: str
    section: str
    parent_name: str
    parent_phone: str
    parent_email: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: UUID
    invoice_number: str
    student_id: UUID
    amount: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    # Stored status, and the read-time status with overdue applied
    status: InvoiceStatus
    display_status: InvoiceStatus
    due_date: date
    description: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class InvoiceListItem(InvoiceResponse):
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    section: Optional[str] = None


class InvoiceDetail(InvoiceResponse):
    """Fully resolved invoice for display and printing."""

    student: InvoiceStudent
    items: List[InvoiceItemResponse]
    payments: List[PaymentResponse]
