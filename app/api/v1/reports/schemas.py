"""Report schemas: plain row sets for dashboards and printable documents."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.api.v1.invoices.schemas import InvoiceResponse
from app.api.v1.payments.schemas import PaymentResponse
from app.api.v1.students.schemas import StudentResponse
from app.core.enums import InvoiceStatus, PaymentMethod


class DashboardCounters(BaseModel):
    as_of: date
    total_students: int
    active_students: int
    total_collected: Decimal
    today_collection: Decimal
    pending_invoices: int
    overdue_invoices: int
    outstanding_amount: Decimal


class CollectionRow(BaseModel):
    payment_id: UUID
    transaction_id: str
    invoice_number: str
    student_name: str
    class_name: str
    section: str
    amount: Decimal
    payment_method: PaymentMethod
    reference_number: Optional[str] = None
    created_at: datetime


class DailyCollectionReport(BaseModel):
    report_date: date
    payments: List[CollectionRow]
    count: int
    total: Decimal


class DayTotal(BaseModel):
    day: date
    count: int
    total: Decimal


class MonthlyCollectionReport(BaseModel):
    year: int
    month: int
    days: List[DayTotal]
    count: int
    total: Decimal


class PendingFeeRow(BaseModel):
    invoice_id: UUID
    invoice_number: str
    student_id: UUID
    student_name: str
    admission_number: str
    class_name: str
    section: str
    parent_name: str
    parent_phone: str
    amount: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    due_date: date
    status: InvoiceStatus
    display_status: InvoiceStatus


class PendingFeesReport(BaseModel):
    as_of: date
    invoices: List[PendingFeeRow]
    total: Decimal


class ClassCollection(BaseModel):
    class_name: str
    total: Decimal
    percentage: Decimal


class ClassWiseCollectionReport(BaseModel):
    breakdown: List[ClassCollection]
    total: Decimal


class PaymentModeShare(BaseModel):
    payment_method: PaymentMethod
    count: int
    total: Decimal
    percentage: Decimal


class PaymentModeReport(BaseModel):
    breakdown: List[PaymentModeShare]
    total: Decimal


class StudentLedger(BaseModel):
    student: StudentResponse
    invoices: List[InvoiceResponse]
    payments: List[PaymentResponse]
    total_billed: Decimal
    total_paid: Decimal
    outstanding: Decimal
