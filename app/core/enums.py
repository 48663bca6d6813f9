from enum import Enum


class AppRole(str, Enum):
    admin = "admin"
    accountant = "accountant"
    staff = "staff"


class InvoiceStatus(str, Enum):
    draft = "draft"
    pending = "pending"
    partial = "partial"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PaymentMethod(str, Enum):
    upi = "upi"
    card = "card"
    netbanking = "netbanking"
    cash = "cash"
    cheque = "cheque"


class FeeFrequency(str, Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    annual = "annual"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


# Stored statuses that still carry an outstanding balance
OPEN_INVOICE_STATUSES = (InvoiceStatus.pending.value, InvoiceStatus.partial.value)
