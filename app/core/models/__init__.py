from app.core.models.student import Student
from app.core.models.fee_structure import FeeComponent, FeeStructure
from app.core.models.discount import Discount
from app.core.models.invoice import Invoice, InvoiceItem
from app.core.models.payment import Payment
from app.core.models.user_role import UserRole
from app.core.models.sequence_counter import SequenceCounter

__all__ = [
    "Student",
    "FeeStructure",
    "FeeComponent",
    "Discount",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "UserRole",
    "SequenceCounter",
]
