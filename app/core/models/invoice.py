"""Invoice and its line items. amount is a snapshot of the item total taken at creation."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Invoice(Base):
    """
    Billable claim against a student.
    paid_amount is only increased by the payment recorder; 0 <= paid_amount <= amount.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','pending','partial','paid','overdue','cancelled')",
            name="chk_invoice_status",
        ),
        CheckConstraint("amount > 0", name="chk_invoice_amount_positive"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= amount",
            name="chk_invoice_paid_amount_bounds",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(50), nullable=False, unique=True)
    student_id = Column(
        Uuid,
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    due_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    student = relationship("Student", back_populates="invoices")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.created_at")


class InvoiceItem(Base):
    """Line item. Written together with its invoice and never edited afterwards."""

    __tablename__ = "invoice_items"
    __table_args__ = (CheckConstraint("amount > 0", name="chk_invoice_item_amount_positive"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="items")
