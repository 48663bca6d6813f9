"""Payment: immutable record of funds applied against one invoice."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(
            "payment_method IN ('upi','card','netbanking','cash','cheque')",
            name="chk_payment_method",
        ),
        CheckConstraint(
            "status IN ('pending','completed','failed','refunded')",
            name="chk_payment_status",
        ),
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    transaction_id = Column(String(50), nullable=False, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="completed", index=True)
    reference_number = Column(String(100), nullable=True)
    # Reserved for a payment gateway; never written by manual entry
    gateway_response = Column(JSON, nullable=True)
    recorded_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)

    invoice = relationship("Invoice", back_populates="payments")
