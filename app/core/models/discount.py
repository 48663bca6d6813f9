"""Discount master. Defined but not applied to invoices."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String, Text, Uuid

from app.db.session import Base


class Discount(Base):
    __tablename__ = "discounts"
    __table_args__ = (
        CheckConstraint(
            "discount_type IN ('percentage','fixed')",
            name="chk_discount_type",
        ),
        CheckConstraint("value >= 0", name="chk_discount_value"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    discount_type = Column(String(20), nullable=False)  # percentage, fixed
    value = Column(Numeric(12, 2), nullable=False)
    applicability = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
