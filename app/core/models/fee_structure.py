"""Fee structure templates. Reference only; never turned into invoices automatically."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeeStructure(Base):
    """Named template applicable to a set of classes."""

    __tablename__ = "fee_structures"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    # List of class labels, e.g. ["6", "7", "8"]
    classes = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    components = relationship(
        "FeeComponent",
        back_populates="fee_structure",
        cascade="all, delete-orphan",
        order_by="FeeComponent.position",
    )


class FeeComponent(Base):
    __tablename__ = "fee_components"
    __table_args__ = (
        CheckConstraint(
            "frequency IN ('monthly','quarterly','annual')",
            name="chk_fee_component_frequency",
        ),
        CheckConstraint("amount >= 0", name="chk_fee_component_amount"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fee_structure_id = Column(
        Uuid,
        ForeignKey("fee_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(String(20), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    fee_structure = relationship("FeeStructure", back_populates="components")
