"""Student: academic placement and guardian contact. Owns invoices."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Student(Base):
    """Enrolled student. Deactivated via is_active in normal operation."""

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    admission_number = Column(String(50), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    # Class and section are free-text labels, e.g. "10" / "A"
    class_name = Column("class", String(20), nullable=False, index=True)
    section = Column(String(10), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    admission_date = Column(Date, nullable=True)
    parent_name = Column(String(255), nullable=False)
    parent_phone = Column(String(50), nullable=False)
    parent_email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    invoices = relationship("Invoice", back_populates="student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
