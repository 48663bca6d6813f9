"""Role assignment: user identity -> admin | accountant | staff."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, String, Uuid

from app.db.session import Base


class UserRole(Base):
    """
    One row per user in the common case. Uniqueness is enforced by the role service,
    not the schema; readers take the earliest row.
    """

    __tablename__ = "user_roles"
    __table_args__ = (
        CheckConstraint("role IN ('admin','accountant','staff')", name="chk_user_role"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="staff")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
