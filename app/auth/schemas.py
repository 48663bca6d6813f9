from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.core.enums import AppRole


class Actor(BaseModel):
    """Authenticated caller as seen by the core: identity plus at most one role."""

    id: UUID
    role: Optional[AppRole] = None


class RoleAssignmentCreate(BaseModel):
    user_id: UUID
    role: AppRole


class RoleAssignmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    role: AppRole
    created_at: datetime

    class Config:
        from_attributes = True
