"""Students schemas."""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class StudentCreate(BaseModel):
    admission_number: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    class_name: str = Field(..., min_length=1, max_length=20, description="Class label, e.g. 10")
    section: str = Field(..., min_length=1, max_length=10)
    date_of_birth: Optional[date] = None
    admission_date: Optional[date] = None
    parent_name: str = Field(..., min_length=1, max_length=255)
    parent_phone: str = Field(..., min_length=1, max_length=50)
    parent_email: Optional[EmailStr] = None
    address: Optional[str] = None


class StudentUpdate(BaseModel):
    admission_number: Optional[str] = Field(None, min_length=1, max_length=50)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    class_name: Optional[str] = Field(None, min_length=1, max_length=20)
    section: Optional[str] = Field(None, min_length=1, max_length=10)
    date_of_birth: Optional[date] = None
    admission_date: Optional[date] = None
    parent_name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_phone: Optional[str] = Field(None, min_length=1, max_length=50)
    parent_email: Optional[EmailStr] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class StudentResponse(BaseModel):
    id: UUID
    admission_number: str
    first_name: str
    last_name: str
    class_name: str
    section: str
    date_of_birth: Optional[date] = None
    admission_date: Optional[date] = None
    parent_name: str
    parent_phone: str
    parent_email: Optional[str] = None
    address: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
