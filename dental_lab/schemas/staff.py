"""
Staff profile schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import EmailStr, Field, field_validator

from dental_lab.models.enums import StaffStatus
from dental_lab.schemas.common import CamelModel, UTCDateTime, reject_null
from dental_lab.schemas.user import UserResponse


class StaffCreate(CamelModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    employee_id: str = Field(..., min_length=1, max_length=50)
    position: str = Field(..., min_length=1, max_length=100)
    department_id: Optional[str] = None
    hire_date: Optional[UTCDateTime] = None
    salary: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)


class StaffUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    position: Optional[str] = Field(None, min_length=1, max_length=100)
    department_id: Optional[str] = None
    salary: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    status: Optional[StaffStatus] = None

    @field_validator("first_name", "last_name", "position", "status", mode="before")
    @classmethod
    def required_fields_not_null(cls, v):
        return reject_null(v)


class StaffFilters(CamelModel):
    status: Optional[StaffStatus] = None
    department_id: Optional[str] = None
    search: Optional[str] = None


class StaffResponse(CamelModel):
    id: str
    user_id: str
    employee_id: str
    position: str
    department_id: Optional[str] = None
    hire_date: datetime
    salary: Optional[float] = None
    status: StaffStatus
    created_at: datetime
    user: Optional[UserResponse] = None
