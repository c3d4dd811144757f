"""
Dentist profile and application schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from dental_lab.models.enums import ApplicationStatus, DentistStatus
from dental_lab.schemas.common import CamelModel, reject_null
from dental_lab.schemas.user import UserResponse


def _blank_to_none(v):
    return None if v == "" else v


class DentistCreate(CamelModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    license_number: str = Field(..., min_length=1, max_length=100)
    specialization: Optional[str] = None
    clinic: Optional[str] = None
    clinic_phone: Optional[str] = None
    clinic_email: Optional[EmailStr] = None

    @field_validator("clinic_email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class DentistUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    specialization: Optional[str] = None
    clinic: Optional[str] = None
    clinic_phone: Optional[str] = None
    clinic_email: Optional[EmailStr] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def names_not_null(cls, v):
        return reject_null(v)

    @field_validator("clinic_email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class DentistFilters(CamelModel):
    status: Optional[DentistStatus] = None
    specialization: Optional[str] = None
    search: Optional[str] = None


class DentistResponse(CamelModel):
    id: str
    user_id: str
    license_number: str
    specialization: Optional[str] = None
    clinic: Optional[str] = None
    clinic_phone: Optional[str] = None
    clinic_email: Optional[str] = None
    status: DentistStatus
    verification_date: Optional[datetime] = None
    verified_by: Optional[str] = None
    created_at: datetime
    user: Optional[UserResponse] = None


class ApplicationReview(CamelModel):
    """Review decision; SUBMITTED is not a reviewer outcome."""
    status: ApplicationStatus
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def reviewable_status(cls, v):
        if v == ApplicationStatus.SUBMITTED:
            raise ValueError("Status must be one of APPROVED, REJECTED, UNDER_REVIEW")
        return v


class ApplicationFilters(CamelModel):
    status: Optional[ApplicationStatus] = None
    dentist_id: Optional[str] = None


class ApplicationResponse(CamelModel):
    id: str
    dentist_id: str
    status: ApplicationStatus
    submitted_date: datetime
    reviewed_date: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    notes: Optional[str] = None


class ApplicationDetailResponse(ApplicationResponse):
    dentist: Optional[DentistResponse] = None


class DentistDetailResponse(DentistResponse):
    applications: List[ApplicationResponse] = []
