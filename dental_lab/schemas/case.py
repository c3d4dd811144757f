"""
Case, case file and case note schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import EmailStr, Field, field_validator

from dental_lab.models.enums import CasePriority, CaseStatus
from dental_lab.schemas.common import CamelModel, UTCDateTime, reject_null
from dental_lab.schemas.workflow import StageResponse


def _blank_to_none(v):
    return None if v == "" else v


class CaseCreate(CamelModel):
    dentist_id: str = Field(..., min_length=1)
    patient_name: str = Field(..., min_length=1, max_length=255)
    patient_email: Optional[EmailStr] = None
    patient_phone: Optional[str] = None
    patient_dob: Optional[UTCDateTime] = Field(None, alias="patientDOB")
    description: str = Field(..., min_length=1)
    specifications: Optional[str] = None
    priority: CasePriority = CasePriority.MEDIUM
    due_date: Optional[UTCDateTime] = None
    department_id: Optional[str] = None
    assigned_to_id: Optional[str] = None

    @field_validator("patient_email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class CaseUpdate(CamelModel):
    """Partial update: only fields present in the request are written."""
    patient_name: Optional[str] = Field(None, min_length=1, max_length=255)
    patient_email: Optional[EmailStr] = None
    patient_phone: Optional[str] = None
    patient_dob: Optional[UTCDateTime] = Field(None, alias="patientDOB")
    description: Optional[str] = None
    specifications: Optional[str] = None
    priority: Optional[CasePriority] = None
    status: Optional[CaseStatus] = None
    due_date: Optional[UTCDateTime] = None
    assigned_to_id: Optional[str] = None
    department_id: Optional[str] = None

    @field_validator("patient_name", "priority", "status", mode="before")
    @classmethod
    def required_fields_not_null(cls, v):
        return reject_null(v)

    @field_validator("patient_email", mode="before")
    @classmethod
    def empty_email(cls, v):
        return _blank_to_none(v)


class CaseFilters(CamelModel):
    status: Optional[CaseStatus] = None
    priority: Optional[CasePriority] = None
    dentist_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    department_id: Optional[str] = None
    search: Optional[str] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class CaseFileResponse(CamelModel):
    id: str
    case_id: str
    filename: str
    file_size: int
    file_type: str
    storage_key: str
    uploaded_at: datetime


class CaseFileUrl(CamelModel):
    url: str
    expires_in: int


class CaseNoteCreate(CamelModel):
    content: str = Field(..., min_length=1)
    is_internal: bool = False


class CaseNoteResponse(CamelModel):
    id: str
    case_id: str
    user_id: str
    content: str
    is_internal: bool
    created_at: datetime


class CaseResponse(CamelModel):
    id: str
    case_number: str
    dentist_id: str
    assigned_to_id: Optional[str] = None
    department_id: Optional[str] = None
    created_by_id: Optional[str] = None
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    patient_dob: Optional[datetime] = Field(None, alias="patientDOB")
    description: Optional[str] = None
    specifications: Optional[str] = None
    priority: CasePriority
    status: CaseStatus
    due_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CaseDetailResponse(CaseResponse):
    """Case with its files, notes (newest first) and stages (by sequence)."""
    files: List[CaseFileResponse] = []
    notes: List[CaseNoteResponse] = []
    stages: List[StageResponse] = []
