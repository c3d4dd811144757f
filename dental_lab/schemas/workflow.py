"""
Workflow stage schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from dental_lab.models.enums import StageStatus
from dental_lab.schemas.common import CamelModel, reject_null


class StageCreate(CamelModel):
    stage_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    sequence: int = Field(..., ge=1)
    assigned_to: Optional[str] = None


class StageUpdate(CamelModel):
    stage_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    sequence: Optional[int] = Field(None, ge=1)
    status: Optional[StageStatus] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("stage_name", "sequence", "status", mode="before")
    @classmethod
    def required_fields_not_null(cls, v):
        return reject_null(v)


class StageComplete(CamelModel):
    notes: Optional[str] = None


class StageResponse(CamelModel):
    id: str
    case_id: str
    stage_name: str
    description: Optional[str] = None
    sequence: int
    status: StageStatus
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorkflowStats(CamelModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    blocked: int
    skipped: int
    progress: int
