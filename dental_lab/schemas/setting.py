"""
System settings schemas.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import Field

from dental_lab.schemas.common import CamelModel


class SettingCreate(CamelModel):
    key: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., min_length=1)
    description: Optional[str] = None


class SettingUpdate(CamelModel):
    value: str = Field(..., min_length=1)
    description: Optional[str] = None


class SettingValue(CamelModel):
    key: str = Field(..., min_length=1)
    value: str


class BulkSettingsUpdate(CamelModel):
    settings: List[SettingValue] = Field(..., min_length=1)


class SettingResponse(CamelModel):
    id: str
    key: str
    value: str
    description: Optional[str] = None
    updated_at: datetime
