"""
System settings API endpoints.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from dental_lab.dependencies import get_db, require_role
from dental_lab.models.enums import RoleName
from dental_lab.schemas.common import ApiResponse
from dental_lab.schemas.setting import BulkSettingsUpdate, SettingCreate, SettingResponse, SettingUpdate
from dental_lab.services.settings_service import SettingsService
from dental_lab.services.token_service import TokenIdentity

router = APIRouter()

admin_only = require_role(RoleName.ADMIN)


@router.get("", response_model=ApiResponse[List[SettingResponse]])
async def list_settings(db: Session = Depends(get_db)):
    settings_list = SettingsService(db).list_settings()
    return ApiResponse(data=[SettingResponse.model_validate(s) for s in settings_list])


@router.post("", response_model=ApiResponse[SettingResponse], status_code=status.HTTP_201_CREATED)
async def create_setting(
    payload: SettingCreate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    setting = SettingsService(db).create_setting(payload)
    return ApiResponse(data=SettingResponse.model_validate(setting), message="Setting created successfully")


@router.put("/bulk", response_model=ApiResponse[List[SettingResponse]])
async def bulk_update_settings(
    payload: BulkSettingsUpdate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Update several settings; nothing is written if any key is unknown."""
    updated = SettingsService(db).bulk_update_settings(payload.settings)
    return ApiResponse(data=[SettingResponse.model_validate(s) for s in updated], message="Settings updated successfully")


@router.get("/{key}", response_model=ApiResponse[SettingResponse])
async def get_setting(key: str, db: Session = Depends(get_db)):
    setting = SettingsService(db).get_setting(key)
    return ApiResponse(data=SettingResponse.model_validate(setting))


@router.put("/{key}", response_model=ApiResponse[SettingResponse])
async def update_setting(
    key: str,
    payload: SettingUpdate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    setting = SettingsService(db).update_setting(key, payload)
    return ApiResponse(data=SettingResponse.model_validate(setting), message="Setting updated successfully")


@router.delete("/{key}", response_model=ApiResponse[None])
async def delete_setting(
    key: str,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    SettingsService(db).delete_setting(key)
    return ApiResponse(message="Setting deleted successfully")
