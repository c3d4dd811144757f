"""
Staff administration API endpoints.
"""
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from dental_lab.dependencies import get_db, pagination_params, require_role
from dental_lab.models.enums import RoleName, StaffStatus
from dental_lab.schemas.common import ApiResponse, Page
from dental_lab.schemas.staff import StaffCreate, StaffFilters, StaffResponse, StaffUpdate
from dental_lab.services.staff_service import StaffService
from dental_lab.services.token_service import TokenIdentity

router = APIRouter()

admin_only = require_role(RoleName.ADMIN)


@router.post("", response_model=ApiResponse[StaffResponse], status_code=status.HTTP_201_CREATED)
async def create_staff(
    payload: StaffCreate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    staff = StaffService(db).create_staff(payload)
    return ApiResponse(data=StaffResponse.model_validate(staff), message="Staff created successfully")


@router.get("", response_model=ApiResponse[Page[StaffResponse]])
async def list_staff(
    status_filter: Optional[StaffStatus] = Query(None, alias="status"),
    department_id: Optional[str] = Query(None, alias="departmentId"),
    search: Optional[str] = Query(None),
    paging: Tuple[int, int] = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    page, limit = paging
    filters = StaffFilters(status=status_filter, department_id=department_id, search=search)
    staff, total = StaffService(db).list_staff(filters, page, limit)
    return ApiResponse(data=Page.build([StaffResponse.model_validate(s) for s in staff], total, page, limit))


@router.get("/{staff_id}", response_model=ApiResponse[StaffResponse])
async def get_staff(staff_id: str, db: Session = Depends(get_db)):
    staff = StaffService(db).get_staff(staff_id)
    return ApiResponse(data=StaffResponse.model_validate(staff))


@router.put("/{staff_id}", response_model=ApiResponse[StaffResponse])
async def update_staff(
    staff_id: str,
    payload: StaffUpdate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    staff = StaffService(db).update_staff(staff_id, payload)
    return ApiResponse(data=StaffResponse.model_validate(staff), message="Staff updated successfully")


@router.delete("/{staff_id}", response_model=ApiResponse[StaffResponse])
async def deactivate_staff(
    staff_id: str,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    staff = StaffService(db).deactivate_staff(staff_id)
    return ApiResponse(data=StaffResponse.model_validate(staff), message="Staff deactivated successfully")
