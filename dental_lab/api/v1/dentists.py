"""
Dentist administration API endpoints.
"""
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from dental_lab.dependencies import get_db, pagination_params, require_role
from dental_lab.models.enums import ApplicationStatus, DentistStatus, RoleName
from dental_lab.schemas.common import ApiResponse, Page
from dental_lab.schemas.dentist import (
    ApplicationDetailResponse, ApplicationFilters, ApplicationResponse, ApplicationReview,
    DentistCreate, DentistDetailResponse, DentistFilters, DentistResponse, DentistUpdate
)
from dental_lab.services.dentist_service import DentistService
from dental_lab.services.token_service import TokenIdentity

router = APIRouter()

admin_only = require_role(RoleName.ADMIN)


@router.post("", response_model=ApiResponse[DentistDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_dentist(
    payload: DentistCreate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Provision a dentist account with a pending application."""
    dentist = DentistService(db).create_dentist(payload)
    return ApiResponse(data=DentistDetailResponse.model_validate(dentist), message="Dentist profile created successfully")


@router.get("", response_model=ApiResponse[Page[DentistResponse]])
async def list_dentists(
    status_filter: Optional[DentistStatus] = Query(None, alias="status"),
    specialization: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    paging: Tuple[int, int] = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    page, limit = paging
    filters = DentistFilters(status=status_filter, specialization=specialization, search=search)
    dentists, total = DentistService(db).list_dentists(filters, page, limit)
    return ApiResponse(data=Page.build([DentistResponse.model_validate(d) for d in dentists], total, page, limit))


@router.get("/applications", response_model=ApiResponse[Page[ApplicationDetailResponse]])
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    dentist_id: Optional[str] = Query(None, alias="dentistId"),
    paging: Tuple[int, int] = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    page, limit = paging
    filters = ApplicationFilters(status=status_filter, dentist_id=dentist_id)
    applications, total = DentistService(db).list_applications(filters, page, limit)
    return ApiResponse(data=Page.build(
        [ApplicationDetailResponse.model_validate(a) for a in applications], total, page, limit
    ))


@router.put("/applications/{application_id}/review", response_model=ApiResponse[ApplicationResponse])
async def review_application(
    application_id: str,
    payload: ApplicationReview,
    identity: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Approve, reject or move an application under review."""
    application = DentistService(db).review_application(application_id, identity.id, payload)
    return ApiResponse(data=ApplicationResponse.model_validate(application), message="Application reviewed successfully")


@router.get("/{dentist_id}", response_model=ApiResponse[DentistDetailResponse])
async def get_dentist(dentist_id: str, db: Session = Depends(get_db)):
    dentist = DentistService(db).get_dentist(dentist_id)
    return ApiResponse(data=DentistDetailResponse.model_validate(dentist))


@router.put("/{dentist_id}", response_model=ApiResponse[DentistResponse])
async def update_dentist(
    dentist_id: str,
    payload: DentistUpdate,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    dentist = DentistService(db).update_dentist(dentist_id, payload)
    return ApiResponse(data=DentistResponse.model_validate(dentist), message="Dentist profile updated successfully")


@router.delete("/{dentist_id}", response_model=ApiResponse[DentistResponse])
async def deactivate_dentist(
    dentist_id: str,
    _: TokenIdentity = Depends(admin_only),
    db: Session = Depends(get_db)
):
    """Deactivate a dentist; the account is kept."""
    dentist = DentistService(db).deactivate_dentist(dentist_id)
    return ApiResponse(data=DentistResponse.model_validate(dentist), message="Dentist deactivated successfully")
