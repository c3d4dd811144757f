"""
Case management API endpoints.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from dental_lab.core.config import settings
from dental_lab.dependencies import (
    get_case_service, get_current_identity, get_db, pagination_params, require_role
)
from dental_lab.models.enums import CasePriority, CaseStatus, RoleName
from dental_lab.schemas.case import (
    CaseCreate, CaseDetailResponse, CaseFileResponse, CaseFileUrl, CaseFilters,
    CaseNoteCreate, CaseNoteResponse, CaseResponse, CaseUpdate
)
from dental_lab.schemas.common import ApiResponse, Page
from dental_lab.schemas.workflow import StageResponse
from dental_lab.services.case_service import CaseService
from dental_lab.services.token_service import TokenIdentity
from dental_lab.services.workflow_service import WorkflowService

router = APIRouter()


@router.post("", response_model=ApiResponse[CaseResponse], status_code=status.HTTP_201_CREATED)
async def create_case(
    payload: CaseCreate,
    identity: TokenIdentity = Depends(get_current_identity),
    case_service: CaseService = Depends(get_case_service)
):
    """Open a new case."""
    case = case_service.create_case(payload, identity.id)
    return ApiResponse(data=CaseResponse.model_validate(case), message="Case created successfully")


@router.get("", response_model=ApiResponse[Page[CaseResponse]])
async def list_cases(
    status_filter: Optional[CaseStatus] = Query(None, alias="status"),
    priority: Optional[CasePriority] = Query(None),
    dentist_id: Optional[str] = Query(None, alias="dentistId"),
    assigned_to_id: Optional[str] = Query(None, alias="assignedToId"),
    department_id: Optional[str] = Query(None, alias="departmentId"),
    search: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    paging: Tuple[int, int] = Depends(pagination_params),
    case_service: CaseService = Depends(get_case_service)
):
    """List cases, newest first."""
    page, limit = paging
    filters = CaseFilters(
        status=status_filter,
        priority=priority,
        dentist_id=dentist_id,
        assigned_to_id=assigned_to_id,
        department_id=department_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    cases, total = case_service.list_cases(filters, page, limit)
    return ApiResponse(data=Page.build([CaseResponse.model_validate(c) for c in cases], total, page, limit))


@router.get("/search", response_model=ApiResponse[Page[CaseResponse]])
async def search_cases(
    q: Optional[str] = Query(None),
    paging: Tuple[int, int] = Depends(pagination_params),
    case_service: CaseService = Depends(get_case_service)
):
    page, limit = paging
    cases, total = case_service.search_cases(q, page, limit)
    return ApiResponse(data=Page.build([CaseResponse.model_validate(c) for c in cases], total, page, limit))


@router.get("/{case_id}", response_model=ApiResponse[CaseDetailResponse])
async def get_case(
    case_id: str,
    case_service: CaseService = Depends(get_case_service)
):
    """Get a case with its files, notes and workflow stages."""
    case = case_service.get_case(case_id)
    return ApiResponse(data=CaseDetailResponse.model_validate(case))


@router.put("/{case_id}", response_model=ApiResponse[CaseResponse])
async def update_case(
    case_id: str,
    payload: CaseUpdate,
    identity: TokenIdentity = Depends(get_current_identity),
    case_service: CaseService = Depends(get_case_service)
):
    case = case_service.update_case(case_id, payload, identity.id)
    return ApiResponse(data=CaseResponse.model_validate(case), message="Case updated successfully")


@router.delete("/{case_id}", response_model=ApiResponse[None])
async def delete_case(
    case_id: str,
    identity: TokenIdentity = Depends(require_role(RoleName.ADMIN)),
    case_service: CaseService = Depends(get_case_service)
):
    case_service.delete_case(case_id, identity.id)
    return ApiResponse(message="Case deleted successfully")


# Files

@router.post("/{case_id}/files", response_model=ApiResponse[CaseFileResponse], status_code=status.HTTP_201_CREATED)
async def upload_case_file(
    case_id: str,
    file: UploadFile = File(...),
    case_service: CaseService = Depends(get_case_service)
):
    """Attach a file to a case."""
    case_file = case_service.add_case_file(case_id, file)
    return ApiResponse(data=CaseFileResponse.model_validate(case_file), message="File uploaded successfully")


@router.get("/{case_id}/files", response_model=ApiResponse[List[CaseFileResponse]])
async def list_case_files(
    case_id: str,
    case_service: CaseService = Depends(get_case_service)
):
    files = case_service.list_case_files(case_id)
    return ApiResponse(data=[CaseFileResponse.model_validate(f) for f in files])


@router.get("/{case_id}/files/{file_id}/url", response_model=ApiResponse[CaseFileUrl])
async def get_case_file_url(
    case_id: str,
    file_id: str,
    case_service: CaseService = Depends(get_case_service)
):
    """Time-limited download URL for an attachment."""
    expires_in = settings.SIGNED_URL_EXPIRE_SECONDS
    url = case_service.get_case_file_url(case_id, file_id, expires_in)
    return ApiResponse(data=CaseFileUrl(url=url, expires_in=expires_in))


@router.delete("/{case_id}/files/{file_id}", response_model=ApiResponse[None])
async def delete_case_file(
    case_id: str,
    file_id: str,
    case_service: CaseService = Depends(get_case_service)
):
    case_service.delete_case_file(case_id, file_id)
    return ApiResponse(message="File deleted successfully")


# Notes

@router.post("/{case_id}/notes", response_model=ApiResponse[CaseNoteResponse], status_code=status.HTTP_201_CREATED)
async def add_case_note(
    case_id: str,
    payload: CaseNoteCreate,
    identity: TokenIdentity = Depends(get_current_identity),
    case_service: CaseService = Depends(get_case_service)
):
    note = case_service.add_case_note(case_id, identity.id, payload.content, payload.is_internal)
    return ApiResponse(data=CaseNoteResponse.model_validate(note), message="Note added successfully")


@router.get("/{case_id}/notes", response_model=ApiResponse[List[CaseNoteResponse]])
async def list_case_notes(
    case_id: str,
    include_internal: bool = Query(False, alias="includeInternal"),
    case_service: CaseService = Depends(get_case_service)
):
    notes = case_service.list_case_notes(case_id, include_internal)
    return ApiResponse(data=[CaseNoteResponse.model_validate(n) for n in notes])


@router.get("/{case_id}/workflow", response_model=ApiResponse[List[StageResponse]])
async def get_case_workflow(
    case_id: str,
    db: Session = Depends(get_db),
    case_service: CaseService = Depends(get_case_service)
):
    """Workflow stages of a case, by sequence."""
    case = case_service.get_case(case_id)
    stages = WorkflowService(db).list_stages(case.id)
    return ApiResponse(data=[StageResponse.model_validate(s) for s in stages])
