"""
Workflow stage API endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from dental_lab.dependencies import get_db
from dental_lab.schemas.common import ApiResponse
from dental_lab.schemas.workflow import StageComplete, StageCreate, StageResponse, StageUpdate, WorkflowStats
from dental_lab.services.workflow_service import WorkflowService

router = APIRouter()


@router.get("/case/{case_id}", response_model=ApiResponse[List[StageResponse]])
async def get_case_workflow(case_id: str, db: Session = Depends(get_db)):
    stages = WorkflowService(db).list_stages(case_id)
    return ApiResponse(data=[StageResponse.model_validate(s) for s in stages])


@router.post("/case/{case_id}/stages", response_model=ApiResponse[StageResponse], status_code=status.HTTP_201_CREATED)
async def create_stage(case_id: str, payload: StageCreate, db: Session = Depends(get_db)):
    """Add a stage to a case."""
    stage = WorkflowService(db).create_stage(case_id, payload)
    return ApiResponse(data=StageResponse.model_validate(stage), message="Workflow stage created successfully")


@router.get("/case/{case_id}/stats", response_model=ApiResponse[WorkflowStats])
async def get_workflow_stats(case_id: str, db: Session = Depends(get_db)):
    """Stage counts per status and completion percentage."""
    return ApiResponse(data=WorkflowService(db).get_workflow_stats(case_id))


@router.get("/stages/{stage_id}", response_model=ApiResponse[StageResponse])
async def get_stage(stage_id: str, db: Session = Depends(get_db)):
    stage = WorkflowService(db).get_stage(stage_id)
    return ApiResponse(data=StageResponse.model_validate(stage))


@router.put("/stages/{stage_id}", response_model=ApiResponse[StageResponse])
async def update_stage(stage_id: str, payload: StageUpdate, db: Session = Depends(get_db)):
    stage = WorkflowService(db).update_stage(stage_id, payload)
    return ApiResponse(data=StageResponse.model_validate(stage), message="Workflow stage updated successfully")


@router.put("/stages/{stage_id}/complete", response_model=ApiResponse[StageResponse])
async def complete_stage(
    stage_id: str,
    payload: Optional[StageComplete] = Body(None),
    db: Session = Depends(get_db)
):
    """Mark a stage completed."""
    notes = payload.notes if payload else None
    stage = WorkflowService(db).complete_stage(stage_id, notes)
    return ApiResponse(data=StageResponse.model_validate(stage), message="Workflow stage completed")


@router.delete("/stages/{stage_id}", response_model=ApiResponse[None])
async def delete_stage(stage_id: str, db: Session = Depends(get_db)):
    WorkflowService(db).delete_stage(stage_id)
    return ApiResponse(message="Workflow stage deleted successfully")
