"""
Workflow stages of a case and progress statistics.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from dental_lab.core.exceptions import NotFoundError
from dental_lab.core.logging import audit_logger
from dental_lab.models.case import Case
from dental_lab.models.enums import StageStatus
from dental_lab.models.user import User
from dental_lab.models.workflow import WorkflowStage
from dental_lab.schemas.workflow import StageCreate, StageUpdate, WorkflowStats
from dental_lab.utils.helpers import round_half_up, utcnow


class WorkflowService:
    """Stage status never propagates to the case status, nor back."""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_case(self, case_id: str) -> None:
        if not self.db.query(Case.id).filter(Case.id == case_id).first():
            raise NotFoundError("Case not found", code="CASE_NOT_FOUND")

    def _ensure_assignee(self, user_id: Optional[str]) -> None:
        if user_id and not self.db.query(User.id).filter(User.id == user_id).first():
            raise NotFoundError("Assigned user not found", code="USER_NOT_FOUND")

    def list_stages(self, case_id: str) -> List[WorkflowStage]:
        return self.db.query(WorkflowStage).filter(
            WorkflowStage.case_id == case_id
        ).order_by(WorkflowStage.sequence.asc(), WorkflowStage.created_at.asc()).all()

    def create_stage(self, case_id: str, data: StageCreate) -> WorkflowStage:
        self._ensure_case(case_id)
        self._ensure_assignee(data.assigned_to)
        stage = WorkflowStage(case_id=case_id, status=StageStatus.PENDING, **data.model_dump())
        self.db.add(stage)
        self.db.commit()
        self.db.refresh(stage)
        return stage

    def get_stage(self, stage_id: str) -> WorkflowStage:
        stage = self.db.query(WorkflowStage).filter(WorkflowStage.id == stage_id).first()
        if not stage:
            raise NotFoundError("Workflow stage not found", code="STAGE_NOT_FOUND")
        return stage

    def update_stage(self, stage_id: str, data: StageUpdate) -> WorkflowStage:
        """Partial update.

        Entering IN_PROGRESS stamps ``started_at`` only the first time;
        COMPLETED always restamps ``completed_at``.
        """
        stage = self.get_stage(stage_id)
        changes = data.model_dump(exclude_unset=True)
        self._ensure_assignee(changes.get("assigned_to"))
        old_status = stage.status

        for field, value in changes.items():
            setattr(stage, field, value)

        status = changes.get("status")
        if status == StageStatus.IN_PROGRESS and stage.started_at is None:
            stage.started_at = utcnow()
        elif status == StageStatus.COMPLETED:
            stage.completed_at = utcnow()

        self.db.commit()
        self.db.refresh(stage)
        if status and status != old_status:
            audit_logger.log_status_transition("workflow_stages", stage.id, old_status.value, stage.status.value)
        return stage

    def complete_stage(self, stage_id: str, notes: Optional[str] = None) -> WorkflowStage:
        """Mark COMPLETED; repeating the call just restamps ``completed_at``."""
        stage = self.get_stage(stage_id)
        stage.status = StageStatus.COMPLETED
        stage.completed_at = utcnow()
        if notes is not None:
            stage.notes = notes
        self.db.commit()
        self.db.refresh(stage)
        return stage

    def delete_stage(self, stage_id: str) -> None:
        stage = self.get_stage(stage_id)
        self.db.delete(stage)
        self.db.commit()

    def get_workflow_stats(self, case_id: str) -> WorkflowStats:
        stages = self.list_stages(case_id)
        counts = {status: 0 for status in StageStatus}
        for stage in stages:
            counts[stage.status] += 1

        total = len(stages)
        completed = counts[StageStatus.COMPLETED]
        progress = round_half_up(completed * 100 / total) if total else 0
        return WorkflowStats(
            total=total,
            pending=counts[StageStatus.PENDING],
            in_progress=counts[StageStatus.IN_PROGRESS],
            completed=completed,
            blocked=counts[StageStatus.BLOCKED],
            skipped=counts[StageStatus.SKIPPED],
            progress=progress,
        )
