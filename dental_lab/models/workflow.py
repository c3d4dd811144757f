"""
Workflow stage model: ordered sub-tasks within a case.
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Integer
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.models.enums import StageStatus
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class WorkflowStage(Base):
    """A single production step of a case."""
    __tablename__ = "workflow_stages"

    id = Column(String(36), primary_key=True, default=new_id)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    stage_name = Column(String(100), nullable=False)
    description = Column(Text)
    # Not unique: stages may share a sequence number
    sequence = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(StageStatus, native_enum=False, length=20),
        default=StageStatus.PENDING,
        nullable=False
    )
    assigned_to = Column(String(36), ForeignKey("users.id"))
    notes = Column(Text)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    case = relationship("Case", back_populates="stages")

    def __repr__(self):
        return f"<WorkflowStage(id={self.id}, stage_name='{self.stage_name}', status={self.status})>"
