"""
Case model and its attachments: files, notes.
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Integer, Boolean
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.models.enums import CasePriority, CaseStatus
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class Case(Base):
    """A unit of lab work submitted by a dentist for a patient."""
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True, default=new_id)
    case_number = Column(String(50), unique=True, nullable=False, index=True)

    dentist_id = Column(String(36), ForeignKey("dentists.id"), nullable=False, index=True)
    assigned_to_id = Column(String(36), ForeignKey("users.id"))
    department_id = Column(String(36), ForeignKey("departments.id"))
    created_by_id = Column(String(36), ForeignKey("users.id"))

    # Patient
    patient_name = Column(String(255), nullable=False)
    patient_email = Column(String(255))
    patient_phone = Column(String(30))
    patient_dob = Column(DateTime)

    description = Column(Text)
    specifications = Column(Text)
    priority = Column(
        Enum(CasePriority, native_enum=False, length=10),
        default=CasePriority.MEDIUM,
        nullable=False
    )
    status = Column(
        Enum(CaseStatus, native_enum=False, length=20),
        default=CaseStatus.RECEIVED,
        nullable=False,
        index=True
    )
    due_date = Column(DateTime)
    completed_date = Column(DateTime)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    dentist = relationship("DentistProfile", back_populates="cases")
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    department = relationship("Department")
    files = relationship(
        "CaseFile", back_populates="case", cascade="all, delete-orphan",
        order_by="CaseFile.uploaded_at"
    )
    notes = relationship(
        "CaseNote", back_populates="case", cascade="all, delete-orphan",
        order_by="CaseNote.created_at.desc()"
    )
    stages = relationship(
        "WorkflowStage", back_populates="case", cascade="all, delete-orphan",
        order_by="WorkflowStage.sequence"
    )
    invoices = relationship("Invoice", back_populates="case")

    def __repr__(self):
        return f"<Case(id={self.id}, case_number='{self.case_number}', status={self.status})>"


class CaseFile(Base):
    """Attachment stored in object storage under ``cases/{case_id}/``."""
    __tablename__ = "case_files"

    id = Column(String(36), primary_key=True, default=new_id)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)  # Size in bytes
    file_type = Column(String(100), nullable=False)  # MIME type
    storage_key = Column(String(500), nullable=False)
    uploaded_at = Column(DateTime, default=utcnow, nullable=False)

    case = relationship("Case", back_populates="files")

    def __repr__(self):
        return f"<CaseFile(id={self.id}, filename='{self.filename}', case_id={self.case_id})>"


class CaseNote(Base):
    __tablename__ = "case_notes"

    id = Column(String(36), primary_key=True, default=new_id)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_internal = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    case = relationship("Case", back_populates="notes")
    author = relationship("User")

    def __repr__(self):
        return f"<CaseNote(id={self.id}, case_id={self.case_id}, internal={self.is_internal})>"
