"""
Case lifecycle: CRUD, status side effects, attachments and notes.
"""
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from dental_lab.core.config import settings
from dental_lab.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from dental_lab.core.logging import audit_logger, get_logger
from dental_lab.models.case import Case, CaseFile, CaseNote
from dental_lab.models.dentist import DentistProfile
from dental_lab.models.enums import CaseStatus
from dental_lab.models.staff import Department
from dental_lab.models.user import User
from dental_lab.schemas.case import CaseCreate, CaseFilters, CaseUpdate
from dental_lab.services.email_service import EmailService, dispatch
from dental_lab.services.storage_service import StorageService
from dental_lab.utils.file_utils import build_case_file_key, validate_file_upload
from dental_lab.utils.helpers import generate_case_number, utcnow

logger = get_logger(__name__)


class CaseService:
    """Service for managing dental lab cases."""

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        storage_service: Optional[StorageService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.db = db
        self.email = email_service
        self.storage = storage_service
        self.background_tasks = background_tasks

    # Lookups

    def _get_case_or_404(self, case_id: str) -> Case:
        case = self.db.query(Case).filter(Case.id == case_id).first()
        if not case:
            raise NotFoundError("Case not found", code="CASE_NOT_FOUND")
        return case

    def _ensure_references(
        self,
        assigned_to_id: Optional[str] = None,
        department_id: Optional[str] = None
    ) -> Optional[User]:
        assignee = None
        if assigned_to_id:
            assignee = self.db.query(User).filter(User.id == assigned_to_id).first()
            if not assignee:
                raise NotFoundError("Assigned user not found", code="USER_NOT_FOUND")
        if department_id:
            if not self.db.query(Department).filter(Department.id == department_id).first():
                raise NotFoundError("Department not found", code="DEPARTMENT_NOT_FOUND")
        return assignee

    # CRUD

    def create_case(self, data: CaseCreate, created_by_id: str) -> Case:
        """Open a new case in RECEIVED status for an existing dentist."""
        dentist = self.db.query(DentistProfile).filter(DentistProfile.id == data.dentist_id).first()
        if not dentist:
            raise NotFoundError("Dentist not found", code="DENTIST_NOT_FOUND")
        self._ensure_references(data.assigned_to_id, data.department_id)

        case = Case(
            case_number=generate_case_number(),
            created_by_id=created_by_id,
            status=CaseStatus.RECEIVED,
            **data.model_dump()
        )
        self.db.add(case)
        self.db.commit()
        self.db.refresh(case)

        audit_logger.log_data_change(created_by_id, "cases", case.id, "create", {"caseNumber": case.case_number})
        return case

    def get_case(self, case_id: str) -> Case:
        """Case with files, notes and stages loaded."""
        case = self.db.query(Case).options(
            selectinload(Case.files),
            selectinload(Case.notes),
            selectinload(Case.stages)
        ).filter(Case.id == case_id).first()
        if not case:
            raise NotFoundError("Case not found", code="CASE_NOT_FOUND")
        return case

    def list_cases(self, filters: CaseFilters, page: int, limit: int) -> Tuple[List[Case], int]:
        query = self.db.query(Case)

        if filters.status:
            query = query.filter(Case.status == filters.status)
        if filters.priority:
            query = query.filter(Case.priority == filters.priority)
        if filters.dentist_id:
            query = query.filter(Case.dentist_id == filters.dentist_id)
        if filters.assigned_to_id:
            query = query.filter(Case.assigned_to_id == filters.assigned_to_id)
        if filters.department_id:
            query = query.filter(Case.department_id == filters.department_id)
        if filters.search:
            term = f"%{filters.search}%"
            query = query.filter(or_(
                Case.patient_name.ilike(term),
                Case.case_number.ilike(term),
                Case.description.ilike(term)
            ))
        if filters.start_date:
            query = query.filter(Case.created_at >= filters.start_date)
        if filters.end_date:
            query = query.filter(Case.created_at <= filters.end_date)

        total = query.count()
        cases = query.order_by(Case.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return cases, total

    def search_cases(self, term: Optional[str], page: int, limit: int) -> Tuple[List[Case], int]:
        if not term or not term.strip():
            raise ValidationFailedError("Search term is required", code="MISSING_SEARCH_TERM")
        return self.list_cases(CaseFilters(search=term.strip()), page, limit)

    def update_case(self, case_id: str, data: CaseUpdate, user_id: Optional[str] = None) -> Case:
        """Apply the fields present in ``data``.

        Any status may follow any other. Setting COMPLETED stamps
        ``completed_date`` every time.
        """
        case = self._get_case_or_404(case_id)
        changes = data.model_dump(exclude_unset=True)

        assignee = self._ensure_references(changes.get("assigned_to_id"), changes.get("department_id"))
        assignment_changed = (
            "assigned_to_id" in changes and changes["assigned_to_id"] != case.assigned_to_id
        )
        old_status = case.status

        for field, value in changes.items():
            setattr(case, field, value)

        completed = changes.get("status") == CaseStatus.COMPLETED
        if completed:
            case.completed_date = utcnow()

        self.db.commit()
        self.db.refresh(case)

        if "status" in changes and changes["status"] != old_status:
            audit_logger.log_status_transition("cases", case.id, old_status.value, case.status.value)
        audit_logger.log_data_change(user_id, "cases", case.id, "update", sorted(changes))

        if self.email:
            if assignment_changed and assignee:
                dispatch(
                    self.background_tasks, self.email.send_case_assignment_email,
                    assignee.email, case.patient_name, case.case_number
                )
            if completed and case.dentist and case.dentist.user:
                dispatch(
                    self.background_tasks, self.email.send_case_completion_email,
                    case.dentist.user.email, case.patient_name, case.case_number
                )
        return case

    def delete_case(self, case_id: str, user_id: Optional[str] = None) -> None:
        """Hard delete; files, notes and stages go with it. Invoiced cases are kept."""
        case = self._get_case_or_404(case_id)
        if case.invoices:
            raise ConflictError("Cannot delete a case that has invoices", code="CASE_HAS_INVOICES")
        storage_keys = [f.storage_key for f in case.files]

        self.db.delete(case)
        self.db.commit()
        audit_logger.log_data_change(user_id, "cases", case_id, "delete")

        if self.storage:
            for key in storage_keys:
                self.storage.delete(key)

    # Files

    def add_case_file(self, case_id: str, upload: UploadFile) -> CaseFile:
        """Validate and store an attachment under ``cases/{case_id}/``."""
        self._get_case_or_404(case_id)
        size = validate_file_upload(upload, settings.ALLOWED_FILE_TYPES, settings.MAX_FILE_SIZE)

        key = build_case_file_key(case_id, upload.filename)
        content = upload.file.read()
        self.storage.upload(key, content, upload.content_type)

        case_file = CaseFile(
            case_id=case_id,
            filename=upload.filename,
            file_size=size,
            file_type=upload.content_type,
            storage_key=key
        )
        self.db.add(case_file)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.storage.delete(key)
            raise
        self.db.refresh(case_file)
        return case_file

    def list_case_files(self, case_id: str) -> List[CaseFile]:
        self._get_case_or_404(case_id)
        return self.db.query(CaseFile).filter(
            CaseFile.case_id == case_id
        ).order_by(CaseFile.uploaded_at.desc()).all()

    def _get_case_file_or_404(self, case_id: str, file_id: str) -> CaseFile:
        case_file = self.db.query(CaseFile).filter(
            CaseFile.id == file_id,
            CaseFile.case_id == case_id
        ).first()
        if not case_file:
            raise NotFoundError("File not found", code="FILE_NOT_FOUND")
        return case_file

    def get_case_file_url(self, case_id: str, file_id: str, expires_in: Optional[int] = None) -> str:
        case_file = self._get_case_file_or_404(case_id, file_id)
        return self.storage.signed_url(case_file.storage_key, expires_in)

    def delete_case_file(self, case_id: str, file_id: str) -> None:
        case_file = self._get_case_file_or_404(case_id, file_id)
        key = case_file.storage_key
        self.db.delete(case_file)
        self.db.commit()
        self.storage.delete(key)

    # Notes

    def add_case_note(self, case_id: str, user_id: str, content: str, is_internal: bool = False) -> CaseNote:
        self._get_case_or_404(case_id)
        note = CaseNote(case_id=case_id, user_id=user_id, content=content, is_internal=is_internal)
        self.db.add(note)
        self.db.commit()
        self.db.refresh(note)
        return note

    def list_case_notes(self, case_id: str, include_internal: bool = False) -> List[CaseNote]:
        """Notes newest first; internal notes only when asked for."""
        self._get_case_or_404(case_id)
        query = self.db.query(CaseNote).filter(CaseNote.case_id == case_id)
        if not include_internal:
            query = query.filter(CaseNote.is_internal.is_(False))
        return query.order_by(CaseNote.created_at.desc()).all()
