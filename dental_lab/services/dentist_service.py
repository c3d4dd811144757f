"""
Dentist provisioning and onboarding application review.
"""
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from dental_lab.core.exceptions import ConflictError, NotFoundError
from dental_lab.core.logging import audit_logger, get_logger
from dental_lab.models.dentist import DentistApplication, DentistProfile
from dental_lab.models.enums import ApplicationStatus, DentistStatus, RoleName
from dental_lab.models.user import Role, User
from dental_lab.schemas.dentist import (
    ApplicationFilters, ApplicationReview, DentistCreate, DentistFilters, DentistUpdate
)
from dental_lab.utils.helpers import utcnow

logger = get_logger(__name__)

# Profile status that follows each review outcome
REVIEW_OUTCOMES = {
    ApplicationStatus.APPROVED: DentistStatus.VERIFIED,
    ApplicationStatus.REJECTED: DentistStatus.INACTIVE,
    ApplicationStatus.UNDER_REVIEW: DentistStatus.PENDING_VERIFICATION,
}

USER_FIELDS = ("first_name", "last_name", "phone")


class DentistService:
    """Service for dentist profiles and their applications."""

    def __init__(self, db: Session):
        self.db = db

    def _role(self, name: str) -> Optional[Role]:
        return self.db.query(Role).filter(Role.name == name).first()

    def get_dentist(self, dentist_id: str) -> DentistProfile:
        dentist = self.db.query(DentistProfile).options(
            selectinload(DentistProfile.applications)
        ).filter(DentistProfile.id == dentist_id).first()
        if not dentist:
            raise NotFoundError("Dentist not found", code="DENTIST_NOT_FOUND")
        return dentist

    def create_dentist(self, data: DentistCreate) -> DentistProfile:
        """Create the user, profile and a SUBMITTED application together."""
        email = data.email.lower()
        if self.db.query(User.id).filter(User.email == email).first():
            raise ConflictError("User with this email already exists", code="USER_EXISTS")
        if self.db.query(DentistProfile.id).filter(DentistProfile.license_number == data.license_number).first():
            raise ConflictError("License number already registered", code="LICENSE_EXISTS")

        try:
            # Provisioned accounts have no password until one is set through reset
            user = User(
                email=email,
                password="",
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
            )
            role = self._role(RoleName.DENTIST.value)
            if role:
                user.roles.append(role)
            self.db.add(user)
            self.db.flush()

            dentist = DentistProfile(
                user_id=user.id,
                license_number=data.license_number,
                specialization=data.specialization,
                clinic=data.clinic,
                clinic_phone=data.clinic_phone,
                clinic_email=data.clinic_email,
                status=DentistStatus.PENDING_VERIFICATION,
            )
            dentist.applications.append(DentistApplication(status=ApplicationStatus.SUBMITTED))
            self.db.add(dentist)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(dentist)
        audit_logger.log_data_change(None, "dentists", dentist.id, "create", {"licenseNumber": dentist.license_number})
        return dentist

    def list_dentists(self, filters: DentistFilters, page: int, limit: int) -> Tuple[List[DentistProfile], int]:
        query = self.db.query(DentistProfile).join(User, DentistProfile.user_id == User.id)
        if filters.status:
            query = query.filter(DentistProfile.status == filters.status)
        if filters.specialization:
            query = query.filter(DentistProfile.specialization.ilike(f"%{filters.specialization}%"))
        if filters.search:
            term = f"%{filters.search}%"
            query = query.filter(or_(
                User.first_name.ilike(term),
                User.last_name.ilike(term),
                User.email.ilike(term),
                DentistProfile.license_number.ilike(term),
                DentistProfile.clinic.ilike(term)
            ))

        total = query.count()
        dentists = query.order_by(DentistProfile.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return dentists, total

    def update_dentist(self, dentist_id: str, data: DentistUpdate) -> DentistProfile:
        """Update profile and user fields in one transaction."""
        dentist = self.get_dentist(dentist_id)
        changes = data.model_dump(exclude_unset=True)

        for field, value in changes.items():
            target = dentist.user if field in USER_FIELDS else dentist
            setattr(target, field, value)

        self.db.commit()
        self.db.refresh(dentist)
        audit_logger.log_data_change(None, "dentists", dentist.id, "update", sorted(changes))
        return dentist

    def deactivate_dentist(self, dentist_id: str) -> DentistProfile:
        dentist = self.get_dentist(dentist_id)
        dentist.user.is_active = False
        dentist.status = DentistStatus.INACTIVE
        self.db.commit()
        self.db.refresh(dentist)
        audit_logger.log_data_change(None, "dentists", dentist.id, "deactivate")
        return dentist

    def list_applications(
        self, filters: ApplicationFilters, page: int, limit: int
    ) -> Tuple[List[DentistApplication], int]:
        query = self.db.query(DentistApplication).options(selectinload(DentistApplication.dentist))
        if filters.status:
            query = query.filter(DentistApplication.status == filters.status)
        if filters.dentist_id:
            query = query.filter(DentistApplication.dentist_id == filters.dentist_id)

        total = query.count()
        applications = query.order_by(
            DentistApplication.submitted_date.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return applications, total

    def review_application(
        self, application_id: str, reviewer_id: str, review: ApplicationReview
    ) -> DentistApplication:
        """Record a review decision and move the dentist profile with it.

        Application and profile are written in one transaction; if either
        write fails neither is kept.
        """
        application = self.db.query(DentistApplication).filter(
            DentistApplication.id == application_id
        ).first()
        if not application:
            raise NotFoundError("Application not found", code="APPLICATION_NOT_FOUND")

        now = utcnow()
        old_status = application.status
        try:
            application.status = review.status
            application.reviewed_date = now
            application.reviewed_by = reviewer_id
            application.notes = review.notes

            dentist = application.dentist
            dentist.status = REVIEW_OUTCOMES[review.status]
            if review.status == ApplicationStatus.APPROVED:
                dentist.verification_date = now
                dentist.verified_by = reviewer_id

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Review of application {application_id} failed; changes rolled back")
            raise

        self.db.refresh(application)
        audit_logger.log_status_transition(
            "dentist_applications", application.id, old_status.value, application.status.value
        )
        audit_logger.log_data_change(reviewer_id, "dentists", application.dentist_id, "review", {"status": review.status.value})
        return application
