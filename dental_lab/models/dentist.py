"""
Dentist profile and application models.
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.models.enums import DentistStatus, ApplicationStatus
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class DentistProfile(Base):
    """Practising dentist who submits cases to the lab."""
    __tablename__ = "dentists"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    license_number = Column(String(100), unique=True, nullable=False)
    specialization = Column(String(255))
    clinic = Column(String(255))
    clinic_phone = Column(String(30))
    clinic_email = Column(String(255))

    status = Column(
        Enum(DentistStatus, native_enum=False, length=30),
        default=DentistStatus.PENDING_VERIFICATION,
        nullable=False
    )
    verification_date = Column(DateTime)
    verified_by = Column(String(36), ForeignKey("users.id"))

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    applications = relationship(
        "DentistApplication", back_populates="dentist", cascade="all, delete-orphan"
    )
    cases = relationship("Case", back_populates="dentist")

    def __repr__(self):
        return f"<DentistProfile(id={self.id}, license_number='{self.license_number}', status={self.status})>"

    @property
    def is_verified(self) -> bool:
        return self.status == DentistStatus.VERIFIED


class DentistApplication(Base):
    """Onboarding application reviewed by an administrator."""
    __tablename__ = "dentist_applications"

    id = Column(String(36), primary_key=True, default=new_id)
    dentist_id = Column(String(36), ForeignKey("dentists.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(ApplicationStatus, native_enum=False, length=30),
        default=ApplicationStatus.SUBMITTED,
        nullable=False
    )
    submitted_date = Column(DateTime, default=utcnow, nullable=False)
    reviewed_date = Column(DateTime)
    reviewed_by = Column(String(36), ForeignKey("users.id"))
    notes = Column(Text)

    dentist = relationship("DentistProfile", back_populates="applications")

    def __repr__(self):
        return f"<DentistApplication(id={self.id}, dentist_id={self.dentist_id}, status={self.status})>"
