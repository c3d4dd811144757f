"""
Staff profile and department models.
"""
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Numeric
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.models.enums import StaffStatus
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class Department(Base):
    """Lab department; referenced by cases and staff."""
    __tablename__ = "departments"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}')>"


class StaffProfile(Base):
    """Lab employee attached to a user account."""
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    employee_id = Column(String(50), unique=True, nullable=False)
    position = Column(String(100), nullable=False)
    department_id = Column(String(36), ForeignKey("departments.id"))
    hire_date = Column(DateTime, default=utcnow, nullable=False)
    salary = Column(Numeric(12, 2))
    status = Column(
        Enum(StaffStatus, native_enum=False, length=20),
        default=StaffStatus.ACTIVE,
        nullable=False
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", lazy="joined")
    department = relationship("Department")

    def __repr__(self):
        return f"<StaffProfile(id={self.id}, employee_id='{self.employee_id}', status={self.status})>"
