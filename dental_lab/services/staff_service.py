"""
Staff provisioning and administration.
"""
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from dental_lab.core.exceptions import ConflictError, NotFoundError
from dental_lab.core.logging import audit_logger
from dental_lab.models.enums import RoleName, StaffStatus
from dental_lab.models.staff import Department, StaffProfile
from dental_lab.models.user import Role, User
from dental_lab.schemas.staff import StaffCreate, StaffFilters, StaffUpdate
from dental_lab.utils.helpers import utcnow

USER_FIELDS = ("first_name", "last_name", "phone")


class StaffService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_department(self, department_id: Optional[str]) -> None:
        if department_id and not self.db.query(Department.id).filter(Department.id == department_id).first():
            raise NotFoundError("Department not found", code="DEPARTMENT_NOT_FOUND")

    def get_staff(self, staff_id: str) -> StaffProfile:
        staff = self.db.query(StaffProfile).filter(StaffProfile.id == staff_id).first()
        if not staff:
            raise NotFoundError("Staff member not found", code="STAFF_NOT_FOUND")
        return staff

    def create_staff(self, data: StaffCreate) -> StaffProfile:
        """Create the user account and ACTIVE staff profile together."""
        email = data.email.lower()
        if self.db.query(User.id).filter(User.email == email).first():
            raise ConflictError("User with this email already exists", code="USER_EXISTS")
        if self.db.query(StaffProfile.id).filter(StaffProfile.employee_id == data.employee_id).first():
            raise ConflictError("Employee ID already exists", code="EMPLOYEE_ID_EXISTS")
        self._ensure_department(data.department_id)

        try:
            user = User(
                email=email,
                password="",
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
            )
            role = self.db.query(Role).filter(Role.name == RoleName.STAFF.value).first()
            if role:
                user.roles.append(role)
            self.db.add(user)
            self.db.flush()

            staff = StaffProfile(
                user_id=user.id,
                employee_id=data.employee_id,
                position=data.position,
                department_id=data.department_id,
                hire_date=data.hire_date or utcnow(),
                salary=data.salary,
                status=StaffStatus.ACTIVE,
            )
            self.db.add(staff)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(staff)
        audit_logger.log_data_change(None, "staff", staff.id, "create", {"employeeId": staff.employee_id})
        return staff

    def list_staff(self, filters: StaffFilters, page: int, limit: int) -> Tuple[List[StaffProfile], int]:
        query = self.db.query(StaffProfile).join(User, StaffProfile.user_id == User.id)
        if filters.status:
            query = query.filter(StaffProfile.status == filters.status)
        if filters.department_id:
            query = query.filter(StaffProfile.department_id == filters.department_id)
        if filters.search:
            term = f"%{filters.search}%"
            query = query.filter(or_(
                User.first_name.ilike(term),
                User.last_name.ilike(term),
                User.email.ilike(term),
                StaffProfile.employee_id.ilike(term),
                StaffProfile.position.ilike(term)
            ))

        total = query.count()
        staff = query.order_by(StaffProfile.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return staff, total

    def update_staff(self, staff_id: str, data: StaffUpdate) -> StaffProfile:
        staff = self.get_staff(staff_id)
        changes = data.model_dump(exclude_unset=True)
        self._ensure_department(changes.get("department_id"))
        old_status = staff.status

        for field, value in changes.items():
            target = staff.user if field in USER_FIELDS else staff
            setattr(target, field, value)

        self.db.commit()
        self.db.refresh(staff)
        if "status" in changes and staff.status != old_status:
            audit_logger.log_status_transition("staff", staff.id, old_status.value, staff.status.value)
        return staff

    def deactivate_staff(self, staff_id: str) -> StaffProfile:
        """Disable the account and mark the profile TERMINATED."""
        staff = self.get_staff(staff_id)
        staff.user.is_active = False
        staff.status = StaffStatus.TERMINATED
        self.db.commit()
        self.db.refresh(staff)
        audit_logger.log_data_change(None, "staff", staff.id, "deactivate")
        return staff
