"""
User, role and permission administration.
"""
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from dental_lab.core.exceptions import ConflictError, DomainRuleError, NotFoundError, ValidationFailedError
from dental_lab.core.logging import audit_logger, get_logger
from dental_lab.core.security import get_password_hash
from dental_lab.models.user import Permission, Role, User, user_roles
from dental_lab.schemas.user import RoleCreate, RoleUpdate, UserCreate, UserUpdate

logger = get_logger(__name__)


class UserService:
    """Administrative management of users, roles and permissions."""

    def __init__(self, db: Session):
        self.db = db

    # Users

    def get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    def _roles_by_ids(self, role_ids: List[str]) -> List[Role]:
        wanted = set(role_ids)
        roles = self.db.query(Role).filter(Role.id.in_(wanted)).all() if wanted else []
        if len(roles) != len(wanted):
            missing = sorted(wanted - {role.id for role in roles})
            raise NotFoundError("Role not found", code="ROLE_NOT_FOUND", details={"roleIds": missing})
        return roles

    def create_user(self, data: UserCreate) -> User:
        email = data.email.lower()
        if self.db.query(User.id).filter(User.email == email).first():
            raise ConflictError("Email already registered", code="EMAIL_ALREADY_EXISTS")

        user = User(
            email=email,
            password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )
        if data.role_ids:
            user.roles = self._roles_by_ids(data.role_ids)

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        audit_logger.log_data_change(None, "users", user.id, "create", {"roles": user.role_names})
        return user

    def list_users(self, page: int, limit: int, is_active: Optional[bool] = None) -> Tuple[List[User], int]:
        query = self.db.query(User)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return users, total

    def search_users(self, term: Optional[str], page: int, limit: int) -> Tuple[List[User], int]:
        if not term or not term.strip():
            raise ValidationFailedError("Search term is required", code="MISSING_SEARCH_TERM")
        like = f"%{term.strip()}%"
        query = self.db.query(User).filter(or_(
            User.email.ilike(like),
            User.first_name.ilike(like),
            User.last_name.ilike(like)
        ))
        total = query.count()
        users = query.order_by(User.email.asc()).offset((page - 1) * limit).limit(limit).all()
        return users, total

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        """Partial update; ``role_ids`` replaces the whole role set."""
        user = self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True)
        role_ids = changes.pop("role_ids", None)

        for field, value in changes.items():
            setattr(user, field, value)

        if role_ids is not None:
            roles = self._roles_by_ids(role_ids)
            self.db.execute(user_roles.delete().where(user_roles.c.user_id == user.id))
            if roles:
                self.db.execute(user_roles.insert(), [
                    {"user_id": user.id, "role_id": role.id} for role in roles
                ])
            self.db.expire(user, ["roles"])

        self.db.commit()
        self.db.refresh(user)
        audit_logger.log_data_change(None, "users", user.id, "update", sorted(changes) + (["roles"] if role_ids is not None else []))
        return user

    def deactivate_user(self, user_id: str) -> User:
        """Users are never hard-deleted."""
        user = self.get_user(user_id)
        user.is_active = False
        self.db.commit()
        self.db.refresh(user)
        audit_logger.log_data_change(None, "users", user.id, "deactivate")
        return user

    # Roles

    def get_role(self, role_id: str) -> Role:
        role = self.db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise NotFoundError("Role not found", code="ROLE_NOT_FOUND")
        return role

    def list_roles(self) -> List[Role]:
        return self.db.query(Role).order_by(Role.name.asc()).all()

    def _permissions_by_ids(self, permission_ids: List[str]) -> List[Permission]:
        wanted = set(permission_ids)
        permissions = self.db.query(Permission).filter(Permission.id.in_(wanted)).all() if wanted else []
        if len(permissions) != len(wanted):
            missing = sorted(wanted - {p.id for p in permissions})
            raise NotFoundError("Permission not found", code="PERMISSION_NOT_FOUND", details={"permissionIds": missing})
        return permissions

    def create_role(self, data: RoleCreate) -> Role:
        if self.db.query(Role.id).filter(Role.name == data.name).first():
            raise ConflictError("Role already exists", code="ROLE_ALREADY_EXISTS")

        role = Role(name=data.name, description=data.description)
        for permission in self._permissions_by_ids(data.permission_ids or []):
            # Linking the same permission twice is a no-op
            if permission not in role.permissions:
                role.permissions.append(permission)

        self.db.add(role)
        self.db.commit()
        self.db.refresh(role)
        audit_logger.log_data_change(None, "roles", role.id, "create", {"name": role.name})
        return role

    def update_role(self, role_id: str, data: RoleUpdate) -> Role:
        """Partial update; ``permission_ids`` replaces the whole permission set."""
        role = self.get_role(role_id)
        changes = data.model_dump(exclude_unset=True)
        permission_ids = changes.pop("permission_ids", None)

        new_name = changes.get("name")
        if new_name and new_name != role.name:
            if self.db.query(Role.id).filter(Role.name == new_name).first():
                raise ConflictError("Role already exists", code="ROLE_ALREADY_EXISTS")

        for field, value in changes.items():
            setattr(role, field, value)
        if permission_ids is not None:
            role.permissions = self._permissions_by_ids(permission_ids)

        self.db.commit()
        self.db.refresh(role)
        audit_logger.log_data_change(None, "roles", role.id, "update", sorted(changes))
        return role

    def delete_role(self, role_id: str) -> None:
        """Delete a role that no user holds."""
        role = self.get_role(role_id)
        assigned = self.db.query(user_roles).filter(user_roles.c.role_id == role.id).count()
        if assigned:
            raise DomainRuleError(
                "Cannot delete role with assigned users",
                code="ROLE_HAS_USERS",
                details={"assignedUsers": assigned}
            )
        self.db.delete(role)
        self.db.commit()
        audit_logger.log_data_change(None, "roles", role_id, "delete")

    # Permissions

    def list_permissions(self) -> List[Permission]:
        return self.db.query(Permission).order_by(Permission.name.asc()).all()
