"""
User, role and permission models for authentication and authorization.
"""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, Table
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.utils.helpers import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """User model for authentication and authorization."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Empty for accounts provisioned by an administrator before first login
    password = Column(String(255), nullable=False, default="")
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30))
    avatar = Column(String(500))

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)

    reset_password_token = Column(String(64), index=True)
    reset_password_expires = Column(DateTime)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    roles = relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")
    sessions = relationship("RefreshSession", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def role_names(self) -> list:
        return [role.name for role in self.roles]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_role(self, *names: str) -> bool:
        """Check whether the user holds any of the given roles."""
        return bool(set(names) & set(self.role_names))


class Role(Base):
    """Named permission bundle assigned to users."""
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    users = relationship("User", secondary=user_roles, back_populates="roles")
    permissions = relationship(
        "Permission", secondary=role_permissions, back_populates="roles", lazy="selectin"
    )

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"


class Permission(Base):
    """Fine-grained permission, grouped into roles."""
    __tablename__ = "permissions"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    resource = Column(String(100))
    action = Column(String(50))

    roles = relationship("Role", secondary=role_permissions, back_populates="permissions")

    def __repr__(self):
        return f"<Permission(id={self.id}, name='{self.name}')>"


class RefreshSession(Base):
    """One row per issued refresh token, keyed by its SHA-256; deleting it revokes the token."""
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<RefreshSession(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"
