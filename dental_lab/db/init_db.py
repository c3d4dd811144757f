"""
Database initialization: tables, default roles and permissions, optional admin.
"""
from sqlalchemy.orm import Session

from dental_lab.core.config import settings
from dental_lab.core.logging import get_logger
from dental_lab.core.security import get_password_hash
from dental_lab.db.session import SessionLocal, create_tables
from dental_lab.models.enums import RoleName
from dental_lab.models.user import Permission, Role, User

logger = get_logger(__name__)

DEFAULT_ROLES = {
    RoleName.USER.value: "Self-registered user",
    RoleName.ADMIN.value: "Full administrative access",
    RoleName.DENTIST.value: "Dentist submitting cases",
    RoleName.STAFF.value: "Lab staff member",
}

# (resource, action) pairs; permission name is "resource:action"
DEFAULT_PERMISSIONS = [
    ("cases", "read"), ("cases", "write"), ("cases", "delete"),
    ("workflow", "read"), ("workflow", "write"),
    ("billing", "read"), ("billing", "write"),
    ("dentists", "read"), ("dentists", "write"),
    ("staff", "read"), ("staff", "write"),
    ("users", "manage"), ("settings", "manage"),
]

ROLE_PERMISSIONS = {
    RoleName.ADMIN.value: [f"{resource}:{action}" for resource, action in DEFAULT_PERMISSIONS],
    RoleName.STAFF.value: ["cases:read", "cases:write", "workflow:read", "workflow:write", "billing:read"],
    RoleName.DENTIST.value: ["cases:read", "cases:write", "workflow:read", "billing:read"],
    RoleName.USER.value: [],
}


def seed_database(db: Session) -> None:
    """Insert missing default roles, permissions and the optional admin user."""
    logger.info("Seeding database with initial data...")

    permissions = {p.name: p for p in db.query(Permission).all()}
    for resource, action in DEFAULT_PERMISSIONS:
        name = f"{resource}:{action}"
        if name not in permissions:
            permission = Permission(name=name, resource=resource, action=action,
                                    description=f"{action.capitalize()} {resource}")
            db.add(permission)
            permissions[name] = permission

    roles = {r.name: r for r in db.query(Role).all()}
    for name, description in DEFAULT_ROLES.items():
        if name not in roles:
            role = Role(name=name, description=description)
            role.permissions = [permissions[p] for p in ROLE_PERMISSIONS[name]]
            db.add(role)
            roles[name] = role
            logger.info(f"Created role: {name}")

    if settings.SEED_ADMIN_EMAIL and settings.SEED_ADMIN_PASSWORD:
        email = settings.SEED_ADMIN_EMAIL.lower()
        if not db.query(User).filter(User.email == email).first():
            admin = User(
                email=email,
                password=get_password_hash(settings.SEED_ADMIN_PASSWORD),
                first_name="System",
                last_name="Administrator",
                is_active=True,
            )
            admin.roles = [roles[RoleName.ADMIN.value]]
            db.add(admin)
            logger.info("Created default admin user")

    db.commit()
    logger.info("Database seeding completed successfully")


def init_db() -> None:
    """Initialize the database."""
    logger.info("Initializing database...")
    create_tables()

    db = SessionLocal()
    try:
        seed_database(db)
    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding database: {e}")
        raise
    finally:
        db.close()
    logger.info("Database initialization completed")


if __name__ == "__main__":
    init_db()
