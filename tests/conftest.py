"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, recreated for every test
- TestClient wired to that database with a recording email service
- Seeded roles and helpers to create users and mint bearer headers
"""
import os
import uuid
from typing import Generator, List

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dental_lab.core.security import get_password_hash
from dental_lab.db.base import Base
from dental_lab.db.init_db import seed_database
from dental_lab.db.session import build_engine, get_db
from dental_lab.main import create_app
from dental_lab.models.dentist import DentistApplication, DentistProfile
from dental_lab.models.enums import ApplicationStatus, DentistStatus
from dental_lab.models.user import Role, User
from dental_lab.services.email_service import EmailService
from dental_lab.services.storage_service import StorageService
from dental_lab.services.token_service import TokenService

TEST_PASSWORD = "Sup3rSecret!"


class RecordingEmailService(EmailService):
    """Email service that keeps messages in memory instead of sending them."""

    def __init__(self):
        super().__init__(server=None)
        self.outbox = []
        self.fail = False

    def send_email(self, to, subject, html, text=None):
        if self.fail:
            raise OSError("SMTP unavailable")
        self.outbox.append({"to": to, "subject": subject, "html": html})

    def subjects(self) -> List[str]:
        return [message["subject"] for message in self.outbox]


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    import dental_lab.models  # noqa: F401
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    """Session with default roles and permissions seeded."""
    session = session_factory()
    seed_database(session)
    yield session
    session.close()


# =============================================================================
# Application
# =============================================================================

@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def storage_service(tmp_path) -> StorageService:
    return StorageService(use_s3=False, upload_dir=str(tmp_path / "uploads"))


@pytest.fixture
def token_service() -> TokenService:
    return TokenService()


@pytest.fixture
def app(db, session_factory, token_service, email_service, storage_service):
    application = create_app(
        token_service=token_service,
        email_service=email_service,
        storage_service=storage_service,
        use_lifespan=False,
    )

    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


# =============================================================================
# Users and tokens
# =============================================================================

@pytest.fixture
def make_user(db):
    """Factory creating an active user with a password and the given roles."""

    def _make_user(roles=("USER",), email=None, password=TEST_PASSWORD, is_active=True) -> User:
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            password=get_password_hash(password) if password else "",
            first_name="Test",
            last_name="User",
            is_active=is_active,
        )
        user.roles = db.query(Role).filter(Role.name.in_(list(roles))).all()
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers(token_service):
    """Build an Authorization header for a user."""

    def _headers(user: User) -> dict:
        token = token_service.issue_access_token(user.id, user.email, user.role_names)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user(roles=("ADMIN",), email="admin@example.com")


@pytest.fixture
def admin_headers(admin_user, auth_headers) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def staff_user(make_user) -> User:
    return make_user(roles=("staff",), email="tech@example.com")


@pytest.fixture
def staff_headers(staff_user, auth_headers) -> dict:
    return auth_headers(staff_user)


@pytest.fixture
def dentist(db, make_user) -> DentistProfile:
    """A verified dentist with a submitted application."""
    user = make_user(roles=("dentist",), email="dr.smile@example.com")
    profile = DentistProfile(
        user_id=user.id,
        license_number=f"LIC-{uuid.uuid4().hex[:6]}",
        specialization="Prosthodontics",
        clinic="Smile Clinic",
        status=DentistStatus.VERIFIED,
    )
    profile.applications.append(DentistApplication(status=ApplicationStatus.SUBMITTED))
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def case_payload(dentist) -> dict:
    return {
        "dentistId": dentist.id,
        "patientName": "Jane Roe",
        "patientEmail": "jane.roe@example.com",
        "description": "Upper crown, tooth 14",
        "priority": "HIGH",
    }


@pytest.fixture
def created_case(client, staff_headers, case_payload) -> dict:
    response = client.post("/api/cases", json=case_payload, headers=staff_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]
