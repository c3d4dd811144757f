"""
FastAPI dependencies for dependency injection.
"""
from typing import Optional, Tuple

from fastapi import BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from dental_lab.core.exceptions import ForbiddenError, UnauthorizedError
from dental_lab.core.logging import get_logger, security_logger
from dental_lab.db.session import get_db
from dental_lab.services.auth_service import AuthService
from dental_lab.services.billing_service import BillingService
from dental_lab.services.case_service import CaseService
from dental_lab.services.email_service import EmailService
from dental_lab.services.storage_service import StorageService
from dental_lab.services.token_service import TokenIdentity, TokenService
from dental_lab.utils.helpers import clamp_pagination

logger = get_logger(__name__)

__all__ = [
    "get_db", "get_token_service", "get_email_service", "get_storage_service",
    "get_auth_service", "get_case_service", "get_billing_service",
    "get_token_identity", "get_optional_identity", "get_current_identity",
    "require_role", "pagination_params",
]


# Process-wide collaborators live on app.state

def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


# Request-scoped services; their emails run as the request's background tasks

def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    email_service: EmailService = Depends(get_email_service)
) -> AuthService:
    return AuthService(db, token_service, email_service, background_tasks)


def get_case_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    storage_service: StorageService = Depends(get_storage_service)
) -> CaseService:
    return CaseService(db, email_service, storage_service, background_tasks)


def get_billing_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
) -> BillingService:
    return BillingService(db, email_service, background_tasks)


# Authentication

def _bearer_token(request: Request) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``; None when absent or malformed."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def get_token_identity(
    request: Request,
    token_service: TokenService = Depends(get_token_service)
) -> TokenIdentity:
    """Verify the bearer token and return the identity it carries."""
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedError("No token provided", code="NO_TOKEN")
    identity = token_service.verify_access_token(token)
    request.state.identity = identity
    return identity


def get_optional_identity(
    request: Request,
    token_service: TokenService = Depends(get_token_service)
) -> Optional[TokenIdentity]:
    """Identity if an Authorization header is present, otherwise None.

    A header that is present but invalid still fails.
    """
    if not request.headers.get("Authorization"):
        return None
    return get_token_identity(request, token_service)


def get_current_identity(
    identity: Optional[TokenIdentity] = Depends(get_optional_identity)
) -> TokenIdentity:
    """Require an authenticated identity."""
    if identity is None:
        raise UnauthorizedError("Authentication required", code="UNAUTHORIZED")
    return identity


def require_role(*roles: str):
    """Dependency factory: pass when the identity holds any of ``roles``."""
    required = [getattr(role, "value", role) for role in roles]

    def _check(
        request: Request,
        identity: TokenIdentity = Depends(get_token_identity)
    ) -> TokenIdentity:
        if not identity.has_role(*required):
            security_logger.log_permission_denied(
                identity.id,
                f"{request.method} {request.url.path}",
                f"requires one of {required}, has {identity.roles}"
            )
            raise ForbiddenError(
                f"Insufficient permissions. Required roles: {', '.join(required)}",
                code="FORBIDDEN"
            )
        return identity

    return _check


# Query helpers

def pagination_params(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None)
) -> Tuple[int, int]:
    """Page floored to 1; limit clamped to [1, 100], default 20."""
    return clamp_pagination(page, limit)
