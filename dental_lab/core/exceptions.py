"""
Application error types.

Services raise these; the handlers registered in ``dental_lab.main`` turn them
into the ``{success: false, message, code, details}`` envelope.
"""
from typing import Any, Optional


class AppError(Exception):
    """Base application error carrying an HTTP status and a stable code."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def __repr__(self):
        return f"<{type(self).__name__}(code='{self.code}', status={self.status_code}, message='{self.message}')>"


class ValidationFailedError(AppError):
    """Malformed or missing request fields."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    """Referenced entity does not exist."""
    status_code = 404
    code = "NOT_FOUND"


class UnauthorizedError(AppError):
    """No authenticated user, or credentials rejected."""
    status_code = 401
    code = "UNAUTHORIZED"


class InvalidTokenError(UnauthorizedError):
    code = "INVALID_TOKEN"


class TokenExpiredError(UnauthorizedError):
    code = "TOKEN_EXPIRED"


class ForbiddenError(AppError):
    """Authenticated but lacking the required role."""
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(AppError):
    """Duplicate unique key (email, license number, setting key, ...)."""
    status_code = 400
    code = "CONFLICT"


class DomainRuleError(AppError):
    """A domain invariant would be violated by the request."""
    status_code = 400
    code = "DOMAIN_RULE_VIOLATION"
