"""
Authentication service: registration, login, sessions and password flows.
"""
from datetime import timedelta
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from dental_lab.core.config import settings
from dental_lab.core.exceptions import (
    ConflictError, ForbiddenError, InvalidTokenError, NotFoundError,
    UnauthorizedError, ValidationFailedError
)
from dental_lab.core.logging import get_logger, security_logger
from dental_lab.core.security import (
    generate_reset_token, get_password_hash, hash_reset_token, verify_password
)
from dental_lab.models.enums import RoleName
from dental_lab.models.user import Role, User
from dental_lab.schemas.auth import AuthTokens, RegisterRequest, UserPublic
from dental_lab.services.email_service import EmailService, dispatch
from dental_lab.services.token_service import TokenService
from dental_lab.utils.helpers import utcnow

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthService:
    """Service for authentication and credential management."""

    def __init__(
        self,
        db: Session,
        token_service: TokenService,
        email_service: EmailService,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.db = db
        self.tokens = token_service
        self.email = email_service
        self.background_tasks = background_tasks

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return self.db.query(User).filter(User.email == email.lower()).first()

    def _issue_pair(self, user: User) -> AuthTokens:
        """Mint an access token and persist a refresh session (caller commits)."""
        access_token = self.tokens.issue_access_token(user.id, user.email, user.role_names)
        refresh_token = self.tokens.issue_refresh_token(self.db, user.id, commit=False)
        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.tokens.access_expires_in,
            user=UserPublic.model_validate(user),
        )

    def register(self, data: RegisterRequest) -> AuthTokens:
        """Create a USER account and sign it in."""
        if self.get_user_by_email(data.email):
            raise ConflictError("Email already registered", code="EMAIL_ALREADY_EXISTS")

        user = User(
            email=data.email.lower(),
            password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )
        # Registration proceeds without a role when the USER role is not seeded
        default_role = self.db.query(Role).filter(Role.name == RoleName.USER.value).first()
        if default_role:
            user.roles.append(default_role)

        self.db.add(user)
        self.db.flush()
        tokens = self._issue_pair(user)
        self.db.commit()

        security_logger.log_registration(user.id, user.email)
        dispatch(self.background_tasks, self.email.send_welcome_email, user.email, user.first_name)
        return tokens

    def login(self, email: str, password: str) -> AuthTokens:
        """Verify credentials and issue a new token pair.

        Unknown email, passwordless account and wrong password are
        indistinguishable to the caller.
        """
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password):
            security_logger.log_login_attempt(email, False, "invalid credentials")
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE, code="INVALID_CREDENTIALS")

        if not user.is_active:
            security_logger.log_login_attempt(email, False, "account inactive")
            raise ForbiddenError("Account is inactive", code="ACCOUNT_INACTIVE")

        self.tokens.purge_expired_sessions(self.db, commit=False)
        user.last_login = utcnow()
        tokens = self._issue_pair(user)
        self.db.commit()

        security_logger.log_login_attempt(email, True)
        return tokens

    def logout(self, user_id: str) -> int:
        """Revoke every refresh session of the user."""
        revoked = self.tokens.revoke_all_sessions(self.db, user_id)
        security_logger.log_logout(user_id, revoked)
        return revoked

    def refresh_token(self, token: str) -> AuthTokens:
        """Rotate a refresh token: the consumed session is deleted and a new pair issued."""
        invalid = UnauthorizedError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
        try:
            user_id = self.tokens.verify_refresh_token(token)
        except InvalidTokenError:
            security_logger.log_token_refresh(None, False)
            raise invalid

        session = self.tokens.find_live_session(self.db, token)
        user = self.get_user_by_id(user_id)
        if session is None or session.user_id != user_id or user is None or not user.is_active:
            security_logger.log_token_refresh(user_id, False)
            raise invalid

        self.db.delete(session)
        tokens = self._issue_pair(user)
        self.db.commit()

        security_logger.log_token_refresh(user_id, True)
        return tokens

    def get_current_user(self, user_id: str) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    def update_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """Change the password; existing sessions are left intact."""
        user = self.get_current_user(user_id)
        if not verify_password(old_password, user.password):
            raise UnauthorizedError("Current password is incorrect", code="INVALID_PASSWORD")

        user.password = get_password_hash(new_password)
        self.db.commit()
        security_logger.log_password_change(user.id, "update")

    def forgot_password(self, email: str) -> str:
        """Start a reset for an existing account; the reply never reveals whether it exists."""
        user = self.get_user_by_email(email)
        if user:
            raw_token, hashed_token = generate_reset_token()
            user.reset_password_token = hashed_token
            user.reset_password_expires = utcnow() + timedelta(
                minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
            )
            self.db.commit()
            dispatch(self.background_tasks, self.email.send_password_reset_email, user.email, raw_token)
            logger.info(f"Password reset requested for user {user.id}")
        return FORGOT_PASSWORD_MESSAGE

    def reset_password_with_token(self, token: str, new_password: str) -> None:
        """Complete a reset; the token is single use."""
        user = self.db.query(User).filter(
            User.reset_password_token == hash_reset_token(token),
            User.reset_password_expires > utcnow()
        ).first()
        if not user:
            raise ValidationFailedError("Invalid or expired reset token", code="INVALID_RESET_TOKEN")

        user.password = get_password_hash(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        self.db.commit()
        security_logger.log_password_change(user.id, "reset")
