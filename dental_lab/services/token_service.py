"""
Access/refresh token issuance and verification.
"""
import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from dental_lab.core.config import settings
from dental_lab.core.exceptions import InvalidTokenError, TokenExpiredError
from dental_lab.core.logging import get_logger
from dental_lab.core.security import decode_jwt, encode_jwt
from dental_lab.models.user import RefreshSession
from dental_lab.utils.helpers import utcnow

logger = get_logger(__name__)

REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class TokenIdentity:
    """Identity carried by a verified access token."""
    id: str
    email: str
    roles: List[str] = field(default_factory=list)

    def has_role(self, *names: str) -> bool:
        return bool(set(names) & set(self.roles))


def _session_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class TokenService:
    """Mints and verifies JWTs; refresh tokens are backed by session rows."""

    def __init__(
        self,
        access_secret: str = settings.JWT_SECRET,
        refresh_secret: str = settings.JWT_REFRESH_SECRET,
        access_ttl: timedelta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl: timedelta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @property
    def access_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_ttl.total_seconds())

    def issue_access_token(
        self,
        user_id: str,
        email: str,
        roles: List[str],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create a signed access token; verification needs no database lookup."""
        now = utcnow()
        claims = {
            "userId": user_id,
            "email": email,
            "roles": list(roles),
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self.access_ttl),
            "iss": settings.JWT_ISSUER,
            "aud": settings.JWT_AUDIENCE,
        }
        return encode_jwt(claims, self.access_secret)

    def issue_refresh_token(self, db: Session, user_id: str, commit: bool = True) -> str:
        """Create a refresh token and persist its session row with the same expiry."""
        now = utcnow()
        expires_at = now + self.refresh_ttl
        claims = {
            "userId": user_id,
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires_at,
            "iss": settings.JWT_ISSUER,
        }
        token = encode_jwt(claims, self.refresh_secret)

        db.add(RefreshSession(
            user_id=user_id,
            token_hash=_session_hash(token),
            expires_at=expires_at,
        ))
        if commit:
            db.commit()
        return token

    def verify_access_token(self, token: str) -> TokenIdentity:
        try:
            payload = decode_jwt(token, self.access_secret, audience=settings.JWT_AUDIENCE)
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired", code="TOKEN_EXPIRED")
        except JWTError:
            raise InvalidTokenError("Invalid token", code="INVALID_TOKEN")

        user_id = payload.get("userId")
        email = payload.get("email")
        roles = payload.get("roles")
        if not isinstance(user_id, str) or not isinstance(email, str) or not isinstance(roles, list):
            raise InvalidTokenError("Invalid token", code="INVALID_TOKEN")
        return TokenIdentity(id=user_id, email=email, roles=[str(role) for role in roles])

    def verify_refresh_token(self, token: str) -> str:
        """Return the user id of a structurally valid refresh token."""
        try:
            payload = decode_jwt(token, self.refresh_secret)
        except JWTError:
            # Expiry is folded into the generic failure for refresh tokens
            raise InvalidTokenError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

        user_id = payload.get("userId")
        if payload.get("type") != REFRESH_TOKEN_TYPE or not isinstance(user_id, str):
            raise InvalidTokenError("Invalid refresh token", code="INVALID_REFRESH_TOKEN")
        return user_id

    def find_live_session(self, db: Session, token: str) -> Optional[RefreshSession]:
        return db.query(RefreshSession).filter(
            RefreshSession.token_hash == _session_hash(token),
            RefreshSession.expires_at > utcnow()
        ).first()

    def revoke_all_sessions(self, db: Session, user_id: str, commit: bool = True) -> int:
        """Delete every session of a user in one statement."""
        deleted = db.query(RefreshSession).filter(
            RefreshSession.user_id == user_id
        ).delete(synchronize_session=False)
        if commit:
            db.commit()
        return deleted

    def purge_expired_sessions(self, db: Session, commit: bool = True) -> int:
        """Delete sessions past their expiry."""
        deleted = db.query(RefreshSession).filter(
            RefreshSession.expires_at <= utcnow()
        ).delete(synchronize_session=False)
        if commit:
            db.commit()
        if deleted:
            logger.info(f"Purged {deleted} expired refresh sessions")
        return deleted
