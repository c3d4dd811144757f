"""
Security utilities for authentication and authorization.
"""
import hashlib
import secrets
from typing import Optional, Tuple
from jose import jwt
from passlib.context import CryptContext
from dental_lab.core.config import settings

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash.

    Accounts provisioned without a password carry an empty hash and never match.
    """
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def encode_jwt(claims: dict, secret: str) -> str:
    """Sign a claim set with the configured algorithm."""
    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def decode_jwt(token: str, secret: str, audience: Optional[str] = None) -> dict:
    """Decode and verify a JWT.

    Raises ``jose.ExpiredSignatureError`` for expired tokens and
    ``jose.JWTError`` for every other failure.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        audience=audience,
        issuer=settings.JWT_ISSUER
    )


def hash_reset_token(raw_token: str) -> str:
    """Hash a password reset token for storage."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """Generate a password reset token.

    Returns ``(raw_token, hashed_token)``; only the hash is persisted.
    """
    raw_token = secrets.token_hex(32)
    return raw_token, hash_reset_token(raw_token)
