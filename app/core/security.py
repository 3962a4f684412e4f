"""Credentials: bcrypt password hashes, practitioner JWTs and link tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 32 random bytes, about 43 URL-safe characters
PUBLIC_LINK_TOKEN_BYTES = 32


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    lifetime: timedelta | None = None,
    claims: dict[str, Any] | None = None,
) -> str:
    """Sign an access token whose ``sub`` is the practitioner id.

    ``lifetime`` defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``. ``claims`` are
    added to the payload but cannot replace ``sub``, ``exp`` or ``iat``.
    """
    now = datetime.now(timezone.utc)
    if lifetime is None:
        lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    payload: dict[str, Any] = dict(claims or {})
    payload.update(sub=subject, type="access", iat=now, exp=now + lifetime)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Payload of a valid token, or None for a bad signature or expired token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def generate_public_link_token() -> str:
    return secrets.token_urlsafe(PUBLIC_LINK_TOKEN_BYTES)
