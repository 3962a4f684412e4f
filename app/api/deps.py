"""Request dependencies shared by the v1 routers."""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.user import User
from app.services.auth import AuthService
from app.services.link_store import SQLPublicLinkStore
from app.services.public_link import PublicLinkRedemption
from app.services.storage import LocalStorageBackend, StorageBackend

bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    session: DbSession,
) -> User:
    """Practitioner named by the bearer token.

    A missing, invalid or expired token, or one for a deleted account, is a
    401. A disabled account is a 403.
    """
    payload = decode_access_token(credentials.credentials) if credentials else None
    if not payload or not payload.get("sub"):
        raise _unauthorized()

    user = await AuthService(session).get_by_id(payload["sub"])
    if user is None or user.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )
    return user


def get_link_redemption(session: DbSession) -> PublicLinkRedemption:
    ttl = settings.public_link_ttl_days
    return PublicLinkRedemption(
        store=SQLPublicLinkStore(session),
        link_ttl=timedelta(days=ttl) if ttl is not None else None,
    )


def get_storage() -> StorageBackend:
    return LocalStorageBackend(settings.storage_base_path)


def get_client_ip(request: Request) -> str | None:
    """Originating client address for audit rows (first X-Forwarded-For hop)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


CurrentUser = Annotated[User, Depends(get_current_user)]
LinkRedemption = Annotated[PublicLinkRedemption, Depends(get_link_redemption)]
Storage = Annotated[StorageBackend, Depends(get_storage)]
