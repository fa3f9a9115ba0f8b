"""
Authentication dependencies for FastAPI endpoints.

Builds the per-request AuthService and extracts the session token from
the Authorization header or the ``token`` cookie.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.config import settings
from schoolhub.core.database import get_db
from schoolhub.core.exceptions import InvalidTokenError
from schoolhub.core.security import (
    PasswordHasher,
    TokenIssuer,
    get_password_hasher,
    get_token_issuer,
)
from schoolhub.modules.auth.reset_tokens import ResetTokenManager
from schoolhub.modules.auth.service import AuthService

SESSION_COOKIE = "token"

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@lru_cache
def get_reset_token_manager() -> ResetTokenManager:
    return ResetTokenManager(ttl=timedelta(minutes=settings.reset_token_expire_minutes))


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
    reset_tokens: ResetTokenManager = Depends(get_reset_token_manager),
) -> AuthService:
    return AuthService(db, hasher=hasher, tokens=tokens, reset_tokens=reset_tokens)


async def get_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Session token from ``Authorization: Bearer`` or, failing that, the cookie.

    Raises:
        HTTPException 401: If neither carries a token
    """
    if credentials and credentials.credentials:
        return credentials.credentials

    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token

    error = InvalidTokenError()
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=error.to_detail(),
        headers={"WWW-Authenticate": "Bearer"},
    )
