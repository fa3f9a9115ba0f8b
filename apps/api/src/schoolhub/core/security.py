"""
Security Utilities

Password hashing (bcrypt) and session token signing (JWT).

Both are plain objects configured at construction; ``get_password_hasher``
and ``get_token_issuer`` build the process-wide instances from settings
and double as FastAPI dependencies.
"""

import logging
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import bcrypt
from jose import JWTError, jwt

from schoolhub.core.config import settings
from schoolhub.core.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


class PasswordHasher:
    """One-way salted password hashing with a configurable bcrypt cost."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Hash a password with a fresh random salt."""
        return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a password against a bcrypt digest. Malformed digests never match."""
        try:
            return bcrypt.checkpw(plaintext.encode(), digest.encode())
        except (ValueError, TypeError):
            return False


class TokenIssuer:
    """
    Signs and validates bearer session tokens.

    Tokens carry the user id in ``sub`` and an ``exp`` claim. Every
    validation failure raises the same InvalidTokenError so callers cannot
    tell which check failed.
    """

    def __init__(self, secret: str, expires_in: timedelta, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.expires_in = expires_in
        self.algorithm = algorithm

    def issue(self, user_id: str) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.expires_in,
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> str:
        """Return the user id a token was issued for."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Rejected session token: {type(e).__name__}")
            raise InvalidTokenError() from None

        user_id = payload.get("sub")
        if not user_id or payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError()
        return user_id


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        secret=settings.jwt_secret_key,
        expires_in=timedelta(days=settings.jwt_expire_days),
        algorithm=settings.jwt_algorithm,
    )
