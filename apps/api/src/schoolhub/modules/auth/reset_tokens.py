"""
Password Reset Tokens

Single-use, short-lived tokens for resetting a password without a session.

- The raw token (20 random bytes, hex-encoded) is handed to the caller once
  for emailing and is never stored.
- Only its SHA-256 hash and an absolute expiry are persisted on the user.
- Consuming a token sets the new password and clears both fields in one
  conditional write, so a token cannot be replayed, even concurrently.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.exceptions import TokenNotFoundOrExpiredError
from schoolhub.modules.users.models import User
from schoolhub.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

RESET_TOKEN_BYTES = 20
RESET_TOKEN_TTL = timedelta(minutes=10)


@dataclass(frozen=True)
class ResetToken:
    """A freshly generated reset token. ``raw_token`` must only be emailed."""

    raw_token: str
    token_hash: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"ResetToken(token_hash={self.token_hash[:8]}..., expires_at={self.expires_at})"


class ResetTokenManager:
    """Generates and consumes password reset tokens."""

    def __init__(self, ttl: timedelta = RESET_TOKEN_TTL, nbytes: int = RESET_TOKEN_BYTES):
        self.ttl = ttl
        self.nbytes = nbytes

    @staticmethod
    def hash_token(raw_token: str) -> str:
        """Hex-encoded SHA-256 of a raw token."""
        return hashlib.sha256(raw_token.encode()).hexdigest()

    def generate(self) -> ResetToken:
        raw_token = secrets.token_hex(self.nbytes)
        return ResetToken(
            raw_token=raw_token,
            token_hash=self.hash_token(raw_token),
            expires_at=datetime.now(UTC) + self.ttl,
        )

    async def consume(self, db: AsyncSession, raw_token: str, password_hash: str) -> User:
        """
        Use ``raw_token`` to set ``password_hash`` and close the reset window.

        Raises:
            TokenNotFoundOrExpiredError: If no user holds this token, it has expired,
                or another request consumed it first
        """
        token_hash = self.hash_token(raw_token)
        user = await UserRepository.get_by_reset_token(db, token_hash)
        if user is None:
            logger.warning("Password reset attempted with unknown or expired token")
            raise TokenNotFoundOrExpiredError()

        consumed = await UserRepository.consume_reset_token(db, user, token_hash, password_hash)
        if consumed is None:
            logger.warning(f"Reset token for user {user.id} was consumed concurrently")
            raise TokenNotFoundOrExpiredError()
        return consumed
