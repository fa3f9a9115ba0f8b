"""
Authentication Service Layer

Business logic for accounts and sessions.
Orchestrates the credential store, password hashing, session tokens,
password reset tokens and reset emails.

This module implements:
1. Registration and Login:
   - Duplicate email rejection (pre-check plus unique constraint)
   - Passwords hashed here, before they reach the repository
   - Unknown email and wrong password fail identically

2. Session:
   - Current user lookup from a session token
   - Profile detail updates (name, email)
   - Password change with a fresh session token

3. Password Reset:
   - Reset token generated, hash and expiry stored on the user
   - Raw token emailed; if delivery fails the reset window is closed again
   - Reset consumes the token and clears the window in the same write

Security considerations:
- Plaintext passwords and raw reset tokens are never logged
- Deactivated accounts cannot log in or use existing sessions
- Outstanding session tokens stay valid after a password change
"""

import logging
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.email import build_reset_url, send_password_reset
from schoolhub.core.exceptions import (
    DeliveryError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from schoolhub.core.security import PasswordHasher, TokenIssuer
from schoolhub.modules.auth.reset_tokens import ResetTokenManager
from schoolhub.modules.auth.schemas import RegisterRequest, TokenResponse, UpdateDetailsRequest
from schoolhub.modules.users.models import User
from schoolhub.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_digest(rounds: int) -> str:
    return PasswordHasher(rounds=rounds).hash("not-a-real-password")


class AuthService:
    """
    Authentication operations for a single request.

    Args:
        db: Database session for the request
        hasher: Password hasher
        tokens: Session token issuer
        reset_tokens: Password reset token manager
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        reset_tokens: ResetTokenManager,
    ):
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.reset_tokens = reset_tokens

    def _issue(self, user: User) -> TokenResponse:
        return TokenResponse(access_token=self.tokens.issue(user.id))

    def _burn_verification(self, password: str) -> None:
        # Unknown emails still pay for one bcrypt check
        self.hasher.verify(password, _dummy_digest(self.hasher.rounds))

    async def register(self, data: RegisterRequest) -> TokenResponse:
        """
        Create an account and start a session.

        Raises:
            ValidationError: If the email is already registered
        """
        if await UserRepository.email_exists(self.db, data.email):
            logger.warning(f"Registration rejected, email already registered: {data.email}")
            raise ValidationError("email", "Email is already registered.")

        user = await UserRepository.create(
            self.db,
            name=data.name,
            email=data.email,
            password_hash=self.hasher.hash(data.password),
            role=data.role,
            school_id=str(data.school_id) if data.school_id else None,
        )

        logger.info(f"User registered: {user.email} (role: {user.role.value})")
        return self._issue(user)

    async def login(self, email: str, password: str) -> TokenResponse:
        """
        Verify credentials and start a session.

        Raises:
            InvalidCredentialsError: Unknown email, wrong password or deactivated account
        """
        user = await UserRepository.get_by_email(self.db, email)

        if not user:
            self._burn_verification(password)
            logger.warning(f"Login attempt for non-existent email: {email}")
            raise InvalidCredentialsError()

        if not self.hasher.verify(password, user.password_hash):
            logger.warning(f"Invalid password for user: {email}")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning(f"Login attempt for inactive account: {email}")
            raise InvalidCredentialsError()

        logger.info(f"User logged in: {user.email} (role: {user.role.value})")
        return self._issue(user)

    async def get_current_user(self, token: str) -> User:
        """
        Resolve a session token to its user.

        Raises:
            InvalidTokenError: If the token is invalid or its user is gone or inactive
        """
        user_id = self.tokens.validate(token)
        user = await UserRepository.get_by_id(self.db, user_id)

        if not user or not user.is_active:
            logger.warning(f"Session token for missing or inactive user: {user_id}")
            raise InvalidTokenError()

        return user

    async def update_details(self, token: str, data: UpdateDetailsRequest) -> User:
        """
        Update the supplied profile fields of the session's user.

        Raises:
            InvalidTokenError: If the session token is invalid
            ValidationError: If the new email belongs to another user
        """
        user = await self.get_current_user(token)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in changes and changes["email"] != user.email:
            existing = await UserRepository.get_by_email(self.db, changes["email"])
            if existing and existing.id != user.id:
                logger.warning(f"Email change rejected for {user.id}, address in use")
                raise ValidationError("email", "Email is already registered.")

        if not changes:
            return user

        return await UserRepository.update(self.db, user, **changes)

    async def update_password(
        self,
        token: str,
        current_password: str,
        new_password: str,
    ) -> TokenResponse:
        """
        Change the session user's password and issue a fresh token.

        Raises:
            InvalidTokenError: If the session token is invalid
            InvalidCredentialsError: If the current password does not verify
        """
        user = await self.get_current_user(token)

        if not self.hasher.verify(current_password, user.password_hash):
            logger.warning(f"Password change rejected for {user.id}: wrong current password")
            raise InvalidCredentialsError()

        user = await UserRepository.set_password(self.db, user, self.hasher.hash(new_password))

        logger.info(f"Password updated for user {user.id}")
        return self._issue(user)

    async def forgot_password(self, email: str) -> None:
        """
        Open a password reset window and email the reset link.

        Raises:
            NotFoundError: If no user has this email
            DeliveryError: If the email could not be sent; the window is closed again
        """
        user = await UserRepository.get_by_email(self.db, email)

        if not user:
            logger.warning(f"Password reset requested for non-existent email: {email}")
            raise NotFoundError("There is no user with that email.")

        reset = self.reset_tokens.generate()
        user = await UserRepository.set_reset_token(
            self.db, user, reset.token_hash, reset.expires_at
        )

        try:
            sent = await send_password_reset(
                to_email=user.email,
                name=user.name,
                reset_url=build_reset_url(reset.raw_token),
                expires_minutes=int(self.reset_tokens.ttl.total_seconds() // 60),
            )
        except Exception as e:
            logger.error(f"Exception sending password reset email for user {user.id}: {e}")
            sent = False

        if not sent:
            try:
                await UserRepository.clear_reset_token(self.db, user)
            except Exception:
                # The raw token was never delivered; the window lapses at expiry
                logger.exception(f"Could not close reset window for user {user.id}")
            else:
                logger.error(f"Password reset email not delivered for user {user.id}; window closed")
            raise DeliveryError()

        logger.info(f"Password reset email sent for user {user.id}")

    async def reset_password(self, raw_token: str, new_password: str) -> TokenResponse:
        """
        Set a new password using a reset token and start a session.

        Raises:
            TokenNotFoundOrExpiredError: If the token matches no open reset window
        """
        user = await self.reset_tokens.consume(self.db, raw_token, self.hasher.hash(new_password))

        logger.info(f"Password reset completed for user {user.id}")
        return self._issue(user)
