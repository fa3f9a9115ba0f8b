"""
User Repository

Credential store operations for user management.

Every write is committed immediately as a single-row update. Passwords
arrive here already hashed; this layer never hashes.

Store failures are translated at this boundary:
- unique constraint violations on email -> ValidationError
- connection loss and timeouts -> TransientError
"""

import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.exceptions import TransientError, ValidationError
from schoolhub.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_transient(error: Exception) -> bool:
    if isinstance(error, (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError)):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


@contextlib.asynccontextmanager
async def _store_operation(db: AsyncSession, action: str) -> AsyncIterator[None]:
    """Run a store operation, translating database failures into service errors."""
    try:
        yield
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity violation during {action}: {e.orig}")
        raise ValidationError("email", "Email is already registered.") from e
    except (SQLAlchemyError, TimeoutError) as e:
        if not _is_transient(e):
            raise
        with contextlib.suppress(SQLAlchemyError):
            await db.rollback()
        logger.error(f"Credential store unavailable during {action}: {e}")
        raise TransientError() from e


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.TEACHER,
        school_id: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            name: Display name
            email: Email address (unique)
            password_hash: Already-hashed password
            role: User's role
            school_id: Optional school reference
            is_active: Whether user is active

        Returns:
            Created User instance

        Raises:
            ValidationError: If the email is already registered
            TransientError: If the store is unavailable
        """
        user = User(
            name=name,
            email=_normalize_email(email),
            password_hash=password_hash,
            role=role,
            school_id=school_id,
            is_active=is_active,
        )

        async with _store_operation(db, "user create"):
            db.add(user)
            await db.commit()
            await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """
        Get a user by ID.

        Args:
            db: Database session
            user_id: User UUID

        Returns:
            User instance or None if not found
        """
        async with _store_operation(db, "user lookup"):
            result = await db.execute(select(User).where(User.id == str(user_id)))
            return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """
        Get a user by email address (case-insensitive).

        Args:
            db: Database session
            email: Email address

        Returns:
            User instance or None if not found
        """
        async with _store_operation(db, "user lookup"):
            result = await db.execute(select(User).where(User.email == _normalize_email(email)))
            return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """
        Check if an email address is already registered.

        Args:
            db: Database session
            email: Email address to check

        Returns:
            True if email exists, False otherwise
        """
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def get_by_reset_token(
        db: AsyncSession,
        token_hash: str,
        now: datetime | None = None,
    ) -> User | None:
        """
        Get the user holding an unexpired reset token with the given hash.

        Args:
            db: Database session
            token_hash: SHA-256 hex digest of the raw reset token
            now: Reference time (defaults to current UTC time)

        Returns:
            User instance or None if no open reset window matches
        """
        now = now or datetime.now(UTC)
        async with _store_operation(db, "reset token lookup"):
            result = await db.execute(
                select(User).where(
                    User.reset_token_hash == token_hash,
                    User.reset_token_expiry > now,
                )
            )
            return result.scalar_one_or_none()

    @staticmethod
    async def update(db: AsyncSession, user: User, **fields) -> User:
        """
        Apply field updates to a user and commit.

        Args:
            db: Database session
            user: The user to update
            **fields: Column values to set

        Returns:
            The refreshed User instance
        """
        if "email" in fields:
            fields["email"] = _normalize_email(fields["email"])

        async with _store_operation(db, "user update"):
            for key, value in fields.items():
                setattr(user, key, value)
            await db.commit()
            await db.refresh(user)

        logger.info(f"Updated user {user.id}: {', '.join(sorted(fields))}")
        return user

    @staticmethod
    async def set_password(db: AsyncSession, user: User, password_hash: str) -> User:
        """Store a new password hash and close any open reset window."""
        return await UserRepository.update(
            db,
            user,
            password_hash=password_hash,
            reset_token_hash=None,
            reset_token_expiry=None,
        )

    @staticmethod
    async def consume_reset_token(
        db: AsyncSession,
        user: User,
        token_hash: str,
        password_hash: str,
        now: datetime | None = None,
    ) -> User | None:
        """
        Set a new password only if the reset window for ``token_hash`` is still open.

        The match on hash and expiry and the write that closes the window are
        one UPDATE, so of two requests racing on the same token only one
        changes a row.

        Args:
            db: Database session
            user: User found by the reset token lookup
            token_hash: SHA-256 hex digest of the raw reset token
            password_hash: Already-hashed new password
            now: Reference time (defaults to current UTC time)

        Returns:
            The refreshed User instance, or None if the window was already closed
        """
        now = now or datetime.now(UTC)
        async with _store_operation(db, "reset token consume"):
            result = await db.execute(
                update(User)
                .where(
                    User.id == user.id,
                    User.reset_token_hash == token_hash,
                    User.reset_token_expiry > now,
                )
                .values(
                    password_hash=password_hash,
                    reset_token_hash=None,
                    reset_token_expiry=None,
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()

            if result.rowcount == 0:
                return None

            await db.refresh(user)

        logger.info(f"Reset token consumed for user {user.id}")
        return user

    @staticmethod
    async def set_reset_token(
        db: AsyncSession,
        user: User,
        token_hash: str,
        expires_at: datetime,
    ) -> User:
        """Open a password reset window."""
        return await UserRepository.update(
            db,
            user,
            reset_token_hash=token_hash,
            reset_token_expiry=expires_at,
        )

    @staticmethod
    async def clear_reset_token(db: AsyncSession, user: User) -> User:
        """Close a password reset window without changing the password."""
        return await UserRepository.update(
            db,
            user,
            reset_token_hash=None,
            reset_token_expiry=None,
        )

    @staticmethod
    async def set_active(db: AsyncSession, user: User, is_active: bool) -> User:
        """Activate or deactivate a user. Users are never hard-deleted."""
        return await UserRepository.update(db, user, is_active=is_active)
