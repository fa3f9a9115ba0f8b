"""
Tests for the user repository (credential store).

Most tests run against in-memory SQLite; store failure translation is
tested with a mocked session.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from schoolhub.core.exceptions import TransientError, ValidationError
from schoolhub.modules.users.models import UserRole
from schoolhub.modules.users.repository import UserRepository


async def _create(db, email="a@x.com", **overrides):
    fields = {"name": "A", "email": email, "password_hash": "$2b$04$hash"}
    fields.update(overrides)
    return await UserRepository.create(db, **fields)


class TestCreate:
    """Tests for UserRepository.create."""

    @pytest.mark.asyncio
    async def test_create_sets_defaults(self, db):
        user = await _create(db)

        assert user.id
        assert user.role == UserRole.TEACHER
        assert user.is_active is True
        assert user.school_id is None
        assert user.reset_token_hash is None
        assert user.reset_token_expiry is None
        assert user.created_at is not None

    @pytest.mark.asyncio
    async def test_create_stores_hash_verbatim(self, db):
        user = await _create(db, password_hash="already-hashed")
        assert user.password_hash == "already-hashed"

    @pytest.mark.asyncio
    async def test_create_normalizes_email(self, db):
        user = await _create(db, email="  Mixed@Example.COM ")
        assert user.email == "mixed@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_validation_error(self, db):
        """The unique index rejects the losing writer with a ValidationError."""
        await _create(db)

        with pytest.raises(ValidationError) as exc_info:
            await _create(db, name="Someone Else")

        assert exc_info.value.field == "email"
        assert await UserRepository.get_by_email(db, "a@x.com") is not None


class TestLookups:
    """Tests for lookup operations."""

    @pytest.mark.asyncio
    async def test_get_by_id(self, db):
        user = await _create(db)
        found = await UserRepository.get_by_id(db, user.id)
        assert found is not None
        assert found.email == "a@x.com"

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, db):
        assert await UserRepository.get_by_id(db, "00000000-0000-0000-0000-000000000001") is None

    @pytest.mark.asyncio
    async def test_get_by_email_is_case_insensitive(self, db):
        await _create(db)
        assert await UserRepository.get_by_email(db, "A@X.COM") is not None

    @pytest.mark.asyncio
    async def test_email_exists(self, db):
        await _create(db)
        assert await UserRepository.email_exists(db, "a@x.com") is True
        assert await UserRepository.email_exists(db, "b@x.com") is False


class TestResetToken:
    """Tests for the password reset window columns."""

    @pytest.mark.asyncio
    async def test_set_and_find_reset_token(self, db):
        user = await _create(db)
        expires_at = datetime.now(UTC) + timedelta(minutes=10)

        await UserRepository.set_reset_token(db, user, "abc123", expires_at)

        assert user.has_pending_reset
        found = await UserRepository.get_by_reset_token(db, "abc123")
        assert found is not None
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_expired_reset_token_not_found(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) - timedelta(seconds=1)
        )

        assert await UserRepository.get_by_reset_token(db, "abc123") is None

    @pytest.mark.asyncio
    async def test_clear_reset_token_clears_both_fields(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) + timedelta(minutes=10)
        )

        await UserRepository.clear_reset_token(db, user)

        assert user.reset_token_hash is None
        assert user.reset_token_expiry is None
        assert await UserRepository.get_by_reset_token(db, "abc123") is None

    @pytest.mark.asyncio
    async def test_set_password_closes_reset_window(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) + timedelta(minutes=10)
        )

        await UserRepository.set_password(db, user, "new-hash")

        assert user.password_hash == "new-hash"
        assert not user.has_pending_reset
        assert user.reset_token_expiry is None

    @pytest.mark.asyncio
    async def test_consume_reset_token_sets_password_and_closes_window(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) + timedelta(minutes=10)
        )

        consumed = await UserRepository.consume_reset_token(db, user, "abc123", "new-hash")

        assert consumed is user
        assert user.password_hash == "new-hash"
        assert not user.has_pending_reset
        assert await UserRepository.get_by_reset_token(db, "abc123") is None

    @pytest.mark.asyncio
    async def test_consume_reset_token_with_wrong_hash_changes_nothing(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) + timedelta(minutes=10)
        )

        assert await UserRepository.consume_reset_token(db, user, "other", "new-hash") is None

        refreshed = await UserRepository.get_by_reset_token(db, "abc123")
        assert refreshed.password_hash == "$2b$04$hash"

    @pytest.mark.asyncio
    async def test_consume_expired_reset_token_changes_nothing(self, db):
        user = await _create(db)
        await UserRepository.set_reset_token(
            db, user, "abc123", datetime.now(UTC) - timedelta(seconds=1)
        )

        assert await UserRepository.consume_reset_token(db, user, "abc123", "new-hash") is None


class TestUpdate:
    """Tests for generic updates and deactivation."""

    @pytest.mark.asyncio
    async def test_update_normalizes_email(self, db):
        user = await _create(db)
        await UserRepository.update(db, user, email="NEW@X.com", name="B")
        assert user.email == "new@x.com"
        assert user.name == "B"

    @pytest.mark.asyncio
    async def test_update_to_taken_email_is_validation_error(self, db):
        await _create(db, email="taken@x.com")
        user = await _create(db)

        with pytest.raises(ValidationError):
            await UserRepository.update(db, user, email="taken@x.com")

    @pytest.mark.asyncio
    async def test_set_active_flips_flag(self, db):
        user = await _create(db)
        await UserRepository.set_active(db, user, False)

        found = await UserRepository.get_by_email(db, "a@x.com")
        assert found is not None
        assert found.is_active is False


class TestStoreFailures:
    """Tests for database error translation."""

    @pytest.mark.asyncio
    async def test_operational_error_is_transient(self, mock_db):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        with pytest.raises(TransientError):
            await UserRepository.get_by_email(mock_db, "a@x.com")

        mock_db.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, mock_db):
        mock_db.execute.side_effect = TimeoutError()

        with pytest.raises(TransientError):
            await UserRepository.get_by_id(mock_db, "00000000-0000-0000-0000-000000000001")

    @pytest.mark.asyncio
    async def test_integrity_error_on_commit_is_validation_error(self, mock_db):
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(ValidationError) as exc_info:
            await _create(mock_db)

        assert exc_info.value.field == "email"
        mock_db.rollback.assert_awaited_once()
