"""
Tests for password reset token generation and consumption.
"""

import hashlib
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from schoolhub.core.exceptions import TokenNotFoundOrExpiredError
from schoolhub.modules.auth.reset_tokens import ResetTokenManager
from schoolhub.modules.users.repository import UserRepository


@pytest_asyncio.fixture
async def user(db):
    return await UserRepository.create(db, name="A", email="a@x.com", password_hash="hash")


class TestGenerate:
    """Tests for ResetTokenManager.generate."""

    def test_raw_token_is_20_random_bytes_hex(self, reset_tokens):
        reset = reset_tokens.generate()
        assert len(reset.raw_token) == 40
        bytes.fromhex(reset.raw_token)

    def test_hash_is_sha256_of_raw_token(self, reset_tokens):
        reset = reset_tokens.generate()
        assert reset.token_hash == hashlib.sha256(reset.raw_token.encode()).hexdigest()
        assert reset.token_hash != reset.raw_token

    def test_expiry_is_ten_minutes_out(self, reset_tokens):
        before = datetime.now(UTC)
        reset = reset_tokens.generate()
        after = datetime.now(UTC)

        assert before + timedelta(minutes=10) <= reset.expires_at <= after + timedelta(minutes=10)

    def test_tokens_are_unique(self, reset_tokens):
        assert reset_tokens.generate().raw_token != reset_tokens.generate().raw_token

    def test_repr_hides_raw_token(self, reset_tokens):
        reset = reset_tokens.generate()
        assert reset.raw_token not in repr(reset)

    def test_hash_token_is_deterministic(self):
        assert ResetTokenManager.hash_token("abc") == ResetTokenManager.hash_token("abc")
        assert ResetTokenManager.hash_token("abc") != ResetTokenManager.hash_token("abd")


class TestConsume:
    """Tests for ResetTokenManager.consume."""

    @pytest.mark.asyncio
    async def test_consume_finds_user(self, db, reset_tokens, user):
        reset = reset_tokens.generate()
        await UserRepository.set_reset_token(db, user, reset.token_hash, reset.expires_at)

        found = await reset_tokens.consume(db, reset.raw_token, "new-hash")

        assert found.id == user.id
        assert found.password_hash == "new-hash"
        assert found.reset_token_hash is None
        assert found.reset_token_expiry is None

    @pytest.mark.asyncio
    async def test_consume_is_single_use(self, db, reset_tokens, user):
        reset = reset_tokens.generate()
        await UserRepository.set_reset_token(db, user, reset.token_hash, reset.expires_at)

        await reset_tokens.consume(db, reset.raw_token, "new-hash")

        with pytest.raises(TokenNotFoundOrExpiredError):
            await reset_tokens.consume(db, reset.raw_token, "other-hash")

        refreshed = await UserRepository.get_by_id(db, user.id)
        assert refreshed.password_hash == "new-hash"

    @pytest.mark.asyncio
    async def test_consume_rejects_hash_as_token(self, db, reset_tokens, user):
        """Knowing the stored hash is not enough to consume the token."""
        reset = reset_tokens.generate()
        await UserRepository.set_reset_token(db, user, reset.token_hash, reset.expires_at)

        with pytest.raises(TokenNotFoundOrExpiredError):
            await reset_tokens.consume(db, reset.token_hash, "new-hash")

    @pytest.mark.asyncio
    async def test_consume_rejects_unknown_token(self, db, reset_tokens, user):
        with pytest.raises(TokenNotFoundOrExpiredError):
            await reset_tokens.consume(db, "0" * 40, "new-hash")

    @pytest.mark.asyncio
    async def test_consume_rejects_expired_token(self, db, user):
        manager = ResetTokenManager(ttl=timedelta(seconds=-1))
        reset = manager.generate()
        await UserRepository.set_reset_token(db, user, reset.token_hash, reset.expires_at)

        with pytest.raises(TokenNotFoundOrExpiredError):
            await manager.consume(db, reset.raw_token, "new-hash")
