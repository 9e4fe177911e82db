"""Tests for the persistent session store.

Tests cover:
- Create/get with decrypted credentials and metadata
- Expiry boundary (valid strictly before created_at + 24h)
- last_used_at touch
- Idempotent delete, purge and count
- Tampered ciphertext and tag mismatch read as invalid sessions
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iceberg_rest.constants import SESSION_DURATION_MS
from iceberg_rest.exceptions import CredentialMismatchError, SessionInvalidError
from iceberg_rest.security.credential_codec import encrypt_record
from iceberg_rest.security.key_store import EncryptionKey
from iceberg_rest.sessions.credentials import AuthScheme, BearerCredentials, ClientCredentials, SigV4Credentials
from iceberg_rest.sessions.db import SessionRecord
from iceberg_rest.sessions.store import SessionStore, generate_session_id

if TYPE_CHECKING:
    from conftest import FakeClock


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession],
    encryption_key: EncryptionKey,
    clock: FakeClock,
) -> SessionStore:
    return SessionStore(session_factory, encryption_key, clock=clock)


async def _row(session_factory, session_id: str) -> SessionRecord | None:
    async with session_factory() as db:
        return await db.scalar(select(SessionRecord).where(SessionRecord.session_id == session_id))


class TestGenerateSessionId:
    def test_is_64_hex_chars(self) -> None:
        session_id = generate_session_id()

        assert len(session_id) == 64
        int(session_id, 16)

    def test_unique(self) -> None:
        assert len({generate_session_id() for _ in range(100)}) == 100


class TestCreateAndGet:
    @pytest.mark.asyncio
    async def test_get_returns_created_session(self, store: SessionStore, clock: FakeClock) -> None:
        # Arrange
        credentials = BearerCredentials(token="abc123")

        # Act
        created = await store.create(AuthScheme.BEARER, credentials, "https://catalog.example.com", "wh")
        fetched = await store.get(created.session_id)

        # Assert
        assert fetched.session_id == created.session_id
        assert fetched.auth_type is AuthScheme.BEARER
        assert fetched.credentials == credentials
        assert fetched.endpoint == "https://catalog.example.com"
        assert fetched.warehouse == "wh"
        assert fetched.created_at == clock.now_ms
        assert fetched.expires_at == clock.now_ms + SESSION_DURATION_MS

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "auth_type, credentials",
        [
            (AuthScheme.BEARER, BearerCredentials(token="abc123")),
            (
                AuthScheme.OAUTH2,
                ClientCredentials(
                    token_endpoint="https://catalog.example.com/v1/oauth/tokens",
                    client_id="cid",
                    client_secret="cs",
                    scope="PRINCIPAL_ROLE:ALL",
                ),
            ),
            (
                AuthScheme.SIGV4,
                SigV4Credentials(access_key="AKID", secret_key="SECRET", region="us-east-1", service="glue"),
            ),
        ],
    )
    async def test_credentials_survive_storage_for_every_scheme(
        self, store: SessionStore, auth_type: AuthScheme, credentials
    ) -> None:
        created = await store.create(auth_type, credentials, "https://catalog.example.com")

        fetched = await store.get(created.session_id)

        assert fetched.auth_type is auth_type
        assert fetched.credentials == credentials

    @pytest.mark.asyncio
    async def test_row_holds_ciphertext_and_metadata(
        self,
        store: SessionStore,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        created = await store.create(
            AuthScheme.BEARER,
            BearerCredentials(token="very-secret"),
            "https://catalog.example.com",
            ip_address="10.0.0.1",
            user_agent="pytest",
        )

        row = await _row(session_factory, created.session_id)

        assert row is not None
        assert "very-secret" not in row.encrypted_credentials
        assert row.auth_type == "bearer"
        assert row.warehouse is None
        assert row.ip_address == "10.0.0.1"
        assert row.user_agent == "pytest"
        assert row.last_used_at == row.created_at

    @pytest.mark.asyncio
    async def test_create_rejects_mismatched_credentials(self, store: SessionStore) -> None:
        with pytest.raises(CredentialMismatchError):
            await store.create(AuthScheme.SIGV4, BearerCredentials(token="abc"), "https://c.example.com")

    @pytest.mark.asyncio
    async def test_unknown_id_is_invalid(self, store: SessionStore) -> None:
        with pytest.raises(SessionInvalidError, match="Invalid or expired session"):
            await store.get("f" * 64)

    @pytest.mark.asyncio
    async def test_get_touches_last_used_at(
        self,
        store: SessionStore,
        clock: FakeClock,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(5_000)

        fetched = await store.get(created.session_id)

        row = await _row(session_factory, created.session_id)
        assert fetched.last_used_at == created.created_at + 5_000
        assert row.last_used_at == created.created_at + 5_000
        assert row.expires_at == created.expires_at


class TestExpiry:
    @pytest.mark.asyncio
    async def test_valid_one_ms_before_expiry(self, store: SessionStore, clock: FakeClock) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS - 1)

        fetched = await store.get(created.session_id)

        assert fetched.session_id == created.session_id

    @pytest.mark.asyncio
    async def test_invalid_at_exact_expiry(self, store: SessionStore, clock: FakeClock) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS)

        with pytest.raises(SessionInvalidError):
            await store.get(created.session_id)

    @pytest.mark.asyncio
    async def test_expired_message_matches_unknown(self, store: SessionStore, clock: FakeClock) -> None:
        """Given an expired and an unknown id, the error messages are identical."""
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS + 1)

        with pytest.raises(SessionInvalidError) as expired:
            await store.get(created.session_id)
        with pytest.raises(SessionInvalidError) as unknown:
            await store.get("0" * 64)

        assert expired.value.message == unknown.value.message

    @pytest.mark.asyncio
    async def test_use_does_not_extend_expiry(self, store: SessionStore, clock: FakeClock) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS - 10)
        await store.get(created.session_id)
        clock.advance(10)

        with pytest.raises(SessionInvalidError):
            await store.get(created.session_id)


class TestDeleteAndMaintenance:
    @pytest.mark.asyncio
    async def test_delete_then_get_is_invalid(self, store: SessionStore) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")

        await store.delete(created.session_id)

        with pytest.raises(SessionInvalidError):
            await store.get(created.session_id)

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store: SessionStore) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")

        await store.delete(created.session_id)
        await store.delete(created.session_id)
        await store.delete("never-existed")

    @pytest.mark.asyncio
    async def test_purge_removes_only_expired(self, store: SessionStore, clock: FakeClock) -> None:
        # Arrange
        old = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS // 2)
        fresh = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        clock.advance(SESSION_DURATION_MS // 2)

        # Act
        removed = await store.purge_expired()

        # Assert
        assert removed == 1
        assert (await store.get(fresh.session_id)).session_id == fresh.session_id
        with pytest.raises(SessionInvalidError):
            await store.get(old.session_id)

    @pytest.mark.asyncio
    async def test_count_active(self, store: SessionStore, clock: FakeClock) -> None:
        await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        assert await store.count_active() == 2

        clock.advance(SESSION_DURATION_MS)

        assert await store.count_active() == 0


class TestUndecryptableSessions:
    @pytest.mark.asyncio
    async def test_tampered_ciphertext_reads_as_invalid(
        self,
        store: SessionStore,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        # Arrange
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        row = await _row(session_factory, created.session_id)
        tampered = ("B" if row.encrypted_credentials[20] != "B" else "C").join(
            [row.encrypted_credentials[:20], row.encrypted_credentials[21:]]
        )
        async with session_factory() as db:
            await db.execute(
                update(SessionRecord)
                .where(SessionRecord.session_id == created.session_id)
                .values(encrypted_credentials=tampered)
            )
            await db.commit()

        # Act / Assert
        with pytest.raises(SessionInvalidError) as exc_info:
            await store.get(created.session_id)
        assert not isinstance(exc_info.value, CredentialMismatchError)

    @pytest.mark.asyncio
    async def test_wrong_key_reads_as_invalid(
        self,
        store: SessionStore,
        session_factory: async_sessionmaker[AsyncSession],
        clock: FakeClock,
    ) -> None:
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        other = SessionStore(session_factory, EncryptionKey(b"\x99" * 32), clock=clock)

        with pytest.raises(SessionInvalidError):
            await other.get(created.session_id)

    @pytest.mark.asyncio
    async def test_payload_tag_mismatch_reads_as_invalid(
        self,
        store: SessionStore,
        session_factory: async_sessionmaker[AsyncSession],
        encryption_key: EncryptionKey,
    ) -> None:
        """Given a sigv4 payload under a bearer row, lookup fails."""
        created = await store.create(AuthScheme.BEARER, BearerCredentials(token="t"), "https://c.example.com")
        swapped = encrypt_record(
            encryption_key,
            SigV4Credentials(access_key="A", secret_key="S", region="us-east-1", service="s3tables"),
        )
        async with session_factory() as db:
            await db.execute(
                update(SessionRecord)
                .where(SessionRecord.session_id == created.session_id)
                .values(encrypted_credentials=swapped)
            )
            await db.commit()

        with pytest.raises(SessionInvalidError):
            await store.get(created.session_id)
