"""Persistent session store with encrypted credentials.

Sessions bind an opaque client-held id to encrypted catalog credentials and
connection parameters.

Rules:
- Session ids are 256-bit random values (hex), never derived from input
- expires_at = created_at + 24h, fixed; a session is valid while expires_at > now
- Expired rows read exactly like missing rows (no background sweep needed)
- Every successful lookup touches last_used_at
- Decryption or tag/payload mismatch is logged as its own event and
  surfaced to callers as an invalid session

Concurrency: each call opens its own database session. The last_used_at
touch is a single-row UPDATE; lost updates under concurrent use of the
same session are acceptable.
"""

from __future__ import annotations

__all__ = [
    "SessionStore",
    "generate_session_id",
    "now_ms",
]

import secrets
import time
from typing import Callable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iceberg_rest.constants import SESSION_DURATION_MS, SESSION_ID_BYTES
from iceberg_rest.exceptions import (
    CredentialMismatchError,
    DecryptionFailedError,
    SessionInvalidError,
    StorageUnavailableError,
)
from iceberg_rest.security.credential_codec import decrypt_record, encrypt_record
from iceberg_rest.security.key_store import EncryptionKey
from iceberg_rest.sessions.credentials import AuthScheme, CredentialRecord
from iceberg_rest.sessions.db import SessionRecord
from iceberg_rest.sessions.models import CatalogSession
from iceberg_rest.telemetry.system.system_logger import get_system_logger, short_id


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_session_id() -> str:
    """Cryptographically secure session id (256 bits, hex)."""
    return secrets.token_hex(SESSION_ID_BYTES)


class SessionStore:
    """Create, look up and delete catalog sessions.

    Usage:
        store = SessionStore(session_factory, key)
        session = await store.create(AuthScheme.BEARER, BearerCredentials(token="..."), endpoint)
        session = await store.get(session.session_id)
        await store.delete(session.session_id)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        key: EncryptionKey,
        *,
        clock: Callable[[], int] = now_ms,
        ttl_ms: int = SESSION_DURATION_MS,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: SQLAlchemy async session factory.
            key: Encryption key handle (obtained once at startup).
            clock: Returns current epoch milliseconds.
            ttl_ms: Session lifetime.
        """
        self._session_factory = session_factory
        self._key = key
        self._clock = clock
        self._ttl_ms = ttl_ms

    async def create(
        self,
        auth_type: AuthScheme,
        credentials: CredentialRecord,
        endpoint: str,
        warehouse: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> CatalogSession:
        """Persist a new session.

        Args:
            auth_type: Auth scheme; must match the credential record.
            credentials: Plaintext credential record (encrypted before storage).
            endpoint: Catalog base URL.
            warehouse: Optional warehouse identifier.
            ip_address: Client address (metadata only).
            user_agent: Client user agent (metadata only).

        Returns:
            The created session.

        Raises:
            CredentialMismatchError: If credentials do not match auth_type.
            StorageUnavailableError: If the row cannot be written.
        """
        auth_type = AuthScheme(auth_type)
        if credentials.auth_type != auth_type.value:
            raise CredentialMismatchError(
                f"Credentials are for '{credentials.auth_type}', session declares '{auth_type.value}'"
            )

        session_id = generate_session_id()
        created_at = self._clock()
        expires_at = created_at + self._ttl_ms

        row = SessionRecord(
            session_id=session_id,
            auth_type=auth_type.value,
            encrypted_credentials=encrypt_record(self._key, credentials),
            endpoint=endpoint,
            warehouse=warehouse,
            created_at=created_at,
            expires_at=expires_at,
            last_used_at=created_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to store session: {type(e).__name__}") from e

        get_system_logger().info(
            {
                "event": "session_created",
                "message": f"Session created ({auth_type.value})",
                "session_id": short_id(session_id),
                "auth_type": auth_type.value,
                "expires_at": expires_at,
            }
        )

        return CatalogSession(
            session_id=session_id,
            auth_type=auth_type,
            credentials=credentials,
            endpoint=endpoint,
            warehouse=warehouse,
            created_at=created_at,
            expires_at=expires_at,
            last_used_at=created_at,
        )

    async def get(self, session_id: str) -> CatalogSession:
        """Look up a live session and touch last_used_at.

        Args:
            session_id: Opaque session identifier.

        Returns:
            Session with decrypted credentials.

        Raises:
            SessionInvalidError: If the id is unknown, expired, or its
                credentials cannot be decrypted/validated.
            StorageUnavailableError: If the database cannot be read.
        """
        now = self._clock()

        try:
            async with self._session_factory() as db:
                row = await db.scalar(
                    select(SessionRecord).where(
                        SessionRecord.session_id == session_id,
                        SessionRecord.expires_at > now,
                    )
                )
                if row is None:
                    raise SessionInvalidError()

                credentials = self._decrypt_row(row)

                await db.execute(
                    update(SessionRecord).where(SessionRecord.session_id == session_id).values(last_used_at=now)
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to read session: {type(e).__name__}") from e

        return CatalogSession(
            session_id=row.session_id,
            auth_type=AuthScheme(row.auth_type),
            credentials=credentials,
            endpoint=row.endpoint,
            warehouse=row.warehouse,
            created_at=row.created_at,
            expires_at=row.expires_at,
            last_used_at=now,
        )

    async def delete(self, session_id: str) -> None:
        """Delete a session. Deleting an unknown id is not an error.

        Raises:
            StorageUnavailableError: If the database cannot be written.
        """
        try:
            async with self._session_factory() as db:
                result = await db.execute(delete(SessionRecord).where(SessionRecord.session_id == session_id))
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to delete session: {type(e).__name__}") from e

        if result.rowcount:
            get_system_logger().info(
                {
                    "event": "session_deleted",
                    "message": "Session deleted",
                    "session_id": short_id(session_id),
                }
            )

    async def purge_expired(self) -> int:
        """Delete expired rows. Returns count of removed sessions."""
        now = self._clock()
        try:
            async with self._session_factory() as db:
                result = await db.execute(delete(SessionRecord).where(SessionRecord.expires_at <= now))
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to purge sessions: {type(e).__name__}") from e
        return result.rowcount or 0

    async def count_active(self) -> int:
        """Return count of unexpired sessions."""
        now = self._clock()
        try:
            async with self._session_factory() as db:
                count = await db.scalar(
                    select(func.count()).select_from(SessionRecord).where(SessionRecord.expires_at > now)
                )
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to count sessions: {type(e).__name__}") from e
        return int(count or 0)

    def _decrypt_row(self, row: SessionRecord) -> CredentialRecord:
        """Decrypt a row's credentials, logging failures as distinct events.

        Raises:
            SessionInvalidError: Client-facing form of both failure kinds.
        """
        logger = get_system_logger()
        try:
            return decrypt_record(self._key, row.encrypted_credentials, row.auth_type)
        except DecryptionFailedError as e:
            # May indicate key loss or storage corruption
            logger.error(
                {
                    "event": "credential_decryption_failed",
                    "message": "Stored credentials could not be decrypted",
                    "session_id": short_id(row.session_id),
                    "error": e.message,
                }
            )
            raise SessionInvalidError() from e
        except CredentialMismatchError as e:
            logger.error(
                {
                    "event": "credential_shape_mismatch",
                    "message": "Stored credentials do not match the session's auth type",
                    "session_id": short_id(row.session_id),
                    "auth_type": row.auth_type,
                    "error": e.message,
                }
            )
            raise SessionInvalidError() from e
