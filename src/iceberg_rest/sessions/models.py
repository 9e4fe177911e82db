"""In-process view of a catalog session."""

from __future__ import annotations

__all__ = ["CatalogSession"]

from dataclasses import dataclass, field

from iceberg_rest.sessions.credentials import AuthScheme, CredentialRecord


@dataclass(frozen=True)
class CatalogSession:
    """Session with decrypted credentials.

    Attributes:
        session_id: Opaque identifier held by the client.
        auth_type: Auth scheme; fixed at creation.
        credentials: Decrypted credential record (in-process use only).
        endpoint: Catalog base URL without trailing slash.
        warehouse: Optional catalog warehouse identifier.
        created_at: Creation time (epoch ms).
        expires_at: created_at + 24h (epoch ms).
        last_used_at: Last successful lookup (epoch ms).
    """

    session_id: str
    auth_type: AuthScheme
    credentials: CredentialRecord = field(repr=False)
    endpoint: str
    warehouse: str | None
    created_at: int
    expires_at: int
    last_used_at: int
