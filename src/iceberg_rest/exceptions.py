"""Custom exceptions for iceberg-rest.

This module contains all custom exceptions used throughout the package.
Every exception derives from IcebergRestError and carries the HTTP status
and error code the API layer answers with:

Client errors (request rejected, nothing upstream was contacted):
    - LoginValidationError: Malformed login payload (400)
    - UnauthenticatedError: No session id supplied (401)
    - SessionInvalidError: Unknown, expired or undecryptable session (401)
    - CredentialMismatchError: Stored credentials do not fit the scheme (401)

Upstream failures (proxy could not complete the catalog call):
    - OAuthExchangeError: Client-credentials token exchange failed (502)
    - UpstreamUnreachableError: Catalog could not be reached (502)

Internal failures:
    - DecryptionFailedError: Ciphertext failed authentication
    - StorageUnavailableError: Key or session store unreadable/unwritable (500)
    - ConfigurationError: Config file invalid

Usage:
    from iceberg_rest.exceptions import SessionInvalidError
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "CredentialMismatchError",
    "DecryptionFailedError",
    "IcebergRestError",
    "LoginValidationError",
    "OAuthExchangeError",
    "SessionInvalidError",
    "StorageUnavailableError",
    "UnauthenticatedError",
    "UpstreamUnreachableError",
]


class IcebergRestError(Exception):
    """Base exception for iceberg-rest.

    Attributes:
        status_code: HTTP status the API answers with.
        error_code: Stable code for programmatic handling by the client.
        message: Human-readable message (safe to show to the client).
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Internal error"


# =============================================================================
# Client errors
# =============================================================================


class LoginValidationError(IcebergRestError):
    """Login payload is missing fields required by the chosen auth scheme."""

    status_code = 400
    error_code = "VALIDATION_ERROR"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid login request"


class UnauthenticatedError(IcebergRestError):
    """Request carried no session identifier."""

    status_code = 401
    error_code = "AUTH_REQUIRED"

    @classmethod
    def default_message(cls) -> str:
        return "Missing X-Session-ID header"


class SessionInvalidError(IcebergRestError):
    """Session is unknown, expired or could not be decrypted.

    The message is deliberately identical for all three cases so callers
    cannot tell which session ids exist.
    """

    status_code = 401
    error_code = "SESSION_INVALID"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid or expired session"


class CredentialMismatchError(SessionInvalidError):
    """Stored credential record does not match the session's auth scheme."""


# =============================================================================
# Upstream failures
# =============================================================================


class OAuthExchangeError(IcebergRestError):
    """OAuth2 client-credentials exchange failed.

    Raised on non-2xx responses, transport errors, timeouts and token
    responses without an access_token. Never retried.
    """

    status_code = 502
    error_code = "OAUTH_EXCHANGE_FAILED"

    @classmethod
    def default_message(cls) -> str:
        return "OAuth2 token exchange failed"


class UpstreamUnreachableError(IcebergRestError):
    """Catalog endpoint could not be reached (connect error or timeout).

    Distinct from the catalog answering with an HTTP error, which is relayed.
    """

    status_code = 502
    error_code = "UPSTREAM_UNREACHABLE"

    @classmethod
    def default_message(cls) -> str:
        return "Catalog endpoint unreachable"


# =============================================================================
# Internal failures
# =============================================================================


class DecryptionFailedError(IcebergRestError):
    """Stored ciphertext failed authentication.

    Raised for tampered data, a wrong or lost key, or corrupted storage.
    The session store converts this to SessionInvalidError before it
    reaches a client.
    """

    error_code = "DECRYPTION_FAILED"

    @classmethod
    def default_message(cls) -> str:
        return "Failed to decrypt stored credentials"


class StorageUnavailableError(IcebergRestError):
    """Key store or session database cannot be read or written."""

    error_code = "STORAGE_UNAVAILABLE"

    @classmethod
    def default_message(cls) -> str:
        return "Storage unavailable"


class ConfigurationError(IcebergRestError):
    """Configuration file is invalid.

    Raised when:
    - Config file contains invalid JSON
    - Config file fails Pydantic validation
    """

    error_code = "CONFIG_INVALID"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid configuration"
