"""Application-wide constants for iceberg-rest.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

import os

__all__ = [
    # Application identity
    "APP_NAME",
    "ENV_PREFIX",
    # Directories
    "CONFIG_DIR",
    "DATA_DIR",
    "CONFIG_FILENAME",
    # Sessions
    "SESSION_DURATION_MS",
    "SESSION_ID_BYTES",
    "SESSION_HEADER",
    # Encryption
    "ENCRYPTION_KEY_BYTES",
    "NONCE_BYTES",
    "KEY_FILENAME",
    "KEYRING_KEY_USERNAME",
    # Upstream HTTP
    "DEFAULT_UPSTREAM_TIMEOUT_SECONDS",
    "DEFAULT_OAUTH_TIMEOUT_SECONDS",
    "MIN_HTTP_TIMEOUT_SECONDS",
    "MAX_HTTP_TIMEOUT_SECONDS",
    "FORWARDED_REQUEST_HEADERS",
    "BODYLESS_METHODS",
    "PROXY_METHODS",
    # Login defaults
    "DEFAULT_OAUTH_TOKEN_PATH",
    "DEFAULT_OAUTH_SCOPE",
    "DEFAULT_SIGV4_SERVICE",
    # Server
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "CORS_ALLOWED_METHODS",
    "CORS_ALLOWED_HEADERS",
]

from platformdirs import user_config_dir, user_data_dir

# ============================================================================
# Application Identity
# ============================================================================

APP_NAME: str = "iceberg-rest"

# Prefix for environment variable overrides (ICEBERG_REST_DATABASE_URL, ...)
ENV_PREFIX: str = "ICEBERG_REST_"

# ============================================================================
# Directories
# ============================================================================

# Platform-specific paths:
# - macOS: ~/Library/Application Support/iceberg-rest/
# - Linux: ~/.config/iceberg-rest/ (config) and ~/.local/share/iceberg-rest/ (data)
# - Windows: %APPDATA%\iceberg-rest\
CONFIG_DIR: str = os.path.realpath(user_config_dir(APP_NAME))
DATA_DIR: str = os.path.realpath(user_data_dir(APP_NAME))

CONFIG_FILENAME: str = "config.json"

# ============================================================================
# Sessions
# ============================================================================

# Sessions expire 24 hours after creation and are never renewed
SESSION_DURATION_MS: int = 24 * 60 * 60 * 1000

# Session ID entropy (256 bits, hex encoded -> 64 chars)
SESSION_ID_BYTES: int = 32

# Header carrying the opaque session identifier on every catalog call
SESSION_HEADER: str = "X-Session-ID"

# ============================================================================
# Encryption at rest
# ============================================================================

ENCRYPTION_KEY_BYTES: int = 32  # AES-256
NONCE_BYTES: int = 12  # 96-bit GCM nonce

KEY_FILENAME: str = "encryption.key"

# Keyring username for the key blob (service name is APP_NAME)
KEYRING_KEY_USERNAME: str = "encryption_key"

# ============================================================================
# Upstream HTTP
# ============================================================================

DEFAULT_UPSTREAM_TIMEOUT_SECONDS: int = 30
DEFAULT_OAUTH_TIMEOUT_SECONDS: int = 10

# Timeout validation range (seconds)
MIN_HTTP_TIMEOUT_SECONDS: int = 1
MAX_HTTP_TIMEOUT_SECONDS: int = 300

# Inbound headers passed through to the catalog. Everything else, including
# the client's own Authorization and cookies, stays on this side.
FORWARDED_REQUEST_HEADERS: frozenset[str] = frozenset(
    {
        "accept-language",
        "x-iceberg-access-delegation",
    }
)

# Methods whose inbound body is never read or forwarded
BODYLESS_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})

PROXY_METHODS: tuple[str, ...] = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE")

# ============================================================================
# Login defaults
# ============================================================================

# Appended to the catalog endpoint when no OAuth2 token endpoint is given
DEFAULT_OAUTH_TOKEN_PATH: str = "/v1/oauth/tokens"
DEFAULT_OAUTH_SCOPE: str = "PRINCIPAL_ROLE:ALL"
DEFAULT_SIGV4_SERVICE: str = "s3tables"

# ============================================================================
# Server
# ============================================================================

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8787

CORS_ALLOWED_METHODS: list[str] = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_ALLOWED_HEADERS: list[str] = ["Content-Type", "Authorization", SESSION_HEADER]
