"""Encryption key provisioning for credentials at rest.

A single process-wide AES-256 key encrypts every stored credential record.
The key is generated on first use, persisted as raw bytes in a store that is
separate from the sessions database, and loaded on every later start.

Provides two storage backends:
1. FileKeyStore: raw 32-byte file in the data directory (owner-only)
2. KeychainKeyStore: OS keychain via keyring library (base64 text)

Provisioning uses a create-if-absent write. When two processes start cold at
the same time, both may generate a key but only one is persisted; the other
discards its own and adopts the persisted key.

There is no rotation. Losing the persisted key makes every existing session
undecryptable; those sessions then read as invalid and users log in again.
"""

from __future__ import annotations

__all__ = [
    "EncryptionKey",
    "FileKeyStore",
    "KeyStore",
    "KeychainKeyStore",
    "create_key_store",
    "get_key_store_info",
]

import base64
import binascii
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from iceberg_rest.constants import APP_NAME, ENCRYPTION_KEY_BYTES, KEYRING_KEY_USERNAME
from iceberg_rest.exceptions import StorageUnavailableError
from iceberg_rest.telemetry.system.system_logger import get_system_logger
from iceberg_rest.utils.file_helpers import ensure_secure_directory, set_secure_permissions

if TYPE_CHECKING:
    from iceberg_rest.config import StorageConfig

# Service name for keyring storage
KEYRING_SERVICE = APP_NAME


@dataclass(frozen=True)
class EncryptionKey:
    """Handle to the symmetric key.

    Obtained once at startup and passed to every component that encrypts
    or decrypts credentials.

    Attributes:
        raw: The 256-bit key bytes.
    """

    raw: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.raw) != ENCRYPTION_KEY_BYTES:
            raise ValueError(f"Encryption key must be {ENCRYPTION_KEY_BYTES} bytes, got {len(self.raw)}")

    def aead(self) -> AESGCM:
        """Return an AES-GCM cipher bound to this key."""
        return AESGCM(self.raw)


class KeyStore(ABC):
    """Abstract base class for key storage backends."""

    @abstractmethod
    def load(self) -> bytes | None:
        """Load persisted key bytes.

        Returns:
            Raw key bytes, or None if no key has been persisted yet.

        Raises:
            StorageUnavailableError: If the backing store cannot be read.
        """

    @abstractmethod
    def create_if_absent(self, raw: bytes) -> bytes:
        """Persist key bytes unless a key already exists.

        Args:
            raw: Freshly generated key bytes.

        Returns:
            The authoritative persisted bytes: ``raw`` if this call won,
            otherwise the key that was already there.

        Raises:
            StorageUnavailableError: If the backing store cannot be written.
        """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location for status output."""

    def get_or_create_key(self) -> EncryptionKey:
        """Load the key, generating and persisting one on first use.

        Returns:
            EncryptionKey handle.

        Raises:
            StorageUnavailableError: If the store cannot be read or written,
                or holds a key of the wrong length.
        """
        existing = self.load()
        if existing is not None:
            return self._to_key(existing)

        generated = AESGCM.generate_key(bit_length=ENCRYPTION_KEY_BYTES * 8)
        persisted = self.create_if_absent(generated)

        logger = get_system_logger()
        if persisted == generated:
            logger.info(
                {
                    "event": "encryption_key_created",
                    "message": f"Generated new encryption key ({self.location})",
                    "location": self.location,
                }
            )
        else:
            logger.info(
                {
                    "event": "encryption_key_adopted",
                    "message": "Another process provisioned the encryption key first; using it",
                    "location": self.location,
                }
            )
        return self._to_key(persisted)

    def _to_key(self, raw: bytes) -> EncryptionKey:
        try:
            return EncryptionKey(raw)
        except ValueError as e:
            raise StorageUnavailableError(f"Persisted encryption key at {self.location} is corrupt: {e}") from e


class FileKeyStore(KeyStore):
    """Key storage in a raw owner-only file.

    The conditional write hard-links a fully written temp file onto the
    target path. link() fails with FileExistsError when the target exists,
    so at most one key file is ever created and readers never see a
    partially written key.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def location(self) -> str:
        return str(self._path)

    def load(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailableError(f"Failed to read encryption key file {self._path}: {e}") from e

    def create_if_absent(self, raw: bytes) -> bytes:
        try:
            ensure_secure_directory(self._path.parent)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".key-")
        except OSError as e:
            raise StorageUnavailableError(f"Failed to prepare encryption key file {self._path}: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(raw)
                f.flush()
                os.fsync(f.fileno())
            set_secure_permissions(tmp_path)
            try:
                os.link(tmp_path, self._path)
            except FileExistsError:
                existing = self.load()
                if existing is None:
                    raise StorageUnavailableError(
                        f"Encryption key file {self._path} vanished during provisioning"
                    )
                return existing
            return raw
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write encryption key file {self._path}: {e}") from e
        finally:
            tmp_path.unlink(missing_ok=True)


class KeychainKeyStore(KeyStore):
    """Key storage in the OS keychain via keyring library.

    Uses the system's secure credential storage:
    - macOS: Keychain
    - Windows: Credential Locker
    - Linux: Secret Service API (GNOME Keyring, KDE Wallet, etc.)

    The keychain has no compare-and-set, so create_if_absent() checks,
    writes, then re-reads and returns whatever the keychain holds.
    """

    def __init__(self, service: str = KEYRING_SERVICE, username: str = KEYRING_KEY_USERNAME) -> None:
        self._service = service
        self._username = username

    @property
    def location(self) -> str:
        return f"keychain:{self._service}/{self._username}"

    def is_usable(self) -> bool:
        """Check the keychain is reachable without writing to it.

        Returns False when keyring only has its fail backend or the read of
        our own slot errors out (locked keychain, no DBus session on Linux).
        """
        import keyring
        from keyring.backends.fail import Keyring as FailKeyring

        logger = get_system_logger()
        if isinstance(keyring.get_keyring(), FailKeyring):
            logger.debug(
                {
                    "event": "keychain_unusable",
                    "reason": "fail_backend",
                    "message": "No usable keyring backend; using key file",
                }
            )
            return False

        try:
            keyring.get_password(self._service, self._username)
        except Exception as e:
            # Backend errors vary by platform (KeyringError, DBus, permission)
            logger.debug(
                {
                    "event": "keychain_unusable",
                    "reason": "read_failed",
                    "message": f"Keychain check failed; using key file: {e}",
                    "error_type": type(e).__name__,
                }
            )
            return False
        return True

    def load(self) -> bytes | None:
        import keyring
        from keyring.errors import KeyringError

        try:
            data = keyring.get_password(self._service, self._username)
        except KeyringError as e:
            raise StorageUnavailableError(f"Failed to access keychain: {e}") from e

        if data is None:
            return None

        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise StorageUnavailableError(f"Encryption key in keychain is not valid base64: {e}") from e

    def create_if_absent(self, raw: bytes) -> bytes:
        import keyring
        from keyring.errors import KeyringError

        existing = self.load()
        if existing is not None:
            return existing

        try:
            keyring.set_password(self._service, self._username, base64.b64encode(raw).decode("ascii"))
        except KeyringError as e:
            raise StorageUnavailableError(f"Failed to save encryption key to keychain: {e}") from e

        persisted = self.load()
        if persisted is None:
            raise StorageUnavailableError("Encryption key missing from keychain right after saving it")
        return persisted


def create_key_store(config: "StorageConfig") -> KeyStore:
    """Create the key storage backend selected in config.

    "auto" prefers the keychain when it is usable and falls back to the
    key file.

    Args:
        config: Storage configuration.

    Returns:
        KeyStore instance (KeychainKeyStore or FileKeyStore).
    """
    if config.key_backend == "keychain":
        return KeychainKeyStore()
    if config.key_backend == "auto":
        keychain = KeychainKeyStore()
        if keychain.is_usable():
            return keychain
    return FileKeyStore(Path(config.key_file).expanduser())


def get_key_store_info(store: KeyStore) -> dict[str, str | bool]:
    """Describe a key store for status output.

    Never includes key material.

    Args:
        store: Key store to describe.

    Returns:
        Dict with 'backend', 'location' and 'provisioned' keys.
    """
    backend = "keychain" if isinstance(store, KeychainKeyStore) else "file"
    return {
        "backend": backend,
        "location": store.location,
        "provisioned": store.load() is not None,
    }
