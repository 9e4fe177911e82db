"""Tests for encryption key provisioning.

Tests cover:
- EncryptionKey length validation
- FileKeyStore first-use generation, reload and lost create race
- KeychainKeyStore with a mocked keyring
- create_key_store backend selection
"""

from __future__ import annotations

import base64
import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from iceberg_rest.config import StorageConfig
from iceberg_rest.exceptions import StorageUnavailableError
from iceberg_rest.security.key_store import (
    EncryptionKey,
    FileKeyStore,
    KeychainKeyStore,
    create_key_store,
    get_key_store_info,
)


class _DictKeyring:
    """In-memory stand-in for the keyring module functions."""

    def __init__(self) -> None:
        self.values: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.values.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.values[(service, username)] = password


# ============================================================================
# Tests: EncryptionKey
# ============================================================================


class TestEncryptionKey:
    def test_accepts_32_bytes(self) -> None:
        key = EncryptionKey(b"\x01" * 32)

        assert key.raw == b"\x01" * 32

    @pytest.mark.parametrize("length", [0, 16, 31, 33])
    def test_rejects_wrong_length(self, length: int) -> None:
        with pytest.raises(ValueError):
            EncryptionKey(b"\x00" * length)

    def test_repr_hides_key_material(self) -> None:
        key = EncryptionKey(b"\xab" * 32)

        assert repr(key) == "EncryptionKey()"


# ============================================================================
# Tests: FileKeyStore
# ============================================================================


class TestFileKeyStore:
    def test_first_call_generates_and_persists_key(self, tmp_path: Path) -> None:
        """Given no key file, get_or_create_key writes a 32-byte key."""
        # Arrange
        path = tmp_path / "keys" / "encryption.key"
        store = FileKeyStore(path)

        # Act
        key = store.get_or_create_key()

        # Assert
        assert path.read_bytes() == key.raw
        assert len(key.raw) == 32

    def test_second_instance_loads_identical_bytes(self, tmp_path: Path) -> None:
        """Given a provisioned key, a fresh store on the same path returns it."""
        # Arrange
        path = tmp_path / "encryption.key"
        first = FileKeyStore(path).get_or_create_key()

        # Act
        second = FileKeyStore(path).get_or_create_key()

        # Assert
        assert second.raw == first.raw

    def test_key_file_is_owner_only(self, tmp_path: Path) -> None:
        path = tmp_path / "encryption.key"

        FileKeyStore(path).get_or_create_key()

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_lost_race_adopts_persisted_key(self, tmp_path: Path) -> None:
        """Given another process persisted first, create_if_absent returns its key."""
        # Arrange
        path = tmp_path / "encryption.key"
        winner = b"\x11" * 32
        path.write_bytes(winner)
        store = FileKeyStore(path)

        # Act
        persisted = store.create_if_absent(b"\x22" * 32)

        # Assert
        assert persisted == winner
        assert path.read_bytes() == winner

    def test_race_between_load_and_create_adopts_winner(self, tmp_path: Path) -> None:
        """Given the key appears after load() saw nothing, the loser adopts it."""
        # Arrange
        path = tmp_path / "encryption.key"
        winner = b"\x33" * 32
        store = FileKeyStore(path)
        original_create = store.create_if_absent

        def create_after_competitor(raw: bytes) -> bytes:
            path.write_bytes(winner)
            return original_create(raw)

        # Act
        with patch.object(store, "create_if_absent", side_effect=create_after_competitor):
            key = store.get_or_create_key()

        # Assert
        assert key.raw == winner

    def test_no_temp_files_left_behind(self, tmp_path: Path) -> None:
        path = tmp_path / "encryption.key"

        FileKeyStore(path).get_or_create_key()

        assert [p.name for p in tmp_path.iterdir()] == ["encryption.key"]

    def test_wrong_length_key_raises_storage_unavailable(self, tmp_path: Path) -> None:
        path = tmp_path / "encryption.key"
        path.write_bytes(b"short")

        with pytest.raises(StorageUnavailableError):
            FileKeyStore(path).get_or_create_key()

    def test_unreadable_path_raises_storage_unavailable(self, tmp_path: Path) -> None:
        """Given the key path is a directory, reading fails cleanly."""
        path = tmp_path / "encryption.key"
        path.mkdir()

        with pytest.raises(StorageUnavailableError):
            FileKeyStore(path).load()


# ============================================================================
# Tests: KeychainKeyStore
# ============================================================================


class TestKeychainKeyStore:
    def test_generates_and_stores_base64(self) -> None:
        fake = _DictKeyring()
        with patch("keyring.get_password", fake.get_password), patch("keyring.set_password", fake.set_password):
            key = KeychainKeyStore(service="svc", username="user").get_or_create_key()

        assert base64.b64decode(fake.values[("svc", "user")]) == key.raw

    def test_existing_key_is_reused(self) -> None:
        fake = _DictKeyring()
        existing = b"\x44" * 32
        fake.values[("svc", "user")] = base64.b64encode(existing).decode()

        with patch("keyring.get_password", fake.get_password), patch("keyring.set_password", fake.set_password):
            key = KeychainKeyStore(service="svc", username="user").get_or_create_key()

        assert key.raw == existing

    def test_keyring_error_raises_storage_unavailable(self) -> None:
        from keyring.errors import KeyringError

        with patch("keyring.get_password", side_effect=KeyringError("locked")):
            with pytest.raises(StorageUnavailableError):
                KeychainKeyStore(service="svc", username="user").load()

    def test_invalid_base64_raises_storage_unavailable(self) -> None:
        with patch("keyring.get_password", return_value="!!not-base64!!"):
            with pytest.raises(StorageUnavailableError):
                KeychainKeyStore(service="svc", username="user").load()

    def test_is_usable_rejects_fail_backend(self) -> None:
        from keyring.backends.fail import Keyring as FailKeyring

        with patch("keyring.get_keyring", return_value=FailKeyring()):
            assert KeychainKeyStore().is_usable() is False

    def test_is_usable_rejects_read_error(self) -> None:
        with (
            patch("keyring.get_keyring", return_value=object()),
            patch("keyring.get_password", side_effect=RuntimeError("no dbus")),
        ):
            assert KeychainKeyStore().is_usable() is False

    def test_is_usable_does_not_write(self) -> None:
        fake = _DictKeyring()
        with (
            patch("keyring.get_keyring", return_value=object()),
            patch("keyring.get_password", fake.get_password),
            patch("keyring.set_password", fake.set_password),
        ):
            assert KeychainKeyStore(service="svc", username="user").is_usable() is True

        assert fake.values == {}


# ============================================================================
# Tests: Factory
# ============================================================================


class TestCreateKeyStore:
    def test_file_backend(self, tmp_path: Path) -> None:
        config = StorageConfig(key_backend="file", key_file=str(tmp_path / "k"))

        store = create_key_store(config)

        assert isinstance(store, FileKeyStore)
        assert store.location == str(tmp_path / "k")

    def test_keychain_backend(self) -> None:
        store = create_key_store(StorageConfig(key_backend="keychain"))

        assert isinstance(store, KeychainKeyStore)

    def test_auto_falls_back_to_file_without_keyring(self, tmp_path: Path) -> None:
        config = StorageConfig(key_backend="auto", key_file=str(tmp_path / "k"))

        with patch.object(KeychainKeyStore, "is_usable", return_value=False):
            store = create_key_store(config)

        assert isinstance(store, FileKeyStore)

    def test_auto_prefers_keychain(self) -> None:
        with patch.object(KeychainKeyStore, "is_usable", return_value=True):
            store = create_key_store(StorageConfig(key_backend="auto"))

        assert isinstance(store, KeychainKeyStore)

    def test_info_reports_provisioning_without_key_material(self, tmp_path: Path) -> None:
        store = FileKeyStore(tmp_path / "k")

        before = get_key_store_info(store)
        key = store.get_or_create_key()
        after = get_key_store_info(store)

        assert before == {"backend": "file", "location": str(tmp_path / "k"), "provisioned": False}
        assert after["provisioned"] is True
        assert key.raw.hex() not in str(after)
