"""Authenticated encryption of credential records for storage.

AES-256-GCM with a fresh 96-bit random nonce per call and the 128-bit tag
appended by AESGCM. Stored form is standard base64 of:

    nonce (12 bytes) || ciphertext || tag (16 bytes)

so it fits a text column. Anything that fails to decode or authenticate
raises DecryptionFailedError; garbage plaintext is never returned.

Usage:
    opaque = encrypt_record(key, BearerCredentials(token="abc123"))
    record = decrypt_record(key, opaque, AuthScheme.BEARER)
"""

from __future__ import annotations

__all__ = [
    "decrypt",
    "decrypt_record",
    "encrypt",
    "encrypt_record",
]

import base64
import binascii
import os
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag

from iceberg_rest.constants import NONCE_BYTES
from iceberg_rest.exceptions import DecryptionFailedError
from iceberg_rest.sessions.credentials import AuthScheme, CredentialRecord, parse_credential_record

if TYPE_CHECKING:
    from iceberg_rest.security.key_store import EncryptionKey

# GCM authentication tag length appended by AESGCM.encrypt
_TAG_BYTES = 16


def encrypt(key: "EncryptionKey", plaintext: bytes) -> str:
    """Encrypt bytes under the key with a fresh nonce.

    Args:
        key: Encryption key handle.
        plaintext: Bytes to protect.

    Returns:
        Base64 text of nonce || ciphertext_with_tag.
    """
    nonce = os.urandom(NONCE_BYTES)
    ciphertext = key.aead().encrypt(nonce, plaintext, None)
    return base64.b64encode(nonce + ciphertext).decode("ascii")


def decrypt(key: "EncryptionKey", opaque: str) -> bytes:
    """Decrypt text produced by encrypt().

    Args:
        key: Encryption key handle.
        opaque: Base64 text from storage.

    Returns:
        Original plaintext bytes.

    Raises:
        DecryptionFailedError: On bad encoding, truncated data, tampering
            or a wrong key.
    """
    try:
        combined = base64.b64decode(opaque, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailedError("Stored credentials are not valid base64") from e

    if len(combined) < NONCE_BYTES + _TAG_BYTES:
        raise DecryptionFailedError("Stored credentials are truncated")

    nonce, ciphertext = combined[:NONCE_BYTES], combined[NONCE_BYTES:]
    try:
        return key.aead().decrypt(nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionFailedError("Stored credentials failed authentication (tampered data or wrong key)") from e


def encrypt_record(key: "EncryptionKey", record: CredentialRecord) -> str:
    """Serialize a credential record to JSON and encrypt it."""
    return encrypt(key, record.model_dump_json().encode("utf-8"))


def decrypt_record(key: "EncryptionKey", opaque: str, auth_type: AuthScheme | str) -> CredentialRecord:
    """Decrypt and validate a credential record.

    Args:
        key: Encryption key handle.
        opaque: Base64 text from storage.
        auth_type: Scheme declared by the session row.

    Returns:
        Validated credential record.

    Raises:
        DecryptionFailedError: If decryption fails.
        CredentialMismatchError: If the record does not match ``auth_type``.
    """
    return parse_credential_record(decrypt(key, opaque), auth_type)
