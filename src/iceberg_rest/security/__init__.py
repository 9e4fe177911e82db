"""Security primitives: encryption key provisioning and credential encryption."""

from iceberg_rest.security.credential_codec import decrypt, decrypt_record, encrypt, encrypt_record
from iceberg_rest.security.key_store import (
    EncryptionKey,
    FileKeyStore,
    KeychainKeyStore,
    KeyStore,
    create_key_store,
    get_key_store_info,
)

__all__ = [
    # Key store
    "EncryptionKey",
    "KeyStore",
    "FileKeyStore",
    "KeychainKeyStore",
    "create_key_store",
    "get_key_store_info",
    # Codec
    "encrypt",
    "decrypt",
    "encrypt_record",
    "decrypt_record",
]
