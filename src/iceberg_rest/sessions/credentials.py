"""Credential records for the three supported auth schemes.

Each record carries its own auth_type tag. The encrypted payload stored in
the sessions table is the JSON of one record, so the tag travels with the
secret and is checked against the row's auth_type on every read.

Records are plaintext secrets for in-process use only. They are never
returned to the client and never logged (secret fields are excluded from
repr).
"""

from __future__ import annotations

__all__ = [
    "AuthScheme",
    "BearerCredentials",
    "ClientCredentials",
    "CredentialRecord",
    "SigV4Credentials",
    "parse_credential_record",
]

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from iceberg_rest.exceptions import CredentialMismatchError


class AuthScheme(str, Enum):
    """How outbound catalog requests are authenticated."""

    BEARER = "bearer"
    OAUTH2 = "oauth2"
    SIGV4 = "sigv4"


class _CredentialModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BearerCredentials(_CredentialModel):
    """Static bearer token."""

    auth_type: Literal["bearer"] = "bearer"
    token: str = Field(min_length=1, repr=False)


class ClientCredentials(_CredentialModel):
    """OAuth2 client-credentials grant parameters."""

    auth_type: Literal["oauth2"] = "oauth2"
    token_endpoint: str = Field(min_length=1)
    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1, repr=False)
    scope: str


class SigV4Credentials(_CredentialModel):
    """AWS access key pair plus the signing scope."""

    auth_type: Literal["sigv4"] = "sigv4"
    access_key: str = Field(min_length=1)
    secret_key: str = Field(min_length=1, repr=False)
    region: str = Field(min_length=1)
    service: str = Field(min_length=1)


CredentialRecord = Annotated[
    Union[BearerCredentials, ClientCredentials, SigV4Credentials],
    Field(discriminator="auth_type"),
]

_record_adapter: TypeAdapter[CredentialRecord] = TypeAdapter(CredentialRecord)


def parse_credential_record(payload: bytes | str, auth_type: AuthScheme | str) -> CredentialRecord:
    """Validate a serialized record against the session's declared scheme.

    Args:
        payload: JSON produced by ``record.model_dump_json()``.
        auth_type: Scheme stored alongside the payload.

    Returns:
        The validated credential record.

    Raises:
        CredentialMismatchError: If the payload is not a valid record, or its
            tag differs from ``auth_type``.
    """
    try:
        scheme = AuthScheme(auth_type)
    except ValueError as e:
        raise CredentialMismatchError(f"Unknown auth type '{auth_type}'") from e

    try:
        record = _record_adapter.validate_json(payload)
    except ValidationError as e:
        raise CredentialMismatchError(f"Stored credentials are malformed: {e.error_count()} error(s)") from e

    if record.auth_type != scheme.value:
        raise CredentialMismatchError(
            f"Stored credentials are for '{record.auth_type}', session declares '{scheme.value}'"
        )
    return record
