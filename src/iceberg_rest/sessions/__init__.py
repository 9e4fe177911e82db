"""Catalog sessions: credential records, session model and persistent store."""

from iceberg_rest.sessions.credentials import (
    AuthScheme,
    BearerCredentials,
    ClientCredentials,
    CredentialRecord,
    SigV4Credentials,
    parse_credential_record,
)
from iceberg_rest.sessions.models import CatalogSession

__all__ = [
    "AuthScheme",
    "BearerCredentials",
    "CatalogSession",
    "ClientCredentials",
    "CredentialRecord",
    "SigV4Credentials",
    "parse_credential_record",
]
