"""Outbound authentication for catalog requests.

This module provides:
- AWS SigV4 request signing
- OAuth2 client-credentials token exchange
- Strategy resolution by session auth scheme
"""

from iceberg_rest.security.auth.client_credentials import exchange_client_credentials
from iceberg_rest.security.auth.resolver import (
    AuthStrategy,
    AuthStrategyResolver,
    BearerStrategy,
    ClientCredentialsStrategy,
    OutboundRequest,
    SigV4Strategy,
)
from iceberg_rest.security.auth.sigv4 import SignedRequest, sign_request

__all__ = [
    # Strategies
    "AuthStrategy",
    "AuthStrategyResolver",
    "BearerStrategy",
    "ClientCredentialsStrategy",
    "OutboundRequest",
    "SigV4Strategy",
    # SigV4
    "SignedRequest",
    "sign_request",
    # OAuth2
    "exchange_client_credentials",
]
