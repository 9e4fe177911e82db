"""Outbound authentication for proxied catalog requests.

Turns a session's credential record into the headers attached to one
outbound request. One strategy per auth scheme:

    bearer  -> BearerStrategy            static Authorization: Bearer
    oauth2  -> ClientCredentialsStrategy token exchange, then Bearer
    sigv4   -> SigV4Strategy             AWS SigV4 over method, URL and body

Strategies never modify the session.
"""

from __future__ import annotations

__all__ = [
    "AuthStrategy",
    "AuthStrategyResolver",
    "BearerStrategy",
    "ClientCredentialsStrategy",
    "OutboundRequest",
    "SigV4Strategy",
]

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import httpx

from iceberg_rest.constants import DEFAULT_OAUTH_TIMEOUT_SECONDS
from iceberg_rest.exceptions import CredentialMismatchError
from iceberg_rest.security.auth.client_credentials import exchange_client_credentials
from iceberg_rest.security.auth.sigv4 import sign_request
from iceberg_rest.sessions.credentials import (
    AuthScheme,
    BearerCredentials,
    ClientCredentials,
    SigV4Credentials,
)
from iceberg_rest.sessions.models import CatalogSession

# Content negotiation sent with every catalog call
_JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class OutboundRequest:
    """The fully qualified request about to be sent upstream.

    Attributes:
        method: HTTP method.
        url: Target URL including query string.
        body: Body bytes, or None when no body is sent.
    """

    method: str
    url: str
    body: bytes | None = None


class AuthStrategy(ABC):
    """Produces outbound headers for one auth scheme."""

    credential_type: type

    async def headers_for(self, session: CatalogSession, outbound: OutboundRequest) -> dict[str, str]:
        credentials = session.credentials
        if not isinstance(credentials, self.credential_type):
            raise CredentialMismatchError(
                f"Session declares '{session.auth_type.value}' but holds {type(credentials).__name__}"
            )
        return await self._headers(credentials, outbound)

    @abstractmethod
    async def _headers(self, credentials, outbound: OutboundRequest) -> dict[str, str]:
        pass


class BearerStrategy(AuthStrategy):
    credential_type = BearerCredentials

    async def _headers(self, credentials: BearerCredentials, outbound: OutboundRequest) -> dict[str, str]:
        return {**_JSON_HEADERS, "Authorization": f"Bearer {credentials.token}"}


class ClientCredentialsStrategy(AuthStrategy):
    """Exchanges client credentials for an access token on every call."""

    credential_type = ClientCredentials

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = DEFAULT_OAUTH_TIMEOUT_SECONDS) -> None:
        self._http_client = http_client
        self._timeout = timeout

    async def _headers(self, credentials: ClientCredentials, outbound: OutboundRequest) -> dict[str, str]:
        access_token = await exchange_client_credentials(self._http_client, credentials, timeout=self._timeout)
        return {**_JSON_HEADERS, "Authorization": f"Bearer {access_token}"}


class SigV4Strategy(AuthStrategy):
    """Signs the exact outbound request with AWS SigV4."""

    credential_type = SigV4Credentials

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock

    async def _headers(self, credentials: SigV4Credentials, outbound: OutboundRequest) -> dict[str, str]:
        signed = sign_request(
            outbound.method,
            outbound.url,
            outbound.body,
            access_key=credentials.access_key,
            secret_key=credentials.secret_key,
            region=credentials.region,
            service=credentials.service,
            now=self._clock() if self._clock else None,
        )
        return {
            "Authorization": signed.authorization,
            "Host": signed.host,
            "x-amz-date": signed.amz_date,
            "x-amz-content-sha256": signed.payload_hash,
            **_JSON_HEADERS,
        }


class AuthStrategyResolver:
    """Selects the strategy for a session's auth scheme.

    Usage:
        resolver = AuthStrategyResolver(http_client)
        headers = await resolver.resolve(session, OutboundRequest("GET", url))
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        oauth_timeout: float = DEFAULT_OAUTH_TIMEOUT_SECONDS,
        sigv4_clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._strategies: dict[AuthScheme, AuthStrategy] = {
            AuthScheme.BEARER: BearerStrategy(),
            AuthScheme.OAUTH2: ClientCredentialsStrategy(http_client, oauth_timeout),
            AuthScheme.SIGV4: SigV4Strategy(sigv4_clock),
        }

    def strategy_for(self, auth_type: AuthScheme) -> AuthStrategy:
        return self._strategies[AuthScheme(auth_type)]

    async def resolve(self, session: CatalogSession, outbound: OutboundRequest) -> dict[str, str]:
        """Build outbound headers for the session.

        Raises:
            CredentialMismatchError: Credentials do not fit the declared scheme.
            OAuthExchangeError: Token exchange failed (oauth2 only).
        """
        return await self.strategy_for(session.auth_type).headers_for(session, outbound)
