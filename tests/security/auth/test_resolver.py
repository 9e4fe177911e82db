"""Tests for outbound auth strategy resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from iceberg_rest.exceptions import CredentialMismatchError, OAuthExchangeError
from iceberg_rest.security.auth.resolver import (
    AuthStrategyResolver,
    BearerStrategy,
    ClientCredentialsStrategy,
    OutboundRequest,
    SigV4Strategy,
)
from iceberg_rest.sessions.credentials import (
    AuthScheme,
    BearerCredentials,
    ClientCredentials,
    SigV4Credentials,
)
from iceberg_rest.sessions.models import CatalogSession


def _session(auth_type: AuthScheme, credentials) -> CatalogSession:
    return CatalogSession(
        session_id="a" * 64,
        auth_type=auth_type,
        credentials=credentials,
        endpoint="https://catalog.example.com",
        warehouse=None,
        created_at=0,
        expires_at=86_400_000,
        last_used_at=0,
    )


OUTBOUND = OutboundRequest(method="GET", url="https://catalog.example.com/v1/namespaces")


def _resolver(handler=None, **kwargs) -> tuple[AuthStrategyResolver, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler or (lambda r: httpx.Response(500))))
    return AuthStrategyResolver(client, **kwargs), client


class TestStrategySelection:
    @pytest.mark.parametrize(
        "scheme, strategy_type",
        [
            (AuthScheme.BEARER, BearerStrategy),
            (AuthScheme.OAUTH2, ClientCredentialsStrategy),
            (AuthScheme.SIGV4, SigV4Strategy),
        ],
    )
    def test_one_strategy_per_scheme(self, scheme: AuthScheme, strategy_type: type) -> None:
        resolver, _ = _resolver()

        assert isinstance(resolver.strategy_for(scheme), strategy_type)


class TestBearer:
    @pytest.mark.asyncio
    async def test_headers(self) -> None:
        resolver, client = _resolver()
        session = _session(AuthScheme.BEARER, BearerCredentials(token="abc123"))

        async with client:
            headers = await resolver.resolve(session, OUTBOUND)

        assert headers == {
            "Authorization": "Bearer abc123",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }


class TestClientCredentials:
    @pytest.mark.asyncio
    async def test_one_exchange_per_call(self) -> None:
        """Given two resolves, the token endpoint is hit twice (no cache)."""
        # Arrange
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"access_token": f"T{len(calls)}"})

        resolver, client = _resolver(handler)
        session = _session(
            AuthScheme.OAUTH2,
            ClientCredentials(
                token_endpoint="https://catalog.example.com/v1/oauth/tokens",
                client_id="cid",
                client_secret="cs",
                scope="PRINCIPAL_ROLE:ALL",
            ),
        )

        # Act
        async with client:
            first = await resolver.resolve(session, OUTBOUND)
            second = await resolver.resolve(session, OUTBOUND)

        # Assert
        assert len(calls) == 2
        assert first["Authorization"] == "Bearer T1"
        assert second["Authorization"] == "Bearer T2"
        assert first["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_exchange_failure_propagates(self) -> None:
        resolver, client = _resolver(lambda r: httpx.Response(400, json={"error": "invalid_scope"}))
        session = _session(
            AuthScheme.OAUTH2,
            ClientCredentials(token_endpoint="https://a.example.com/t", client_id="c", client_secret="s", scope="x"),
        )

        async with client:
            with pytest.raises(OAuthExchangeError):
                await resolver.resolve(session, OUTBOUND)


class TestSigV4:
    @pytest.mark.asyncio
    async def test_headers(self) -> None:
        fixed = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        resolver, client = _resolver(sigv4_clock=lambda: fixed)
        session = _session(
            AuthScheme.SIGV4,
            SigV4Credentials(access_key="AKID", secret_key="SECRET", region="us-east-1", service="s3tables"),
        )

        async with client:
            headers = await resolver.resolve(session, OUTBOUND)

        assert set(headers) == {
            "Authorization",
            "Host",
            "x-amz-date",
            "x-amz-content-sha256",
            "Content-Type",
            "Accept",
        }
        assert headers["Host"] == "catalog.example.com"
        assert headers["x-amz-date"] == "20240115T123045Z"
        assert "Credential=AKID/20240115/us-east-1/s3tables/aws4_request" in headers["Authorization"]


class TestMismatch:
    @pytest.mark.asyncio
    async def test_credentials_not_matching_scheme_rejected(self) -> None:
        """Given a sigv4 session holding bearer credentials, resolution fails."""
        resolver, client = _resolver()
        session = _session(AuthScheme.SIGV4, BearerCredentials(token="abc"))

        async with client:
            with pytest.raises(CredentialMismatchError):
                await resolver.resolve(session, OUTBOUND)
