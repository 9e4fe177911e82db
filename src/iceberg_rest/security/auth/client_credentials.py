"""OAuth2 client-credentials token exchange.

Exchanges a client id/secret for an access token at the session's token
endpoint. Called once per proxied request; tokens are not cached.

Request:
    POST <token_endpoint>
    Authorization: Basic base64(client_id:client_secret)
    Content-Type: application/x-www-form-urlencoded
    grant_type=client_credentials&scope=<scope>
"""

from __future__ import annotations

__all__ = [
    "exchange_client_credentials",
]

import httpx

from iceberg_rest.constants import DEFAULT_OAUTH_TIMEOUT_SECONDS
from iceberg_rest.exceptions import OAuthExchangeError
from iceberg_rest.sessions.credentials import ClientCredentials
from iceberg_rest.telemetry.system.system_logger import get_system_logger


async def exchange_client_credentials(
    http_client: httpx.AsyncClient,
    credentials: ClientCredentials,
    *,
    timeout: float = DEFAULT_OAUTH_TIMEOUT_SECONDS,
) -> str:
    """Obtain an access token with the client-credentials grant.

    Args:
        http_client: Shared async client.
        credentials: Client id/secret, token endpoint and scope.
        timeout: Request timeout in seconds.

    Returns:
        The access token.

    Raises:
        OAuthExchangeError: On transport errors, timeouts, non-2xx
            responses, non-JSON bodies or a missing access_token.
    """
    logger = get_system_logger()
    token_host = httpx.URL(credentials.token_endpoint).host

    try:
        response = await http_client.post(
            credentials.token_endpoint,
            auth=httpx.BasicAuth(credentials.client_id, credentials.client_secret),
            data={
                "grant_type": "client_credentials",
                "scope": credentials.scope,
            },
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except httpx.TimeoutException as e:
        logger.warning(
            {
                "event": "oauth_exchange_failed",
                "message": f"Token endpoint {token_host} timed out",
                "token_host": token_host,
                "error_type": "timeout",
            }
        )
        raise OAuthExchangeError("OAuth2 token endpoint timed out") from e
    except httpx.HTTPError as e:
        logger.warning(
            {
                "event": "oauth_exchange_failed",
                "message": f"Token endpoint {token_host} unreachable: {type(e).__name__}",
                "token_host": token_host,
                "error_type": type(e).__name__,
            }
        )
        raise OAuthExchangeError("OAuth2 token endpoint unreachable") from e

    if not response.is_success:
        logger.warning(
            {
                "event": "oauth_exchange_failed",
                "message": f"Token endpoint {token_host} returned {response.status_code}",
                "token_host": token_host,
                "status_code": response.status_code,
            }
        )
        reason = response.reason_phrase or str(response.status_code)
        raise OAuthExchangeError(f"OAuth2 token exchange failed: {reason}")

    try:
        data = response.json()
    except ValueError as e:
        raise OAuthExchangeError("OAuth2 token response is not valid JSON") from e

    access_token = data.get("access_token") if isinstance(data, dict) else None
    if not isinstance(access_token, str) or not access_token:
        raise OAuthExchangeError("OAuth2 token response has no access_token")

    return access_token
