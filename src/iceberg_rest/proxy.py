"""Catalog request proxy.

Forwards one client request to the session's catalog endpoint with the
outbound authentication for the session's scheme, and relays the answer.

Flow:
1. Session id present? Otherwise UnauthenticatedError (401)
2. Look up session (SessionInvalidError when unknown/expired)
3. Build target URL: endpoint + path + ?query
4. Resolve outbound auth headers against the exact target request
5. Forward via the shared httpx.AsyncClient
6. Relay status, content type and body

Upstream 401/403 bodies are replaced by a generic JSON error so upstream
auth details never reach the browser. Other upstream errors are relayed
as-is. Connect errors and timeouts raise UpstreamUnreachableError (502).
"""

from __future__ import annotations

__all__ = [
    "CatalogProxy",
    "ProxiedResponse",
    "build_target_url",
]

import json
import time
from dataclasses import dataclass, field
from typing import Mapping

import httpx

from iceberg_rest.constants import (
    BODYLESS_METHODS,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    FORWARDED_REQUEST_HEADERS,
)
from iceberg_rest.exceptions import UnauthenticatedError, UpstreamUnreachableError
from iceberg_rest.security.auth.resolver import AuthStrategyResolver, OutboundRequest
from iceberg_rest.sessions.store import SessionStore
from iceberg_rest.telemetry.system.system_logger import get_system_logger, short_id

# Upstream statuses whose bodies are not relayed
_AUTH_FAILURE_STATUSES = frozenset({401, 403})

_DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class ProxiedResponse:
    """Response relayed to the client.

    Attributes:
        status_code: Upstream HTTP status.
        headers: Headers to send back (content type only).
        content: Response body bytes.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    @property
    def media_type(self) -> str:
        return self.headers.get("content-type", _DEFAULT_CONTENT_TYPE)


def build_target_url(endpoint: str, path: str, query: str | None) -> str:
    """Join the session endpoint with the proxied path and query."""
    if path and not path.startswith("/"):
        path = f"/{path}"
    target = f"{endpoint}{path}"
    if query:
        target = f"{target}?{query}"
    return target


def _generic_auth_failure(status_code: int) -> bytes:
    if status_code == 401:
        message = "Catalog rejected the session credentials"
    else:
        message = "Catalog denied access to this resource"
    return json.dumps({"error": message, "code": "UPSTREAM_AUTH_FAILED"}).encode("utf-8")


class CatalogProxy:
    """Forwards authenticated requests to the session's catalog.

    Usage:
        proxy = CatalogProxy(store, resolver, http_client)
        response = await proxy.proxy(session_id, "GET", "/v1/namespaces", "", headers, b"")
    """

    def __init__(
        self,
        store: SessionStore,
        resolver: AuthStrategyResolver,
        http_client: httpx.AsyncClient,
        *,
        timeout: float = DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._http_client = http_client
        self._timeout = timeout

    async def proxy(
        self,
        session_id: str | None,
        method: str,
        path: str,
        query: str | None,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> ProxiedResponse:
        """Forward one request upstream.

        Args:
            session_id: Value of the X-Session-ID header (may be missing).
            method: Inbound HTTP method.
            path: Path below the proxy prefix (e.g. "/v1/namespaces").
            query: Raw query string without '?'.
            headers: Inbound request headers.
            body: Inbound body (ignored for GET/HEAD).

        Returns:
            ProxiedResponse to relay.

        Raises:
            UnauthenticatedError: No session id.
            SessionInvalidError: Unknown, expired or undecryptable session.
            OAuthExchangeError: Token exchange failed.
            UpstreamUnreachableError: Catalog could not be reached.
        """
        if not session_id or not session_id.strip():
            raise UnauthenticatedError()

        session = await self._store.get(session_id.strip())

        method = method.upper()
        outbound_body = body if method not in BODYLESS_METHODS and body else None
        target_url = build_target_url(session.endpoint, path, query)
        outbound = OutboundRequest(method=method, url=target_url, body=outbound_body)

        outbound_headers = {k: v for k, v in headers.items() if k.lower() in FORWARDED_REQUEST_HEADERS}
        outbound_headers.update(await self._resolver.resolve(session, outbound))

        logger = get_system_logger()
        endpoint_host = httpx.URL(session.endpoint).host
        start_time = time.monotonic()

        try:
            response = await self._http_client.request(
                method,
                target_url,
                headers=outbound_headers,
                content=outbound_body,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(
                {
                    "event": "upstream_timeout",
                    "message": f"Catalog {endpoint_host} timed out after {duration_ms}ms",
                    "session_id": short_id(session.session_id),
                    "endpoint_host": endpoint_host,
                    "duration_ms": duration_ms,
                }
            )
            raise UpstreamUnreachableError(f"Catalog endpoint {endpoint_host} timed out") from e
        except httpx.HTTPError as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(
                {
                    "event": "upstream_unreachable",
                    "message": f"Failed to reach catalog {endpoint_host}: {type(e).__name__}",
                    "session_id": short_id(session.session_id),
                    "endpoint_host": endpoint_host,
                    "error_type": type(e).__name__,
                    "duration_ms": duration_ms,
                }
            )
            raise UpstreamUnreachableError(f"Catalog endpoint {endpoint_host} unreachable") from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        content_type = response.headers.get("content-type", _DEFAULT_CONTENT_TYPE)

        if response.status_code >= 400:
            logger.warning(
                {
                    "event": "upstream_response_error",
                    "message": f"Catalog {endpoint_host} returned {response.status_code} for {method} {path}",
                    "session_id": short_id(session.session_id),
                    "endpoint_host": endpoint_host,
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
            )

        if response.status_code in _AUTH_FAILURE_STATUSES:
            return ProxiedResponse(
                status_code=response.status_code,
                headers={"content-type": _DEFAULT_CONTENT_TYPE},
                content=_generic_auth_failure(response.status_code),
            )

        return ProxiedResponse(
            status_code=response.status_code,
            headers={"content-type": content_type},
            content=response.content,
        )
