"""Catalog proxy endpoint.

Any method under /api/iceberg/{path} is forwarded to the session's catalog
endpoint with outbound auth applied. The path is taken from the raw
request target so percent-encoding reaches the catalog (and the SigV4
canonical URI) unchanged.

Routes mounted at: /api/iceberg
"""

from __future__ import annotations

__all__ = ["PREFIX", "router"]

from fastapi import APIRouter, Request, Response

from iceberg_rest.api.deps import CatalogProxyDep
from iceberg_rest.constants import BODYLESS_METHODS, PROXY_METHODS, SESSION_HEADER

PREFIX = "/api/iceberg"

router = APIRouter()


def _upstream_path(request: Request, path: str) -> str:
    """Path below the proxy prefix, percent-encoded as the client sent it."""
    raw_path: bytes | None = request.scope.get("raw_path")
    if raw_path:
        decoded = raw_path.split(b"?", 1)[0].decode("latin-1")
        if decoded.startswith(PREFIX):
            return decoded[len(PREFIX) :]
    return f"/{path}" if path else ""


@router.api_route("/{path:path}", methods=list(PROXY_METHODS))
async def proxy_catalog(path: str, request: Request, proxy: CatalogProxyDep) -> Response:
    """Forward the request to the catalog and relay its response.

    Raises:
        UnauthenticatedError: 401 without X-Session-ID.
        SessionInvalidError: 401 for unknown/expired sessions.
        OAuthExchangeError: 502 when the token exchange fails.
        UpstreamUnreachableError: 502 when the catalog cannot be reached.
    """
    method = request.method.upper()
    body = await request.body() if method not in BODYLESS_METHODS else None

    proxied = await proxy.proxy(
        request.headers.get(SESSION_HEADER),
        method,
        _upstream_path(request, path),
        request.url.query,
        request.headers,
        body,
    )

    return Response(
        content=proxied.content,
        status_code=proxied.status_code,
        media_type=proxied.media_type,
    )
