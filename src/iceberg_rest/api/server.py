"""FastAPI server for the catalog auth proxy.

Implements:
- Auth API (/api/auth) - login creates a session, logout deletes it
- Catalog proxy (/api/iceberg/{path}) - authenticated forwarding
- Health (/api/health) - liveness

Shared state (created in the lifespan, closed on shutdown):
- Encryption key (read-only after startup)
- Async SQLAlchemy engine and SessionStore
- One httpx.AsyncClient for token exchanges and catalog calls

Usage:
    iceberg-rest start

    For development:
        uv run uvicorn iceberg_rest.api.server:create_api_app \\
            --factory --host 127.0.0.1 --port 8787
"""

from __future__ import annotations

__all__ = ["create_api_app"]

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from iceberg_rest import __version__
from iceberg_rest.config import AppConfig, load_config
from iceberg_rest.constants import CORS_ALLOWED_HEADERS, CORS_ALLOWED_METHODS
from iceberg_rest.exceptions import IcebergRestError
from iceberg_rest.proxy import CatalogProxy
from iceberg_rest.security.auth.resolver import AuthStrategyResolver
from iceberg_rest.security.key_store import EncryptionKey, create_key_store
from iceberg_rest.sessions.db import create_engine, create_session_factory, init_db
from iceberg_rest.sessions.store import SessionStore
from iceberg_rest.telemetry.system.system_logger import get_system_logger

from .errors import (
    http_exception_handler,
    iceberg_rest_error_handler,
    validation_error_handler,
)
from .routes import auth, health, iceberg


def create_api_app(
    config: AppConfig | None = None,
    *,
    key: EncryptionKey | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create the FastAPI application with all routes.

    Args:
        config: Application config. Loaded from file/env if None.
        key: Encryption key. Provisioned from the configured key store if None.
        http_client: Outbound client. Created (and closed) by the app if None;
            an injected client is left open for the caller.

    Returns:
        Configured FastAPI application.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger = get_system_logger()

        encryption_key = key or create_key_store(config.storage).get_or_create_key()

        engine = create_engine(config.storage.database_url)
        await init_db(engine)
        store = SessionStore(create_session_factory(engine), encryption_key)

        client = http_client or httpx.AsyncClient(
            verify=config.upstream.verify_tls,
            timeout=config.upstream.timeout_seconds,
        )
        resolver = AuthStrategyResolver(client, oauth_timeout=config.upstream.oauth_timeout_seconds)

        app.state.session_store = store
        app.state.catalog_proxy = CatalogProxy(
            store,
            resolver,
            client,
            timeout=config.upstream.timeout_seconds,
        )

        logger.info(
            {
                "event": "server_started",
                "message": f"iceberg-rest {__version__} ready",
                "version": __version__,
            }
        )

        try:
            yield
        finally:
            if http_client is None:
                await client.aclose()
            await engine.dispose()
            logger.info({"event": "server_stopped", "message": "iceberg-rest stopped"})

    app = FastAPI(
        title="iceberg-rest",
        description="Authenticating proxy for Apache Iceberg REST catalogs",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    # CORS (preflight answered by the middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        max_age=3600,  # Cache preflight for 1 hour
    )

    # Register exception handlers for structured error responses
    app.add_exception_handler(IcebergRestError, iceberg_rest_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Mount API routes
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(iceberg.router, prefix=iceberg.PREFIX, tags=["iceberg"])
    app.include_router(health.router, prefix="/api/health", tags=["health"])

    return app
