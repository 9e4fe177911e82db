"""Session login/logout endpoints.

- POST /api/auth/login  - Validate credentials shape, store encrypted, return session id
- POST /api/auth/logout - Delete the session named by X-Session-ID (always succeeds)

Routes mounted at: /api/auth
"""

from __future__ import annotations

__all__ = ["router"]

import httpx
from fastapi import APIRouter, Header, Request

from iceberg_rest.api.deps import SessionStoreDep
from iceberg_rest.api.schemas import LoginRequest, LoginResponse, LogoutResponse
from iceberg_rest.telemetry.system.system_logger import get_system_logger

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, store: SessionStoreDep) -> LoginResponse:
    """Create a session for the given catalog and credentials.

    Nothing upstream is contacted; credentials are only checked for shape.

    Raises:
        LoginValidationError: 400 when a required field is missing.
        StorageUnavailableError: 500 when the session cannot be stored.
    """
    endpoint = body.normalized_endpoint()
    credentials = body.to_credentials(endpoint)

    session = await store.create(
        body.auth_type,
        credentials,
        endpoint,
        body.warehouse or None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    endpoint_host = httpx.URL(endpoint).host
    get_system_logger().info(
        {
            "event": "login_success",
            "message": f"Login to {endpoint_host} ({session.auth_type.value})",
            "auth_type": session.auth_type.value,
            "endpoint_host": endpoint_host,
        }
    )

    return LoginResponse(session_id=session.session_id, expires_at=session.expires_at)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    store: SessionStoreDep,
    x_session_id: str | None = Header(default=None),
) -> LogoutResponse:
    """Delete the session if one is named. Succeeds for unknown or missing ids."""
    if x_session_id:
        await store.delete(x_session_id.strip())
    return LogoutResponse(success=True)
