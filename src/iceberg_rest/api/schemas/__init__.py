"""API schemas (Pydantic models) for request/response validation."""

from __future__ import annotations

from iceberg_rest.api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
)
from iceberg_rest.api.schemas.health import HealthResponse

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    # Health
    "HealthResponse",
]
