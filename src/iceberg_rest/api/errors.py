"""Structured API error handling.

This module provides:
- ErrorCode enum with the codes clients can match on
- Global exception handlers for consistent error formatting

Response format (client errors):
    {"error": "Invalid or expired session", "code": "SESSION_INVALID"}

Response format (server/upstream errors):
    {"error": "Proxy error", "message": "Catalog endpoint unreachable", "code": "UPSTREAM_UNREACHABLE"}
"""

from __future__ import annotations

__all__ = [
    "ErrorCode",
    "error_response",
    "http_exception_handler",
    "iceberg_rest_error_handler",
    "validation_error_handler",
]

from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from iceberg_rest.exceptions import IcebergRestError
from iceberg_rest.telemetry.system.system_logger import get_system_logger


class ErrorCode(str, Enum):
    """API error codes for programmatic handling.

    Codes are namespaced by domain:
    - AUTH_*/SESSION_*: Missing or invalid session
    - OAUTH_*/UPSTREAM_*: Catalog-side failures
    - VALIDATION_*: Input validation errors
    - INTERNAL_*/STORAGE_*: Internal server errors
    """

    # Authentication errors (401)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    SESSION_INVALID = "SESSION_INVALID"

    # Upstream errors (502)
    OAUTH_EXCHANGE_FAILED = "OAUTH_EXCHANGE_FAILED"
    UPSTREAM_UNREACHABLE = "UPSTREAM_UNREACHABLE"
    UPSTREAM_AUTH_FAILED = "UPSTREAM_AUTH_FAILED"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Resource errors (404, 405)
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Internal errors (500, 503)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# Headline for 5xx responses; the exception message goes in "message"
_SERVER_ERROR_TITLES = {
    500: "Internal error",
    502: "Proxy error",
    503: "Service unavailable",
}


def error_response(status_code: int, code: ErrorCode | str, message: str) -> JSONResponse:
    """Build an error response in the API's format.

    Args:
        status_code: HTTP status.
        code: Error code.
        message: Human-readable message.

    Returns:
        JSONResponse with {"error", "code"} (plus "message" for 5xx).
    """
    code_value = code.value if isinstance(code, ErrorCode) else code
    content: dict[str, Any]
    if status_code >= 500:
        content = {
            "error": _SERVER_ERROR_TITLES.get(status_code, "Internal error"),
            "message": message,
            "code": code_value,
        }
    else:
        content = {"error": message, "code": code_value}
    return JSONResponse(status_code=status_code, content=content)


async def iceberg_rest_error_handler(request: Request, exc: IcebergRestError) -> JSONResponse:
    """Map domain exceptions to their status code and error body.

    Args:
        request: FastAPI request object.
        exc: Domain exception.

    Returns:
        JSONResponse with structured error body.
    """
    if exc.status_code >= 500:
        get_system_logger().error(
            {
                "event": "request_failed",
                "message": f"{request.method} {request.url.path} failed: {exc.message}",
                "method": request.method,
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "error_type": type(exc).__name__,
            }
        )
    return error_response(exc.status_code, exc.error_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors as 400 with a readable message.

    Args:
        request: FastAPI request object.
        exc: RequestValidationError from Pydantic.

    Returns:
        JSONResponse with structured error body.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    if first_error.get("type") == "json_invalid":
        return error_response(400, ErrorCode.VALIDATION_ERROR, "Invalid JSON in request body")

    loc = first_error.get("loc", [])
    msg = first_error.get("msg", "Validation error")

    if len(errors) == 1:
        # Filter out 'body' from location path
        field_parts = [str(part) for part in loc if part != "body"]
        field_name = ".".join(field_parts)
        message = f"{field_name}: {msg}" if field_name else msg
    else:
        message = f"{len(errors)} validation errors"

    return error_response(400, ErrorCode.VALIDATION_ERROR, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap plain HTTPException (404, 405, 503 from deps) in the error format."""
    code = _status_to_error_code(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"
    return error_response(exc.status_code, code, message)


def _status_to_error_code(status_code: int) -> ErrorCode:
    mapping = {
        400: ErrorCode.VALIDATION_ERROR,
        401: ErrorCode.AUTH_REQUIRED,
        404: ErrorCode.NOT_FOUND,
        405: ErrorCode.METHOD_NOT_ALLOWED,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }
    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)
