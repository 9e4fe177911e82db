"""Liveness endpoint.

Routes mounted at: /api/health
"""

from __future__ import annotations

__all__ = ["router"]

from fastapi import APIRouter

from iceberg_rest import __version__
from iceberg_rest.api.schemas import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(version=__version__)
