"""Health check schema."""

from __future__ import annotations

__all__ = ["HealthResponse"]

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str
