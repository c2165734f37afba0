"""Pydantic schema for the health endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness payload returned by GET /health."""

    status: str = Field(..., description="Always 'OK' while the process serves requests.")
    timestamp: str = Field(..., description="Current server time (ISO-8601, UTC).")
    service: str = Field(..., description="Service name from configuration.")
