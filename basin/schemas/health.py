"""Health check API schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness: the process is up."""

    status: Literal["ok"] = "ok"
    version: str = Field(..., description="Running application version")


class ReadinessResponse(BaseModel):
    """Readiness: the catalog database answers (or none is configured)."""

    status: Literal["ok"] = "ok"
    database: Literal["ok", "not_configured"] = Field(
        ..., description="Catalog database state"
    )
    cache: Literal["connected", "disabled"] = Field(
        ..., description="Permission cache state; a disabled cache only costs latency"
    )


class ReadinessErrorResponse(BaseModel):
    """Body of the 503 readiness response."""

    status: Literal["not_ready"] = "not_ready"
    message: str = Field(..., description="Reason")
