"""Response schemas shared across endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body.

    Args:
        error: Error type identifier (e.g., "validation_error", "http_error")
        message: Human-readable error description
        details: Optional additional context
        request_id: Optional request ID for tracing
    """

    error: str
    message: str
    details: Optional[dict] = None
    request_id: Optional[str] = None


class ServiceStatus(BaseModel):
    """Status of one backing service ("connected", "unavailable", "not_configured", "error")."""

    status: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Liveness/readiness response."""

    status: str
    version: str = "0.1.0"
    services: dict[str, ServiceStatus] = Field(default_factory=dict)
