"""API request/response schemas."""

from taskbridge.api.schemas.common import ErrorResponse, HealthResponse, ServiceStatus

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "ServiceStatus",
]
