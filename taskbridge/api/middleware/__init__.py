"""API middleware for request/response processing."""

from taskbridge.api.middleware.error_handler import error_handling_middleware
from taskbridge.api.middleware.observability import RequestLoggingMiddleware
from taskbridge.api.middleware.request_id import RequestIdMiddleware

__all__ = [
    "error_handling_middleware",
    "RequestIdMiddleware",
    "RequestLoggingMiddleware",
]
