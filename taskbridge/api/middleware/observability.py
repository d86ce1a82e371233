"""Access log middleware."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request; 4xx at WARNING so bad signatures stand out."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        start = time.monotonic()
        response: Response = await call_next(request)
        elapsed_ms = int((time.monotonic() - start) * 1000)

        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            level,
            f"http_request: method={request.method} path={request.url.path} "
            f"status={response.status_code} duration_ms={elapsed_ms} "
            f"request_id={getattr(request.state, 'request_id', None)}",
        )
        return response
