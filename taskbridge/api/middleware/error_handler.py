"""Outermost middleware: every failure leaves as an ``ErrorResponse`` body."""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from taskbridge.api.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def _error(status_code: int, code: str, message: str, request_id: Optional[str]) -> JSONResponse:
    body = ErrorResponse(error=code, message=message, request_id=request_id)
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def error_handling_middleware(request: Request, call_next: Callable) -> Response:
    """Map ValueError to 400, HTTPException to its status, anything else to 500.

    Internal errors are logged with a traceback; their message is not returned.
    """
    try:
        return await call_next(request)
    except HTTPException as e:
        request_id = getattr(request.state, "request_id", None)
        logger.info(f"http_error: path={request.url.path}, status={e.status_code}")
        return _error(e.status_code, "http_error", str(e.detail), request_id)
    except ValueError as e:
        request_id = getattr(request.state, "request_id", None)
        logger.warning(f"validation_error: path={request.url.path}, error={e}")
        return _error(400, "validation_error", str(e), request_id)
    except Exception:
        request_id = getattr(request.state, "request_id", None)
        logger.exception(f"internal_error: path={request.url.path}, request_id={request_id}")
        return _error(500, "internal_error", "An unexpected error occurred", request_id)
