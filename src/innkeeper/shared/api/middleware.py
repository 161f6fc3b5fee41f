"""
Shared API Middleware
=====================

Request context middleware and the exception handlers registered on the app.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from innkeeper.config import settings
from innkeeper.core import ResourceNotFoundException, ValidationException
from innkeeper.shared.api.responses import error_response
from innkeeper.shared.infrastructure.logging import correlation_id_var, get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Polled by peers and load balancers; not logged.
QUIET_PATHS = frozenset({"/is-coordinator", "/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Assigns a correlation id to each request and logs its outcome.

    The caller's X-Correlation-ID is reused when present and echoed back.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request raised",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - started) * 1000)
                }
            )
            raise
        finally:
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id

        if request.url.path not in QUIET_PATHS:
            logger.info(
                f"{request.method} {request.url.path} {response.status_code}",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "client": request.client.host if request.client else None,
                    "response_time_ms": int((time.perf_counter() - started) * 1000)
                }
            )
        return response


async def not_found_handler(request: Request, exc: ResourceNotFoundException) -> Response:
    """Render ResourceNotFoundException as a 404 envelope."""
    return error_response(exc.message, status_code=status.HTTP_404_NOT_FOUND)


async def validation_handler(request: Request, exc: ValidationException) -> Response:
    """Render ValidationException raised outside the write pipeline as a 400 envelope."""
    return error_response(exc.message, status_code=status.HTTP_400_BAD_REQUEST)


async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    """
    Last-resort 500 envelope.

    The exception text is only echoed back in development.
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.exception(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__
        }
    )

    return error_response(
        "Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        correlation_id=correlation_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        debug_info=str(exc) if settings.environment == "development" else None,
    )
