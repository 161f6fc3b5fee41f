"""
Response Envelopes
==================

Every endpoint answers with the `{success, message}` or `{success, result}`
envelope. Errors that cannot be JSON-encoded degrade to a plain-text body.
"""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ENCODE_ERROR_FALLBACK = "Could not encode error"


def success_response(message: str) -> JSONResponse:
    """Standard success envelope for write operations."""
    return JSONResponse(content={"success": True, "message": message})


def error_response(
    message: Any,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    **extra: Any
) -> Response:
    """
    Error envelope with a non-success status code.

    Falls back to a plain-text body when the payload is not JSON-encodable.
    """
    try:
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "message": message, **extra},
        )
    except (TypeError, ValueError) as e:
        logger.error("Could not encode error payload", extra={"error": str(e)})
        return PlainTextResponse(ENCODE_ERROR_FALLBACK, status_code=status_code)
