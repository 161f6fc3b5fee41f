"""
Write Pipeline
==============

Every write endpoint follows the same template:

    decode JSON body -> validate -> persist -> respond

`WriteOperation` bundles the per-operation pieces and `run_write_operation`
executes the template, mapping failures onto the error envelope:

- undecodable body / wrong field types  -> 400 "Unable to accept <name>"
- ValidationException                   -> 400 "Unable to store <name>, validation failure [...]"
- RepositoryException                   -> 500 operation specific message, no internal detail
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Type, TypeVar

from fastapi import status
from fastapi.responses import Response
from pydantic import BaseModel, ValidationError

from innkeeper.core import RepositoryException, ValidationException
from innkeeper.shared.api.responses import error_response, success_response
from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


@dataclass(frozen=True)
class WriteOperation(Generic[RequestT]):
    """One write endpoint expressed as pipeline stages."""

    name: str
    request_model: Type[RequestT]
    validate: Callable[[RequestT], None]
    persist: Callable[[RequestT], Awaitable[str]]
    failure_message: Callable[[RequestT], str]


async def run_write_operation(operation: WriteOperation[RequestT], body: bytes) -> Response:
    """Run decode, validate, persist and respond for a single request body."""
    payload: Optional[RequestT] = None

    try:
        payload = operation.request_model.model_validate_json(body or b"{}")
    except ValidationError as e:
        logger.error(
            f"Unable to accept {operation.name}",
            extra={"operation": operation.name, "errors": e.error_count()}
        )
        return error_response(f"Unable to accept {operation.name}")

    try:
        operation.validate(payload)
        message = await operation.persist(payload)
    except ValidationException as e:
        logger.warning(
            f"Invalid {operation.name}",
            extra={"operation": operation.name, "reason": e.message}
        )
        return error_response(
            f"Unable to store {operation.name}, validation failure [{e.message}]"
        )
    except RepositoryException as e:
        logger.error(
            f"Unable to save {operation.name}",
            extra={"operation": operation.name, "error": e.message}
        )
        return error_response(
            operation.failure_message(payload),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return success_response(message)
