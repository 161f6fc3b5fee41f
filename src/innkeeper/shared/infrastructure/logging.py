"""
Structured Logging
==================

JSON logs on stdout via python-json-logger.

Every record carries the environment, this node's cluster index and, while
a request is being served, its correlation id. The id lives in a context
variable set by the request middleware, so log calls deep inside services
get it without passing it around.

Usage:
    from innkeeper.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Application checked in", extra={"app": "billing", "component": "db"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from pythonjsonlogger import jsonlogger

REDACTED = "***REDACTED***"
SENSITIVE_KEYS = ("password", "token", "api_key", "webhook", "secret")

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "httpx", "watchdog")

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class CorrelationIdFilter(logging.Filter):
    """Copies the current request's correlation id onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            correlation_id = correlation_id_var.get()
            if correlation_id is not None:
                record.correlation_id = correlation_id
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding UTC timestamp, node identity and redaction."""

    def __init__(self, *args: Any, environment: str = "unknown", node_id: Optional[int] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.environment = environment
        self.node_id = node_id

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["environment"] = self.environment
        if self.node_id is not None:
            log_record["node_id"] = self.node_id

        for key in list(log_record):
            if isinstance(log_record[key], str) and any(s in key.lower() for s in SENSITIVE_KEYS):
                log_record[key] = REDACTED


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
    node_id: Optional[int] = None,
) -> None:
    """
    Route all logging through one JSON handler on stdout.

    Args:
        level: Root log level name
        environment: Tag added to every record
        node_id: Cluster index of this node, added to every record
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(CustomJsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        environment=environment,
        node_id=node_id,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any) -> Iterator[None]:
    """
    Log how long the wrapped block took, even when it raises.

    Usage:
        with log_latency(logger, "coordinator_discovery", nodes=3):
            polled = await asyncio.gather(...)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} finished",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                **extra_context,
            },
        )
