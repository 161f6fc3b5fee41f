"""
Circuit Breaker
===============

Stops calling an external service after repeated failures and lets a
single probe call through once the cool-down has passed.

    closed --(threshold consecutive failures)--> open
    open   --(cool-down elapsed)---------------> half_open
    half_open --(success)--> closed, --(failure)--> open
"""

import time
from enum import Enum
from typing import Callable, Optional

from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Consecutive-failure circuit breaker for one downstream dependency."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._consecutive_failures = 0
        self._opened_at: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if self._clock() - self._opened_at >= self.cooldown_seconds:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def allow_request(self) -> bool:
        return self.state is not CircuitState.OPEN

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("Circuit closed", extra={"dependency": self.name})
        self._consecutive_failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._consecutive_failures += 1
        was_half_open = self.state is CircuitState.HALF_OPEN

        if was_half_open or self._consecutive_failures >= self.failure_threshold:
            self._opened_at = self._clock()
            logger.warning(
                "Circuit opened",
                extra={
                    "dependency": self.name,
                    "consecutive_failures": self._consecutive_failures,
                    "cooldown_seconds": self.cooldown_seconds
                }
            )
