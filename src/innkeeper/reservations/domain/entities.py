"""
Reservation Domain Entities
============================

Pure Python domain entities for check-in monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from typing import Optional

from innkeeper.config import TimeUnit
from innkeeper.shared.timeutil import unit_seconds


@dataclass
class Reservation:
    """
    SLA contract for one (app, component) pair.

    A reservation with frequency 0 is an implicit record created by a
    check-in for a pair nobody reserved; it never fails its SLA.
    """

    app: str
    component: str
    owner: str
    notify: str
    frequency: int
    time_units: str
    alert_message: Optional[str] = None
    last_checkin_timestamp: int = 0
    num_checkins: int = 0
    id: Optional[int] = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the reservation."""
        return (self.app, self.component)

    @property
    def is_implicit(self) -> bool:
        """True for records created by a check-in without a reservation."""
        return self.frequency == 0

    @property
    def allowed_gap_seconds(self) -> int:
        """Longest tolerated silence between two check-ins."""
        return self.frequency * unit_seconds(self.time_units)

    @classmethod
    def implicit(cls, app: str, component: str, now: int) -> "Reservation":
        """Record for a pair whose first sign of life is a check-in."""
        return cls(
            app=app,
            component=component,
            owner="",
            notify="",
            frequency=0,
            time_units=TimeUnit.SECONDS.value,
            last_checkin_timestamp=now,
            num_checkins=1,
        )


@dataclass
class Snooze:
    """Time-boxed suppression of failure detection for one pair."""

    app: str
    component: str
    duration: int
    time_units: str
    issued_at: int
    id: Optional[int] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.app, self.component)

    @property
    def expires_at(self) -> int:
        """Unix second at which the snooze stops suppressing failures."""
        return self.issued_at + self.duration * unit_seconds(self.time_units)

    def is_active(self, now: int) -> bool:
        """Check if the snooze still suppresses failures at `now`."""
        return self.expires_at > now


@dataclass(frozen=True)
class BadGuest:
    """Pair with a history of failure alerts."""

    app: str
    component: str
    num_fails: int
