"""
Reservation Value Objects
==========================

Immutable value objects and stateless domain services:

- Input validation shared by every write path
- SLAEvaluator: the pass/fail rule applied to a reservation
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from innkeeper.config import VALID_TIME_UNITS
from innkeeper.core import ValidationException
from innkeeper.reservations.domain.entities import Reservation, Snooze
from innkeeper.shared.timeutil import elapsed_seconds, relative_time

# Largest value the Integer frequency and duration columns hold.
MAX_INTERVAL = 2**31 - 1


def validate_pair(app: str, component: str) -> None:
    """Both identity fields must be non-empty."""
    if not app or not app.strip():
        raise ValidationException("app is required")
    if not component or not component.strip():
        raise ValidationException("component is required")


def validate_time_units(time_units: str) -> None:
    if time_units not in VALID_TIME_UNITS:
        raise ValidationException("Invalid time_units passed in")


def validate_reservation(app: str, component: str, frequency: int, time_units: str) -> None:
    """
    Validate a reservation request.

    Raises:
        ValidationException: empty pair, unknown time units or frequency
            outside 1..MAX_INTERVAL
    """
    validate_pair(app, component)
    validate_time_units(time_units)
    if frequency <= 0:
        raise ValidationException("frequency must be greater than 0")
    if frequency > MAX_INTERVAL:
        raise ValidationException(f"frequency must be at most {MAX_INTERVAL}")


def validate_snooze(app: str, component: str, duration: int, time_units: str) -> None:
    """
    Validate a snooze request.

    Raises:
        ValidationException: empty pair, unknown time units or duration
            outside 1..MAX_INTERVAL
    """
    validate_pair(app, component)
    validate_time_units(time_units)
    if duration <= 0:
        raise ValidationException("duration must be greater than 0")
    if duration > MAX_INTERVAL:
        raise ValidationException(f"duration must be at most {MAX_INTERVAL}")


@dataclass(frozen=True)
class SLAEvaluation:
    """Outcome of evaluating one reservation at one instant."""

    failing: bool
    elapsed_seconds: int
    elapsed_phrase: str
    snoozed_until: Optional[int] = None


class SLAEvaluator:
    """
    Pure functions for the SLA pass/fail rule.

    Stateless; all inputs are passed in, including the evaluation instant.
    """

    @staticmethod
    def select_active_snooze(snoozes: Iterable[Snooze], now: int) -> Optional[Snooze]:
        """
        Pick the snooze that governs a pair at `now`.

        Several snoozes may be outstanding; the non-expired one with the
        latest expiry wins.
        """
        active = [s for s in snoozes if s.is_active(now)]
        if not active:
            return None
        return max(active, key=lambda s: s.expires_at)

    @staticmethod
    def evaluate(
        reservation: Reservation,
        active_snooze: Optional[Snooze],
        now: int
    ) -> SLAEvaluation:
        """
        Decide whether a reservation is failing its SLA at `now`.

        Rules, in order:
        1. A check-in in the future (clock skew) never fails.
        2. A non-expired snooze for the same pair suppresses failure.
        3. Implicit reservations (frequency 0) never fail.
        4. Otherwise the pair fails when the silence exceeds frequency * unit.

        A pair that never checked in (timestamp 0) is measured from the epoch
        and therefore fails until its first check-in.
        """
        elapsed = elapsed_seconds(reservation.last_checkin_timestamp, now)

        snoozed_until = None
        if (
            active_snooze is not None
            and active_snooze.key == reservation.key
            and active_snooze.is_active(now)
        ):
            snoozed_until = active_snooze.expires_at

        if elapsed < 0:
            return SLAEvaluation(
                failing=False,
                elapsed_seconds=0,
                elapsed_phrase=relative_time(0),
                snoozed_until=snoozed_until,
            )

        if snoozed_until is not None or reservation.is_implicit:
            failing = False
        else:
            failing = elapsed > reservation.allowed_gap_seconds

        return SLAEvaluation(
            failing=failing,
            elapsed_seconds=elapsed,
            elapsed_phrase=relative_time(elapsed, "ago"),
            snoozed_until=snoozed_until,
        )
