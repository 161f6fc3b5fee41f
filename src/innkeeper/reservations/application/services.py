"""
Reservation Application Services
=================================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: lifecycle writes and read-side evaluation are separate services
- Dependency Inversion: depend on the repository interface, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional, Tuple

from innkeeper.config import HousekeepingAction
from innkeeper.core import ResourceNotFoundException
from innkeeper.reservations.application.dto import ReservationRequest, SnoozeRequest
from innkeeper.reservations.domain import (
    BadGuest,
    Reservation,
    SLAEvaluation,
    SLAEvaluator,
    Snooze,
    validate_pair,
    validate_reservation,
    validate_snooze,
)
from innkeeper.shared.infrastructure.logging import get_logger
from innkeeper.shared.timeutil import Clock, unix_now

logger = get_logger(__name__)


# ========== Repository Interface (Dependency Inversion) ==========

class IReservationRepository(ABC):
    """
    Interface for reservation, snooze, housekeeping and alert storage.

    Mutating methods only stage changes; `commit` makes them durable
    together and `rollback` discards them. Implementations raise
    RepositoryException for any storage failure.
    """

    @abstractmethod
    async def upsert_reservation(self, reservation: Reservation) -> Reservation:
        """Insert a reservation, or replace the contract fields of an existing one."""

    @abstractmethod
    async def get_reservation(self, app: str, component: str) -> Optional[Reservation]:
        """Get reservation by pair."""

    @abstractmethod
    async def list_reservations(self) -> List[Reservation]:
        """All reservations, most recent check-in first."""

    @abstractmethod
    async def apply_checkin(self, app: str, component: str, now: int) -> Reservation:
        """Bump timestamp and counter, creating an implicit record for unknown pairs."""

    @abstractmethod
    async def insert_snooze(self, snooze: Snooze) -> Snooze:
        """Store a snooze."""

    @abstractmethod
    async def list_active_snoozes(self, now: int) -> List[Snooze]:
        """Snoozes that have not expired at `now`."""

    @abstractmethod
    async def delete_reservation(self, app: str, component: str) -> bool:
        """Delete a reservation; returns False when there was nothing to delete."""

    @abstractmethod
    async def log_housekeeping(
        self,
        app: str,
        component: str,
        action: HousekeepingAction,
        timestamp: int
    ) -> None:
        """Append an audit row."""

    @abstractmethod
    async def record_alert(self, app: str, component: str, message: str, triggered_at: int) -> None:
        """Store a failure alert."""

    @abstractmethod
    async def has_alert_since(self, app: str, component: str, since: int) -> bool:
        """Check for an alert triggered after `since`."""

    @abstractmethod
    async def aggregate_alert_counts(self) -> List[BadGuest]:
        """Alert counts grouped by pair, most alerts first."""

    @abstractmethod
    async def commit(self) -> None:
        """Make staged changes durable."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged changes."""


# ========== Application Services ==========

@dataclass(frozen=True)
class ReservationStatus:
    """A reservation paired with its evaluation at read time."""
    reservation: Reservation
    evaluation: SLAEvaluation


def group_active_snoozes(snoozes: List[Snooze], now: int) -> Dict[Tuple[str, str], Snooze]:
    """Governing snooze per pair."""
    by_pair: Dict[Tuple[str, str], List[Snooze]] = defaultdict(list)
    for snooze in snoozes:
        by_pair[snooze.key].append(snooze)

    grouped = {}
    for key, candidates in by_pair.items():
        selected = SLAEvaluator.select_active_snooze(candidates, now)
        if selected is not None:
            grouped[key] = selected
    return grouped


class LifecycleService:
    """
    Validates and applies reservation lifecycle transitions.

    Each operation validates before touching the repository and commits its
    changes (including the housekeeping row) as one unit.
    """

    def __init__(self, repository: IReservationRepository, clock: Clock = unix_now):
        self._repo = repository
        self._clock = clock

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self._repo.commit()
        except Exception:
            await self._repo.rollback()
            raise

    async def create_reservation(self, request: ReservationRequest) -> Reservation:
        """
        Create or update the reservation for a pair.

        New pairs start with no check-ins (timestamp 0). An existing pair,
        including an implicit one, keeps its check-in history and takes the
        new contract fields.

        Raises:
            ValidationException: invalid time units, frequency <= 0 or empty pair
            RepositoryException: storage failure, nothing is persisted
        """
        validate_reservation(request.app, request.component, request.frequency, request.time_units)
        now = self._clock()

        reservation = Reservation(
            app=request.app,
            component=request.component,
            owner=request.owner,
            notify=request.notify,
            frequency=request.frequency,
            time_units=request.time_units,
            alert_message=request.alert_message or None,
        )

        async with self._unit_of_work():
            saved = await self._repo.upsert_reservation(reservation)
            await self._repo.log_housekeeping(
                request.app, request.component, HousekeepingAction.RESERVATION, now
            )

        logger.info(
            "Reservation stored",
            extra={
                "app": saved.app,
                "component": saved.component,
                "frequency": saved.frequency,
                "time_units": saved.time_units,
            }
        )
        return saved

    async def apply_checkin(self, app: str, component: str, now: Optional[int] = None) -> Reservation:
        """
        Record a check-in.

        Unknown pairs are accepted and get an implicit reservation.

        Raises:
            ValidationException: empty pair
            RepositoryException: storage failure, the check-in is not recorded
        """
        validate_pair(app, component)
        now = self._clock() if now is None else now

        async with self._unit_of_work():
            reservation = await self._repo.apply_checkin(app, component, now)
            await self._repo.log_housekeeping(app, component, HousekeepingAction.CHECKIN, now)

        logger.info(
            "Application checked in",
            extra={"app": app, "component": component, "num_checkins": reservation.num_checkins}
        )
        return reservation

    async def apply_snooze(self, request: SnoozeRequest, now: Optional[int] = None) -> Snooze:
        """
        Suppress failure detection for a pair for duration * time_units.

        Raises:
            ValidationException: invalid time units, duration <= 0 or empty pair
            RepositoryException: storage failure
        """
        validate_snooze(request.app, request.component, request.duration, request.time_units)
        now = self._clock() if now is None else now

        snooze = Snooze(
            app=request.app,
            component=request.component,
            duration=request.duration,
            time_units=request.time_units,
            issued_at=now,
        )

        async with self._unit_of_work():
            saved = await self._repo.insert_snooze(snooze)
            await self._repo.log_housekeeping(
                request.app, request.component, HousekeepingAction.SNOOZE, now
            )

        logger.info(
            "Application alerting paused",
            extra={"app": saved.app, "component": saved.component, "expires_at": saved.expires_at}
        )
        return saved

    async def checkout(self, app: str, component: str) -> bool:
        """
        Remove the reservation for a pair.

        Idempotent: a missing pair is not an error and changes nothing.

        Returns:
            True if a reservation was removed
        """
        validate_pair(app, component)
        now = self._clock()

        async with self._unit_of_work():
            removed = await self._repo.delete_reservation(app, component)
            if removed:
                await self._repo.log_housekeeping(app, component, HousekeepingAction.CHECKOUT, now)

        logger.info(
            "Application checked out",
            extra={"app": app, "component": component, "removed": removed}
        )
        return removed


class ReservationQueryService:
    """Read side: reservations with their SLA status, and alert statistics."""

    def __init__(self, repository: IReservationRepository, clock: Clock = unix_now):
        self._repo = repository
        self._clock = clock

    async def list_reservations(self, now: Optional[int] = None) -> List[ReservationStatus]:
        """Evaluate every reservation, most recent check-in first."""
        now = self._clock() if now is None else now

        reservations = await self._repo.list_reservations()
        snoozes = group_active_snoozes(await self._repo.list_active_snoozes(now), now)

        return [
            ReservationStatus(
                reservation=reservation,
                evaluation=SLAEvaluator.evaluate(reservation, snoozes.get(reservation.key), now),
            )
            for reservation in reservations
        ]

    async def get_reservation(self, app: str, component: str, now: Optional[int] = None) -> ReservationStatus:
        """
        Evaluate a single reservation.

        Raises:
            ResourceNotFoundException: no reservation for the pair
        """
        now = self._clock() if now is None else now

        reservation = await self._repo.get_reservation(app, component)
        if reservation is None:
            raise ResourceNotFoundException("Reservation", f"{app}/{component}")

        snoozes = group_active_snoozes(await self._repo.list_active_snoozes(now), now)
        return ReservationStatus(
            reservation=reservation,
            evaluation=SLAEvaluator.evaluate(reservation, snoozes.get(reservation.key), now),
        )

    async def list_bad_guests(self) -> List[BadGuest]:
        """Pairs ordered by number of failure alerts."""
        return await self._repo.aggregate_alert_counts()
