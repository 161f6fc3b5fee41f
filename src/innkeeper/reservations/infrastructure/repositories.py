"""
Reservation Infrastructure Repositories
========================================

Concrete implementation of the reservation repository using SQLAlchemy.

Every SQLAlchemy failure is re-raised as RepositoryException so callers
never see driver details.
"""

from typing import List, Optional

from sqlalchemy import case, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from innkeeper.config import HousekeepingAction
from innkeeper.core import RepositoryException
from innkeeper.infrastructure.database import store_operation, upsert_insert
from innkeeper.reservations.application.services import IReservationRepository
from innkeeper.reservations.domain import BadGuest, Reservation, Snooze
from innkeeper.reservations.infrastructure.models import (
    AlertModel,
    HousekeepingModel,
    ReservationModel,
    SnoozeModel,
)


PAIR_COLUMNS = ["app", "component"]


class SQLAlchemyReservationRepository(IReservationRepository):
    """
    SQLAlchemy implementation of the reservation repository.

    Changes are flushed within the session and only made durable by commit().
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model: ReservationModel) -> Reservation:
        return Reservation(
            id=model.id,
            app=model.app,
            component=model.component,
            owner=model.owner,
            notify=model.notify,
            alert_message=model.alert_msg,
            frequency=model.frequency,
            time_units=model.time_units,
            last_checkin_timestamp=model.last_checkin_timestamp,
            num_checkins=model.num_checkins,
        )

    @staticmethod
    def _snooze_to_entity(model: SnoozeModel) -> Snooze:
        return Snooze(
            id=model.id,
            app=model.app,
            component=model.component,
            duration=model.duration,
            time_units=model.time_units,
            issued_at=model.issued_at,
        )

    async def _get_model(self, app: str, component: str) -> Optional[ReservationModel]:
        stmt = (
            select(ReservationModel)
            .where(ReservationModel.app == app, ReservationModel.component == component)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _reload(self, app: str, component: str) -> Reservation:
        model = await self._get_model(app, component)
        if model is None:
            raise RepositoryException(f"Reservation {app}/{component} vanished after write")
        return self._to_entity(model)

    @store_operation("store reservation")
    async def upsert_reservation(self, reservation: Reservation) -> Reservation:
        """
        Insert a reservation, or replace the contract fields of an existing one.

        Check-in history of an existing pair is left untouched.
        """
        stmt = upsert_insert(self._session, ReservationModel).values(
            app=reservation.app,
            component=reservation.component,
            owner=reservation.owner,
            notify=reservation.notify,
            alert_msg=reservation.alert_message,
            frequency=reservation.frequency,
            time_units=reservation.time_units,
            last_checkin_timestamp=reservation.last_checkin_timestamp,
            num_checkins=reservation.num_checkins,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=PAIR_COLUMNS,
            set_={
                "owner": stmt.excluded.owner,
                "notify": stmt.excluded.notify,
                "alert_msg": stmt.excluded.alert_msg,
                "frequency": stmt.excluded.frequency,
                "time_units": stmt.excluded.time_units,
            },
        )
        await self._session.execute(stmt)
        return await self._reload(reservation.app, reservation.component)

    @store_operation("read reservation")
    async def get_reservation(self, app: str, component: str) -> Optional[Reservation]:
        """Get reservation by pair."""
        model = await self._get_model(app, component)
        return self._to_entity(model) if model else None

    @store_operation("list reservations")
    async def list_reservations(self) -> List[Reservation]:
        """All reservations, most recent check-in first."""
        stmt = select(ReservationModel).order_by(
            ReservationModel.last_checkin_timestamp.desc(),
            ReservationModel.id.asc()
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    @store_operation("save checkin")
    async def apply_checkin(self, app: str, component: str, now: int) -> Reservation:
        """
        Bump timestamp and counter in a single INSERT ... ON CONFLICT DO UPDATE.

        An unknown pair gets its implicit record; a known one has its
        counter incremented in SQL, so concurrent check-ins for the same
        pair, including the first ones, are serialized by the database.
        The timestamp never moves backwards.
        """
        implicit = Reservation.implicit(app, component, now)
        stmt = upsert_insert(self._session, ReservationModel).values(
            app=implicit.app,
            component=implicit.component,
            owner=implicit.owner,
            notify=implicit.notify,
            alert_msg=None,
            frequency=implicit.frequency,
            time_units=implicit.time_units,
            last_checkin_timestamp=implicit.last_checkin_timestamp,
            num_checkins=implicit.num_checkins,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=PAIR_COLUMNS,
            set_={
                "last_checkin_timestamp": case(
                    (ReservationModel.last_checkin_timestamp > now, ReservationModel.last_checkin_timestamp),
                    else_=now,
                ),
                "num_checkins": ReservationModel.num_checkins + 1,
            },
        )
        await self._session.execute(stmt)
        return await self._reload(app, component)

    @store_operation("save snooze")
    async def insert_snooze(self, snooze: Snooze) -> Snooze:
        """Store a snooze."""
        model = SnoozeModel(
            app=snooze.app,
            component=snooze.component,
            duration=snooze.duration,
            time_units=snooze.time_units,
            issued_at=snooze.issued_at,
            expires_at=snooze.expires_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._snooze_to_entity(model)

    @store_operation("list snoozes")
    async def list_active_snoozes(self, now: int) -> List[Snooze]:
        """Snoozes that have not expired at `now`."""
        stmt = select(SnoozeModel).where(SnoozeModel.expires_at > now)
        result = await self._session.execute(stmt)
        return [self._snooze_to_entity(model) for model in result.scalars().all()]

    @store_operation("save checkout")
    async def delete_reservation(self, app: str, component: str) -> bool:
        """Delete a reservation; returns False when there was nothing to delete."""
        stmt = (
            delete(ReservationModel)
            .where(ReservationModel.app == app, ReservationModel.component == component)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    @store_operation("log housekeeping")
    async def log_housekeeping(
        self,
        app: str,
        component: str,
        action: HousekeepingAction,
        timestamp: int
    ) -> None:
        """Append an audit row."""
        self._session.add(HousekeepingModel(
            app=app,
            component=component,
            action=HousekeepingAction(action).value,
            timestamp=timestamp,
        ))
        await self._session.flush()

    @store_operation("record alert")
    async def record_alert(self, app: str, component: str, message: str, triggered_at: int) -> None:
        """Store a failure alert."""
        self._session.add(AlertModel(
            app=app,
            component=component,
            message=message,
            triggered_at=triggered_at,
        ))
        await self._session.flush()

    @store_operation("read alerts")
    async def has_alert_since(self, app: str, component: str, since: int) -> bool:
        """Check for an alert triggered after `since`."""
        stmt = (
            select(AlertModel.id)
            .where(
                AlertModel.app == app,
                AlertModel.component == component,
                AlertModel.triggered_at > since,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @store_operation("aggregate alerts")
    async def aggregate_alert_counts(self) -> List[BadGuest]:
        """Alert counts grouped by pair, most alerts first."""
        count = func.count(AlertModel.id).label("cnt")
        stmt = (
            select(AlertModel.app, AlertModel.component, count)
            .group_by(AlertModel.app, AlertModel.component)
            .order_by(desc(count), AlertModel.app, AlertModel.component)
        )
        result = await self._session.execute(stmt)
        return [
            BadGuest(app=row.app, component=row.component, num_fails=row.cnt)
            for row in result.all()
        ]

    @store_operation("commit")
    async def commit(self) -> None:
        await self._session.commit()

    @store_operation("rollback")
    async def rollback(self) -> None:
        await self._session.rollback()
