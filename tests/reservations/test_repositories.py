"""Tests for SQLAlchemyReservationRepository."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from innkeeper.config import HousekeepingAction
from innkeeper.core import RepositoryException
from innkeeper.infrastructure.database import Base, upsert_insert
from innkeeper.reservations.domain import Reservation, Snooze
from innkeeper.reservations.infrastructure import ReservationModel, SQLAlchemyReservationRepository


@pytest.fixture
def repository(db_session):
    return SQLAlchemyReservationRepository(db_session)


class TestSnoozes:
    @pytest.mark.asyncio
    async def test_only_unexpired_snoozes_listed(self, repository):
        await repository.insert_snooze(Snooze("svc", "db", 10, "seconds", issued_at=100))
        await repository.insert_snooze(Snooze("svc", "db", 1, "hours", issued_at=100))

        active = await repository.list_active_snoozes(now=200)

        assert len(active) == 1
        assert active[0].expires_at == 3700

    @pytest.mark.asyncio
    async def test_snooze_expiring_now_is_inactive(self, repository):
        await repository.insert_snooze(Snooze("svc", "db", 10, "seconds", issued_at=100))

        assert await repository.list_active_snoozes(now=110) == []


class TestAlerts:
    @pytest.mark.asyncio
    async def test_has_alert_since(self, repository):
        await repository.record_alert("svc", "db", "down", triggered_at=500)

        assert await repository.has_alert_since("svc", "db", 499) is True
        assert await repository.has_alert_since("svc", "db", 500) is False
        assert await repository.has_alert_since("svc", "cache", 0) is False

    @pytest.mark.asyncio
    async def test_no_alerts_aggregate_empty(self, repository):
        assert await repository.aggregate_alert_counts() == []


class TestReservations:
    @pytest.mark.asyncio
    async def test_upsert_keeps_stats_of_implicit_record(self, repository):
        await repository.apply_checkin("new", "x", now=1000)

        saved = await repository.upsert_reservation(
            Reservation("new", "x", owner="ops", notify="", frequency=2, time_units="hours")
        )

        assert saved.frequency == 2
        assert saved.num_checkins == 1
        assert saved.last_checkin_timestamp == 1000
        assert saved.is_implicit is False

    @pytest.mark.asyncio
    async def test_delete_reports_whether_removed(self, repository):
        await repository.apply_checkin("svc", "db", now=1000)

        assert await repository.delete_reservation("svc", "db") is True
        assert await repository.delete_reservation("svc", "db") is False

    @pytest.mark.asyncio
    async def test_housekeeping_accepts_plain_strings(self, repository):
        await repository.log_housekeeping("svc", "db", "checkin", 1000)
        await repository.log_housekeeping("svc", "db", HousekeepingAction.SNOOZE, 1001)


@pytest.fixture
def statements(db_session):
    """SQL statements sent by the session while the test runs."""
    seen = []
    engine = db_session.bind.sync_engine

    def record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    yield seen
    event.remove(engine, "before_cursor_execute", record)


class TestCheckinWrites:
    @pytest.mark.asyncio
    async def test_first_checkin_is_one_conflict_resolving_insert(self, repository, statements):
        await repository.apply_checkin("new", "x", now=1000)

        writes = [s for s in statements if not s.lstrip().upper().startswith("SELECT")]
        assert len(writes) == 1
        assert writes[0].lstrip().upper().startswith("INSERT")
        assert "ON CONFLICT" in writes[0].upper()
        assert statements[0] == writes[0]

    @pytest.mark.asyncio
    async def test_reservation_upsert_is_one_conflict_resolving_insert(self, repository, statements):
        await repository.upsert_reservation(
            Reservation("svc", "db", owner="ops", notify="", frequency=5, time_units="minutes")
        )

        assert statements[0].lstrip().upper().startswith("INSERT")
        assert "ON CONFLICT" in statements[0].upper()

    @pytest.mark.asyncio
    async def test_pair_created_by_another_session_is_incremented(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with sessions() as first, sessions() as second:
            first_repository = SQLAlchemyReservationRepository(first)
            second_repository = SQLAlchemyReservationRepository(second)

            await second_repository.apply_checkin("new", "x", now=1000)
            await second_repository.commit()

            reservation = await first_repository.apply_checkin("new", "x", now=1001)
            await first_repository.commit()

        await engine.dispose()

        assert reservation.num_checkins == 2
        assert reservation.last_checkin_timestamp == 1001
        assert reservation.is_implicit is True

    @pytest.mark.asyncio
    async def test_checkin_keeps_reservation_contract(self, repository):
        await repository.upsert_reservation(
            Reservation("svc", "db", owner="ops", notify="#ops", frequency=5, time_units="minutes")
        )

        reservation = await repository.apply_checkin("svc", "db", now=1000)

        assert reservation.frequency == 5
        assert reservation.owner == "ops"
        assert reservation.num_checkins == 1

    @pytest.mark.asyncio
    async def test_timestamp_never_moves_backwards(self, repository):
        await repository.apply_checkin("svc", "db", now=2000)

        reservation = await repository.apply_checkin("svc", "db", now=1500)

        assert reservation.last_checkin_timestamp == 2000
        assert reservation.num_checkins == 2

class TestErrorTranslation:
    @pytest.mark.asyncio
    async def test_sqlalchemy_error_becomes_repository_exception(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("db gone")))
        repository = SQLAlchemyReservationRepository(session)

        with pytest.raises(RepositoryException) as exc_info:
            await repository.list_reservations()

        assert exc_info.value.message == "Unable to list reservations"
        assert exc_info.value.details["error_type"] == "OperationalError"

    def test_upsert_needs_a_supported_dialect(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "mssql"

        with pytest.raises(RepositoryException) as exc_info:
            upsert_insert(session, ReservationModel)

        assert exc_info.value.details["dialect"] == "mssql"
