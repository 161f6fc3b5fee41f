"""Tests for the coordinator-only failure alerter."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from innkeeper.reservations.application import LifecycleService, ReservationRequest
from innkeeper.reservations.domain import Reservation, SLAEvaluation
from innkeeper.reservations.infrastructure import AlertModel, SQLAlchemyReservationRepository
from innkeeper.reservations.services import FailureAlerter, build_alert_message


@pytest.fixture
def slack_client():
    client = AsyncMock()
    client.send_alert.return_value = True
    return client


@pytest.fixture
def lifecycle(db_session, clock):
    return LifecycleService(SQLAlchemyReservationRepository(db_session), clock=clock)


async def reserve_and_check_in(lifecycle, app="svc", component="db", notify="#svc-oncall", alert_message=None):
    await lifecycle.create_reservation(ReservationRequest(
        app=app,
        component=component,
        owner="ops",
        notify=notify,
        frequency=5,
        time_units="minutes",
        alert_message=alert_message,
    ))
    await lifecycle.apply_checkin(app, component)


async def stored_alerts(session):
    result = await session.execute(select(AlertModel).order_by(AlertModel.id))
    return result.scalars().all()


class TestFailureAlerter:
    @pytest.mark.asyncio
    async def test_non_coordinator_skips(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle)
        clock.advance(600)
        alerter = FailureAlerter(lambda: False, slack_client, clock=clock)

        summary = await alerter.evaluate(db_session)

        assert summary["skipped"] is True
        assert await stored_alerts(db_session) == []
        slack_client.send_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_passing_pair_not_alerted(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle)
        clock.advance(60)
        alerter = FailureAlerter(lambda: True, slack_client, clock=clock)

        summary = await alerter.evaluate(db_session)

        assert summary["reservations_evaluated"] == 1
        assert summary["alerts_created"] == 0

    @pytest.mark.asyncio
    async def test_one_alert_per_outage(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle)
        clock.advance(600)
        alerter = FailureAlerter(lambda: True, slack_client, clock=clock)

        first = await alerter.evaluate(db_session)
        clock.advance(60)
        second = await alerter.evaluate(db_session)

        assert first["alerts_created"] == 1
        assert first["notifications_sent"] == 1
        assert second["alerts_created"] == 0
        assert len(await stored_alerts(db_session)) == 1

    @pytest.mark.asyncio
    async def test_new_outage_after_checkin_alerts_again(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle)
        clock.advance(600)
        alerter = FailureAlerter(lambda: True, slack_client, clock=clock)
        await alerter.evaluate(db_session)

        await lifecycle.apply_checkin("svc", "db")
        clock.advance(600)
        summary = await alerter.evaluate(db_session)

        assert summary["alerts_created"] == 1
        assert len(await stored_alerts(db_session)) == 2

    @pytest.mark.asyncio
    async def test_notify_channel_overrides_default(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle, notify="#svc-oncall", alert_message="svc db silent")
        clock.advance(600)

        await FailureAlerter(lambda: True, slack_client, clock=clock).evaluate(db_session)

        message = slack_client.send_alert.await_args.args[0]
        assert message.channel == "#svc-oncall"
        assert message.message == "svc db silent"

    @pytest.mark.asyncio
    async def test_non_channel_notify_uses_default(self, db_session, lifecycle, clock, slack_client):
        await reserve_and_check_in(lifecycle, notify="ops@example.com")
        clock.advance(600)

        await FailureAlerter(lambda: True, slack_client, clock=clock).evaluate(db_session)

        assert slack_client.send_alert.await_args.args[0].channel is None

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_alert(self, db_session, lifecycle, clock, slack_client):
        slack_client.send_alert.return_value = False
        await reserve_and_check_in(lifecycle)
        clock.advance(600)

        summary = await FailureAlerter(lambda: True, slack_client, clock=clock).evaluate(db_session)

        assert summary["alerts_created"] == 1
        assert summary["notifications_sent"] == 0
        assert len(await stored_alerts(db_session)) == 1


class TestBuildAlertMessage:
    def test_default_message(self):
        reservation = Reservation("svc", "db", owner="", notify="", frequency=5, time_units="minutes")
        evaluation = SLAEvaluation(failing=True, elapsed_seconds=600, elapsed_phrase="10 minutes ago")

        assert build_alert_message(reservation, evaluation) == (
            "svc/db has not checked in, last seen 10 minutes ago"
        )
