"""
Failure Alerting
================

Background evaluation of every reservation with Slack notifications.

Only the coordinator node alerts, so a cluster sends one notification per
outage rather than one per node. An outage is alerted once: a pair that
already has an alert after its last check-in is skipped until it
checks in again.
"""

from typing import Callable, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from innkeeper.reservations.application.services import (
    IReservationRepository,
    ReservationQueryService,
)
from innkeeper.reservations.domain import Reservation, SLAEvaluation
from innkeeper.reservations.infrastructure.external import SlackClient, SlackMessage
from innkeeper.reservations.infrastructure.repositories import SQLAlchemyReservationRepository
from innkeeper.shared.infrastructure.logging import get_logger, log_latency
from innkeeper.shared.timeutil import Clock, format_timestamp, unix_now

logger = get_logger(__name__)


def build_alert_message(reservation: Reservation, evaluation: SLAEvaluation) -> str:
    """Reservation's own alert text, or a default naming the pair."""
    if reservation.alert_message:
        return reservation.alert_message
    return (
        f"{reservation.app}/{reservation.component} has not checked in, "
        f"last seen {evaluation.elapsed_phrase}"
    )


class FailureAlerter:
    """
    Evaluates all reservations and alerts on newly failing pairs.

    This service:
    1. Skips the run unless this node is the coordinator
    2. Evaluates every reservation at a single instant
    3. Records one alert per outage
    4. Sends Slack notifications once the alerts are committed
    """

    def __init__(
        self,
        is_coordinator: Callable[[], bool],
        slack_client: SlackClient,
        repository_factory: Callable[[AsyncSession], IReservationRepository] = SQLAlchemyReservationRepository,
        clock: Clock = unix_now
    ):
        self._is_coordinator = is_coordinator
        self._slack_client = slack_client
        self._repository_factory = repository_factory
        self._clock = clock

    async def evaluate(self, session: AsyncSession) -> dict:
        """One evaluation pass; returns counts for the scheduler log."""
        if not self._is_coordinator():
            logger.debug("Not the coordinator, skipping failure evaluation")
            return {"skipped": True, "reservations_evaluated": 0, "alerts_created": 0, "notifications_sent": 0}

        repo = self._repository_factory(session)
        query = ReservationQueryService(repo, self._clock)
        now = self._clock()

        with log_latency(logger, "failure_evaluation"):
            statuses = await query.list_reservations(now)

            pending: List[Tuple[Reservation, SLAEvaluation, str]] = []
            for status in statuses:
                reservation = status.reservation
                if not status.evaluation.failing:
                    continue
                if await repo.has_alert_since(
                    reservation.app, reservation.component, reservation.last_checkin_timestamp
                ):
                    continue

                message = build_alert_message(reservation, status.evaluation)
                await repo.record_alert(reservation.app, reservation.component, message, now)
                pending.append((reservation, status.evaluation, message))

            await repo.commit()

        sent = 0
        for reservation, evaluation, message in pending:
            logger.warning(
                "Reservation failing SLA",
                extra={
                    "app": reservation.app,
                    "component": reservation.component,
                    "elapsed_seconds": evaluation.elapsed_seconds
                }
            )
            if await self._notify(reservation, evaluation, message):
                sent += 1

        return {
            "skipped": False,
            "reservations_evaluated": len(statuses),
            "alerts_created": len(pending),
            "notifications_sent": sent
        }

    async def _notify(
        self,
        reservation: Reservation,
        evaluation: SLAEvaluation,
        message: str
    ) -> bool:
        """Post to the reservation's own #channel when `notify` names one."""
        channel = reservation.notify if reservation.notify.startswith("#") else None

        return await self._slack_client.send_alert(SlackMessage(
            app=reservation.app,
            component=reservation.component,
            owner=reservation.owner,
            message=message,
            time_since_last_checkin=evaluation.elapsed_phrase,
            last_checkin_str=format_timestamp(reservation.last_checkin_timestamp),
            channel=channel,
        ))
