"""
Reservation External Service Integrations
==========================================

- Slack incoming-webhook notifications for failing reservations
- APScheduler job running the periodic failure evaluation
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from innkeeper.config import settings
from innkeeper.shared.infrastructure.circuit_breaker import CircuitBreaker
from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

EVALUATION_JOB_ID = "failure_evaluation"


# ========== Slack ==========

@dataclass
class SlackMessage:
    """Failure notification for one pair."""
    app: str
    component: str
    owner: str
    message: str
    time_since_last_checkin: str
    last_checkin_str: str
    channel: Optional[str] = None


def render_slack_payload(data: SlackMessage, default_channel: str) -> Dict[str, Any]:
    """Block Kit payload; `text` doubles as the notification fallback."""
    pair = f"{data.app}/{data.component}"
    return {
        "channel": data.channel or default_channel,
        "text": data.message,
        "blocks": [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f":rotating_light: Missed check-in: {pair}", "emoji": True},
            },
            {"type": "section", "text": {"type": "mrkdwn", "text": data.message}},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*App:*\n{data.app}"},
                    {"type": "mrkdwn", "text": f"*Component:*\n{data.component}"},
                    {"type": "mrkdwn", "text": f"*Owner:*\n{data.owner or 'unassigned'}"},
                    {"type": "mrkdwn", "text": f"*Last check-in:*\n{data.time_since_last_checkin}"},
                ],
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"Last seen: {data.last_checkin_str}"}],
            },
        ],
    }


class SlackClient:
    """
    Posts failure notifications to a Slack incoming webhook.

    Delivery is best effort: up to `max_retries` attempts with exponential
    backoff, guarded by a circuit breaker. A message carrying its own channel
    overrides the configured default.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        default_channel: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        retry_backoff_seconds: float = 1.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._webhook_url = settings.slack_webhook_url if webhook_url is None else webhook_url
        self._default_channel = default_channel or settings.slack_channel
        self._retry_backoff = retry_backoff_seconds
        self._breaker = circuit_breaker or CircuitBreaker("slack")
        self._http = httpx.AsyncClient(
            timeout=timeout_seconds or settings.slack_timeout_seconds,
            transport=transport
        )

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def _post(self, payload: Dict[str, Any], attempt: int) -> bool:
        try:
            response = await self._http.post(self._webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(
                "Slack webhook request failed",
                extra={"attempt": attempt, "error": str(e) or type(e).__name__}
            )
            return False

        if response.status_code != 200:
            logger.warning(
                "Slack webhook rejected notification",
                extra={"attempt": attempt, "status_code": response.status_code}
            )
            return False
        return True

    async def send_alert(self, data: SlackMessage, max_retries: int = 3) -> bool:
        """
        Deliver one notification.

        Returns:
            True once Slack accepted it; False when disabled, short-circuited
            or every attempt failed
        """
        if not self.enabled:
            logger.debug("Slack disabled, notification not sent", extra={"app": data.app})
            return False

        if not self._breaker.allow_request():
            logger.warning(
                "Slack circuit open, notification dropped",
                extra={"app": data.app, "component": data.component}
            )
            return False

        payload = render_slack_payload(data, self._default_channel)

        for attempt in range(1, max_retries + 1):
            if await self._post(payload, attempt):
                self._breaker.record_success()
                logger.info(
                    "Slack notification delivered",
                    extra={"app": data.app, "component": data.component, "channel": payload["channel"]}
                )
                return True
            if attempt < max_retries:
                await asyncio.sleep(self._retry_backoff * 2 ** (attempt - 1))

        self._breaker.record_failure()
        return False

    async def close(self) -> None:
        await self._http.aclose()


# ========== Scheduler ==========

class SLAScheduler:
    """
    Runs the failure evaluation on a fixed interval.

    Overlapping runs are not allowed and missed runs are coalesced into one.
    """

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    async def start(self, job_func: Callable[[], Awaitable[Any]]) -> None:
        """Schedule `job_func`; the first run happens one interval from now."""
        if self.is_running:
            logger.warning("Evaluation scheduler already running")
            return

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            job_func,
            IntervalTrigger(seconds=self.interval_seconds),
            id=EVALUATION_JOB_ID,
            name="Missed check-in evaluation",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.interval_seconds
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info("Evaluation scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Evaluation scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
