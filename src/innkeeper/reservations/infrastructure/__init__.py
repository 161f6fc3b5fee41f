"""
Reservation Infrastructure Layer
=================================

Infrastructure implementations for check-in monitoring:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Slack notifications and the evaluation scheduler
"""

from innkeeper.reservations.infrastructure.models import (
    AlertModel,
    HousekeepingModel,
    ReservationModel,
    SnoozeModel,
)
from innkeeper.reservations.infrastructure.repositories import SQLAlchemyReservationRepository
from innkeeper.reservations.infrastructure.external import (
    SlackClient,
    SlackMessage,
    SLAScheduler,
)

__all__ = [
    "AlertModel",
    "HousekeepingModel",
    "ReservationModel",
    "SnoozeModel",
    "SQLAlchemyReservationRepository",
    "SlackClient",
    "SlackMessage",
    "SLAScheduler",
]
