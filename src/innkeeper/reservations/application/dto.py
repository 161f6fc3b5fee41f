"""
Reservation Application DTOs
=============================

Data Transfer Objects for the reservations API.

Field names are camelCase on the wire; snake_case names are accepted on
input as well. Request DTOs only check shapes and types; domain rules
(time units, positive frequency) are enforced by the domain validators so
they surface as validation failures rather than decode errors.
"""

from typing import List, Optional

from pydantic import Field

from innkeeper.reservations.domain import BadGuest, Reservation, SLAEvaluation
from innkeeper.shared.api.schemas import CamelModel
from innkeeper.shared.timeutil import format_timestamp


# ========== Request DTOs ==========

class ReservationRequest(CamelModel):
    """Body of POST /reservation."""
    app: str = Field(..., description="Application name")
    component: str = Field(..., description="Component within the application")
    owner: str = Field(default="", description="Contact responsible for the pair")
    notify: str = Field(default="", description="Notification target (Slack channel when it starts with '#')")
    frequency: int = Field(..., description="Allowed gap between check-ins, in time_units")
    time_units: str = Field(..., description="seconds, minutes or hours")
    alert_message: Optional[str] = Field(default=None, description="Custom alert text")


class PairRequest(CamelModel):
    """Body of POST /checkin and POST /checkout."""
    app: str = Field(..., description="Application name")
    component: str = Field(default="", description="Component within the application")


class SnoozeRequest(CamelModel):
    """Body of POST /snooze."""
    app: str = Field(..., description="Application name")
    component: str = Field(..., description="Component within the application")
    duration: int = Field(..., description="Snooze length, in time_units")
    time_units: str = Field(..., description="seconds, minutes or hours")


# ========== Response DTOs ==========

class OperationResponse(CamelModel):
    """Envelope returned by every write endpoint."""
    success: bool
    message: str


class ReservationView(CamelModel):
    """Reservation with its evaluated SLA status."""
    app: str
    component: str
    owner: str
    notify: str
    alert_message: Optional[str] = None
    frequency: int
    time_units: str
    last_checkin_timestamp: int
    num_checkins: int
    failing_sla: bool = Field(..., alias="failingSLA")
    time_since_last_checkin: str
    last_checkin_str: str
    snoozed_until: Optional[int] = None

    @classmethod
    def from_domain(cls, reservation: Reservation, evaluation: SLAEvaluation) -> "ReservationView":
        return cls(
            app=reservation.app,
            component=reservation.component,
            owner=reservation.owner,
            notify=reservation.notify,
            alert_message=reservation.alert_message,
            frequency=reservation.frequency,
            time_units=reservation.time_units,
            last_checkin_timestamp=reservation.last_checkin_timestamp,
            num_checkins=reservation.num_checkins,
            failing_sla=evaluation.failing,
            time_since_last_checkin=evaluation.elapsed_phrase,
            last_checkin_str=format_timestamp(reservation.last_checkin_timestamp),
            snoozed_until=evaluation.snoozed_until,
        )


class ReservationListResponse(CamelModel):
    """Response model for GET /reservation."""
    success: bool = True
    result: List[ReservationView] = Field(default_factory=list)


class ReservationDetailResponse(CamelModel):
    """Response model for GET /reservation/{app}/{component}."""
    success: bool = True
    result: ReservationView


class BadGuestView(CamelModel):
    """Failure alert count for one pair."""
    app: str
    component: str
    num_fails: int

    @classmethod
    def from_domain(cls, guest: BadGuest) -> "BadGuestView":
        return cls(app=guest.app, component=guest.component, num_fails=guest.num_fails)


class BadGuestListResponse(CamelModel):
    """Response model for GET /badguests."""
    success: bool = True
    result: List[BadGuestView] = Field(default_factory=list)
