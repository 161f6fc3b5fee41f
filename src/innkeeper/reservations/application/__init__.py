"""
Reservation Application Layer
==============================

Contains:
- Services: lifecycle writes and the evaluated read model
- DTOs: request/response models for the API
- Repository interface implemented by the infrastructure layer

This layer depends on the domain layer and the repository interface,
but not on concrete infrastructure implementations.
"""

from innkeeper.reservations.application.dto import (
    BadGuestListResponse,
    BadGuestView,
    OperationResponse,
    PairRequest,
    ReservationDetailResponse,
    ReservationListResponse,
    ReservationRequest,
    ReservationView,
    SnoozeRequest,
)
from innkeeper.reservations.application.services import (
    IReservationRepository,
    LifecycleService,
    ReservationQueryService,
    ReservationStatus,
    group_active_snoozes,
)

__all__ = [
    # DTOs
    "ReservationRequest",
    "PairRequest",
    "SnoozeRequest",
    "OperationResponse",
    "ReservationView",
    "ReservationListResponse",
    "ReservationDetailResponse",
    "BadGuestView",
    "BadGuestListResponse",
    # Services
    "LifecycleService",
    "ReservationQueryService",
    "ReservationStatus",
    "group_active_snoozes",
    # Repository Interface
    "IReservationRepository",
]
