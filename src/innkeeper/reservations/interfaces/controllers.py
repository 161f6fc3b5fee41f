"""
Reservation Controllers (API Routes)
=====================================

FastAPI routes for reservations, check-ins, snoozes and checkouts.

Controllers are thin - they delegate to application services. Write
endpoints read the raw body so that undecodable payloads are reported
through the standard error envelope instead of FastAPI's 422.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from innkeeper.core import RepositoryException
from innkeeper.infrastructure.database import get_session
from innkeeper.reservations.application import (
    BadGuestListResponse,
    BadGuestView,
    LifecycleService,
    OperationResponse,
    PairRequest,
    ReservationDetailResponse,
    ReservationListResponse,
    ReservationQueryService,
    ReservationRequest,
    ReservationView,
    SnoozeRequest,
)
from innkeeper.reservations.domain import validate_pair, validate_reservation, validate_snooze
from innkeeper.reservations.infrastructure import SQLAlchemyReservationRepository
from innkeeper.shared.api import WriteOperation, error_response, run_write_operation
from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Reservations"])


# ========== Example payloads for Swagger ==========

RESERVATION_EXAMPLE = {
    "app": "billing",
    "component": "nightly-invoice",
    "owner": "payments-team",
    "notify": "#payments-oncall",
    "frequency": 25,
    "timeUnits": "hours",
    "alertMessage": "Nightly invoicing did not run"
}

RESERVATION_LIST_EXAMPLE = {
    "success": True,
    "result": [
        {
            "app": "billing",
            "component": "nightly-invoice",
            "owner": "payments-team",
            "notify": "#payments-oncall",
            "alertMessage": "Nightly invoicing did not run",
            "frequency": 25,
            "timeUnits": "hours",
            "lastCheckinTimestamp": 1700000000,
            "numCheckins": 42,
            "failingSLA": False,
            "timeSinceLastCheckin": "3 hours ago",
            "lastCheckinStr": "Tue, 14 Nov 2023 22:13:20 UTC",
            "snoozedUntil": None
        }
    ]
}

WRITE_RESPONSES = {
    200: {"description": "Operation applied", "model": OperationResponse},
    400: {"description": "Undecodable body or validation failure"},
    500: {"description": "Store failure"},
}


# ========== Dependencies ==========

async def get_lifecycle_service(
    session: AsyncSession = Depends(get_session)
) -> LifecycleService:
    """Get lifecycle service instance."""
    return LifecycleService(SQLAlchemyReservationRepository(session))


async def get_query_service(
    session: AsyncSession = Depends(get_session)
) -> ReservationQueryService:
    """Get query service instance."""
    return ReservationQueryService(SQLAlchemyReservationRepository(session))


# ========== Write Operations ==========

def reservation_operation(service: LifecycleService) -> WriteOperation[ReservationRequest]:
    async def persist(payload: ReservationRequest) -> str:
        saved = await service.create_reservation(payload)
        return f"Reservation stored: {saved.app}/{saved.component}"

    return WriteOperation(
        name="reservation",
        request_model=ReservationRequest,
        validate=lambda p: validate_reservation(p.app, p.component, p.frequency, p.time_units),
        persist=persist,
        failure_message=lambda p: f"Unable to save reservation: {p.app}",
    )


def checkin_operation(service: LifecycleService) -> WriteOperation[PairRequest]:
    async def persist(payload: PairRequest) -> str:
        await service.apply_checkin(payload.app, payload.component)
        return f"Application checked in: {payload.app}"

    return WriteOperation(
        name="checkin",
        request_model=PairRequest,
        validate=lambda p: validate_pair(p.app, p.component),
        persist=persist,
        failure_message=lambda p: f"Unable to save checkin: {p.app}",
    )


def snooze_operation(service: LifecycleService) -> WriteOperation[SnoozeRequest]:
    async def persist(payload: SnoozeRequest) -> str:
        await service.apply_snooze(payload)
        return f"Application alerting paused: {payload.app}"

    return WriteOperation(
        name="snooze",
        request_model=SnoozeRequest,
        validate=lambda p: validate_snooze(p.app, p.component, p.duration, p.time_units),
        persist=persist,
        failure_message=lambda p: f"Unable to save snooze: {p.app}",
    )


def checkout_operation(service: LifecycleService) -> WriteOperation[PairRequest]:
    async def persist(payload: PairRequest) -> str:
        await service.checkout(payload.app, payload.component)
        return f"Application Removed [{payload.app}/{payload.component}]"

    return WriteOperation(
        name="checkout",
        request_model=PairRequest,
        validate=lambda p: validate_pair(p.app, p.component),
        persist=persist,
        failure_message=lambda p: f"Unable to save checkout: {p.app}",
    )


# ========== Route Handlers ==========

@router.post(
    "/reservation",
    summary="Create or update a reservation",
    description="""
    Register the check-in contract for an (app, component) pair.

    A pair that has not checked in within `frequency` x `timeUnits` is
    reported as failing. Re-posting an existing pair replaces its contract
    and keeps its check-in history.

    **Time Units**: `seconds`, `minutes`, `hours`
    """,
    openapi_extra={"requestBody": {"content": {"application/json": {"example": RESERVATION_EXAMPLE}}}},
    responses=WRITE_RESPONSES
)
async def create_reservation(
    request: Request,
    service: LifecycleService = Depends(get_lifecycle_service)
) -> Response:
    return await run_write_operation(reservation_operation(service), await request.body())


@router.post(
    "/checkin",
    summary="Check in",
    description="Record a sign of life. Unknown pairs are accepted and tracked without an SLA.",
    responses=WRITE_RESPONSES
)
async def checkin(
    request: Request,
    service: LifecycleService = Depends(get_lifecycle_service)
) -> Response:
    return await run_write_operation(checkin_operation(service), await request.body())


@router.post(
    "/snooze",
    summary="Pause alerting",
    description="Suppress failure detection for a pair for `duration` x `timeUnits`.",
    responses=WRITE_RESPONSES
)
async def snooze(
    request: Request,
    service: LifecycleService = Depends(get_lifecycle_service)
) -> Response:
    return await run_write_operation(snooze_operation(service), await request.body())


@router.post(
    "/checkout",
    summary="Remove a reservation",
    description="Stop monitoring a pair. Removing an unknown pair succeeds and changes nothing.",
    responses=WRITE_RESPONSES
)
async def checkout(
    request: Request,
    service: LifecycleService = Depends(get_lifecycle_service)
) -> Response:
    return await run_write_operation(checkout_operation(service), await request.body())


@router.get(
    "/reservation",
    response_model=ReservationListResponse,
    response_model_by_alias=True,
    summary="List reservations",
    description="Every reservation with its SLA status, most recent check-in first.",
    responses={200: {"content": {"application/json": {"example": RESERVATION_LIST_EXAMPLE}}}}
)
async def list_reservations(
    service: ReservationQueryService = Depends(get_query_service)
):
    try:
        statuses = await service.list_reservations()
    except RepositoryException as e:
        logger.error("Unable to list reservations", extra={"error": e.message})
        return error_response(
            "Unable to list reservations",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return ReservationListResponse(
        result=[ReservationView.from_domain(s.reservation, s.evaluation) for s in statuses]
    )


@router.get(
    "/reservation/{app}/{component}",
    response_model=ReservationDetailResponse,
    response_model_by_alias=True,
    summary="Get one reservation",
    responses={404: {"description": "No reservation for the pair"}}
)
async def get_reservation(
    app: str,
    component: str,
    service: ReservationQueryService = Depends(get_query_service)
):
    try:
        reservation_status = await service.get_reservation(app, component)
    except RepositoryException as e:
        logger.error("Unable to read reservation", extra={"app": app, "component": component, "error": e.message})
        return error_response(
            f"Unable to read reservation: {app}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return ReservationDetailResponse(
        result=ReservationView.from_domain(reservation_status.reservation, reservation_status.evaluation)
    )


@router.get(
    "/badguests",
    response_model=BadGuestListResponse,
    response_model_by_alias=True,
    summary="Most frequently failing pairs",
    description="Failure alert counts per pair, highest first."
)
async def list_bad_guests(
    service: ReservationQueryService = Depends(get_query_service)
):
    try:
        guests = await service.list_bad_guests()
    except RepositoryException as e:
        logger.error("Unable to list bad guests", extra={"error": e.message})
        return error_response(
            "Unable to list bad guests",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return BadGuestListResponse(result=[BadGuestView.from_domain(g) for g in guests])
