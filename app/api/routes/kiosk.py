"""
Kiosk endpoints.

The front-desk kiosk authenticates every call with a PIN instead of a portal
session. Mutating calls accept an ``Idempotency-Key`` header so a retried tap
replays the first response instead of acting twice.
"""

from typing import Callable

from fastapi import APIRouter

from app.api.dependencies import (
    ClockDep,
    IdempotencyDep,
    IdempotencyKey,
    SessionDep,
    remember,
    replay,
)
from app.api.publishers import publish_child_results, publish_punch
from app.core.events import EventType
from app.core.logging import get_logger
from app.models.attendance import BatchActionResponse, KioskChildrenRequest
from app.models.kiosk import (
    KioskParent,
    ParentChildrenRequest,
    VerifyPinRequest,
    VerifyPinResponse,
)
from app.models.timeclock import (
    ClockActionResponse,
    EmployeeStatusResponse,
    KioskEmployeeRequest,
    PunchPublic,
)
from app.services.attendance_service import AttendanceService
from app.services.kiosk_service import KioskService
from app.services.timeclock_service import TimeClockService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/kiosk",
    tags=["kiosk"],
    responses={401: {"description": "Invalid PIN"}},
)


@router.post("/verify-pin", response_model=VerifyPinResponse)
async def verify_pin(
    request: VerifyPinRequest, session: SessionDep, clock: ClockDep
) -> VerifyPinResponse:
    """
    Resolve a kiosk PIN to a parent (with their children's status today) or an
    employee (with their clock status).
    """
    return KioskService(session, clock).verify_pin(request.pin)


@router.post("/parent/children", response_model=KioskParent)
async def parent_children(
    request: ParentChildrenRequest, session: SessionDep, clock: ClockDep
) -> KioskParent:
    """Refresh a parent's children and their attendance state for today."""
    return KioskService(session, clock).parent_children(request.parent_id, request.pin)


async def _children_action(
    request: KioskChildrenRequest,
    session,
    clock,
    store,
    idempotency_key,
    scope: str,
    action: Callable[[AttendanceService], Callable],
    event_type: EventType,
    verb: str,
):
    actor = KioskService(session, clock).resolve_parent(request.parent_id, request.pin)
    stored = replay(store, idempotency_key, scope, actor)
    if stored is not None:
        return stored

    results = action(AttendanceService(session, clock))(request.child_ids, actor)

    succeeded = sum(1 for r in results if r.ok)
    logger.info(
        f"Kiosk {verb} by {actor.reference}: {succeeded}/{len(results)} children"
    )
    response = BatchActionResponse(
        message=f"{succeeded} of {len(results)} children {verb}",
        results=results,
        performed_by=actor.name,
        timestamp=clock.now(),
    )
    remember(store, idempotency_key, scope, actor, response)

    await publish_child_results(event_type, results, clock.today(), actor)
    return response


@router.post("/checkin", response_model=BatchActionResponse)
async def kiosk_checkin(
    request: KioskChildrenRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    """
    Check in one or more children.

    Each child succeeds or fails independently; per-child outcomes are listed
    in ``results``.
    """
    return await _children_action(
        request,
        session,
        clock,
        store,
        idempotency_key,
        "kiosk.checkin",
        lambda s: s.check_in_many,
        EventType.CHILD_CHECKED_IN,
        "checked in",
    )


@router.post("/checkout", response_model=BatchActionResponse)
async def kiosk_checkout(
    request: KioskChildrenRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    """Check out one or more children."""
    return await _children_action(
        request,
        session,
        clock,
        store,
        idempotency_key,
        "kiosk.checkout",
        lambda s: s.check_out_many,
        EventType.CHILD_CHECKED_OUT,
        "checked out",
    )


async def _clock_action(
    request: KioskEmployeeRequest,
    session,
    clock,
    store,
    idempotency_key,
    scope: str,
    action: Callable[[TimeClockService], Callable],
    event_type: EventType,
    message: str,
):
    actor = KioskService(session, clock).resolve_employee(request.employee_id, request.pin)
    stored = replay(store, idempotency_key, scope, actor)
    if stored is not None:
        return stored

    service = TimeClockService(session, clock)
    punch = action(service)(request.employee_id, actor)
    status = service.status_for(request.employee_id)

    response = ClockActionResponse(
        employee_id=request.employee_id,
        employee_name=actor.name,
        status=status.status,
        timestamp=clock.now(),
        punch=PunchPublic.from_entry(punch),
        message=f"{actor.name} {message}",
    )
    remember(store, idempotency_key, scope, actor, response)

    await publish_punch(event_type, punch, actor)
    return response


@router.post("/employee/clockin", response_model=ClockActionResponse)
async def employee_clock_in(
    request: KioskEmployeeRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    return await _clock_action(
        request, session, clock, store, idempotency_key,
        "kiosk.clockin", lambda s: s.clock_in,
        EventType.EMPLOYEE_CLOCKED_IN, "clocked in",
    )


@router.post("/employee/clockout", response_model=ClockActionResponse)
async def employee_clock_out(
    request: KioskEmployeeRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    return await _clock_action(
        request, session, clock, store, idempotency_key,
        "kiosk.clockout", lambda s: s.clock_out,
        EventType.EMPLOYEE_CLOCKED_OUT, "clocked out",
    )


@router.post("/employee/lunch/start", response_model=ClockActionResponse)
async def employee_lunch_start(
    request: KioskEmployeeRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    return await _clock_action(
        request, session, clock, store, idempotency_key,
        "kiosk.lunch.start", lambda s: s.start_lunch,
        EventType.EMPLOYEE_LUNCH_STARTED, "started lunch",
    )


@router.post("/employee/lunch/end", response_model=ClockActionResponse)
async def employee_lunch_end(
    request: KioskEmployeeRequest,
    session: SessionDep,
    clock: ClockDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    return await _clock_action(
        request, session, clock, store, idempotency_key,
        "kiosk.lunch.end", lambda s: s.end_lunch,
        EventType.EMPLOYEE_LUNCH_ENDED, "ended lunch",
    )


@router.post("/employee/status", response_model=EmployeeStatusResponse)
async def employee_status(
    request: KioskEmployeeRequest, session: SessionDep, clock: ClockDep
) -> EmployeeStatusResponse:
    """Current clock status and today's minutes for the kiosk employee screen."""
    KioskService(session, clock).resolve_employee(request.employee_id, request.pin)
    return TimeClockService(session, clock).status_for(request.employee_id)
