"""
Time-clock administration endpoints: live board, punch history, daily and
weekly reports, and punch add / edit / delete.
"""

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query

from app.api.dependencies import (
    ClockDep,
    IdempotencyDep,
    IdempotencyKey,
    SessionDep,
    StaffDep,
    remember,
    replay,
)
from app.api.publishers import publish_punch
from app.core.events import EventType
from app.core.logging import get_logger
from app.models.reports import DailyEmployeeReport, TimeClockToday, WeeklyReport
from app.models.timeclock import (
    PunchCreate,
    PunchListResponse,
    PunchPublic,
    PunchUpdate,
)
from app.services.reporting_service import ReportingService
from app.services.timeclock_service import TimeClockService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/timeclock",
    tags=["timeclock"],
    responses={404: {"description": "Employee or punch not found"}},
)


@router.get("/today", response_model=TimeClockToday)
async def timeclock_today(
    session: SessionDep, clock: ClockDep, staff: StaffDep
) -> TimeClockToday:
    """Every active employee's clock status and punches today."""
    return ReportingService(session, clock).timeclock_today()


@router.get("/employees/{employee_id}/entries", response_model=PunchListResponse)
async def employee_entries(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    employee_id: Annotated[int, Path(gt=0)],
    start_date: Annotated[Optional[date], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[date], Query(alias="endDate")] = None,
) -> PunchListResponse:
    """
    Punches for one employee whose clock-in falls in [startDate, endDate].

    Both dates default to today.
    """
    service = TimeClockService(session, clock)
    employee = service.get_employee(employee_id)
    start = start_date or clock.today()
    punches = service.punches_for(employee_id, start, end_date or max(start, clock.today()))
    public = [PunchPublic.from_entry(p) for p in punches]
    return PunchListResponse(
        employee_id=employee.id,
        employee_name=employee.full_name,
        total=len(public),
        total_minutes=round(sum(p.total_minutes or 0 for p in public), 2),
        punches=public,
    )


@router.get("/daily-report", response_model=DailyEmployeeReport)
async def daily_report(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    day: Annotated[Optional[date], Query(alias="date")] = None,
) -> DailyEmployeeReport:
    return ReportingService(session, clock).daily_employee_report(day)


@router.get("/weekly-report", response_model=WeeklyReport)
async def weekly_report(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> WeeklyReport:
    """
    Hours and estimated pay per employee over a date range.

    Defaults to the current Monday to Sunday week.
    """
    return ReportingService(session, clock).weekly_report(start, end)


@router.post("/entries", response_model=PunchPublic, status_code=201)
async def add_entry(
    request: PunchCreate,
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    store: IdempotencyDep,
    idempotency_key: IdempotencyKey = None,
):
    """
    Backfill a missed punch.

    Raises:
        ValidationError (400): times in the future or out of order
        ConflictError (409): the punch overlaps an existing one
    """
    stored = replay(store, idempotency_key, "timeclock.entries", staff)
    if stored is not None:
        return stored

    punch = TimeClockService(session, clock).add_punch(
        request.employee_id,
        request.entry_type,
        request.clock_in,
        staff,
        clock_out=request.clock_out,
        notes=request.notes,
    )
    response = PunchPublic.from_entry(punch)
    remember(store, idempotency_key, "timeclock.entries", staff, response, status_code=201)

    await publish_punch(EventType.PUNCH_ADDED, punch, staff)
    return response


@router.put("/entries/{punch_id}", response_model=PunchPublic)
async def edit_entry(
    request: PunchUpdate,
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    punch_id: Annotated[int, Path(gt=0)],
) -> PunchPublic:
    """Correct a punch. ``adjustmentReason`` is required."""
    punch = TimeClockService(session, clock).edit_punch(punch_id, request, staff)

    await publish_punch(EventType.PUNCH_ADJUSTED, punch, staff)
    return PunchPublic.from_entry(punch)


@router.delete("/entries/{punch_id}", response_model=PunchPublic)
async def delete_entry(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    punch_id: Annotated[int, Path(gt=0)],
) -> PunchPublic:
    removed = TimeClockService(session, clock).delete_punch(punch_id, staff)

    await publish_punch(EventType.PUNCH_DELETED, removed, staff)
    return removed
