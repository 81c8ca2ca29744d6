"""
Staff attendance endpoints: today's board, check-in log, manual check-in/out,
absence review and the daily attendance report.
"""

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query

from app.api.dependencies import ClockDep, SessionDep, StaffDep
from app.api.publishers import publish_absence, publish_child_record
from app.core.events import EventType
from app.core.logging import get_logger
from app.models.absence import AbsenceListResponse, AbsencePublic, AbsenceStatus
from app.models.attendance import (
    CheckinLogResponse,
    CheckinRecordPublic,
    ChildAttendanceState,
    ChildStatus,
    ManualCheckRequest,
)
from app.models.reports import DailyAttendanceReport, TodayOverview
from app.services.absence_service import AbsenceService
from app.services.attendance_service import AttendanceService
from app.services.reporting_service import ReportingService

logger = get_logger(__name__)

# Create router with prefix and tags for better organization
router = APIRouter(
    prefix="/attendance",
    tags=["attendance"],
    responses={404: {"description": "Child or absence not found"}},
)


@router.get("/today", response_model=TodayOverview)
async def today(session: SessionDep, clock: ClockDep, staff: StaffDep) -> TodayOverview:
    """
    Today's attendance board.

    Returns totals (enrolled, expected, attended, absent, not yet arrived),
    per-program counts, the latest check-ins and pending absences due within
    the next week.
    """
    return ReportingService(session, clock).today_overview()


@router.get("/checkins", response_model=CheckinLogResponse)
async def checkin_log(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    day: Annotated[Optional[date], Query(alias="date")] = None,
    program_id: Annotated[Optional[int], Query(alias="programId", gt=0)] = None,
    state: Optional[ChildAttendanceState] = None,
) -> CheckinLogResponse:
    """
    Check-in log for a day, newest first.

    Args:
        day: Day to list (defaults to today)
        program_id: Only children in this program
        state: Only records in this state (checked_in or checked_out)
    """
    service = AttendanceService(session, clock)
    day = day or clock.today()
    records = service.checkins_for_date(day, program_id=program_id, state=state)
    return CheckinLogResponse(
        date=day, total=len(records), checkins=service.to_public(records)
    )


@router.get("/children/{child_id}/status", response_model=ChildStatus)
async def child_status(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    child_id: Annotated[int, Path(gt=0)],
    day: Annotated[Optional[date], Query(alias="date")] = None,
) -> ChildStatus:
    return AttendanceService(session, clock).status_for(child_id, day)


@router.post("/manual-checkin", response_model=CheckinRecordPublic, status_code=201)
async def manual_checkin(
    request: ManualCheckRequest, session: SessionDep, clock: ClockDep, staff: StaffDep
) -> CheckinRecordPublic:
    """Staff check-in for a child whose parent did not use the kiosk."""
    service = AttendanceService(session, clock)
    record = service.check_in(request.child_id, staff, notes=request.notes)
    logger.info(f"Manual check-in for child {request.child_id} by {staff.reference}")

    await publish_child_record(EventType.CHILD_CHECKED_IN, record, staff)
    return service.to_public([record])[0]


@router.post("/manual-checkout", response_model=CheckinRecordPublic)
async def manual_checkout(
    request: ManualCheckRequest, session: SessionDep, clock: ClockDep, staff: StaffDep
) -> CheckinRecordPublic:
    service = AttendanceService(session, clock)
    record = service.check_out(request.child_id, staff, notes=request.notes)
    logger.info(f"Manual check-out for child {request.child_id} by {staff.reference}")

    await publish_child_record(EventType.CHILD_CHECKED_OUT, record, staff)
    return service.to_public([record])[0]


@router.get("/absences", response_model=AbsenceListResponse)
async def list_absences(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    status: Optional[AbsenceStatus] = None,
    child_id: Annotated[Optional[int], Query(alias="childId", gt=0)] = None,
    reason_id: Annotated[Optional[int], Query(alias="reasonId", gt=0)] = None,
    start_date: Annotated[Optional[date], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[date], Query(alias="endDate")] = None,
) -> AbsenceListResponse:
    """
    Absence reports, optionally filtered by status, child, reason and a date
    range the absence window must intersect.
    """
    service = AbsenceService(session, clock)
    absences = service.list_absences(
        status=status,
        child_id=child_id,
        reason_id=reason_id,
        start_date=start_date,
        end_date=end_date,
    )
    return AbsenceListResponse(total=len(absences), absences=service.to_public(absences))


@router.get("/absences/{absence_id}", response_model=AbsencePublic)
async def get_absence(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    absence_id: Annotated[int, Path(gt=0)],
) -> AbsencePublic:
    service = AbsenceService(session, clock)
    return service.to_public([service.get(absence_id, staff)])[0]


@router.put("/absences/{absence_id}/acknowledge", response_model=AbsencePublic)
async def acknowledge_absence(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    absence_id: Annotated[int, Path(gt=0)],
) -> AbsencePublic:
    """
    Acknowledge a pending absence.

    Acknowledging an already acknowledged absence returns it unchanged.
    """
    service = AbsenceService(session, clock)
    was_pending = service.get_absence(absence_id).status == AbsenceStatus.PENDING.value
    absence = service.acknowledge(absence_id, staff)

    if was_pending:
        await publish_absence(EventType.ABSENCE_ACKNOWLEDGED, absence, staff)
    return service.to_public([absence])[0]


@router.get("/report", response_model=DailyAttendanceReport)
async def attendance_report(
    session: SessionDep,
    clock: ClockDep,
    staff: StaffDep,
    day: Annotated[Optional[date], Query(alias="date")] = None,
) -> DailyAttendanceReport:
    """Daily attendance report (defaults to today)."""
    return ReportingService(session, clock).daily_attendance(day)
