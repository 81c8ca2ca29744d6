"""
Event publishing helpers used by the route handlers after a successful commit.
"""

from datetime import date

from app.core.events import (
    AbsenceEvent,
    ChildAttendanceEvent,
    EventType,
    PunchEvent,
    create_event,
)
from app.core.kafka import publish_event
from app.core.security import Actor
from app.models.absence import AbsenceReport
from app.models.attendance import CheckinRecord, ChildActionResult
from app.models.timeclock import PunchPublic, TimeClockEntry


async def publish_child_record(
    event_type: EventType, record: CheckinRecord, actor: Actor
) -> None:
    data = ChildAttendanceEvent(
        checkin_id=record.id,
        child_id=record.child_id,
        date=record.checkin_date,
        check_in_time=record.check_in_time,
        check_out_time=record.check_out_time,
        performed_by=actor.reference,
    )
    await publish_event(
        create_event(event_type, data, actor=actor.reference), key=str(record.child_id)
    )


async def publish_child_results(
    event_type: EventType, results: list[ChildActionResult], day: date, actor: Actor
) -> None:
    for result in results:
        if not result.ok:
            continue
        data = ChildAttendanceEvent(
            checkin_id=result.checkin_id,
            child_id=result.child_id,
            date=day,
            check_in_time=result.check_in_time,
            check_out_time=result.check_out_time,
            performed_by=actor.reference,
        )
        await publish_event(
            create_event(event_type, data, actor=actor.reference),
            key=str(result.child_id),
        )


async def publish_absence(
    event_type: EventType, absence: AbsenceReport, actor: Actor
) -> None:
    data = AbsenceEvent(
        absence_id=absence.id,
        child_id=absence.child_id,
        start_date=absence.start_date,
        end_date=absence.last_day,
        status=absence.status,
        performed_by=actor.reference,
    )
    await publish_event(
        create_event(event_type, data, actor=actor.reference), key=str(absence.child_id)
    )


async def publish_punch(
    event_type: EventType, punch: TimeClockEntry | PunchPublic, actor: Actor
) -> None:
    data = PunchEvent(
        punch_id=punch.id,
        employee_id=punch.employee_id,
        entry_type=getattr(punch.entry_type, "value", punch.entry_type),
        clock_in=punch.clock_in,
        clock_out=punch.clock_out,
        was_adjusted=punch.was_adjusted,
        adjustment_reason=punch.adjustment_reason,
        performed_by=actor.reference,
    )
    await publish_event(
        create_event(event_type, data, actor=actor.reference), key=str(punch.employee_id)
    )
