"""
Tests for the reporting aggregator: daily attendance, daily and weekly
employee hours, and the live time-clock board.
"""

from datetime import date, datetime, timedelta

import pytest

from app.core.clock import FixedClock
from app.core.exceptions import ValidationError
from app.models.absence import AbsenceReport, AbsenceStatus
from app.models.reference import Child, Employee, EmployeeTimeOff
from app.models.timeclock import EmployeeClockStatus, EntryType
from app.services.absence_service import AbsenceService
from app.services.attendance_service import AttendanceService
from app.services.reporting_service import ReportingService
from app.services.timeclock_service import TimeClockService


def add_children(db_session, program_id, count):
    children = [
        Child(first_name=f"Kid{i}", last_name="Test", program_id=program_id)
        for i in range(count)
    ]
    db_session.add_all(children)
    db_session.commit()
    return [c.id for c in children]


def test_daily_attendance_counts(db_session, seed, staff, clock):
    """
    Test a day with 30 active children, 2 acknowledged absences and
    25 check-ins.
    """
    # Arrange
    extra = add_children(db_session, seed.toddlers, 27)
    active = [seed.emma, seed.noah, seed.liam] + extra
    assert len(active) == 30

    absences = AbsenceService(db_session, clock)
    for child_id in active[:2]:
        absence = absences.report(child_id, clock.today(), seed.illness, staff)
        absences.acknowledge(absence.id, staff)
    cancelled = absences.report(active[2], clock.today(), seed.illness, staff)
    absences.cancel(cancelled.id, staff)

    attendance = AttendanceService(db_session, clock)
    for child_id in active[2:27]:
        attendance.check_in(child_id, staff)
        clock.advance(minutes=1)
    clock.advance(hours=8)
    attendance.check_out(active[2], staff)

    # Act
    report = ReportingService(db_session, clock).daily_attendance(clock.today())

    # Assert
    assert report.stats.enrolled == 30
    assert report.stats.expected == 28
    assert report.stats.attended == 25
    assert report.stats.absent == 2
    assert report.stats.checked_in == 24
    assert report.stats.checked_out == 1
    assert report.stats.not_yet_arrived == 3
    assert len(report.absences) == 2
    assert len(report.records) == 25


def test_daily_attendance_by_program(db_session, seed, parent, staff, clock):
    # Arrange
    attendance = AttendanceService(db_session, clock)
    attendance.check_in(seed.emma, parent)
    attendance.check_in(seed.noah, parent)

    # Act
    report = ReportingService(db_session, clock).daily_attendance()

    # Assert
    by_program = {p.name: p for p in report.by_program}
    assert [p.name for p in report.by_program] == ["Toddlers", "Pre-K"]
    assert by_program["Toddlers"].enrolled == 1
    assert by_program["Toddlers"].attended == 1
    assert by_program["Pre-K"].enrolled == 2
    assert by_program["Pre-K"].checked_in == 1


def test_pending_absence_reduces_expected(db_session, seed, parent, clock):
    """Test that pending and acknowledged absences both excuse the child."""
    # Arrange
    AbsenceService(db_session, clock).report(
        seed.noah, clock.today(), seed.illness, parent
    )

    # Act
    stats = ReportingService(db_session, clock).daily_attendance().stats

    # Assert
    assert stats.enrolled == 3
    assert stats.expected == 2
    assert stats.absent == 1


def test_today_overview(db_session, seed, parent, clock):
    # Arrange
    AttendanceService(db_session, clock).check_in(seed.emma, parent)
    absences = AbsenceService(db_session, clock)
    soon = absences.report(seed.noah, clock.today() + timedelta(days=2), seed.illness, parent)
    absences.report(seed.noah, clock.today() + timedelta(days=20), seed.vacation, parent)

    # Act
    overview = ReportingService(db_session, clock).today_overview()

    # Assert
    assert overview.date == clock.today()
    assert overview.stats.attended == 1
    assert [c.child_id for c in overview.recent_checkins] == [seed.emma]
    assert [a.id for a in overview.pending_absences] == [soon.id]


def test_open_punch_today_counts_until_now(db_session, seed, maria):
    """Test an employee clocked in at 09:00 with the report generated at 15:00."""
    # Arrange
    clock = FixedClock(datetime(2026, 3, 10, 9, 0))
    TimeClockService(db_session, clock).clock_in(seed.maria, maria)
    clock.advance(hours=6)

    # Act
    report = ReportingService(db_session, clock).daily_employee_report()

    # Assert
    summary = next(e for e in report.employees if e.employee_id == seed.maria)
    assert summary.work_minutes == 360
    assert summary.has_open_punch is True
    assert summary.clock_status == EmployeeClockStatus.CLOCKED_IN
    assert summary.last_out is None
    assert summary.worked is True
    assert report.open_punches == 1


def test_open_punch_on_past_day_contributes_nothing(db_session, seed, staff, clock):
    """Test that a punch left open on an earlier day is flagged with zero minutes."""
    # Arrange
    yesterday = clock.today() - timedelta(days=1)
    TimeClockService(db_session, clock).add_punch(
        seed.sam, EntryType.SHIFT, datetime.combine(yesterday, datetime.min.time()).replace(hour=8), staff
    )

    # Act
    report = ReportingService(db_session, clock).daily_employee_report(yesterday)

    # Assert
    summary = next(e for e in report.employees if e.employee_id == seed.sam)
    assert summary.work_minutes == 0
    assert summary.has_open_punch is True
    assert summary.attendance == "worked"


def test_absent_and_excused_employees(db_session, seed, clock):
    """Test that employees without punches are absent unless on approved time off."""
    # Arrange
    db_session.add(
        EmployeeTimeOff(
            employee_id=seed.sam,
            start_date=clock.today(),
            end_date=clock.today() + timedelta(days=2),
            reason="Vacation",
            approved=True,
        )
    )
    db_session.commit()

    # Act
    report = ReportingService(db_session, clock).daily_employee_report()

    # Assert
    by_id = {e.employee_id: e for e in report.employees}
    assert by_id[seed.sam].attendance == "excused"
    assert by_id[seed.maria].attendance == "absent"
    assert report.employees_absent == 1
    assert report.employees_worked == 0


def test_lunch_is_reported_separately(db_session, seed, maria):
    # Arrange
    clock = FixedClock(datetime(2026, 3, 10, 8, 0))
    timeclock = TimeClockService(db_session, clock)
    timeclock.clock_in(seed.maria, maria)
    clock.advance(hours=4)
    timeclock.start_lunch(seed.maria, maria)
    clock.advance(minutes=45)
    timeclock.end_lunch(seed.maria, maria)
    clock.advance(hours=4)
    timeclock.clock_out(seed.maria, maria)

    # Act
    report = ReportingService(db_session, clock).daily_employee_report()

    # Assert
    summary = next(e for e in report.employees if e.employee_id == seed.maria)
    assert summary.work_minutes == 480
    assert summary.lunch_minutes == 45
    assert summary.first_in == datetime(2026, 3, 10, 8, 0)
    assert summary.last_out == datetime(2026, 3, 10, 16, 45)
    assert summary.clock_status == EmployeeClockStatus.CLOCKED_OUT


@pytest.fixture
def saturday_clock():
    return FixedClock(datetime(2026, 3, 14, 12, 0))


def test_weekly_report_hours_and_pay(db_session, seed, staff, saturday_clock):
    """Test five 08:00-17:00 shifts at $20/hour: 45.0 hours and $900.00."""
    # Arrange
    timeclock = TimeClockService(db_session, saturday_clock)
    for offset in range(5):
        day = date(2026, 3, 9) + timedelta(days=offset)
        timeclock.add_punch(
            seed.maria,
            EntryType.SHIFT,
            datetime.combine(day, datetime.min.time()).replace(hour=8),
            staff,
            clock_out=datetime.combine(day, datetime.min.time()).replace(hour=17),
        )

    # Act
    report = ReportingService(db_session, saturday_clock).weekly_report()

    # Assert
    assert report.summary.period_start == date(2026, 3, 9)
    assert report.summary.period_end == date(2026, 3, 15)
    by_id = {e.employee_id: e for e in report.employees}
    maria = by_id[seed.maria]
    assert maria.work_minutes == 2700
    assert maria.work_hours == 45.0
    assert maria.estimated_pay == 900.00
    assert maria.days_worked == 5
    assert maria.days_absent == 1
    assert by_id[seed.sam].estimated_pay is None
    assert by_id[seed.sam].days_absent == 6
    assert report.summary.total_work_hours == 45.0
    assert report.summary.employees_with_hours == 1
    assert report.summary.total_estimated_pay == 900.00
    assert len(report.daily_breakdown) == 7
    assert report.daily_breakdown[0].work_hours == 9.0
    assert report.daily_breakdown[5].employees_worked == 0


def test_weekly_report_keeps_minutes_exact(db_session, seed, staff, saturday_clock):
    """Test that hours are summed from exact minutes, not rounded daily hours."""
    # Arrange
    timeclock = TimeClockService(db_session, saturday_clock)
    for offset in range(3):
        day = date(2026, 3, 9) + timedelta(days=offset)
        start = datetime.combine(day, datetime.min.time()).replace(hour=8)
        timeclock.add_punch(
            seed.maria, EntryType.SHIFT, start, staff,
            clock_out=start + timedelta(minutes=20),
        )

    # Act
    report = ReportingService(db_session, saturday_clock).weekly_report(
        date(2026, 3, 9), date(2026, 3, 11)
    )

    # Assert
    maria = next(e for e in report.employees if e.employee_id == seed.maria)
    assert maria.work_minutes == 60
    assert maria.work_hours == 1.0
    assert maria.estimated_pay == 20.00


def test_weekly_report_range_validation(db_session, seed, clock):
    service = ReportingService(db_session, clock)

    with pytest.raises(ValidationError):
        service.weekly_report(date(2026, 3, 10), date(2026, 3, 1))
    with pytest.raises(ValidationError):
        service.weekly_report(date(2026, 1, 1), date(2026, 6, 1))


def test_timeclock_today(db_session, seed, maria, clock):
    # Arrange
    TimeClockService(db_session, clock).clock_in(seed.maria, maria)
    clock.advance(hours=2)

    # Act
    board = ReportingService(db_session, clock).timeclock_today()

    # Assert
    assert board.stats.total_employees == 2
    assert board.stats.clocked_in == 1
    assert board.stats.not_clocked_in == 1
    row = next(e for e in board.employees if e.employee_id == seed.maria)
    assert row.status == EmployeeClockStatus.CLOCKED_IN
    assert row.work_minutes == 120
    assert row.has_open_punch is True


def test_timeclock_today_flags_shift_left_open_yesterday(db_session, seed, staff, clock):
    # Arrange
    yesterday = (clock.now() - timedelta(days=1)).replace(hour=8)
    TimeClockService(db_session, clock).add_punch(seed.maria, EntryType.SHIFT, yesterday, staff)

    # Act
    board = ReportingService(db_session, clock).timeclock_today()

    # Assert
    row = next(e for e in board.employees if e.employee_id == seed.maria)
    assert row.status == EmployeeClockStatus.NOT_CLOCKED_IN
    assert row.has_open_punch is True
    assert row.work_minutes == 0
    assert board.stats.not_clocked_in == 2
    assert board.stats.clocked_in == 0


def test_absence_for_inactive_child_is_not_counted(db_session, seed, clock):
    """Test that absences for unenrolled children stay out of the absent count."""
    # Arrange
    db_session.add(
        AbsenceReport(
            child_id=seed.inactive_child,
            start_date=clock.today(),
            end_date=clock.today(),
            reason_id=seed.illness,
            status=AbsenceStatus.ACKNOWLEDGED.value,
            reported_by_type="staff",
            reported_at=clock.now(),
        )
    )
    db_session.commit()

    # Act
    report = ReportingService(db_session, clock).daily_attendance(clock.today())

    # Assert
    assert report.stats.enrolled == 3
    assert report.stats.absent == 0
    assert report.stats.expected == 3


def test_deactivated_employee_keeps_reported_hours(db_session, seed, staff, saturday_clock):
    """Test that an employee deactivated mid-week still appears for the days they worked."""
    # Arrange
    monday = datetime(2026, 3, 9, 8, 0)
    TimeClockService(db_session, saturday_clock).add_punch(
        seed.sam, EntryType.SHIFT, monday, staff, clock_out=monday + timedelta(hours=8)
    )
    sam = db_session.get(Employee, seed.sam)
    sam.is_active = False
    db_session.add(sam)
    db_session.commit()
    service = ReportingService(db_session, saturday_clock)

    # Act
    weekly = service.weekly_report()
    monday_report = service.daily_employee_report(monday.date())
    tuesday_report = service.daily_employee_report(date(2026, 3, 10))

    # Assert
    row = next(e for e in weekly.employees if e.employee_id == seed.sam)
    assert row.work_minutes == 480
    assert row.days_worked == 1
    assert row.days_absent == 0
    assert weekly.summary.total_work_hours == 8.0
    summary = next(e for e in monday_report.employees if e.employee_id == seed.sam)
    assert summary.attendance == "worked"
    assert summary.work_minutes == 480
    assert seed.sam not in {e.employee_id for e in tuesday_report.employees}
