"""
Reporting Aggregator.

Read-only. Every report is recomputed from committed check-in, absence and
punch rows on each call; nothing is cached or persisted.
"""

from datetime import date, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from app.core.clock import FacilityClock, system_clock
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.models.absence import AbsenceStatus
from app.models.attendance import ChildAttendanceState
from app.models.reference import Child, Employee, EmployeeTimeOff, Program
from app.models.reports import (
    AttendanceStats,
    DailyAttendanceReport,
    DailyBreakdown,
    DailyEmployeeReport,
    DailyEmployeeSummary,
    EmployeeToday,
    ProgramAttendance,
    TimeClockToday,
    TimeClockTodayStats,
    TodayOverview,
    WeeklyEmployeeSummary,
    WeeklyReport,
    WeeklySummary,
)
from app.models.timeclock import (
    EmployeeClockStatus,
    EntryType,
    PunchPublic,
    TimeClockEntry,
)
from app.services.absence_service import AbsenceService
from app.services.attendance_service import AttendanceService
from app.services.base import BaseService
from app.services.timeclock_service import ClockDay, TimeClockService, day_bounds

logger = get_logger(__name__)

RECENT_CHECKINS_LIMIT = 10
PENDING_ABSENCE_WINDOW_DAYS = 7


class ReportingService(BaseService):

    def __init__(self, session: Session, clock: FacilityClock = system_clock):
        super().__init__(session, clock)
        self.attendance = AttendanceService(session, self.clock)
        self.absences = AbsenceService(session, self.clock)
        self.timeclock = TimeClockService(session, self.clock)

    def _active_children(self) -> list[Child]:
        statement = select(Child).where(Child.is_active == True)  # noqa: E712
        return list(self.session.exec(statement).all())

    def _report_employees(self, start: date, end: date) -> list[Employee]:
        """Active employees plus anyone with punches in [start, end]."""
        range_start, _ = day_bounds(start)
        _, range_end = day_bounds(end)
        punched = select(TimeClockEntry.employee_id).where(
            (TimeClockEntry.clock_in >= range_start) & (TimeClockEntry.clock_in < range_end)
        )
        statement = (
            select(Employee)
            .where(
                or_(
                    Employee.is_active == True,  # noqa: E712
                    Employee.id.in_(punched),
                )
            )
            .order_by(Employee.last_name, Employee.first_name)
        )
        return list(self.session.exec(statement).all())

    # Child attendance

    def _attendance_stats(self, day: date):
        children = self._active_children()
        active_ids = {c.id for c in children}
        records = self.attendance.checkins_for_date(day)
        covering = self.absences.absences_covering(day)

        absent_ids = {a.child_id for a in covering} & active_ids
        excused_ids = {
            a.child_id
            for a in covering
            if a.status in (AbsenceStatus.PENDING.value, AbsenceStatus.ACKNOWLEDGED.value)
        } & active_ids

        checked_in = sum(1 for r in records if r.state == ChildAttendanceState.CHECKED_IN)
        checked_out = sum(1 for r in records if r.state == ChildAttendanceState.CHECKED_OUT)
        expected = len(children) - len(excused_ids)

        stats = AttendanceStats(
            enrolled=len(children),
            expected=expected,
            attended=len(records),
            checked_in=checked_in,
            checked_out=checked_out,
            absent=len(absent_ids),
            not_yet_arrived=max(expected - len(records), 0),
        )

        programs = self.session.exec(
            select(Program)
            .where(Program.is_active == True)  # noqa: E712
            .order_by(Program.sort_order, Program.name)
        ).all()
        program_of = {c.id: c.program_id for c in children}
        by_program = []
        for program in programs:
            program_records = [r for r in records if program_of.get(r.child_id) == program.id]
            by_program.append(
                ProgramAttendance(
                    program_id=program.id,
                    name=program.name,
                    color=program.color,
                    enrolled=sum(1 for c in children if c.program_id == program.id),
                    attended=len(program_records),
                    checked_in=sum(
                        1 for r in program_records if r.state == ChildAttendanceState.CHECKED_IN
                    ),
                    checked_out=sum(
                        1 for r in program_records if r.state == ChildAttendanceState.CHECKED_OUT
                    ),
                )
            )
        return stats, by_program, records, covering

    def daily_attendance(self, day: Optional[date] = None) -> DailyAttendanceReport:
        """
        Attendance totals for a day.

        expected = active children minus those with a pending or acknowledged
        absence covering the day; absent counts distinct children with any
        non-cancelled absence covering the day.
        """
        day = day or self.clock.today()
        stats, by_program, records, covering = self._attendance_stats(day)
        return DailyAttendanceReport(
            date=day,
            generated_at=self.clock.now(),
            stats=stats,
            by_program=by_program,
            absences=self.absences.to_public(covering),
            records=self.attendance.to_public(records),
        )

    def today_overview(self) -> TodayOverview:
        """Admin dashboard: today's totals, latest check-ins and absences due soon."""
        today = self.clock.today()
        stats, by_program, records, _ = self._attendance_stats(today)

        pending = self.absences.list_absences(
            status=AbsenceStatus.PENDING,
            start_date=today,
            end_date=today + timedelta(days=PENDING_ABSENCE_WINDOW_DAYS),
        )
        pending.sort(key=lambda a: (a.start_date, a.id))

        return TodayOverview(
            date=today,
            stats=stats,
            by_program=by_program,
            recent_checkins=self.attendance.to_public(records[:RECENT_CHECKINS_LIMIT]),
            pending_absences=self.absences.to_public(pending),
        )

    # Employees

    def _approved_time_off(self, start: date, end: date) -> dict[int, list[EmployeeTimeOff]]:
        statement = select(EmployeeTimeOff).where(
            (EmployeeTimeOff.approved == True)  # noqa: E712
            & (EmployeeTimeOff.start_date <= end)
            & (EmployeeTimeOff.end_date >= start)
        )
        grouped: dict[int, list[EmployeeTimeOff]] = {}
        for row in self.session.exec(statement).all():
            grouped.setdefault(row.employee_id, []).append(row)
        return grouped

    def _summarize_day(
        self,
        employee: Employee,
        day: date,
        state: ClockDay,
        time_off: list[EmployeeTimeOff],
    ) -> DailyEmployeeSummary:
        punches = state.punches
        shifts = [p for p in punches if p.entry_type == EntryType.SHIFT.value]

        if punches:
            attendance = "worked"
        elif any(t.start_date <= day <= t.end_date for t in time_off):
            attendance = "excused"
        else:
            attendance = "absent"

        return DailyEmployeeSummary(
            employee_id=employee.id,
            employee_name=employee.full_name,
            position=employee.position,
            department=employee.department,
            date=day,
            punches=[PunchPublic.from_entry(p) for p in punches],
            first_in=min((p.clock_in for p in shifts), default=None),
            last_out=None if any(p.is_open for p in punches) else max(
                (p.clock_out for p in punches), default=None
            ),
            work_minutes=state.work_minutes,
            lunch_minutes=state.lunch_minutes,
            work_hours=round(state.work_minutes / 60, 1),
            has_open_punch=state.has_open_punch,
            worked=bool(punches),
            attendance=attendance,
            clock_status=state.status,
        )

    def _daily_summaries(
        self, day: date, employees: list[Employee], time_off
    ) -> list[DailyEmployeeSummary]:
        states = self.timeclock.clock_days(day, [e.id for e in employees])
        return [
            self._summarize_day(
                employee,
                day,
                states[employee.id],
                time_off.get(employee.id, []),
            )
            for employee in employees
        ]

    def daily_employee_report(self, day: Optional[date] = None) -> DailyEmployeeReport:
        day = day or self.clock.today()
        employees = self._report_employees(day, day)
        summaries = self._daily_summaries(day, employees, self._approved_time_off(day, day))

        total_work = sum(s.work_minutes for s in summaries)
        return DailyEmployeeReport(
            date=day,
            generated_at=self.clock.now(),
            total_employees=len(employees),
            employees_worked=sum(1 for s in summaries if s.worked),
            employees_absent=sum(1 for s in summaries if s.attendance == "absent"),
            total_work_hours=round(total_work / 60, 1),
            total_lunch_minutes=round(sum(s.lunch_minutes for s in summaries), 2),
            open_punches=sum(1 for s in summaries if s.has_open_punch),
            employees=[
                s.model_copy(
                    update={
                        "work_minutes": round(s.work_minutes, 2),
                        "lunch_minutes": round(s.lunch_minutes, 2),
                    }
                )
                for s in summaries
            ],
        )

    def _week_bounds(
        self, start: Optional[date], end: Optional[date]
    ) -> tuple[date, date]:
        if start is None and end is None:
            today = self.clock.today()
            start = today - timedelta(days=today.weekday())
            end = start + timedelta(days=6)
        elif start is None:
            start = end - timedelta(days=6)
        elif end is None:
            end = start + timedelta(days=6)

        if start > end:
            raise ValidationError("Start date must be on or before end date", field="start")
        if (end - start).days + 1 > settings.MAX_REPORT_RANGE_DAYS:
            raise ValidationError(
                f"Report range cannot exceed {settings.MAX_REPORT_RANGE_DAYS} days",
                field="end",
            )
        return start, end

    def weekly_report(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> WeeklyReport:
        """
        Per-employee totals over a date range (Monday to Sunday by default).

        Minutes stay exact while summing; hours are rounded to one decimal only
        for display, and estimated pay is computed from the exact hours.
        """
        start, end = self._week_bounds(start, end)
        today = self.clock.today()
        employees = self._report_employees(start, end)
        active_ids = {e.id for e in employees if e.is_active}
        time_off = self._approved_time_off(start, end)

        totals = {
            e.id: {"work": 0.0, "lunch": 0.0, "worked": 0, "absent": 0,
                   "punches": 0, "open": 0, "first": None, "last": None}
            for e in employees
        }
        daily_breakdown = []

        day = start
        while day <= end:
            summaries = self._daily_summaries(day, employees, time_off)
            day_work = 0.0
            day_lunch = 0.0
            for summary in summaries:
                t = totals[summary.employee_id]
                t["work"] += summary.work_minutes
                t["lunch"] += summary.lunch_minutes
                t["punches"] += len(summary.punches)
                t["open"] += sum(1 for p in summary.punches if p.clock_out is None)
                if summary.worked:
                    t["worked"] += 1
                elif (
                    summary.attendance == "absent"
                    and day <= today
                    and summary.employee_id in active_ids
                ):
                    t["absent"] += 1
                for punch in summary.punches:
                    if t["first"] is None or punch.clock_in < t["first"]:
                        t["first"] = punch.clock_in
                    if t["last"] is None or punch.clock_in > t["last"]:
                        t["last"] = punch.clock_in
                day_work += summary.work_minutes
                day_lunch += summary.lunch_minutes

            daily_breakdown.append(
                DailyBreakdown(
                    date=day,
                    employees_worked=sum(1 for s in summaries if s.worked),
                    work_hours=round(day_work / 60, 1),
                    lunch_minutes=round(day_lunch, 2),
                )
            )
            day += timedelta(days=1)

        summaries = []
        for employee in employees:
            t = totals[employee.id]
            exact_hours = t["work"] / 60
            rate = float(employee.hourly_rate) if employee.hourly_rate is not None else None
            summaries.append(
                WeeklyEmployeeSummary(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    position=employee.position,
                    department=employee.department,
                    hourly_rate=rate,
                    days_worked=t["worked"],
                    days_absent=t["absent"],
                    total_punches=t["punches"],
                    work_minutes=round(t["work"], 2),
                    work_hours=round(exact_hours, 1),
                    lunch_minutes=round(t["lunch"], 2),
                    open_punches=t["open"],
                    first_punch=t["first"],
                    last_punch=t["last"],
                    estimated_pay=round(exact_hours * rate, 2) if rate is not None else None,
                )
            )

        total_work = sum(t["work"] for t in totals.values())
        summary = WeeklySummary(
            period_start=start,
            period_end=end,
            total_employees=len(employees),
            employees_with_hours=sum(1 for t in totals.values() if t["work"] > 0),
            total_work_hours=round(total_work / 60, 1),
            total_lunch_minutes=round(sum(t["lunch"] for t in totals.values()), 2),
            open_punches=sum(t["open"] for t in totals.values()),
            total_estimated_pay=round(
                sum(s.estimated_pay for s in summaries if s.estimated_pay is not None), 2
            ),
        )

        logger.info(
            f"Weekly report {start} - {end}: {len(employees)} employees, "
            f"{summary.total_work_hours} hours"
        )
        return WeeklyReport(
            generated_at=self.clock.now(),
            summary=summary,
            employees=summaries,
            daily_breakdown=daily_breakdown,
        )

    def timeclock_today(self) -> TimeClockToday:
        """
        Live time-clock board: today's status and punches for active employees
        and anyone else who punched today.
        """
        today = self.clock.today()
        employees = self._report_employees(today, today)
        states = self.timeclock.clock_days(today, [e.id for e in employees])

        rows = []
        counts = {status: 0 for status in EmployeeClockStatus}
        for employee in employees:
            state = states[employee.id]
            counts[state.status] += 1
            rows.append(
                EmployeeToday(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    position=employee.position,
                    department=employee.department,
                    status=state.status,
                    punches=[PunchPublic.from_entry(p) for p in state.punches],
                    work_minutes=round(state.work_minutes, 2),
                    lunch_minutes=round(state.lunch_minutes, 2),
                    has_open_punch=state.has_open_punch,
                )
            )

        return TimeClockToday(
            date=today,
            stats=TimeClockTodayStats(
                total_employees=len(employees),
                clocked_in=counts[EmployeeClockStatus.CLOCKED_IN],
                on_lunch=counts[EmployeeClockStatus.ON_LUNCH],
                clocked_out=counts[EmployeeClockStatus.CLOCKED_OUT],
                not_clocked_in=counts[EmployeeClockStatus.NOT_CLOCKED_IN],
            ),
            employees=rows,
        )
