"""
Derived report schemas.

Nothing here is persisted; every report is recomputed from CheckinRecord,
AbsenceReport and TimeClockEntry rows on each request.
"""

from datetime import date, datetime
from typing import Optional

from app.models.absence import AbsencePublic
from app.models.attendance import CheckinRecordPublic
from app.models.base import CamelModel
from app.models.timeclock import EmployeeClockStatus, PunchPublic


# Attendance


class AttendanceStats(CamelModel):
    enrolled: int
    expected: int
    attended: int
    checked_in: int
    checked_out: int
    absent: int
    not_yet_arrived: int


class ProgramAttendance(CamelModel):
    program_id: int
    name: str
    color: Optional[str] = None
    enrolled: int
    attended: int
    checked_in: int
    checked_out: int


class DailyAttendanceReport(CamelModel):
    date: date
    generated_at: datetime
    stats: AttendanceStats
    by_program: list[ProgramAttendance]
    absences: list[AbsencePublic]
    records: list[CheckinRecordPublic]


class TodayOverview(CamelModel):
    date: date
    stats: AttendanceStats
    by_program: list[ProgramAttendance]
    recent_checkins: list[CheckinRecordPublic]
    pending_absences: list[AbsencePublic]


# Employees


class DailyEmployeeSummary(CamelModel):
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    date: date
    punches: list[PunchPublic] = []
    first_in: Optional[datetime] = None
    last_out: Optional[datetime] = None
    work_minutes: float = 0.0
    lunch_minutes: float = 0.0
    work_hours: float = 0.0
    has_open_punch: bool = False
    worked: bool = False
    attendance: str = "absent"  # worked, excused, absent
    clock_status: EmployeeClockStatus = EmployeeClockStatus.NOT_CLOCKED_IN


class DailyEmployeeReport(CamelModel):
    date: date
    generated_at: datetime
    total_employees: int
    employees_worked: int
    employees_absent: int
    total_work_hours: float
    total_lunch_minutes: float
    open_punches: int
    employees: list[DailyEmployeeSummary]


class WeeklyEmployeeSummary(CamelModel):
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    hourly_rate: Optional[float] = None
    days_worked: int = 0
    days_absent: int = 0
    total_punches: int = 0
    work_minutes: float = 0.0
    work_hours: float = 0.0
    lunch_minutes: float = 0.0
    open_punches: int = 0
    first_punch: Optional[datetime] = None
    last_punch: Optional[datetime] = None
    estimated_pay: Optional[float] = None


class DailyBreakdown(CamelModel):
    date: date
    employees_worked: int
    work_hours: float
    lunch_minutes: float


class WeeklySummary(CamelModel):
    period_start: date
    period_end: date
    total_employees: int
    employees_with_hours: int
    total_work_hours: float
    total_lunch_minutes: float
    open_punches: int
    total_estimated_pay: float


class WeeklyReport(CamelModel):
    generated_at: datetime
    summary: WeeklySummary
    employees: list[WeeklyEmployeeSummary]
    daily_breakdown: list[DailyBreakdown]


# Time clock today


class EmployeeToday(CamelModel):
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    status: EmployeeClockStatus
    punches: list[PunchPublic]
    work_minutes: float
    lunch_minutes: float
    has_open_punch: bool


class TimeClockTodayStats(CamelModel):
    total_employees: int
    clocked_in: int
    on_lunch: int
    clocked_out: int
    not_clocked_in: int


class TimeClockToday(CamelModel):
    date: date
    stats: TimeClockTodayStats
    employees: list[EmployeeToday]
