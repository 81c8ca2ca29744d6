"""
Database models and schemas module.
Contains all SQLModel table definitions and Pydantic schemas.
"""

from app.models.absence import (
    AbsenceCreate,
    AbsencePublic,
    AbsenceReport,
    AbsenceStatus,
    AbsenceUpdate,
)
from app.models.attendance import (
    CheckinRecord,
    CheckinRecordPublic,
    ChildActionResult,
    ChildAttendanceState,
    ChildStatus,
)
from app.models.idempotency import IdempotencyRecord
from app.models.reference import (
    AbsenceReason,
    Child,
    Employee,
    EmployeeTimeOff,
    Parent,
    ParentChild,
    Program,
)
from app.models.timeclock import (
    EmployeeClockStatus,
    EntryType,
    PunchCreate,
    PunchPublic,
    PunchUpdate,
    TimeClockEntry,
)

__all__ = [
    "AbsenceCreate",
    "AbsencePublic",
    "AbsenceReason",
    "AbsenceReport",
    "AbsenceStatus",
    "AbsenceUpdate",
    "CheckinRecord",
    "CheckinRecordPublic",
    "Child",
    "ChildActionResult",
    "ChildAttendanceState",
    "ChildStatus",
    "Employee",
    "EmployeeClockStatus",
    "EmployeeTimeOff",
    "EntryType",
    "IdempotencyRecord",
    "Parent",
    "ParentChild",
    "Program",
    "PunchCreate",
    "PunchPublic",
    "PunchUpdate",
    "TimeClockEntry",
]
