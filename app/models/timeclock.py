"""
Employee time-clock models and schemas.

A punch (``TimeClockEntry``) is one open-or-closed interval of a shift or a
lunch break. An employee has at most one open punch at any instant; the
partial unique index on open rows enforces that at the storage layer.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field as PydanticField
from pydantic import field_validator
from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from app.core.clock import to_facility_time
from app.models.base import CamelModel


class EntryType(str, Enum):
    SHIFT = "shift"
    LUNCH_BREAK = "lunch_break"


class EmployeeClockStatus(str, Enum):
    """Current status derived from the latest punch of the day."""

    NOT_CLOCKED_IN = "not_clocked_in"
    CLOCKED_IN = "clocked_in"
    ON_LUNCH = "on_lunch"
    CLOCKED_OUT = "clocked_out"


# Database Model


class TimeClockEntry(SQLModel, table=True):
    """ORM model for the time_clock_entries table."""

    __tablename__ = "time_clock_entries"
    __table_args__ = (
        Index(
            "uq_time_clock_open_punch",
            "employee_id",
            unique=True,
            sqlite_where=text("clock_out IS NULL"),
            postgresql_where=text("clock_out IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: int = Field(foreign_key="employees.id", index=True, nullable=False)
    entry_type: str = Field(default=EntryType.SHIFT.value, max_length=20)
    clock_in: datetime = Field(index=True, nullable=False)
    clock_out: Optional[datetime] = Field(default=None, nullable=True)

    was_adjusted: bool = Field(default=False)
    adjustment_reason: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=500)

    created_by: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def end_or(self, now: datetime) -> datetime:
        """Effective end of the interval; open punches run until ``now``."""
        return self.clock_out if self.clock_out is not None else now

    def overlaps(self, start: datetime, end: datetime, now: datetime) -> bool:
        return self.clock_in < end and start < self.end_or(now)


# Request Schemas


class KioskEmployeeRequest(CamelModel):
    """Kiosk time-clock request authenticated by the employee's PIN."""

    employee_id: int = PydanticField(gt=0)
    pin: str = PydanticField(min_length=4, max_length=8)


class PunchCreate(CamelModel):
    """Admin backfill of a missed punch."""

    employee_id: int = PydanticField(gt=0)
    entry_type: EntryType = EntryType.SHIFT
    clock_in: datetime
    clock_out: Optional[datetime] = None
    notes: Optional[str] = PydanticField(default=None, max_length=500)

    @field_validator("clock_in", "clock_out")
    @classmethod
    def facility_local(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Times sent with an offset are stored as facility-local time."""
        return to_facility_time(value) if value is not None else None


class PunchUpdate(CamelModel):
    """Admin correction of an existing punch."""

    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    notes: Optional[str] = PydanticField(default=None, max_length=500)
    adjustment_reason: Optional[str] = PydanticField(default=None, max_length=500)

    @field_validator("clock_in", "clock_out")
    @classmethod
    def facility_local(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Times sent with an offset are stored as facility-local time."""
        return to_facility_time(value) if value is not None else None


# Response Schemas


class PunchPublic(CamelModel):
    id: int
    employee_id: int
    entry_type: EntryType
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_minutes: Optional[float] = None
    was_adjusted: bool = False
    adjustment_reason: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: TimeClockEntry) -> "PunchPublic":
        total = None
        if entry.clock_out is not None:
            total = round((entry.clock_out - entry.clock_in).total_seconds() / 60, 2)
        return cls(
            id=entry.id,
            employee_id=entry.employee_id,
            entry_type=entry.entry_type,
            clock_in=entry.clock_in,
            clock_out=entry.clock_out,
            total_minutes=total,
            was_adjusted=entry.was_adjusted,
            adjustment_reason=entry.adjustment_reason,
            notes=entry.notes,
        )


class ClockActionResponse(CamelModel):
    """Result of a kiosk clock action."""

    employee_id: int
    employee_name: str
    status: EmployeeClockStatus
    timestamp: datetime
    punch: PunchPublic
    message: str


class EmployeeStatusResponse(CamelModel):
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    status: EmployeeClockStatus
    open_punch: Optional[PunchPublic] = None
    has_open_punch: bool = False
    work_minutes_today: float = 0.0
    lunch_minutes_today: float = 0.0


class PunchListResponse(CamelModel):
    employee_id: int
    employee_name: str
    total: int
    total_minutes: float
    punches: list[PunchPublic]
