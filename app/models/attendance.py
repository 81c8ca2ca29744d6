"""
Child attendance models and schemas.

A ``CheckinRecord`` moves through not_checked_in -> checked_in -> checked_out
once per child per facility-local day. The state is never stored; it is
derived from the record by ``CheckinRecord.state``.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field as PydanticField
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.base import CamelModel


class ChildAttendanceState(str, Enum):
    """Attendance state of a child for one day."""

    NOT_CHECKED_IN = "not_checked_in"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


# Database Model


class CheckinRecord(SQLModel, table=True):
    """
    ORM model for the child_checkins table.

    checked_out is terminal for the day, so (child_id, checkin_date) is unique.
    The constraint also stops a racing double-tap from creating a second
    open record.
    """

    __tablename__ = "child_checkins"
    __table_args__ = (
        UniqueConstraint("child_id", "checkin_date", name="uq_child_checkin_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="children.id", index=True, nullable=False)
    checkin_date: date = Field(index=True, nullable=False)
    check_in_time: datetime = Field(nullable=False)
    check_out_time: Optional[datetime] = Field(default=None, nullable=True)

    checked_in_by_type: str = Field(max_length=20)
    checked_in_by_id: Optional[int] = Field(default=None)
    checked_in_by_name: Optional[str] = Field(default=None, max_length=255)
    checked_out_by_type: Optional[str] = Field(default=None, max_length=20)
    checked_out_by_id: Optional[int] = Field(default=None)
    checked_out_by_name: Optional[str] = Field(default=None, max_length=255)

    notes: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def state(self) -> ChildAttendanceState:
        if self.check_out_time is not None:
            return ChildAttendanceState.CHECKED_OUT
        return ChildAttendanceState.CHECKED_IN

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None


# Engine results


class ChildStatus(CamelModel):
    """Status of one child on one day, as shown by kiosk and portal."""

    child_id: int
    date: date
    state: ChildAttendanceState
    checkin_id: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_out_by: Optional[str] = None

    @classmethod
    def from_record(
        cls, child_id: int, day: date, record: Optional[CheckinRecord]
    ) -> "ChildStatus":
        if record is None:
            return cls(
                child_id=child_id, date=day, state=ChildAttendanceState.NOT_CHECKED_IN
            )
        return cls(
            child_id=child_id,
            date=day,
            state=record.state,
            checkin_id=record.id,
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            checked_in_by=record.checked_in_by_name,
            checked_out_by=record.checked_out_by_name,
        )


class ChildActionResult(CamelModel):
    """Per-child outcome of a batch check-in or check-out."""

    child_id: int
    child_name: Optional[str] = None
    ok: bool
    state: Optional[ChildAttendanceState] = None
    checkin_id: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


# Request Schemas


class KioskChildrenRequest(CamelModel):
    """Kiosk batch check-in / check-out request."""

    parent_id: int = PydanticField(gt=0)
    pin: str = PydanticField(min_length=4, max_length=8)
    child_ids: list[int] = PydanticField(min_length=1)


class ManualCheckRequest(CamelModel):
    """Staff check-in / check-out of a single child."""

    child_id: int = PydanticField(gt=0)
    notes: Optional[str] = PydanticField(default=None, max_length=500)


# Response Schemas


class CheckinRecordPublic(CamelModel):
    id: int
    child_id: int
    child_name: Optional[str] = None
    program_id: Optional[int] = None
    program_name: Optional[str] = None
    checkin_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_out_by: Optional[str] = None
    notes: Optional[str] = None
    state: ChildAttendanceState


class BatchActionResponse(CamelModel):
    message: str
    results: list[ChildActionResult]
    performed_by: str
    timestamp: datetime


class CheckinLogResponse(CamelModel):
    date: date
    total: int
    checkins: list[CheckinRecordPublic]
