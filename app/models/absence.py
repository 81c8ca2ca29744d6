"""
Absence report models and schemas.

Lifecycle: pending -> acknowledged (staff) and pending -> cancelled (parent).
Both targets are terminal. Reports are never deleted; cancellation is a
status change.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from app.models.base import CamelModel


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    CANCELLED = "cancelled"


class AbsenceView(str, Enum):
    """Date-boundary views used by the parent portal."""

    UPCOMING = "upcoming"
    PAST = "past"


# Database Model


class AbsenceReport(SQLModel, table=True):
    """ORM model for the absences table."""

    __tablename__ = "absences"

    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="children.id", index=True, nullable=False)
    start_date: date = Field(index=True, nullable=False)
    end_date: date = Field(index=True, nullable=False)
    reason_id: int = Field(foreign_key="absence_reasons.id", nullable=False)
    notes: Optional[str] = Field(default=None, max_length=1000)
    expected_return_date: Optional[date] = Field(default=None)

    status: str = Field(
        default=AbsenceStatus.PENDING.value, max_length=20, index=True
    )

    reported_by_type: str = Field(max_length=20)
    reported_by_id: Optional[int] = Field(default=None, index=True)
    reported_at: datetime = Field(nullable=False)

    acknowledged_by: Optional[int] = Field(default=None)
    acknowledged_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)

    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def last_day(self) -> date:
        """End of the absence window (end date, or start date if unset)."""
        return self.end_date or self.start_date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.last_day


# Request Schemas


class AbsenceCreate(CamelModel):
    """Schema for reporting an absence."""

    child_id: int = PydanticField(gt=0)
    start_date: date
    end_date: Optional[date] = None
    reason_id: int = PydanticField(gt=0)
    notes: Optional[str] = PydanticField(default=None, max_length=1000)
    expected_return_date: Optional[date] = None


class AbsenceUpdate(CamelModel):
    """Schema for editing a pending, upcoming absence."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason_id: Optional[int] = PydanticField(default=None, gt=0)
    notes: Optional[str] = PydanticField(default=None, max_length=1000)
    expected_return_date: Optional[date] = None


# Response Schemas


class AbsencePublic(CamelModel):
    id: int
    child_id: int
    child_name: Optional[str] = None
    start_date: date
    end_date: date
    reason_id: int
    reason_name: Optional[str] = None
    notes: Optional[str] = None
    expected_return_date: Optional[date] = None
    status: AbsenceStatus
    reported_by_type: str
    reported_by_id: Optional[int] = None
    reported_at: datetime
    acknowledged_by: Optional[int] = None
    acknowledged_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class AbsenceListResponse(CamelModel):
    total: int
    absences: list[AbsencePublic]


class AbsenceReasonPublic(CamelModel):
    id: int
    name: str
    category: Optional[str] = None
    requires_notes: bool = False
