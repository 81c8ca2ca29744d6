"""
Event definitions for the Daycare Attendance Service.

Defines all event types and their data structures for Kafka publishing.
Events are categorized into:
- Child check-in/check-out events
- Absence lifecycle events
- Time-clock punch events

Events are a notification side effect only; the store stays the source of
truth whether or not an event is delivered.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from app.core.logging import get_correlation_id


class EventType(str, Enum):
    """All event types produced by the Daycare Attendance Service."""

    # Child attendance
    CHILD_CHECKED_IN = "attendance.child.checked_in"
    CHILD_CHECKED_OUT = "attendance.child.checked_out"

    # Absences
    ABSENCE_REPORTED = "attendance.absence.reported"
    ABSENCE_UPDATED = "attendance.absence.updated"
    ABSENCE_ACKNOWLEDGED = "attendance.absence.acknowledged"
    ABSENCE_CANCELLED = "attendance.absence.cancelled"

    # Time clock
    EMPLOYEE_CLOCKED_IN = "timeclock.clocked_in"
    EMPLOYEE_CLOCKED_OUT = "timeclock.clocked_out"
    EMPLOYEE_LUNCH_STARTED = "timeclock.lunch.started"
    EMPLOYEE_LUNCH_ENDED = "timeclock.lunch.ended"
    PUNCH_ADDED = "timeclock.punch.added"
    PUNCH_ADJUSTED = "timeclock.punch.adjusted"
    PUNCH_DELETED = "timeclock.punch.deleted"


class EventMetadata(BaseModel):
    """Metadata attached to every event for tracing and correlation."""

    source_service: str = "daycare-attendance-service"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))
    actor: Optional[str] = None


class EventEnvelope(BaseModel):
    """
    Standard envelope for all events.
    Provides consistent structure for Kafka messages.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    version: str = "1.0"
    data: dict[str, Any]
    metadata: EventMetadata = Field(default_factory=EventMetadata)


# Child attendance event data


class ChildAttendanceEvent(BaseModel):
    """Data for attendance.child.checked_in / checked_out events."""

    checkin_id: int
    child_id: int
    date: date
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    performed_by: str


# Absence event data


class AbsenceEvent(BaseModel):
    """Data for attendance.absence.* events."""

    absence_id: int
    child_id: int
    start_date: date
    end_date: date
    status: str
    performed_by: str


# Time-clock event data


class PunchEvent(BaseModel):
    """Data for timeclock.* events."""

    punch_id: int
    employee_id: int
    entry_type: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    was_adjusted: bool = False
    adjustment_reason: Optional[str] = None
    performed_by: str


def create_event(
    event_type: EventType,
    data: BaseModel,
    actor: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> EventEnvelope:
    """
    Helper function to create an event envelope with proper metadata.

    Args:
        event_type: Type of the event
        data: Event data as a Pydantic model
        actor: Reference of the actor performing the action ("parent:12")
        correlation_id: Correlation id; defaults to the current request's

    Returns:
        EventEnvelope ready for publishing
    """
    cid = correlation_id or get_correlation_id()
    metadata = EventMetadata(actor=actor)
    if cid and cid != "-":
        metadata.correlation_id = cid

    return EventEnvelope(
        event_type=event_type,
        data=data.model_dump(mode="json"),
        metadata=metadata,
    )
