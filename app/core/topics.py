"""
Kafka Topic Definitions for the Daycare Attendance Service.

Topic naming follows the pattern: <domain>-<event-type>
This makes topics easily identifiable and organized by business domain.
"""

from app.core.events import EventType


class KafkaTopics:
    """
    Central registry of all Kafka topics used by the Daycare Attendance Service.
    Topics are named following the pattern: <domain>-<event-type>
    """

    # Child attendance - consumed by the push notification service
    ATTENDANCE_CHILD_CHANGED = "attendance-child-changed"

    # Absence lifecycle
    ATTENDANCE_ABSENCE_CHANGED = "attendance-absence-changed"

    # Employee punches
    TIMECLOCK_PUNCH_CHANGED = "timeclock-punch-changed"

    @classmethod
    def all_topics(cls) -> list[str]:
        """Return list of all topic names."""
        return [
            value
            for name, value in vars(cls).items()
            if isinstance(value, str) and not name.startswith("_")
        ]

    @classmethod
    def for_event(cls, event_type: EventType) -> str:
        """Return the topic an event type is published to."""
        value = event_type.value
        if value.startswith("attendance.child."):
            return cls.ATTENDANCE_CHILD_CHANGED
        if value.startswith("attendance.absence."):
            return cls.ATTENDANCE_ABSENCE_CHANGED
        return cls.TIMECLOCK_PUNCH_CHANGED
