"""
Facility-local clock.

Check-in dates and punch days are calendar days in the facility's time zone.
Timestamps are stored as naive facility-local datetimes.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.core.config import settings


class FacilityClock:
    """Source of "now" and "today" for the engines."""

    def __init__(self, timezone: str = settings.FACILITY_TIMEZONE):
        self.timezone = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.timezone).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock(FacilityClock):
    """Clock frozen at a given instant. Used by tests and backfill scripts."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


system_clock = FacilityClock()


def get_clock() -> FacilityClock:
    """FastAPI dependency returning the facility clock."""
    return system_clock


def to_facility_time(value: datetime, timezone: str = settings.FACILITY_TIMEZONE) -> datetime:
    """Naive facility-local form of ``value``; naive values are taken as local already."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
