"""
Attendance engines.
Each service wraps a database session and the facility clock.
"""

from app.services.absence_service import AbsenceService
from app.services.attendance_service import AttendanceService
from app.services.kiosk_service import KioskService
from app.services.reporting_service import ReportingService
from app.services.timeclock_service import TimeClockService

__all__ = [
    "AbsenceService",
    "AttendanceService",
    "KioskService",
    "ReportingService",
    "TimeClockService",
]
