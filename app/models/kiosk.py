"""
Kiosk request and response schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field as PydanticField

from app.models.attendance import ChildAttendanceState
from app.models.base import CamelModel
from app.models.timeclock import EmployeeClockStatus


class VerifyPinRequest(CamelModel):
    pin: str = PydanticField(min_length=4, max_length=8)


class ParentChildrenRequest(CamelModel):
    parent_id: int = PydanticField(gt=0)
    pin: str = PydanticField(min_length=4, max_length=8)


class KioskChild(CamelModel):
    id: int
    first_name: str
    last_name: str
    program_id: Optional[int] = None
    program_name: Optional[str] = None
    state: ChildAttendanceState
    checkin_id: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None


class KioskParent(CamelModel):
    id: int
    first_name: str
    last_name: str
    children: list[KioskChild] = []


class KioskEmployee(CamelModel):
    id: int
    first_name: str
    last_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    status: EmployeeClockStatus
    clock_in_time: Optional[datetime] = None


class VerifyPinResponse(CamelModel):
    """Actor resolved from a kiosk PIN. Exactly one of parent/employee is set."""

    type: str
    parent: Optional[KioskParent] = None
    employee: Optional[KioskEmployee] = None
