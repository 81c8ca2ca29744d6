"""
Reference tables owned by other subsystems.

Children and programs belong to enrollment, parents to the family portal,
employees and their approved time off to HR, and absence reasons to facility
settings. The attendance core reads these rows to validate ids, check
ownership and resolve kiosk PINs; it never mutates them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel


class Program(SQLModel, table=True):
    """Enrollment program (e.g. Toddlers, Pre-K)."""

    __tablename__ = "programs"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    color: Optional[str] = Field(default=None, max_length=20)
    sort_order: int = Field(default=0)
    is_active: bool = Field(default=True)


class Child(SQLModel, table=True):
    __tablename__ = "children"

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    program_id: Optional[int] = Field(
        default=None, foreign_key="programs.id", index=True
    )
    is_active: bool = Field(default=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Parent(SQLModel, table=True):
    __tablename__ = "parents"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    pin_hash: Optional[str] = Field(default=None, max_length=64, index=True)
    is_active: bool = Field(default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ParentChild(SQLModel, table=True):
    """Link between a parent and a child they may drop off and pick up."""

    __tablename__ = "parent_children"

    parent_id: int = Field(foreign_key="parents.id", primary_key=True)
    child_id: int = Field(foreign_key="children.id", primary_key=True)
    relation_type: Optional[str] = Field(default=None, max_length=50)
    is_authorized_pickup: bool = Field(default=True)


class Employee(SQLModel, table=True):
    __tablename__ = "employees"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    department: Optional[str] = Field(default=None, max_length=100)
    hourly_rate: Optional[Decimal] = Field(
        default=None, max_digits=8, decimal_places=2
    )
    pin_hash: Optional[str] = Field(default=None, max_length=64, index=True)
    is_active: bool = Field(default=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class EmployeeTimeOff(SQLModel, table=True):
    """Approved time off recorded by HR (vacation, sick leave)."""

    __tablename__ = "employee_time_off"

    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: int = Field(foreign_key="employees.id", index=True)
    start_date: date = Field(index=True)
    end_date: date = Field(index=True)
    reason: Optional[str] = Field(default=None, max_length=255)
    approved: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AbsenceReason(SQLModel, table=True):
    """Fixed-vocabulary absence category (Illness, Vacation, ...)."""

    __tablename__ = "absence_reasons"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    category: Optional[str] = Field(default=None, max_length=50)
    requires_notes: bool = Field(default=False)
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
