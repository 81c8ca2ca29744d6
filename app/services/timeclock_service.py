"""
Time-Clock Engine.

Kiosk clock actions and admin punch maintenance. Shift and lunch-break punches
are independent, non-overlapping windows: starting lunch closes the open shift
punch and ending lunch opens a new one, so an employee never holds more than
one open punch.
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional

from sqlmodel import select

from app.core.clock import to_facility_time
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.security import Actor
from app.models.reference import Employee
from app.models.timeclock import (
    EmployeeClockStatus,
    EmployeeStatusResponse,
    EntryType,
    PunchPublic,
    PunchUpdate,
    TimeClockEntry,
)
from app.services.base import BaseService

logger = get_logger(__name__)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def derive_status(punches: list[TimeClockEntry]) -> EmployeeClockStatus:
    """Status from the most recent punch of a day."""
    if not punches:
        return EmployeeClockStatus.NOT_CLOCKED_IN
    latest = max(punches, key=lambda p: (p.is_open, p.clock_in))
    if not latest.is_open:
        return EmployeeClockStatus.CLOCKED_OUT
    if latest.entry_type == EntryType.LUNCH_BREAK.value:
        return EmployeeClockStatus.ON_LUNCH
    return EmployeeClockStatus.CLOCKED_IN


def punch_minutes(punch: TimeClockEntry, today: date, now: datetime) -> float:
    """
    Minutes a punch contributes to a daily total.

    An open punch from an earlier day contributes nothing; an open punch from
    today runs until ``now``.
    """
    if punch.clock_out is not None:
        return max(0.0, (punch.clock_out - punch.clock_in).total_seconds() / 60)
    if punch.clock_in.date() < today:
        return 0.0
    return max(0.0, (now - punch.clock_in).total_seconds() / 60)


class ClockDay(NamedTuple):
    status: EmployeeClockStatus
    punches: list[TimeClockEntry]
    open_punch: Optional[TimeClockEntry]
    work_minutes: float
    lunch_minutes: float

    @property
    def has_open_punch(self) -> bool:
        return self.open_punch is not None


def summarize_day(
    punches: list[TimeClockEntry],
    now: datetime,
    carried: Optional[TimeClockEntry] = None,
) -> ClockDay:
    """
    Clock state from the punches that started on one day.

    ``carried`` is a punch left open on an earlier day. It still holds the
    open-punch slot and is reported through ``open_punch``, but the status
    only reflects the day's own punches.
    """
    today = now.date()
    open_punch = next((p for p in punches if p.is_open), carried)
    work = sum(
        punch_minutes(p, today, now)
        for p in punches
        if p.entry_type == EntryType.SHIFT.value
    )
    lunch = sum(
        punch_minutes(p, today, now)
        for p in punches
        if p.entry_type == EntryType.LUNCH_BREAK.value
    )
    return ClockDay(derive_status(punches), punches, open_punch, work, lunch)


class TimeClockService(BaseService):

    def _open_punch(self, employee_id: int) -> Optional[TimeClockEntry]:
        statement = select(TimeClockEntry).where(
            (TimeClockEntry.employee_id == employee_id)
            & (TimeClockEntry.clock_out == None)  # noqa: E711
        )
        return self.session.exec(statement).first()

    def _active_employee(self, employee_id: int, actor: Actor) -> Employee:
        employee = self.get_employee(employee_id)
        self.ensure_employee_access(actor, employee_id)
        if not employee.is_active:
            raise ValidationError(
                f"{employee.full_name} is not active", field="employee_id"
            )
        return employee

    def _open(
        self, employee_id: int, entry_type: EntryType, at: datetime, actor: Actor
    ) -> TimeClockEntry:
        punch = TimeClockEntry(
            employee_id=employee_id,
            entry_type=entry_type.value,
            clock_in=at,
            created_by=actor.actor_id,
            created_at=at,
            updated_at=at,
        )
        self.session.add(punch)
        return punch

    def _close(self, punch: TimeClockEntry, at: datetime) -> None:
        if at <= punch.clock_in:
            raise ValidationError(
                "Clock-out time must be after clock-in time", field="clock_out"
            )
        punch.clock_out = at
        punch.updated_at = at
        self.session.add(punch)
        # Release the open-punch slot before another punch is opened
        self.session.flush()

    def get_punch(self, punch_id: int) -> TimeClockEntry:
        punch = self.session.get(TimeClockEntry, punch_id)
        if punch is None:
            raise NotFoundError(f"Punch {punch_id} not found", field="punch_id")
        return punch

    # Kiosk actions

    def clock_in(self, employee_id: int, actor: Actor) -> TimeClockEntry:
        employee = self._active_employee(employee_id, actor)
        now = self.clock.now()

        if self._open_punch(employee_id) is not None:
            logger.warning(f"Clock-in rejected: employee {employee_id} has an open punch")
            raise ConflictError(f"{employee.full_name} is already clocked in")

        punch = self._open(employee_id, EntryType.SHIFT, now, actor)
        self.commit(f"{employee.full_name} is already clocked in")
        self.session.refresh(punch)

        logger.info(f"Employee {employee_id} clocked in at {now}")
        return punch

    def clock_out(self, employee_id: int, actor: Actor) -> TimeClockEntry:
        employee = self._active_employee(employee_id, actor)
        now = self.clock.now()

        punch = self._open_punch(employee_id)
        if punch is None:
            raise NotFoundError(f"{employee.full_name} is not clocked in")
        if punch.entry_type == EntryType.LUNCH_BREAK.value:
            raise ConflictError(f"{employee.full_name} must end lunch before clocking out")

        self._close(punch, now)
        self.commit(f"{employee.full_name} clock-out conflicted with another update")
        self.session.refresh(punch)

        logger.info(f"Employee {employee_id} clocked out at {now}")
        return punch

    def start_lunch(self, employee_id: int, actor: Actor) -> TimeClockEntry:
        employee = self._active_employee(employee_id, actor)
        now = self.clock.now()

        shift = self._open_punch(employee_id)
        if shift is None or shift.entry_type != EntryType.SHIFT.value:
            logger.warning(
                f"Lunch start rejected: employee {employee_id} is not clocked in"
            )
            raise ConflictError(f"{employee.full_name} must be clocked in to start lunch")

        self._close(shift, now)
        lunch = self._open(employee_id, EntryType.LUNCH_BREAK, now, actor)
        self.commit(f"{employee.full_name} is already on lunch")
        self.session.refresh(lunch)

        logger.info(f"Employee {employee_id} started lunch at {now}")
        return lunch

    def end_lunch(self, employee_id: int, actor: Actor) -> TimeClockEntry:
        """Close the open lunch punch and resume the shift."""
        employee = self._active_employee(employee_id, actor)
        now = self.clock.now()

        lunch = self._open_punch(employee_id)
        if lunch is None or lunch.entry_type != EntryType.LUNCH_BREAK.value:
            raise NotFoundError(f"{employee.full_name} is not on lunch")

        self._close(lunch, now)
        shift = self._open(employee_id, EntryType.SHIFT, now, actor)
        self.commit(f"{employee.full_name} is already clocked in")
        self.session.refresh(shift)

        logger.info(f"Employee {employee_id} ended lunch at {now}")
        return shift

    # Admin punch maintenance

    def _check_times(
        self, clock_in: datetime, clock_out: Optional[datetime], now: datetime
    ) -> None:
        if clock_in > now:
            raise ValidationError("Clock-in time cannot be in the future", field="clock_in")
        if clock_out is not None:
            if clock_out <= clock_in:
                raise ValidationError(
                    "Clock-out time must be after clock-in time", field="clock_out"
                )
            if clock_out > now:
                raise ValidationError(
                    "Clock-out time cannot be in the future", field="clock_out"
                )

    def _check_overlap(
        self,
        employee_id: int,
        clock_in: datetime,
        clock_out: Optional[datetime],
        now: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        """Reject [clock_in, clock_out-or-now) intersecting another punch."""
        end = clock_out if clock_out is not None else now
        statement = select(TimeClockEntry).where(
            (TimeClockEntry.employee_id == employee_id)
            & (TimeClockEntry.clock_in < end)
        )
        if exclude_id is not None:
            statement = statement.where(TimeClockEntry.id != exclude_id)

        for other in self.session.exec(statement).all():
            if other.overlaps(clock_in, end, now):
                logger.warning(
                    f"Punch for employee {employee_id} overlaps punch {other.id}"
                )
                raise ConflictError(
                    f"Punch overlaps punch {other.id} starting {other.clock_in:%Y-%m-%d %H:%M}"
                )

        if clock_out is None:
            open_punch = self._open_punch(employee_id)
            if open_punch is not None and open_punch.id != exclude_id:
                raise ConflictError("Employee already has an open punch")

    def add_punch(
        self,
        employee_id: int,
        entry_type: EntryType,
        clock_in: datetime,
        actor: Actor,
        clock_out: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> TimeClockEntry:
        """Backfill a missed punch (staff only)."""
        self.ensure_staff(actor)
        self.get_employee(employee_id)
        now = self.clock.now()

        clock_in = to_facility_time(clock_in)
        if clock_out is not None:
            clock_out = to_facility_time(clock_out)
        self._check_times(clock_in, clock_out, now)
        self._check_overlap(employee_id, clock_in, clock_out, now)

        punch = TimeClockEntry(
            employee_id=employee_id,
            entry_type=entry_type.value,
            clock_in=clock_in,
            clock_out=clock_out,
            notes=notes,
            created_by=actor.actor_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(punch)
        self.commit("Employee already has an open punch")
        self.session.refresh(punch)

        logger.info(
            f"Punch {punch.id} added for employee {employee_id} by {actor.reference}"
        )
        return punch

    def edit_punch(
        self, punch_id: int, changes: PunchUpdate, actor: Actor
    ) -> TimeClockEntry:
        """
        Correct a punch (staff only).

        Raises:
            ValidationError: missing adjustment reason, nothing to change, or
                invalid times
            ConflictError: the corrected interval overlaps another punch
        """
        self.ensure_staff(actor)
        punch = self.get_punch(punch_id)

        reason = (changes.adjustment_reason or "").strip()
        if not reason:
            raise ValidationError(
                "An adjustment reason is required when editing a punch",
                field="adjustment_reason",
            )

        data = changes.model_dump(exclude_unset=True, exclude_none=True)
        clock_in = data.get("clock_in", punch.clock_in)
        clock_out = data.get("clock_out", punch.clock_out)
        notes = data.get("notes", punch.notes)
        if (clock_in, clock_out, notes) == (punch.clock_in, punch.clock_out, punch.notes):
            raise ValidationError("No changes to apply", field="clock_in")

        now = self.clock.now()
        self._check_times(clock_in, clock_out, now)
        self._check_overlap(punch.employee_id, clock_in, clock_out, now, exclude_id=punch.id)

        punch.clock_in = clock_in
        punch.clock_out = clock_out
        punch.notes = notes
        punch.was_adjusted = True
        punch.adjustment_reason = reason
        punch.updated_at = now
        self.session.add(punch)
        self.commit("Employee already has an open punch")
        self.session.refresh(punch)

        logger.info(f"Punch {punch_id} adjusted by {actor.reference}: {reason}")
        return punch

    def delete_punch(self, punch_id: int, actor: Actor) -> PunchPublic:
        """Hard-delete a punch (staff only). Returns a snapshot of the removed row."""
        self.ensure_staff(actor)
        punch = self.get_punch(punch_id)
        snapshot = PunchPublic.from_entry(punch)
        self.session.delete(punch)
        self.commit(f"Punch {punch_id} could not be deleted")
        logger.info(f"Punch {punch_id} deleted by {actor.reference}")
        return snapshot

    # Queries

    def punches_for(
        self, employee_id: int, start: date, end: Optional[date] = None
    ) -> list[TimeClockEntry]:
        """Punches whose clock-in falls on a day in [start, end]."""
        end = end or start
        if start > end:
            raise ValidationError("Start date must be on or before end date", field="start_date")
        range_start, _ = day_bounds(start)
        _, range_end = day_bounds(end)
        statement = (
            select(TimeClockEntry)
            .where(
                (TimeClockEntry.employee_id == employee_id)
                & (TimeClockEntry.clock_in >= range_start)
                & (TimeClockEntry.clock_in < range_end)
            )
            .order_by(TimeClockEntry.clock_in)
        )
        return list(self.session.exec(statement).all())

    def punches_for_date(self, day: date) -> dict[int, list[TimeClockEntry]]:
        """All punches starting on ``day`` grouped by employee."""
        range_start, range_end = day_bounds(day)
        statement = (
            select(TimeClockEntry)
            .where(
                (TimeClockEntry.clock_in >= range_start)
                & (TimeClockEntry.clock_in < range_end)
            )
            .order_by(TimeClockEntry.clock_in)
        )
        grouped: dict[int, list[TimeClockEntry]] = {}
        for punch in self.session.exec(statement).all():
            grouped.setdefault(punch.employee_id, []).append(punch)
        return grouped

    def open_punches_before(self, day: date) -> dict[int, TimeClockEntry]:
        """Punches still open that started before ``day``, by employee."""
        day_start, _ = day_bounds(day)
        statement = select(TimeClockEntry).where(
            (TimeClockEntry.clock_out == None)  # noqa: E711
            & (TimeClockEntry.clock_in < day_start)
        )
        return {p.employee_id: p for p in self.session.exec(statement).all()}

    def clock_days(self, day: date, employee_ids: list[int]) -> dict[int, ClockDay]:
        """
        Clock state of each employee on ``day``.

        Kiosk status, the live board and the daily reports all read employee
        status from here.
        """
        now = self.clock.now()
        punches = self.punches_for_date(day)
        carried = self.open_punches_before(day) if day == now.date() else {}
        return {
            employee_id: summarize_day(
                punches.get(employee_id, []), now, carried.get(employee_id)
            )
            for employee_id in employee_ids
        }

    def status_for(
        self, employee_id: int, day: Optional[date] = None
    ) -> EmployeeStatusResponse:
        employee = self.get_employee(employee_id)
        day = day or self.clock.today()
        state = self.clock_days(day, [employee_id])[employee_id]
        return EmployeeStatusResponse(
            employee_id=employee.id,
            employee_name=employee.full_name,
            position=employee.position,
            status=state.status,
            open_punch=PunchPublic.from_entry(state.open_punch) if state.open_punch else None,
            has_open_punch=state.has_open_punch,
            work_minutes_today=round(state.work_minutes, 2),
            lunch_minutes_today=round(state.lunch_minutes, 2),
        )
