"""
Attendance State Engine.

Owns the per-child daily state machine
not_checked_in -> checked_in -> checked_out (terminal for the day).
"""

from datetime import date
from typing import Optional

from sqlmodel import select

from app.core.exceptions import (
    AttendanceError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.core.logging import get_logger
from app.core.security import Actor
from app.models.attendance import (
    CheckinRecord,
    CheckinRecordPublic,
    ChildActionResult,
    ChildAttendanceState,
    ChildStatus,
)
from app.models.reference import Child, Program
from app.services.base import BaseService

logger = get_logger(__name__)


class AttendanceService(BaseService):
    """Child check-in / check-out against the shared store."""

    def _record_for(self, child_id: int, day: date) -> Optional[CheckinRecord]:
        statement = select(CheckinRecord).where(
            (CheckinRecord.child_id == child_id) & (CheckinRecord.checkin_date == day)
        )
        return self.session.exec(statement).first()

    def check_in(
        self, child_id: int, actor: Actor, notes: Optional[str] = None
    ) -> CheckinRecord:
        """
        Check a child in for today.

        Raises:
            NotFoundError: unknown child
            ValidationError: child is not active
            AuthorizationError: actor does not own the child
            ConflictError: child is already checked in, or already checked out today
        """
        child = self.get_child(child_id)
        if not child.is_active:
            raise ValidationError(f"{child.full_name} is not active", field="child_id")
        self.ensure_child_access(actor, child_id)

        now = self.clock.now()
        today = now.date()

        existing = self._record_for(child_id, today)
        if existing is not None:
            if existing.is_open:
                logger.warning(
                    f"Check-in rejected: child {child_id} already checked in on {today}"
                )
                raise ConflictError(f"{child.full_name} is already checked in")
            logger.warning(
                f"Check-in rejected: child {child_id} already checked out on {today}"
            )
            raise ConflictError(f"{child.full_name} was already checked out today")

        record = CheckinRecord(
            child_id=child_id,
            checkin_date=today,
            check_in_time=now,
            checked_in_by_type=actor.actor_type.value,
            checked_in_by_id=actor.actor_id,
            checked_in_by_name=actor.name or None,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.session.add(record)
        self.commit(f"{child.full_name} is already checked in")
        self.session.refresh(record)

        logger.info(f"Child {child_id} checked in at {now} by {actor.reference}")
        return record

    def check_out(
        self, child_id: int, actor: Actor, notes: Optional[str] = None
    ) -> CheckinRecord:
        """
        Check a child out for today.

        Raises:
            NotFoundError: unknown child, or no open check-in today
            AuthorizationError: actor does not own the child
            ValidationError: now is not after the check-in time
        """
        child = self.get_child(child_id)
        self.ensure_child_access(actor, child_id)

        now = self.clock.now()
        record = self._record_for(child_id, now.date())
        if record is None or not record.is_open:
            logger.warning(
                f"Check-out rejected: no open check-in for child {child_id} on {now.date()}"
            )
            raise NotFoundError(f"{child.full_name} is not checked in")

        if now <= record.check_in_time:
            raise ValidationError(
                "Check-out time must be after check-in time", field="check_out_time"
            )

        record.check_out_time = now
        record.checked_out_by_type = actor.actor_type.value
        record.checked_out_by_id = actor.actor_id
        record.checked_out_by_name = actor.name or None
        if notes:
            record.notes = f"{record.notes} | {notes}" if record.notes else notes
        record.updated_at = now
        self.session.add(record)
        self.commit(f"{child.full_name} check-out conflicted with another update")
        self.session.refresh(record)

        logger.info(f"Child {child_id} checked out at {now} by {actor.reference}")
        return record

    def _run_batch(self, child_ids: list[int], actor: Actor, action) -> list[ChildActionResult]:
        results = []
        for child_id in dict.fromkeys(child_ids):
            child = self.session.get(Child, child_id)
            name = child.full_name if child else None
            try:
                record = action(child_id, actor)
            except AttendanceError as e:
                self.session.rollback()
                results.append(
                    ChildActionResult(
                        child_id=child_id,
                        child_name=name,
                        ok=False,
                        error_kind=e.kind,
                        error=e.message,
                    )
                )
                continue
            results.append(
                ChildActionResult(
                    child_id=child_id,
                    child_name=name,
                    ok=True,
                    state=record.state,
                    checkin_id=record.id,
                    check_in_time=record.check_in_time,
                    check_out_time=record.check_out_time,
                )
            )
        return results

    def check_in_many(self, child_ids: list[int], actor: Actor) -> list[ChildActionResult]:
        """Check in several children; each child succeeds or fails on its own."""
        return self._run_batch(child_ids, actor, self.check_in)

    def check_out_many(self, child_ids: list[int], actor: Actor) -> list[ChildActionResult]:
        """Check out several children; each child succeeds or fails on its own."""
        return self._run_batch(child_ids, actor, self.check_out)

    def status_for(self, child_id: int, day: Optional[date] = None) -> ChildStatus:
        self.get_child(child_id)
        day = day or self.clock.today()
        return ChildStatus.from_record(child_id, day, self._record_for(child_id, day))

    def statuses_for_children(
        self, child_ids: list[int], day: Optional[date] = None
    ) -> dict[int, ChildStatus]:
        day = day or self.clock.today()
        if not child_ids:
            return {}
        statement = select(CheckinRecord).where(
            (CheckinRecord.checkin_date == day)
            & (CheckinRecord.child_id.in_(child_ids))
        )
        records = {r.child_id: r for r in self.session.exec(statement).all()}
        return {
            child_id: ChildStatus.from_record(child_id, day, records.get(child_id))
            for child_id in child_ids
        }

    def checkins_for_date(
        self,
        day: date,
        program_id: Optional[int] = None,
        state: Optional[ChildAttendanceState] = None,
    ) -> list[CheckinRecord]:
        """All check-in records for a day, newest check-in first. Read-only."""
        statement = select(CheckinRecord).where(CheckinRecord.checkin_date == day)
        if program_id is not None:
            statement = statement.join(Child, Child.id == CheckinRecord.child_id).where(
                Child.program_id == program_id
            )
        if state == ChildAttendanceState.CHECKED_IN:
            statement = statement.where(CheckinRecord.check_out_time == None)  # noqa: E711
        elif state == ChildAttendanceState.CHECKED_OUT:
            statement = statement.where(CheckinRecord.check_out_time != None)  # noqa: E711
        elif state == ChildAttendanceState.NOT_CHECKED_IN:
            return []
        statement = statement.order_by(CheckinRecord.check_in_time.desc())
        return list(self.session.exec(statement).all())

    def to_public(self, records: list[CheckinRecord]) -> list[CheckinRecordPublic]:
        """Join child and program names onto records for display."""
        children = {}
        child_ids = {r.child_id for r in records}
        if child_ids:
            children = {
                c.id: c
                for c in self.session.exec(
                    select(Child).where(Child.id.in_(child_ids))
                ).all()
            }
        programs = {p.id: p for p in self.session.exec(select(Program)).all()}

        public = []
        for record in records:
            child = children.get(record.child_id)
            program = programs.get(child.program_id) if child else None
            public.append(
                CheckinRecordPublic(
                    id=record.id,
                    child_id=record.child_id,
                    child_name=child.full_name if child else None,
                    program_id=program.id if program else None,
                    program_name=program.name if program else None,
                    checkin_date=record.checkin_date,
                    check_in_time=record.check_in_time,
                    check_out_time=record.check_out_time,
                    checked_in_by=record.checked_in_by_name,
                    checked_out_by=record.checked_out_by_name,
                    notes=record.notes,
                    state=record.state,
                )
            )
        return public
