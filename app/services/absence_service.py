"""
Absence Registry.

Parents report future absences for their children, staff acknowledge them.
Cancellation is a status change; reports are never deleted.
"""

from datetime import date
from typing import Optional

from sqlmodel import select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.security import Actor, ActorType
from app.models.absence import (
    AbsencePublic,
    AbsenceReport,
    AbsenceStatus,
    AbsenceUpdate,
    AbsenceView,
)
from app.models.reference import AbsenceReason, Child
from app.services.base import BaseService

logger = get_logger(__name__)


class AbsenceService(BaseService):

    def get_absence(self, absence_id: int) -> AbsenceReport:
        absence = self.session.get(AbsenceReport, absence_id)
        if absence is None:
            raise NotFoundError(f"Absence {absence_id} not found", field="absence_id")
        return absence

    def _validate(
        self,
        start_date: date,
        end_date: date,
        reason_id: int,
        notes: Optional[str],
        expected_return_date: Optional[date],
    ) -> AbsenceReason:
        if start_date > end_date:
            raise ValidationError(
                "End date must be on or after start date", field="end_date"
            )
        if expected_return_date is not None and expected_return_date < start_date:
            raise ValidationError(
                "Expected return date cannot be before start date",
                field="expected_return_date",
            )

        reason = self.session.get(AbsenceReason, reason_id)
        if reason is None or not reason.is_active:
            raise ValidationError(f"Unknown absence reason {reason_id}", field="reason_id")
        if reason.requires_notes and not (notes and notes.strip()):
            raise ValidationError(
                f"Notes are required for '{reason.name}' absences", field="notes"
            )
        return reason

    def report(
        self,
        child_id: int,
        start_date: date,
        reason_id: int,
        actor: Actor,
        end_date: Optional[date] = None,
        notes: Optional[str] = None,
        expected_return_date: Optional[date] = None,
    ) -> AbsenceReport:
        """
        Record a new absence report in ``pending`` status.

        ``end_date`` defaults to ``start_date`` (single-day absence). Staff may
        backfill past dates; parents may only report for their linked children.
        """
        self.get_child(child_id)
        self.ensure_child_access(actor, child_id)

        end_date = end_date or start_date
        self._validate(start_date, end_date, reason_id, notes, expected_return_date)

        now = self.clock.now()
        absence = AbsenceReport(
            child_id=child_id,
            start_date=start_date,
            end_date=end_date,
            reason_id=reason_id,
            notes=notes,
            expected_return_date=expected_return_date,
            status=AbsenceStatus.PENDING.value,
            reported_by_type=actor.actor_type.value,
            reported_by_id=actor.actor_id,
            reported_at=now,
            updated_at=now,
        )
        self.session.add(absence)
        self.commit("Absence could not be recorded")
        self.session.refresh(absence)

        logger.info(
            f"Absence {absence.id} reported for child {child_id} "
            f"({start_date} - {end_date}) by {actor.reference}"
        )
        return absence

    def update(
        self, absence_id: int, changes: AbsenceUpdate, actor: Actor
    ) -> AbsenceReport:
        """Edit a pending absence that has not started yet."""
        absence = self.get_absence(absence_id)
        self.ensure_child_access(actor, absence.child_id)

        today = self.clock.today()
        if absence.status != AbsenceStatus.PENDING.value:
            raise ConflictError(f"Cannot edit an absence that is {absence.status}")
        if absence.start_date <= today:
            raise ConflictError("Cannot edit an absence that has already started")

        # null means keep the current value
        data = changes.model_dump(exclude_unset=True, exclude_none=True)
        start_date = data.get("start_date", absence.start_date)
        end_date = data.get("end_date", absence.end_date)
        if "start_date" in data and "end_date" not in data and end_date < start_date:
            end_date = start_date
        reason_id = data.get("reason_id", absence.reason_id)
        notes = data.get("notes", absence.notes)
        expected_return_date = data.get(
            "expected_return_date", absence.expected_return_date
        )
        self._validate(start_date, end_date, reason_id, notes, expected_return_date)

        absence.start_date = start_date
        absence.end_date = end_date
        absence.reason_id = reason_id
        absence.notes = notes
        absence.expected_return_date = expected_return_date
        absence.updated_at = self.clock.now()
        self.session.add(absence)
        self.commit("Absence was modified concurrently")
        self.session.refresh(absence)

        logger.info(f"Absence {absence_id} updated by {actor.reference}")
        return absence

    def acknowledge(self, absence_id: int, actor: Actor) -> AbsenceReport:
        """
        Mark a pending absence as seen by staff.

        Acknowledging twice is a no-op that keeps the first timestamp.
        """
        self.ensure_staff(actor)
        absence = self.get_absence(absence_id)

        if absence.status == AbsenceStatus.ACKNOWLEDGED.value:
            return absence
        if absence.status == AbsenceStatus.CANCELLED.value:
            raise ConflictError("Cannot acknowledge a cancelled absence")

        now = self.clock.now()
        absence.status = AbsenceStatus.ACKNOWLEDGED.value
        absence.acknowledged_by = actor.actor_id
        absence.acknowledged_at = now
        absence.updated_at = now
        self.session.add(absence)
        self.commit("Absence was modified concurrently")
        self.session.refresh(absence)

        logger.info(f"Absence {absence_id} acknowledged by {actor.reference}")
        return absence

    def cancel(self, absence_id: int, actor: Actor) -> AbsenceReport:
        """Cancel a pending absence that has not fully elapsed."""
        absence = self.get_absence(absence_id)
        self.ensure_child_access(actor, absence.child_id)

        if absence.status != AbsenceStatus.PENDING.value:
            logger.warning(
                f"Cancel rejected for absence {absence_id}: status {absence.status}"
            )
            raise ConflictError(f"Cannot cancel an absence that is {absence.status}")
        if absence.last_day < self.clock.today():
            logger.warning(f"Cancel rejected for absence {absence_id}: already elapsed")
            raise ConflictError("Cannot cancel an absence that has already passed")

        now = self.clock.now()
        absence.status = AbsenceStatus.CANCELLED.value
        absence.cancelled_at = now
        absence.updated_at = now
        self.session.add(absence)
        self.commit("Absence was modified concurrently")
        self.session.refresh(absence)

        logger.info(f"Absence {absence_id} cancelled by {actor.reference}")
        return absence

    def get(self, absence_id: int, actor: Actor) -> AbsenceReport:
        absence = self.get_absence(absence_id)
        self.ensure_child_access(actor, absence.child_id)
        return absence

    def list_absences(
        self,
        status: Optional[AbsenceStatus] = None,
        child_id: Optional[int] = None,
        reason_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[AbsenceReport]:
        """
        Admin listing. ``start_date``/``end_date`` select absences whose window
        intersects the given range.
        """
        statement = select(AbsenceReport)
        if status is not None:
            statement = statement.where(AbsenceReport.status == status.value)
        if child_id is not None:
            statement = statement.where(AbsenceReport.child_id == child_id)
        if reason_id is not None:
            statement = statement.where(AbsenceReport.reason_id == reason_id)
        if start_date is not None:
            statement = statement.where(AbsenceReport.end_date >= start_date)
        if end_date is not None:
            statement = statement.where(AbsenceReport.start_date <= end_date)
        statement = statement.order_by(
            AbsenceReport.start_date.desc(), AbsenceReport.id.desc()
        )
        return list(self.session.exec(statement).all())

    def _visible_child_ids(
        self, child_id: Optional[int], actor: Actor
    ) -> Optional[set[int]]:
        """Children an actor may list absences for; None means no restriction."""
        if child_id is not None:
            self.ensure_child_access(actor, child_id)
            return {child_id}
        if actor.actor_type == ActorType.STAFF:
            return None
        if actor.actor_type == ActorType.PARENT:
            return self.parent_child_ids(actor.actor_id)
        return set()

    def _for_view(
        self, view: AbsenceView, child_id: Optional[int], actor: Actor
    ) -> list[AbsenceReport]:
        child_ids = self._visible_child_ids(child_id, actor)
        if child_ids is not None and not child_ids:
            return []

        today = self.clock.today()
        statement = select(AbsenceReport).where(
            AbsenceReport.status != AbsenceStatus.CANCELLED.value
        )
        if child_ids is not None:
            statement = statement.where(AbsenceReport.child_id.in_(child_ids))
        if view == AbsenceView.UPCOMING:
            statement = statement.where(AbsenceReport.end_date >= today).order_by(
                AbsenceReport.start_date.asc()
            )
        else:
            statement = statement.where(AbsenceReport.end_date < today).order_by(
                AbsenceReport.start_date.desc()
            )
        return list(self.session.exec(statement).all())

    def upcoming_for(
        self, child_id: Optional[int], actor: Actor
    ) -> list[AbsenceReport]:
        """Non-cancelled absences whose last day is today or later."""
        return self._for_view(AbsenceView.UPCOMING, child_id, actor)

    def past_for(self, child_id: Optional[int], actor: Actor) -> list[AbsenceReport]:
        """Non-cancelled absences that ended before today."""
        return self._for_view(AbsenceView.PAST, child_id, actor)

    def reasons(self) -> list[AbsenceReason]:
        statement = (
            select(AbsenceReason)
            .where(AbsenceReason.is_active == True)  # noqa: E712
            .order_by(AbsenceReason.sort_order, AbsenceReason.name)
        )
        return list(self.session.exec(statement).all())

    def absences_covering(self, day: date) -> list[AbsenceReport]:
        """Non-cancelled reports whose window includes ``day``."""
        statement = select(AbsenceReport).where(
            (AbsenceReport.status != AbsenceStatus.CANCELLED.value)
            & (AbsenceReport.start_date <= day)
            & (AbsenceReport.end_date >= day)
        )
        return list(self.session.exec(statement).all())

    def to_public(self, absences: list[AbsenceReport]) -> list[AbsencePublic]:
        child_ids = {a.child_id for a in absences}
        children = {}
        if child_ids:
            children = {
                c.id: c
                for c in self.session.exec(
                    select(Child).where(Child.id.in_(child_ids))
                ).all()
            }
        reasons = {r.id: r for r in self.session.exec(select(AbsenceReason)).all()}

        public = []
        for absence in absences:
            child = children.get(absence.child_id)
            reason = reasons.get(absence.reason_id)
            public.append(
                AbsencePublic(
                    id=absence.id,
                    child_id=absence.child_id,
                    child_name=child.full_name if child else None,
                    start_date=absence.start_date,
                    end_date=absence.last_day,
                    reason_id=absence.reason_id,
                    reason_name=reason.name if reason else None,
                    notes=absence.notes,
                    expected_return_date=absence.expected_return_date,
                    status=absence.status,
                    reported_by_type=absence.reported_by_type,
                    reported_by_id=absence.reported_by_id,
                    reported_at=absence.reported_at,
                    acknowledged_by=absence.acknowledged_by,
                    acknowledged_at=absence.acknowledged_at,
                    cancelled_at=absence.cancelled_at,
                )
            )
        return public
