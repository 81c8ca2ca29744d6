"""
Shared plumbing for the attendance engines: transaction handling and
ownership checks.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.core.clock import FacilityClock, system_clock
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from app.core.logging import get_correlation_id, get_logger
from app.core.security import Actor, ActorType
from app.models.reference import Child, Employee, ParentChild

logger = get_logger(__name__)


class BaseService:
    def __init__(self, session: Session, clock: FacilityClock = system_clock):
        self.session = session
        self.clock = clock

    def commit(self, conflict_message: str) -> None:
        """
        Commit the current transaction.

        A uniqueness violation means another writer won the race for the same
        open record and is reported as a conflict. Any other database failure
        is a storage error.
        """
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Integrity violation on commit: {e.orig}")
            raise ConflictError(conflict_message) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(
                f"Storage failure on commit (correlation id {get_correlation_id()}): {e}",
                exc_info=True,
            )
            raise StorageError("The attendance store is temporarily unavailable") from e

    def get_child(self, child_id: int) -> Child:
        child = self.session.get(Child, child_id)
        if child is None:
            raise NotFoundError(f"Child {child_id} not found", field="child_id")
        return child

    def get_employee(self, employee_id: int) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found", field="employee_id")
        return employee

    def parent_child_ids(self, parent_id: int) -> set[int]:
        statement = select(ParentChild.child_id).where(
            (ParentChild.parent_id == parent_id)
            & (ParentChild.is_authorized_pickup == True)  # noqa: E712
        )
        return set(self.session.exec(statement).all())

    def ensure_child_access(self, actor: Actor, child_id: int) -> None:
        """Staff may act on any child; parents only on their linked children."""
        if actor.actor_type == ActorType.STAFF:
            return
        if actor.actor_type == ActorType.PARENT and child_id in self.parent_child_ids(
            actor.actor_id
        ):
            return
        logger.warning(f"{actor.reference} is not authorized for child {child_id}")
        raise AuthorizationError(f"Not authorized for child {child_id}")

    def ensure_employee_access(self, actor: Actor, employee_id: int) -> None:
        """Staff may act on any employee; employees only on themselves."""
        if actor.actor_type == ActorType.STAFF:
            return
        if actor.actor_type == ActorType.EMPLOYEE and actor.actor_id == employee_id:
            return
        logger.warning(f"{actor.reference} is not authorized for employee {employee_id}")
        raise AuthorizationError(f"Not authorized for employee {employee_id}")

    def ensure_staff(self, actor: Actor) -> None:
        if actor.actor_type != ActorType.STAFF:
            logger.warning(f"{actor.reference} attempted a staff-only operation")
            raise AuthorizationError("Staff access required")
