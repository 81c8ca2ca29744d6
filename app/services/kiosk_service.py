"""
Kiosk PIN resolution.

The kiosk authenticates parents and employees by PIN rather than by a portal
session. PINs are compared by their keyed digest against the reference tables.
"""

from sqlmodel import select

from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.core.security import Actor, ActorType, hash_pin, verify_pin
from app.models.kiosk import KioskChild, KioskEmployee, KioskParent, VerifyPinResponse
from app.models.reference import Child, Employee, Parent, Program
from app.models.timeclock import EmployeeClockStatus
from app.services.attendance_service import AttendanceService
from app.services.base import BaseService
from app.services.timeclock_service import TimeClockService

logger = get_logger(__name__)


class KioskService(BaseService):

    def _parent_by_pin(self, pin: str):
        statement = select(Parent).where(
            (Parent.pin_hash == hash_pin(pin)) & (Parent.is_active == True)  # noqa: E712
        )
        return self.session.exec(statement).first()

    def _employee_by_pin(self, pin: str):
        statement = select(Employee).where(
            (Employee.pin_hash == hash_pin(pin)) & (Employee.is_active == True)  # noqa: E712
        )
        return self.session.exec(statement).first()

    def verify_pin(self, pin: str) -> VerifyPinResponse:
        """
        Resolve a PIN to a parent or an employee.

        Parents are matched first. When a PIN matches both, the parent wins
        and the collision is logged so the PIN can be reissued.
        """
        parent = self._parent_by_pin(pin)
        employee = self._employee_by_pin(pin)

        if parent is not None:
            if employee is not None:
                logger.warning(
                    f"Kiosk PIN matches parent {parent.id} and employee {employee.id}; "
                    f"resolving as parent"
                )
            logger.info(f"Kiosk PIN resolved to parent {parent.id}")
            return VerifyPinResponse(type="parent", parent=self.kiosk_parent(parent))

        if employee is not None:
            logger.info(f"Kiosk PIN resolved to employee {employee.id}")
            return VerifyPinResponse(type="employee", employee=self.kiosk_employee(employee))

        logger.warning("Kiosk PIN verification failed")
        raise AuthenticationError("Invalid PIN", field="pin")

    def resolve_parent(self, parent_id: int, pin: str) -> Actor:
        parent = self.session.get(Parent, parent_id)
        if parent is None or not parent.is_active or not verify_pin(pin, parent.pin_hash):
            logger.warning(f"Kiosk authentication failed for parent {parent_id}")
            raise AuthenticationError("Invalid PIN", field="pin")
        return Actor(
            actor_type=ActorType.PARENT,
            actor_id=parent.id,
            name=parent.full_name,
            child_ids=sorted(self.parent_child_ids(parent.id)),
        )

    def resolve_employee(self, employee_id: int, pin: str) -> Actor:
        employee = self.session.get(Employee, employee_id)
        if employee is None or not employee.is_active or not verify_pin(pin, employee.pin_hash):
            logger.warning(f"Kiosk authentication failed for employee {employee_id}")
            raise AuthenticationError("Invalid PIN", field="pin")
        return Actor(
            actor_type=ActorType.EMPLOYEE,
            actor_id=employee.id,
            name=employee.full_name,
        )

    def kiosk_parent(self, parent: Parent) -> KioskParent:
        """Parent with each linked, active child and the child's state today."""
        child_ids = self.parent_child_ids(parent.id)
        children = []
        if child_ids:
            children = self.session.exec(
                select(Child)
                .where(Child.id.in_(child_ids) & (Child.is_active == True))  # noqa: E712
                .order_by(Child.first_name)
            ).all()
        programs = {p.id: p.name for p in self.session.exec(select(Program)).all()}
        statuses = AttendanceService(self.session, self.clock).statuses_for_children(
            [c.id for c in children]
        )

        return KioskParent(
            id=parent.id,
            first_name=parent.first_name,
            last_name=parent.last_name,
            children=[
                KioskChild(
                    id=child.id,
                    first_name=child.first_name,
                    last_name=child.last_name,
                    program_id=child.program_id,
                    program_name=programs.get(child.program_id),
                    state=statuses[child.id].state,
                    checkin_id=statuses[child.id].checkin_id,
                    check_in_time=statuses[child.id].check_in_time,
                    check_out_time=statuses[child.id].check_out_time,
                )
                for child in children
            ],
        )

    def kiosk_employee(self, employee: Employee) -> KioskEmployee:
        status = TimeClockService(self.session, self.clock).status_for(employee.id)
        clock_in_time = None
        if status.status == EmployeeClockStatus.CLOCKED_IN and status.open_punch:
            clock_in_time = status.open_punch.clock_in
        return KioskEmployee(
            id=employee.id,
            first_name=employee.first_name,
            last_name=employee.last_name,
            position=employee.position,
            department=employee.department,
            status=status.status,
            clock_in_time=clock_in_time,
        )

    def parent_children(self, parent_id: int, pin: str) -> KioskParent:
        self.resolve_parent(parent_id, pin)
        return self.kiosk_parent(self.session.get(Parent, parent_id))
