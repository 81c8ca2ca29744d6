"""
Shared fixtures: an in-memory database per test, a frozen facility clock,
seeded reference data and an API client with authentication overridden.
"""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401
from app.core.clock import FixedClock, get_clock
from app.core.database import get_session
from app.core.exceptions import AuthenticationError
from app.core.security import Actor, ActorType, get_current_actor, hash_pin
from app.main import app
from app.models.reference import (
    AbsenceReason,
    Child,
    Employee,
    Parent,
    ParentChild,
    Program,
)

# Tuesday; the week runs Monday 2026-03-09 to Sunday 2026-03-15
NOW = datetime(2026, 3, 10, 8, 0)
TODAY = date(2026, 3, 10)

PARENT_PIN = "1234"
OTHER_PARENT_PIN = "5678"
EMPLOYEE_PIN = "4321"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine):
    """Create a database session for testing."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def seed(db_session):
    """Programs, children, parents, employees and absence reasons."""
    toddlers = Program(name="Toddlers", color="#f59e0b", sort_order=1)
    prek = Program(name="Pre-K", color="#3b82f6", sort_order=2)
    db_session.add_all([toddlers, prek])
    db_session.commit()

    emma = Child(first_name="Emma", last_name="Lopez", program_id=toddlers.id)
    noah = Child(first_name="Noah", last_name="Lopez", program_id=prek.id)
    liam = Child(first_name="Liam", last_name="Chen", program_id=prek.id)
    gone = Child(first_name="Ava", last_name="Gray", program_id=prek.id, is_active=False)
    db_session.add_all([emma, noah, liam, gone])
    db_session.commit()

    parent = Parent(
        first_name="Rosa", last_name="Lopez", pin_hash=hash_pin(PARENT_PIN)
    )
    other_parent = Parent(
        first_name="Wei", last_name="Chen", pin_hash=hash_pin(OTHER_PARENT_PIN)
    )
    db_session.add_all([parent, other_parent])
    db_session.commit()

    db_session.add_all(
        [
            ParentChild(parent_id=parent.id, child_id=emma.id, relation_type="mother"),
            ParentChild(parent_id=parent.id, child_id=noah.id, relation_type="mother"),
            ParentChild(parent_id=parent.id, child_id=gone.id, relation_type="mother"),
            ParentChild(parent_id=other_parent.id, child_id=liam.id),
        ]
    )

    maria = Employee(
        first_name="Maria",
        last_name="Garcia",
        position="Lead Teacher",
        department="Pre-K",
        hourly_rate=Decimal("20.00"),
        pin_hash=hash_pin(EMPLOYEE_PIN),
    )
    sam = Employee(
        first_name="Sam",
        last_name="Okafor",
        position="Assistant",
        department="Toddlers",
        pin_hash=hash_pin("8765"),
    )
    db_session.add_all([maria, sam])

    illness = AbsenceReason(name="Illness", category="health", sort_order=1)
    vacation = AbsenceReason(name="Vacation", category="family", sort_order=2)
    other = AbsenceReason(name="Other", requires_notes=True, sort_order=3)
    retired = AbsenceReason(name="Snow day", is_active=False, sort_order=4)
    db_session.add_all([illness, vacation, other, retired])
    db_session.commit()

    return SimpleNamespace(
        toddlers=toddlers.id,
        prek=prek.id,
        emma=emma.id,
        noah=noah.id,
        liam=liam.id,
        inactive_child=gone.id,
        parent=parent.id,
        other_parent=other_parent.id,
        maria=maria.id,
        sam=sam.id,
        illness=illness.id,
        vacation=vacation.id,
        other_reason=other.id,
        retired_reason=retired.id,
    )


@pytest.fixture
def staff():
    return Actor(actor_type=ActorType.STAFF, actor_id=900, name="Front Desk")


@pytest.fixture
def parent(seed):
    return Actor(
        actor_type=ActorType.PARENT,
        actor_id=seed.parent,
        name="Rosa Lopez",
        child_ids=[seed.emma, seed.noah],
    )


@pytest.fixture
def other_parent(seed):
    return Actor(actor_type=ActorType.PARENT, actor_id=seed.other_parent, name="Wei Chen")


@pytest.fixture
def maria(seed):
    return Actor(actor_type=ActorType.EMPLOYEE, actor_id=seed.maria, name="Maria Garcia")


@pytest.fixture
def auth():
    """Holds the actor the overridden gateway resolves; set ``auth.actor``."""
    return SimpleNamespace(actor=None)


@pytest.fixture
def client(db_session, clock, auth):
    """API client bound to the test database, clock and actor."""

    def _session():
        yield db_session

    def _actor():
        if auth.actor is None:
            raise AuthenticationError("Missing bearer token")
        return auth.actor

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_actor] = _actor
    yield TestClient(app)
    app.dependency_overrides.clear()
