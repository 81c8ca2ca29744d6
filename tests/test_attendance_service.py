"""
Tests for child check-in / check-out.
"""

from datetime import timedelta

import pytest
from sqlmodel import select

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.attendance import CheckinRecord, ChildAttendanceState
from app.services.attendance_service import AttendanceService


@pytest.fixture
def service(db_session, clock):
    return AttendanceService(db_session, clock)


def test_check_in_creates_open_record(service, seed, parent, clock):
    """Test that checking in a child with no record today marks them checked in."""
    # Arrange
    clock.advance(minutes=5)

    # Act
    record = service.check_in(seed.emma, parent)

    # Assert
    assert record.id is not None
    assert record.checkin_date == clock.today()
    assert record.check_in_time == clock.now()
    assert record.check_out_time is None
    assert record.checked_in_by_type == "parent"
    assert record.checked_in_by_name == "Rosa Lopez"
    assert service.status_for(seed.emma).state == ChildAttendanceState.CHECKED_IN


def test_second_check_in_is_conflict(service, seed, parent):
    """Test that a double check-in is rejected and leaves a single record."""
    # Arrange
    service.check_in(seed.emma, parent)

    # Act / Assert
    with pytest.raises(ConflictError):
        service.check_in(seed.emma, parent)

    records = service.session.exec(
        select(CheckinRecord).where(CheckinRecord.child_id == seed.emma)
    ).all()
    assert len(records) == 1


def test_check_in_after_check_out_is_conflict(service, seed, parent, clock):
    """Test that checked_out is terminal for the day."""
    # Arrange
    service.check_in(seed.emma, parent)
    clock.advance(hours=8)
    service.check_out(seed.emma, parent)

    # Act / Assert
    with pytest.raises(ConflictError, match="already checked out"):
        service.check_in(seed.emma, parent)


def test_check_in_next_day_starts_fresh(service, seed, parent, clock):
    """Test that a new facility day has no carried-over state."""
    # Arrange
    service.check_in(seed.emma, parent)
    clock.advance(hours=8)
    service.check_out(seed.emma, parent)
    clock.advance(days=1)

    # Act
    record = service.check_in(seed.emma, parent)

    # Assert
    assert record.checkin_date == clock.today()
    assert record.is_open


def test_check_out_sets_time_and_actor(service, seed, parent, staff, clock):
    """Test that check-out closes today's record."""
    # Arrange
    service.check_in(seed.noah, parent)
    clock.advance(hours=9, minutes=30)

    # Act
    record = service.check_out(seed.noah, staff)

    # Assert
    assert record.check_out_time == clock.now()
    assert record.check_in_time < record.check_out_time
    assert record.checked_out_by_type == "staff"
    assert record.state == ChildAttendanceState.CHECKED_OUT


def test_check_out_without_check_in_is_not_found(service, seed, parent):
    """Test that there is nothing to close when the child never arrived."""
    with pytest.raises(NotFoundError):
        service.check_out(seed.emma, parent)


def test_check_out_at_check_in_instant_is_rejected(service, seed, parent):
    """Test the clock skew guard: check-out must be after check-in."""
    # Arrange
    service.check_in(seed.emma, parent)

    # Act / Assert
    with pytest.raises(ValidationError) as exc_info:
        service.check_out(seed.emma, parent)
    assert exc_info.value.field == "check_out_time"


def test_parent_cannot_check_in_unlinked_child(service, seed, parent):
    """Test that a parent can only act on their own children."""
    with pytest.raises(AuthorizationError):
        service.check_in(seed.liam, parent)


def test_staff_can_check_in_any_child(service, seed, staff):
    record = service.check_in(seed.liam, staff)
    assert record.checked_in_by_type == "staff"


def test_unknown_and_inactive_children(service, seed, staff):
    """Test that unknown ids are not found and inactive children are rejected."""
    with pytest.raises(NotFoundError):
        service.check_in(9999, staff)
    with pytest.raises(ValidationError):
        service.check_in(seed.inactive_child, staff)


def test_check_in_many_reports_each_child(service, seed, parent):
    """Test that one failing child does not block the others in a batch."""
    # Arrange
    service.check_in(seed.emma, parent)

    # Act
    results = service.check_in_many([seed.emma, seed.noah, seed.liam], parent)

    # Assert
    by_child = {r.child_id: r for r in results}
    assert by_child[seed.emma].ok is False
    assert by_child[seed.emma].error_kind == "conflict"
    assert by_child[seed.noah].ok is True
    assert by_child[seed.noah].state == ChildAttendanceState.CHECKED_IN
    assert by_child[seed.noah].checkin_id is not None
    assert by_child[seed.liam].ok is False
    assert by_child[seed.liam].error_kind == "authorization"


def test_check_out_many_ignores_duplicate_ids(service, seed, parent, clock):
    # Arrange
    service.check_in_many([seed.emma, seed.noah], parent)
    clock.advance(hours=7)

    # Act
    results = service.check_out_many([seed.emma, seed.emma, seed.noah], parent)

    # Assert
    assert [r.child_id for r in results] == [seed.emma, seed.noah]
    assert all(r.ok for r in results)


def test_statuses_for_children(service, seed, parent):
    """Test that statuses are returned for every requested child, arrived or not."""
    # Arrange
    service.check_in(seed.emma, parent)

    # Act
    statuses = service.statuses_for_children([seed.emma, seed.noah])

    # Assert
    assert statuses[seed.emma].state == ChildAttendanceState.CHECKED_IN
    assert statuses[seed.noah].state == ChildAttendanceState.NOT_CHECKED_IN
    assert statuses[seed.noah].checkin_id is None


def test_checkins_for_date_filters(service, seed, parent, staff, clock):
    """Test program and state filters on the check-in log."""
    # Arrange
    service.check_in(seed.emma, parent)
    clock.advance(minutes=10)
    service.check_in(seed.noah, parent)
    clock.advance(minutes=10)
    service.check_in(seed.liam, staff)
    clock.advance(hours=1)
    service.check_out(seed.liam, staff)
    today = clock.today()

    # Act
    everything = service.checkins_for_date(today)
    prek = service.checkins_for_date(today, program_id=seed.prek)
    still_here = service.checkins_for_date(today, state=ChildAttendanceState.CHECKED_IN)
    none = service.checkins_for_date(today - timedelta(days=1))

    # Assert
    assert [r.child_id for r in everything] == [seed.liam, seed.noah, seed.emma]
    assert {r.child_id for r in prek} == {seed.noah, seed.liam}
    assert {r.child_id for r in still_here} == {seed.emma, seed.noah}
    assert none == []


def test_to_public_joins_names(service, seed, parent):
    record = service.check_in(seed.emma, parent)

    public = service.to_public([record])[0]

    assert public.child_name == "Emma Lopez"
    assert public.program_name == "Toddlers"
    assert public.checked_in_by == "Rosa Lopez"
