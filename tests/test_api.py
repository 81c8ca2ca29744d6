"""
HTTP tests for the kiosk, staff, portal and time-clock routes.
"""

from sqlmodel import select

from app.core.security import hash_pin
from app.models.attendance import CheckinRecord
from app.models.reference import Employee
from tests.conftest import EMPLOYEE_PIN, OTHER_PARENT_PIN, PARENT_PIN


# Service endpoints


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_correlation_id_is_echoed(client, seed):
    """Test that errors carry the caller's correlation id."""
    # Act
    response = client.post(
        "/api/v1/kiosk/verify-pin",
        json={"pin": "0000"},
        headers={"X-Correlation-ID": "kiosk-7-abc"},
    )

    # Assert
    assert response.status_code == 401
    assert response.headers["X-Correlation-ID"] == "kiosk-7-abc"
    body = response.json()
    assert body["kind"] == "authentication"
    assert body["field"] == "pin"
    assert body["correlationId"] == "kiosk-7-abc"


# Kiosk


def test_verify_pin_resolves_parent_with_children(client, seed):
    # Act
    response = client.post("/api/v1/kiosk/verify-pin", json={"pin": PARENT_PIN})

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "parent"
    assert body["employee"] is None
    children = body["parent"]["children"]
    assert {c["firstName"] for c in children} == {"Emma", "Noah"}
    assert all(c["state"] == "not_checked_in" for c in children)


def test_verify_pin_resolves_employee(client, seed):
    response = client.post("/api/v1/kiosk/verify-pin", json={"pin": EMPLOYEE_PIN})

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "employee"
    assert body["employee"]["id"] == seed.maria
    assert body["employee"]["status"] == "not_clocked_in"


def test_verify_pin_prefers_parent_on_collision(client, seed, db_session):
    """Test that a PIN shared by a parent and an employee resolves to the parent."""
    # Arrange
    sam = db_session.get(Employee, seed.sam)
    sam.pin_hash = hash_pin(PARENT_PIN)
    db_session.add(sam)
    db_session.commit()

    # Act
    response = client.post("/api/v1/kiosk/verify-pin", json={"pin": PARENT_PIN})

    # Assert
    assert response.json()["type"] == "parent"


def test_kiosk_checkin_and_checkout(client, seed, clock):
    """Test a parent checking in two children and picking them up later."""
    # Arrange
    payload = {"parentId": seed.parent, "pin": PARENT_PIN, "childIds": [seed.emma, seed.noah]}

    # Act
    checkin = client.post("/api/v1/kiosk/checkin", json=payload)
    clock.advance(hours=8)
    checkout = client.post("/api/v1/kiosk/checkout", json=payload)

    # Assert
    assert checkin.status_code == 200
    assert [r["ok"] for r in checkin.json()["results"]] == [True, True]
    assert checkin.json()["performedBy"] == "Rosa Lopez"
    assert checkout.status_code == 200
    assert {r["state"] for r in checkout.json()["results"]} == {"checked_out"}

    children = client.post(
        "/api/v1/kiosk/parent/children", json={"parentId": seed.parent, "pin": PARENT_PIN}
    ).json()["children"]
    assert {c["state"] for c in children} == {"checked_out"}


def test_kiosk_checkin_reports_per_child_failures(client, seed):
    """Test that the batch succeeds for some children and reports the others."""
    # Arrange
    payload = {"parentId": seed.parent, "pin": PARENT_PIN, "childIds": [seed.emma, seed.liam]}

    # Act
    response = client.post("/api/v1/kiosk/checkin", json=payload)

    # Assert
    assert response.status_code == 200
    results = {r["childId"]: r for r in response.json()["results"]}
    assert results[seed.emma]["ok"] is True
    assert results[seed.liam]["ok"] is False
    assert results[seed.liam]["errorKind"] == "authorization"


def test_kiosk_checkin_wrong_pin(client, seed):
    payload = {"parentId": seed.parent, "pin": OTHER_PARENT_PIN, "childIds": [seed.emma]}

    response = client.post("/api/v1/kiosk/checkin", json=payload)

    assert response.status_code == 401


def test_kiosk_checkin_replays_idempotent_retry(client, seed, clock, db_session):
    """Test that a retried tap with the same key replays the first response."""
    # Arrange
    payload = {"parentId": seed.parent, "pin": PARENT_PIN, "childIds": [seed.emma]}
    headers = {"Idempotency-Key": "tap-0001"}

    # Act
    first = client.post("/api/v1/kiosk/checkin", json=payload, headers=headers)
    clock.advance(seconds=20)
    retry = client.post("/api/v1/kiosk/checkin", json=payload, headers=headers)
    fresh = client.post("/api/v1/kiosk/checkin", json=payload)

    # Assert
    assert first.status_code == 200
    assert retry.status_code == 200
    assert retry.json() == first.json()
    assert fresh.json()["results"][0]["errorKind"] == "conflict"
    records = db_session.exec(
        select(CheckinRecord).where(CheckinRecord.child_id == seed.emma)
    ).all()
    assert len(records) == 1


def test_idempotency_key_is_scoped_to_actor(client, seed):
    # Arrange
    headers = {"Idempotency-Key": "shared-key"}
    client.post(
        "/api/v1/kiosk/checkin",
        json={"parentId": seed.parent, "pin": PARENT_PIN, "childIds": [seed.emma]},
        headers=headers,
    )

    # Act
    response = client.post(
        "/api/v1/kiosk/checkin",
        json={"parentId": seed.other_parent, "pin": OTHER_PARENT_PIN, "childIds": [seed.liam]},
        headers=headers,
    )

    # Assert
    assert response.status_code == 409
    assert response.json()["field"] == "Idempotency-Key"


def test_kiosk_employee_day(client, seed, clock):
    """Test clock in, lunch and clock out through the kiosk."""
    # Arrange
    body = {"employeeId": seed.maria, "pin": EMPLOYEE_PIN}

    # Act
    clocked_in = client.post("/api/v1/kiosk/employee/clockin", json=body)
    clock.advance(hours=4)
    lunch = client.post("/api/v1/kiosk/employee/lunch/start", json=body)
    clock.advance(minutes=30)
    back = client.post("/api/v1/kiosk/employee/lunch/end", json=body)
    clock.advance(hours=4)
    out = client.post("/api/v1/kiosk/employee/clockout", json=body)
    status = client.post("/api/v1/kiosk/employee/status", json=body)

    # Assert
    assert clocked_in.status_code == 200
    assert clocked_in.json()["status"] == "clocked_in"
    assert lunch.json()["status"] == "on_lunch"
    assert lunch.json()["punch"]["entryType"] == "lunch_break"
    assert back.json()["status"] == "clocked_in"
    assert out.json()["status"] == "clocked_out"
    assert status.json()["workMinutesToday"] == 480
    assert status.json()["lunchMinutesToday"] == 30


def test_kiosk_double_clock_in_is_conflict(client, seed):
    body = {"employeeId": seed.maria, "pin": EMPLOYEE_PIN}
    client.post("/api/v1/kiosk/employee/clockin", json=body)

    response = client.post("/api/v1/kiosk/employee/clockin", json=body)

    assert response.status_code == 409
    assert response.json()["kind"] == "conflict"


# Staff attendance


def test_staff_routes_require_authentication(client, seed):
    response = client.get("/api/v1/attendance/today")

    assert response.status_code == 401


def test_staff_routes_reject_parents(client, seed, auth, parent):
    auth.actor = parent

    response = client.get("/api/v1/attendance/today")

    assert response.status_code == 403
    assert response.json()["kind"] == "authorization"


def test_manual_checkin_and_log(client, seed, auth, staff):
    # Arrange
    auth.actor = staff

    # Act
    created = client.post(
        "/api/v1/attendance/manual-checkin", json={"childId": seed.liam, "notes": "Grandma"}
    )
    log = client.get("/api/v1/attendance/checkins", params={"programId": seed.prek})
    status = client.get(f"/api/v1/attendance/children/{seed.liam}/status")
    today = client.get("/api/v1/attendance/today")

    # Assert
    assert created.status_code == 201
    assert created.json()["childName"] == "Liam Chen"
    assert created.json()["checkedInBy"] == "Front Desk"
    assert log.json()["total"] == 1
    assert status.json()["state"] == "checked_in"
    assert today.json()["stats"]["attended"] == 1


def test_manual_checkout_without_checkin_is_not_found(client, seed, auth, staff):
    auth.actor = staff

    response = client.post("/api/v1/attendance/manual-checkout", json={"childId": seed.emma})

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


# Portal absences


def test_absence_report_acknowledge_cancel_flow(client, seed, auth, parent, staff):
    """Test that a parent cannot cancel an absence once staff acknowledged it."""
    # Arrange
    auth.actor = parent
    created = client.post(
        "/api/v1/portal/absences",
        json={"childId": seed.noah, "startDate": "2026-03-11", "reasonId": seed.illness},
    )
    absence_id = created.json()["id"]

    # Act
    auth.actor = staff
    acknowledged = client.put(f"/api/v1/attendance/absences/{absence_id}/acknowledge")
    again = client.put(f"/api/v1/attendance/absences/{absence_id}/acknowledge")
    auth.actor = parent
    cancel = client.delete(f"/api/v1/portal/absences/{absence_id}")

    # Assert
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["reasonName"] == "Illness"
    assert acknowledged.json()["status"] == "acknowledged"
    assert again.json()["acknowledgedAt"] == acknowledged.json()["acknowledgedAt"]
    assert cancel.status_code == 409


def test_portal_lists_and_cancels(client, seed, auth, parent):
    # Arrange
    auth.actor = parent
    created = client.post(
        "/api/v1/portal/absences",
        json={
            "childId": seed.emma,
            "startDate": "2026-03-12",
            "endDate": "2026-03-13",
            "reasonId": seed.vacation,
            "expectedReturnDate": "2026-03-16",
        },
    ).json()

    # Act
    upcoming = client.get("/api/v1/portal/absences", params={"view": "upcoming"})
    cancelled = client.delete(f"/api/v1/portal/absences/{created['id']}")
    after = client.get("/api/v1/portal/absences", params={"view": "upcoming"})

    # Assert
    assert upcoming.json()["total"] == 1
    assert cancelled.json()["status"] == "cancelled"
    assert after.json()["total"] == 0


def test_portal_absence_validation_names_field(client, seed, auth, parent):
    auth.actor = parent

    response = client.post(
        "/api/v1/portal/absences",
        json={
            "childId": seed.emma,
            "startDate": "2026-03-12",
            "endDate": "2026-03-11",
            "reasonId": seed.illness,
        },
    )

    assert response.status_code == 400
    assert response.json()["field"] == "end_date"


def test_absence_reasons(client, seed, auth, parent):
    auth.actor = parent

    response = client.get("/api/v1/portal/absence-reasons")

    assert [r["name"] for r in response.json()] == ["Illness", "Vacation", "Other"]
    assert response.json()[2]["requiresNotes"] is True


# Time clock administration


def test_add_punch_with_idempotency_key(client, seed, auth, staff):
    # Arrange
    auth.actor = staff
    body = {
        "employeeId": seed.sam,
        "entryType": "shift",
        "clockIn": "2026-03-09T08:00:00",
        "clockOut": "2026-03-09T16:00:00",
    }
    headers = {"Idempotency-Key": "backfill-sam-0309"}

    # Act
    first = client.post("/api/v1/timeclock/entries", json=body, headers=headers)
    retry = client.post("/api/v1/timeclock/entries", json=body, headers=headers)
    duplicate = client.post("/api/v1/timeclock/entries", json=body)

    # Assert
    assert first.status_code == 201
    assert first.json()["totalMinutes"] == 480
    assert retry.status_code == 201
    assert retry.json()["id"] == first.json()["id"]
    assert duplicate.status_code == 409


def test_edit_punch_without_reason_is_rejected(client, seed, auth, staff):
    # Arrange
    auth.actor = staff
    punch = client.post(
        "/api/v1/timeclock/entries",
        json={
            "employeeId": seed.sam,
            "clockIn": "2026-03-09T08:00:00",
            "clockOut": "2026-03-09T16:00:00",
        },
    ).json()

    # Act
    missing = client.put(
        f"/api/v1/timeclock/entries/{punch['id']}", json={"clockOut": "2026-03-09T15:30:00"}
    )
    fixed = client.put(
        f"/api/v1/timeclock/entries/{punch['id']}",
        json={"clockOut": "2026-03-09T15:30:00", "adjustmentReason": "Left early"},
    )
    deleted = client.delete(f"/api/v1/timeclock/entries/{punch['id']}")

    # Assert
    assert missing.status_code == 400
    assert missing.json()["field"] == "adjustment_reason"
    assert fixed.json()["wasAdjusted"] is True
    assert fixed.json()["totalMinutes"] == 450
    assert deleted.status_code == 200
    assert client.delete(f"/api/v1/timeclock/entries/{punch['id']}").status_code == 404


def test_timeclock_reports(client, seed, auth, staff):
    # Arrange
    auth.actor = staff
    client.post(
        "/api/v1/timeclock/entries",
        json={
            "employeeId": seed.maria,
            "clockIn": "2026-03-09T08:00:00",
            "clockOut": "2026-03-09T17:00:00",
        },
    )

    # Act
    daily = client.get("/api/v1/timeclock/daily-report", params={"date": "2026-03-09"})
    weekly = client.get(
        "/api/v1/timeclock/weekly-report", params={"start": "2026-03-09", "end": "2026-03-15"}
    )
    entries = client.get(
        f"/api/v1/timeclock/employees/{seed.maria}/entries",
        params={"startDate": "2026-03-09", "endDate": "2026-03-10"},
    )
    board = client.get("/api/v1/timeclock/today")

    # Assert
    assert daily.json()["employeesWorked"] == 1
    maria = next(e for e in weekly.json()["employees"] if e["employeeId"] == seed.maria)
    assert maria["workHours"] == 9.0
    assert maria["estimatedPay"] == 180.0
    assert entries.json()["total"] == 1
    assert entries.json()["totalMinutes"] == 540
    assert board.json()["stats"]["notClockedIn"] == 2


def test_punch_times_with_offset_are_stored_facility_local(client, seed, auth, staff):
    """Test that UTC punch times are converted to facility-local time (US Central)."""
    # Arrange
    auth.actor = staff

    # Act
    created = client.post(
        "/api/v1/timeclock/entries",
        json={
            "employeeId": seed.sam,
            "clockIn": "2026-03-09T13:00:00Z",
            "clockOut": "2026-03-09T21:00:00Z",
        },
    )
    edited = client.put(
        f"/api/v1/timeclock/entries/{created.json()['id']}",
        json={"clockOut": "2026-03-09T15:30:00-05:00", "adjustmentReason": "Left early"},
    )

    # Assert
    assert created.status_code == 201
    assert created.json()["clockIn"] == "2026-03-09T08:00:00"
    assert created.json()["clockOut"] == "2026-03-09T16:00:00"
    assert created.json()["totalMinutes"] == 480
    assert edited.status_code == 200
    assert edited.json()["clockOut"] == "2026-03-09T15:30:00"


def test_future_punch_with_offset_is_validation_error(client, seed, auth, staff):
    auth.actor = staff

    response = client.post(
        "/api/v1/timeclock/entries",
        json={"employeeId": seed.sam, "clockIn": "2026-03-10T18:00:00+00:00"},
    )

    assert response.status_code == 400
    assert response.json()["field"] == "clock_in"


def test_portal_update_with_null_keeps_current_value(client, seed, auth, parent):
    """Test that null fields in an absence edit leave the stored value unchanged."""
    # Arrange
    auth.actor = parent
    created = client.post(
        "/api/v1/portal/absences",
        json={
            "childId": seed.emma,
            "startDate": "2026-03-12",
            "endDate": "2026-03-13",
            "reasonId": seed.illness,
        },
    ).json()

    # Act
    response = client.put(
        f"/api/v1/portal/absences/{created['id']}",
        json={"startDate": None, "endDate": None, "reasonId": None, "notes": "Fever"},
    )

    # Assert
    assert response.status_code == 200
    body = response.json()
    assert body["startDate"] == "2026-03-12"
    assert body["endDate"] == "2026-03-13"
    assert body["reasonId"] == seed.illness
    assert body["notes"] == "Fever"
