from datetime import timedelta

from coachhub.core.enums import SessionStatus
from coachhub.core.timezone_utils import utc_now

from tests.conftest import auth_headers, future, make_session

SESSIONS = "/api/v1/sessions"


def _window(start, minutes=60):
    return {"start_time": start.isoformat(), "end_time": (start + timedelta(minutes=minutes)).isoformat()}


def test_parent_books_session(client, course, parent, parent_headers):
    response = client.post(
        SESSIONS, json={"course_id": course.id, **_window(future())}, headers=parent_headers
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Session booked"
    assert body["data"]["status"] == "SCHEDULED"
    assert body["data"]["student_id"] == parent.id


def test_coach_cannot_book_as_student(client, course, coach_headers):
    response = client.post(SESSIONS, json={"course_id": course.id, **_window(future())}, headers=coach_headers)
    assert response.status_code == 403


def test_overlap_returns_409_with_conflicts(client, db, course, other_parent, parent_headers):
    start = future()
    existing = make_session(db, course, other_parent, start)

    response = client.post(
        SESSIONS,
        json={"course_id": course.id, **_window(start + timedelta(minutes=30))},
        headers=parent_headers,
    )

    assert response.status_code == 409
    data = response.json()["data"]
    assert data["code"] == "BOOKING_CONFLICT"
    assert [c["session_id"] for c in data["details"]["conflicts"]] == [existing.id]


def test_bulk_booking_is_all_or_nothing(client, course, parent_headers):
    start = future()
    windows = [_window(start), _window(start + timedelta(minutes=30))]

    response = client.post(
        f"{SESSIONS}/bulk", json={"course_id": course.id, "sessions": windows}, headers=parent_headers
    )
    listing = client.get(SESSIONS, headers=parent_headers).json()["data"]

    assert response.status_code == 409
    assert listing["pagination"]["total"] == 0


def test_bulk_booking(client, course, parent_headers):
    start = future()
    windows = [_window(start), _window(start + timedelta(days=1))]

    response = client.post(
        f"{SESSIONS}/bulk", json={"course_id": course.id, "sessions": windows}, headers=parent_headers
    )

    assert response.status_code == 201
    assert response.json()["message"] == "2 sessions booked"


def test_lifecycle_through_the_api(client, db, course, parent, coach_headers, parent_headers):
    session = make_session(db, course, parent, utc_now() + timedelta(minutes=2))

    started = client.post(f"{SESSIONS}/{session.id}/start", headers=coach_headers)
    assert started.status_code == 200
    assert started.json()["data"]["status"] == "IN_PROGRESS"

    joined = client.post(f"{SESSIONS}/{session.id}/join", headers=parent_headers)
    assert joined.status_code == 400

    completed = client.post(
        f"{SESSIONS}/{session.id}/complete", json={"notes": "Solid progress"}, headers=coach_headers
    )
    assert completed.status_code == 200
    assert completed.json()["data"]["status"] == "COMPLETED"

    again = client.post(f"{SESSIONS}/{session.id}/cancel", headers=parent_headers)
    assert again.status_code == 400
    assert again.json()["data"]["code"] == "INVALID_SESSION_TRANSITION"


def test_start_too_early_is_rejected(client, db, course, parent, coach_headers):
    session = make_session(db, course, parent, future(hours=3))

    response = client.post(f"{SESSIONS}/{session.id}/start", headers=coach_headers)

    assert response.status_code == 400
    assert response.json()["data"]["details"]["target_status"] == "IN_PROGRESS"


def test_cancel_without_body(client, db, course, parent, parent_headers):
    session = make_session(db, course, parent, future())

    response = client.post(f"{SESSIONS}/{session.id}/cancel", headers=parent_headers)

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"


def test_reschedule(client, db, course, parent, parent_headers):
    session = make_session(db, course, parent, future())
    target = future(hours=72)

    response = client.post(
        f"{SESSIONS}/{session.id}/reschedule", json={**_window(target), "reason": "Exams"}, headers=parent_headers
    )

    assert response.status_code == 200
    assert response.json()["data"]["start_time"].startswith(target.strftime("%Y-%m-%dT%H:%M"))


def test_other_users_cannot_see_session(client, db, course, parent, other_parent):
    session = make_session(db, course, parent, future())
    response = client.get(f"{SESSIONS}/{session.id}", headers=auth_headers(other_parent))
    assert response.status_code == 403


def test_check_conflicts_endpoint(client, db, course, coach, parent, parent_headers):
    start = future()
    booked = make_session(db, course, parent, start)
    payload = {"coach_id": coach.id, **_window(start + timedelta(minutes=15))}

    found = client.post(f"{SESSIONS}/check-conflicts", json=payload, headers=parent_headers).json()
    excluded = client.post(
        f"{SESSIONS}/check-conflicts", json={**payload, "exclude_session_id": booked.id}, headers=parent_headers
    ).json()

    assert found["data"]["has_conflicts"] is True
    assert found["message"] == "Conflicts found"
    assert excluded["data"]["has_conflicts"] is False


def test_calendar_requires_ordered_range(client, parent_headers):
    now = utc_now()
    response = client.get(
        f"{SESSIONS}/calendar",
        params={"start_date": now.isoformat(), "end_date": (now - timedelta(days=1)).isoformat()},
        headers=parent_headers,
    )
    assert response.status_code == 400


def test_no_show_needs_the_coach(client, db, course, parent, parent_headers, coach_headers):
    session = make_session(db, course, parent, future(hours=-2), status=SessionStatus.SCHEDULED)

    assert client.post(f"{SESSIONS}/{session.id}/no-show", headers=parent_headers).status_code == 403
    marked = client.post(f"{SESSIONS}/{session.id}/no-show", json={"reason": "Absent"}, headers=coach_headers)
    assert marked.json()["data"]["status"] == "NO_SHOW"
