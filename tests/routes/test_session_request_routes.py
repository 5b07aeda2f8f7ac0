from datetime import date, timedelta

import pytest

AVAILABILITY = "/api/v1/availability"


@pytest.fixture
def day():
    return date.today() + timedelta(days=3)


@pytest.fixture
def slot_id(client, coach, coach_headers, day):
    schedule = {
        "days": [{"day_of_week": day.weekday(), "slots": [{"start_time": "09:00", "end_time": "12:00"}]}]
    }
    client.put(f"{AVAILABILITY}/coaches/me", json=schedule, headers=coach_headers)
    public = client.get(f"{AVAILABILITY}/coaches/{coach.id}").json()["data"]
    return public["days"][0]["time_slots"][0]["id"]


def _submit(client, headers, slot_id, course, day, start_time="10:00"):
    return client.post(
        f"{AVAILABILITY}/requests",
        json={
            "time_slot_id": slot_id,
            "course_id": course.id,
            "session_date": day.isoformat(),
            "start_time": start_time,
        },
        headers=headers,
    )


def test_request_approval_flow(client, course, day, slot_id, parent_headers, admin_headers, coach_headers):
    response = _submit(client, parent_headers, slot_id, course, day)

    assert response.status_code == 201
    request = response.json()["data"]
    assert request["status"] == "PENDING_APPROVAL"
    assert request["session_id"] is None

    forbidden = client.post(f"{AVAILABILITY}/requests/{request['id']}/approve", headers=parent_headers)
    assert forbidden.status_code == 403

    approved = client.post(
        f"{AVAILABILITY}/requests/{request['id']}/approve",
        json={"admin_notes": "Enjoy"},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    data = approved.json()["data"]
    assert data["status"] == "APPROVED"
    assert data["session_id"]

    session = client.get(f"/api/v1/sessions/{data['session_id']}", headers=parent_headers)
    assert session.status_code == 200
    assert session.json()["data"]["status"] == "SCHEDULED"

    coach_requests = client.get(f"{AVAILABILITY}/requests", headers=coach_headers).json()["data"]
    assert [item["id"] for item in coach_requests["items"]] == [request["id"]]


def test_pending_request_blocks_the_window(client, course, day, slot_id, parent_headers, admin_headers):
    first = _submit(client, parent_headers, slot_id, course, day).json()["data"]

    second = _submit(client, parent_headers, slot_id, course, day, start_time="10:30")
    assert second.status_code == 409
    assert second.json()["data"]["code"] == "BOOKING_CONFLICT"

    rejected = client.post(
        f"{AVAILABILITY}/requests/{first['id']}/reject",
        json={"reason": "Coach unavailable"},
        headers=admin_headers,
    )
    assert rejected.status_code == 200
    assert rejected.json()["data"]["rejection_reason"] == "Coach unavailable"

    assert _submit(client, parent_headers, slot_id, course, day, start_time="10:30").status_code == 201


def test_reject_requires_reason(client, course, day, slot_id, parent_headers, admin_headers):
    request = _submit(client, parent_headers, slot_id, course, day).json()["data"]

    response = client.post(f"{AVAILABILITY}/requests/{request['id']}/reject", json={}, headers=admin_headers)

    assert response.status_code == 400


def test_wrong_weekday(client, course, day, slot_id, parent_headers):
    response = _submit(client, parent_headers, slot_id, course, day + timedelta(days=1))

    assert response.status_code == 400
    assert response.json()["data"]["code"] == "DAY_MISMATCH"


def test_cancel_and_notifications(client, course, day, slot_id, parent_headers, coach_headers):
    request = _submit(client, parent_headers, slot_id, course, day).json()["data"]

    cancelled = client.post(f"{AVAILABILITY}/requests/{request['id']}/cancel", headers=parent_headers)
    assert cancelled.json()["data"]["status"] == "CANCELLED"

    notices = client.get(f"{AVAILABILITY}/notifications", headers=coach_headers).json()["data"]
    assert {item["type"] for item in notices["items"]} == {"SESSION_SCHEDULED", "SESSION_CANCELLED"}

    first = notices["items"][0]["id"]
    marked = client.post(f"{AVAILABILITY}/notifications/{first}/read", headers=coach_headers)
    assert marked.json()["data"]["is_read"] is True
    stranger = client.post(f"{AVAILABILITY}/notifications/{first}/read", headers=parent_headers)
    assert stranger.status_code == 403

    read_all = client.post(f"{AVAILABILITY}/notifications/read-all", headers=coach_headers)
    assert read_all.json()["data"]["updated"] == 1
    unread = client.get(f"{AVAILABILITY}/notifications", params={"is_read": False}, headers=coach_headers)
    assert unread.json()["data"]["items"] == []


def test_admin_schedule_review(client, coach, slot_id, admin_headers, coach_headers):
    queue = client.get(
        f"{AVAILABILITY}/admin/schedules", params={"review_status": "PENDING"}, headers=admin_headers
    ).json()["data"]
    assert len(queue["items"]) == 1
    availability_id = queue["items"][0]["id"]

    assert client.get(f"{AVAILABILITY}/admin/schedules", headers=coach_headers).status_code == 403

    rejected = client.post(
        f"{AVAILABILITY}/admin/schedules/{availability_id}/reject",
        json={"reason": "Add a break"},
        headers=admin_headers,
    )
    assert rejected.status_code == 200
    assert rejected.json()["data"]["is_active"] is False
    assert rejected.json()["data"]["review_status"] == "REJECTED"

    approved = client.post(f"{AVAILABILITY}/admin/schedules/{availability_id}/approve", headers=admin_headers)
    assert approved.json()["data"]["is_active"] is True

    public = client.get(f"{AVAILABILITY}/coaches/{coach.id}").json()["data"]
    assert public["days"][0]["review_status"] == "APPROVED"
