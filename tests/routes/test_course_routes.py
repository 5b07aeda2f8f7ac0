from coachhub.core.enums import CoachStatus, CourseStatus, SessionStatus

from tests.conftest import auth_headers, future, make_coach, make_course, make_session

COURSES = "/api/v1/courses"


def _course_payload(**overrides):
    payload = {
        "title": "Intro to Chess",
        "description": "Openings and tactics",
        "category": "Games",
        "level": "BEGINNER",
        "duration": 45,
        "price": "30.00",
        "credit_cost": "5",
    }
    payload.update(overrides)
    return payload


def test_catalog_lists_only_approved_active_courses(client, db, coach, course):
    make_course(db, coach, title="Draft", status=CourseStatus.PENDING, is_active=False)

    response = client.get(COURSES)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["id"] for item in data["items"]] == [course.id]
    assert data["pagination"]["total"] == 1
    assert data["items"][0]["price"] == 50.0


def test_catalog_search_and_price_filters(client, course):
    assert client.get(COURSES, params={"search": "algebra"}).json()["data"]["pagination"]["total"] == 1
    assert client.get(COURSES, params={"max_price": "10"}).json()["data"]["pagination"]["total"] == 0
    bad = client.get(COURSES, params={"min_price": "20", "max_price": "10"})
    assert bad.status_code == 400


def test_coach_creates_pending_course(client, coach_headers):
    response = client.post(COURSES, json=_course_payload(), headers=coach_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["status"] == "PENDING"
    assert data["is_active"] is False

    mine = client.get(COURSES, params={"mine": "true"}, headers=coach_headers).json()["data"]
    assert mine["pagination"]["total"] == 1


def test_parent_cannot_create_course(client, parent_headers):
    response = client.post(COURSES, json=_course_payload(), headers=parent_headers)
    assert response.status_code == 403


def test_pending_coach_cannot_create_course(client, db):
    pending = make_coach(db, "pending@example.com", CoachStatus.PENDING)
    response = client.post(COURSES, json=_course_payload(), headers=auth_headers(pending.user))
    assert response.status_code == 403


def test_pending_course_visible_to_owner_only(client, db, coach, coach_headers, parent_headers):
    draft = make_course(db, coach, title="Draft", status=CourseStatus.PENDING, is_active=False)

    assert client.get(f"{COURSES}/{draft.id}", headers=coach_headers).status_code == 200
    assert client.get(f"{COURSES}/{draft.id}", headers=parent_headers).status_code == 404


def test_update_own_course_only(client, db, course, coach_headers):
    rival = make_coach(db, "rival@example.com")

    updated = client.put(f"{COURSES}/{course.id}", json={"price": "55"}, headers=coach_headers)
    forbidden = client.put(f"{COURSES}/{course.id}", json={"price": "1"}, headers=auth_headers(rival.user))

    assert updated.status_code == 200
    assert updated.json()["data"]["price"] == 55.0
    assert forbidden.status_code == 404


def test_delete_blocked_by_live_sessions(client, db, course, parent, coach_headers):
    make_session(db, course, parent, future())

    response = client.delete(f"{COURSES}/{course.id}", headers=coach_headers)

    assert response.status_code == 400


def test_toggle_status(client, course, coach_headers):
    response = client.patch(f"{COURSES}/{course.id}/toggle-status", headers=coach_headers)

    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False
    assert response.json()["message"] == "Course deactivated"


def test_review_requires_completed_session(client, db, course, parent, parent_headers):
    first = client.post(f"{COURSES}/{course.id}/reviews", json={"rating": 5}, headers=parent_headers)
    assert first.status_code == 400

    make_session(db, course, parent, future(hours=-5), status=SessionStatus.COMPLETED)
    created = client.post(
        f"{COURSES}/{course.id}/reviews", json={"rating": 4, "comment": "Great"}, headers=parent_headers
    )
    again = client.post(f"{COURSES}/{course.id}/reviews", json={"rating": 3}, headers=parent_headers)

    assert created.status_code == 201
    assert again.status_code == 409
    detail = client.get(f"{COURSES}/{course.id}").json()["data"]
    assert detail["average_rating"] == 4.0
