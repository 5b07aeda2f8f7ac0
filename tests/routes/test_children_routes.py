from datetime import date
from decimal import Decimal

from coachhub.models.child import Enrollment
from tests.conftest import make_child

CHILDREN = "/api/v1/children"


def _payload(**overrides):
    today = date.today()
    payload = {
        "first_name": "Jamie",
        "last_name": "Parent",
        "date_of_birth": date(today.year - 10, 3, 1).isoformat(),
        "current_grade": "5",
        "interests": ["chess", "reading"],
    }
    payload.update(overrides)
    return payload


def test_only_parents_manage_children(client, coach_headers, admin_headers):
    assert client.get(CHILDREN, headers=coach_headers).status_code == 403
    assert client.post(CHILDREN, json=_payload(), headers=admin_headers).status_code == 403


def test_add_and_list(client, parent, parent_headers):
    created = client.post(CHILDREN, json=_payload(), headers=parent_headers)

    assert created.status_code == 201
    body = created.json()["data"]
    assert body["parent_id"] == parent.id
    assert body["interests"] == ["chess", "reading"]

    listed = client.get(CHILDREN, headers=parent_headers).json()["data"]
    assert [child["first_name"] for child in listed] == ["Jamie"]


def test_duplicate_child_rejected(client, parent_headers):
    client.post(CHILDREN, json=_payload(), headers=parent_headers)
    response = client.post(CHILDREN, json=_payload(), headers=parent_headers)

    assert response.status_code == 400
    assert response.json()["data"]["code"] == "DUPLICATE_CHILD"


def test_adult_child_rejected(client, parent_headers):
    today = date.today()
    response = client.post(
        CHILDREN, json=_payload(date_of_birth=date(today.year - 19, 1, 1).isoformat()), headers=parent_headers
    )

    assert response.status_code == 400
    assert response.json()["data"]["code"] == "CHILD_TOO_OLD"


def test_unknown_field_rejected(client, parent_headers):
    response = client.post(CHILDREN, json=_payload(nickname="JJ"), headers=parent_headers)
    assert response.status_code == 400


def test_other_parents_child_is_not_found(client, db, other_parent, parent_headers):
    theirs = make_child(db, other_parent, "Kit")

    assert client.get(f"{CHILDREN}/{theirs.id}", headers=parent_headers).status_code == 404
    assert client.delete(f"{CHILDREN}/{theirs.id}", headers=parent_headers).status_code == 404


def test_update_child(client, child, parent_headers):
    response = client.put(
        f"{CHILDREN}/{child.id}", json={"current_grade": "4", "school_name": "Hillside"}, headers=parent_headers
    )

    data = response.json()["data"]
    assert data["current_grade"] == "4"
    assert data["school_name"] == "Hillside"
    assert data["first_name"] == child.first_name


def test_remove_blocked_by_active_enrollment(client, db, child, course, parent_headers):
    db.add(Enrollment(child_id=child.id, course_id=course.id, credits_spent=Decimal("10.00")))
    db.commit()

    blocked = client.delete(f"{CHILDREN}/{child.id}", headers=parent_headers)
    enrollments = client.get(f"{CHILDREN}/{child.id}/enrollments", headers=parent_headers).json()["data"]

    assert blocked.status_code == 400
    assert blocked.json()["data"]["code"] == "CHILD_HAS_ACTIVE_ENROLLMENTS"
    assert enrollments[0]["course_id"] == course.id
    assert enrollments[0]["status"] == "active"


def test_remove_child(client, child, parent_headers):
    response = client.delete(f"{CHILDREN}/{child.id}", headers=parent_headers)

    assert response.json()["data"]["id"] == child.id
    assert client.get(CHILDREN, headers=parent_headers).json()["data"] == []


def test_progress(client, child, parent_headers):
    response = client.get(f"{CHILDREN}/{child.id}/progress", params={"period": "year"}, headers=parent_headers)

    data = response.json()["data"]
    assert data["child_id"] == child.id
    assert data["period"] == "year"
    assert data["total_sessions"] == 0
    assert data["completion_rate"] == 0.0


def test_progress_rejects_unknown_period(client, child, parent_headers):
    response = client.get(f"{CHILDREN}/{child.id}/progress", params={"period": "decade"}, headers=parent_headers)

    assert response.status_code == 400
    assert response.json()["data"]["code"] == "INVALID_PERIOD"
