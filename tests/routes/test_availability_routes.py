from datetime import date, datetime, timedelta, timezone

from tests.conftest import make_session

AVAILABILITY = "/api/v1/availability"


def _next_weekday(weekday):
    day = date.today() + timedelta(days=2)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


def _schedule(day_of_week, *slots):
    return {
        "days": [
            {
                "day_of_week": day_of_week,
                "slots": [{"start_time": start, "end_time": end} for start, end in slots],
            }
        ]
    }


def test_set_and_read_weekly_availability(client, coach, coach_headers):
    response = client.put(
        f"{AVAILABILITY}/coaches/me", json=_schedule(0, ("09:00", "12:00")), headers=coach_headers
    )
    assert response.status_code == 200

    public = client.get(f"{AVAILABILITY}/coaches/{coach.id}").json()["data"]
    assert public["coach_id"] == coach.id
    assert public["days"][0]["day_of_week"] == 0
    assert public["days"][0]["time_slots"][0]["start_time"] == "09:00"


def test_overlapping_slots_rejected(client, coach_headers):
    response = client.put(
        f"{AVAILABILITY}/coaches/me",
        json=_schedule(2, ("09:00", "11:00"), ("10:30", "12:00")),
        headers=coach_headers,
    )

    assert response.status_code == 400
    assert response.json()["data"]["code"] == "OVERLAPPING_SLOTS"


def test_invalid_day_rejected(client, coach_headers):
    response = client.put(f"{AVAILABILITY}/coaches/me", json=_schedule(7, ("09:00", "10:00")), headers=coach_headers)
    assert response.status_code == 400


def test_parents_cannot_set_availability(client, parent_headers):
    response = client.put(f"{AVAILABILITY}/coaches/me", json=_schedule(0, ("09:00", "10:00")), headers=parent_headers)
    assert response.status_code == 403


def test_available_slots_skip_booked_time(client, db, coach, course, parent, coach_headers):
    day = _next_weekday(0)
    client.put(f"{AVAILABILITY}/coaches/me", json=_schedule(0, ("09:00", "12:00")), headers=coach_headers)
    make_session(db, course, parent, datetime(day.year, day.month, day.day, 10, tzinfo=timezone.utc))

    response = client.get(
        "/api/v1/sessions/available-slots", params={"coach_id": coach.id, "date": day.isoformat(), "duration": 60}
    )

    assert response.status_code == 200
    starts = [slot["start_time"][11:16] for slot in response.json()["data"]["slots"]]
    assert starts == ["09:00", "11:00"]


def test_unknown_coach(client):
    assert client.get(f"{AVAILABILITY}/coaches/01HZZZZZZZZZZZZZZZZZZZZZZZ").status_code == 404
