from datetime import timedelta

import pytest

from coachhub.core.enums import CoachStatus, CourseStatus, SessionStatus
from coachhub.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidSessionTransitionException,
    NotFoundException,
    ValidationException,
)
from coachhub.core.timezone_utils import ensure_utc, utc_now
from coachhub.services.session_service import SessionService

from tests.conftest import future, make_coach, make_course, make_session


@pytest.fixture
def service(db):
    return SessionService(db)


class TestBooking:
    def test_parent_books_for_themselves(self, service, parent, course):
        start = future()

        session = service.book_session(parent, course.id, start, start + timedelta(hours=1))

        assert session.status == SessionStatus.SCHEDULED.value
        assert session.student_id == parent.id
        assert session.coach_id == course.coach_id
        assert session.duration == 60

    def test_parent_cannot_book_for_someone_else(self, service, parent, other_parent, course):
        start = future()
        with pytest.raises(ForbiddenException):
            service.book_session(
                parent, course.id, start, start + timedelta(hours=1), student_id=other_parent.id
            )

    def test_admin_must_name_student(self, service, admin, parent, course):
        start = future()
        with pytest.raises(ValidationException) as exc:
            service.book_session(admin, course.id, start, start + timedelta(hours=1))
        assert exc.value.code == "STUDENT_REQUIRED"

        session = service.book_session(
            admin, course.id, start, start + timedelta(hours=1), student_id=parent.id
        )
        assert session.student_id == parent.id

    def test_overlapping_booking_conflicts(self, service, parent, other_parent, course):
        start = future()
        service.book_session(parent, course.id, start, start + timedelta(hours=1))

        with pytest.raises(BookingConflictException) as exc:
            service.book_session(
                other_parent, course.id, start + timedelta(minutes=30), start + timedelta(minutes=90)
            )
        assert exc.value.code == "BOOKING_CONFLICT"
        assert len(exc.value.details["conflicts"]) == 1

    def test_back_to_back_bookings_are_allowed(self, service, parent, other_parent, course):
        start = future()
        service.book_session(parent, course.id, start, start + timedelta(hours=1))

        second = service.book_session(
            other_parent, course.id, start + timedelta(hours=1), start + timedelta(hours=2)
        )
        assert second.status == SessionStatus.SCHEDULED.value

    def test_past_start_rejected(self, service, parent, course):
        start = utc_now() - timedelta(hours=1)
        with pytest.raises(ValidationException) as exc:
            service.book_session(parent, course.id, start, start + timedelta(hours=1))
        assert exc.value.code == "START_IN_PAST"

    @pytest.mark.parametrize("minutes", [10, 481])
    def test_duration_limits(self, service, parent, course, minutes):
        start = future()
        with pytest.raises(ValidationException) as exc:
            service.book_session(parent, course.id, start, start + timedelta(minutes=minutes))
        assert exc.value.code == "INVALID_DURATION"

    def test_pending_course_is_not_bookable(self, db, service, parent, coach):
        pending = make_course(db, coach, title="Draft", status=CourseStatus.PENDING, is_active=False)
        start = future()
        with pytest.raises(NotFoundException):
            service.book_session(parent, pending.id, start, start + timedelta(hours=1))

    def test_suspended_coach_is_not_bookable(self, db, service, parent):
        suspended = make_coach(db, "suspended@example.com", CoachStatus.SUSPENDED)
        suspended_course = make_course(db, suspended, title="Geometry")
        start = future()
        with pytest.raises(ValidationException) as exc:
            service.book_session(parent, suspended_course.id, start, start + timedelta(hours=1))
        assert exc.value.code == "COACH_NOT_AVAILABLE"


class TestStateMachine:
    def test_start_within_window(self, db, service, coach_user, parent, course):
        start = future()
        session = make_session(db, course, parent, start)

        started = service.start_session(coach_user, session.id, now=start - timedelta(minutes=4))

        assert started.status == SessionStatus.IN_PROGRESS.value
        assert started.meeting_url

    @pytest.mark.parametrize("offset", [-6, 6, -120])
    def test_start_outside_window_rejected(self, db, service, coach_user, parent, course, offset):
        start = future()
        session = make_session(db, course, parent, start)

        with pytest.raises(InvalidSessionTransitionException) as exc:
            service.start_session(coach_user, session.id, now=start + timedelta(minutes=offset))
        assert exc.value.details == {"current_status": "SCHEDULED", "target_status": "IN_PROGRESS"}

    def test_student_cannot_start(self, db, service, parent, course):
        start = future()
        session = make_session(db, course, parent, start)
        with pytest.raises(ForbiddenException):
            service.start_session(parent, session.id, now=start)

    def test_complete_requires_in_progress(self, db, service, coach_user, parent, course):
        start = future()
        session = make_session(db, course, parent, start)

        with pytest.raises(InvalidSessionTransitionException):
            service.complete_session(coach_user, session.id)

        service.start_session(coach_user, session.id, now=start)
        done = service.complete_session(coach_user, session.id, notes="Covered fractions")

        assert done.status == SessionStatus.COMPLETED.value
        assert done.notes == "Covered fractions"
        assert done.completed_at is not None

    @pytest.mark.parametrize(
        "terminal", [SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW]
    )
    def test_terminal_states_are_final(self, db, service, coach_user, parent, course, terminal):
        start = future()
        session = make_session(db, course, parent, start, status=terminal)

        with pytest.raises(InvalidSessionTransitionException):
            service.start_session(coach_user, session.id, now=start)
        with pytest.raises(InvalidSessionTransitionException):
            service.cancel_session(coach_user, session.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.reschedule_session(
                coach_user, session.id, start + timedelta(days=1), start + timedelta(days=1, hours=1)
            )

    def test_student_can_cancel_in_progress(self, db, service, parent, course):
        session = make_session(db, course, parent, future(), status=SessionStatus.IN_PROGRESS)

        cancelled = service.cancel_session(parent, session.id, reason="Sick")

        assert cancelled.status == SessionStatus.CANCELLED.value
        assert cancelled.cancellation_reason == "Sick"

    def test_outsider_cannot_cancel(self, db, service, parent, other_parent, course):
        session = make_session(db, course, parent, future())
        with pytest.raises(ForbiddenException):
            service.cancel_session(other_parent, session.id)

    def test_no_show_only_after_start(self, db, service, coach_user, parent, course):
        upcoming = make_session(db, course, parent, future())
        with pytest.raises(ValidationException) as exc:
            service.mark_no_show(coach_user, upcoming.id)
        assert exc.value.code == "SESSION_NOT_STARTED"

        past = make_session(db, course, parent, future(hours=-3))
        marked = service.mark_no_show(coach_user, past.id, reason="Did not join")

        assert marked.status == SessionStatus.NO_SHOW.value
        assert "Did not join" in marked.notes


class TestReschedule:
    def test_shift_within_own_slot(self, db, service, parent, course):
        start = future()
        session = make_session(db, course, parent, start)

        moved = service.reschedule_session(
            parent, session.id, start + timedelta(minutes=30), start + timedelta(minutes=90), reason="Traffic"
        )

        assert ensure_utc(moved.start_time) == start + timedelta(minutes=30)
        assert moved.duration == 60
        assert "Rescheduled: Traffic" in moved.notes

    def test_into_taken_window_conflicts(self, db, service, coach_user, parent, other_parent, course):
        start = future()
        session = make_session(db, course, parent, start)
        make_session(db, course, other_parent, start + timedelta(hours=3))

        with pytest.raises(BookingConflictException):
            service.reschedule_session(
                coach_user, session.id, start + timedelta(hours=3), start + timedelta(hours=4)
            )
        assert ensure_utc(db.get(type(session), session.id).start_time) == start

    def test_into_the_past_rejected(self, db, service, parent, course):
        session = make_session(db, course, parent, future())
        past = utc_now() - timedelta(hours=2)
        with pytest.raises(ValidationException):
            service.reschedule_session(parent, session.id, past, past + timedelta(hours=1))
