from datetime import date, datetime, timedelta, timezone
import unittest.mock

import pytest

from coachhub.core.enums import ScheduleNotificationType, SessionRequestStatus, SessionStatus
from coachhub.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from coachhub.core.timezone_utils import ensure_utc
from coachhub.models.admin_activity import AdminActivity
from coachhub.services.availability_service import AvailabilityService
from coachhub.services.schedule_request_service import ScheduleRequestService

from tests.conftest import make_coach, make_course, make_session


@pytest.fixture
def emails():
    return unittest.mock.MagicMock()


@pytest.fixture
def service(db, emails):
    return ScheduleRequestService(db, notification_service=emails)


@pytest.fixture
def day():
    return date.today() + timedelta(days=3)


@pytest.fixture
def slot(db, coach, day, emails):
    days = AvailabilityService(db, notification_service=emails).set_weekly_availability(
        coach,
        [{"day_of_week": day.weekday(), "slots": [{"start_time": "09:00", "end_time": "12:00"}]}],
    )
    return days[0].time_slots[0]


def _request(service, user, slot, course, day, start_time="10:00", **kwargs):
    return service.create_request(
        user, time_slot_id=slot.id, course_id=course.id, day=day, start_time=start_time, **kwargs
    )


class TestCreateRequest:
    def test_request_holds_window_pending_approval(self, service, parent, coach_user, slot, course, day):
        request = _request(service, parent, slot, course, day, notes="First lesson")

        assert request.status == SessionRequestStatus.PENDING_APPROVAL.value
        assert request.student_id == parent.id
        assert request.coach_id == course.coach_id
        assert request.duration == 60
        assert ensure_utc(request.start_time).hour == 10
        assert ensure_utc(request.end_time).hour == 11

        coach_notices, total = service.list_notifications(coach_user)
        assert total == 1
        assert coach_notices[0].type == ScheduleNotificationType.SESSION_SCHEDULED.value
        assert coach_notices[0].request_id == request.id
        assert service.list_notifications(parent)[1] == 1

    def test_start_defaults_to_slot_start(self, service, parent, slot, course, day):
        request = _request(service, parent, slot, course, day, start_time=None)

        assert ensure_utc(request.start_time).hour == 9

    def test_overlapping_pending_request_conflicts(self, service, parent, other_parent, slot, course, day):
        first = _request(service, parent, slot, course, day)

        with pytest.raises(BookingConflictException) as exc:
            _request(service, other_parent, slot, course, day, start_time="10:30")
        assert exc.value.details["pending_request_ids"] == [first.id]

    def test_live_session_conflicts(self, db, service, parent, other_parent, slot, course, day):
        eleven = datetime(day.year, day.month, day.day, 11, tzinfo=timezone.utc)
        make_session(db, course, other_parent, eleven)

        with pytest.raises(BookingConflictException):
            _request(service, parent, slot, course, day, start_time="10:30")

    def test_date_must_fall_on_slot_weekday(self, service, parent, slot, course, day):
        with pytest.raises(ValidationException) as exc:
            _request(service, parent, slot, course, day + timedelta(days=1))
        assert exc.value.code == "DAY_MISMATCH"

    def test_session_must_fit_inside_slot(self, service, parent, slot, course, day):
        with pytest.raises(ValidationException) as exc:
            _request(service, parent, slot, course, day, start_time="11:30")
        assert exc.value.code == "OUTSIDE_TIME_SLOT"

    def test_course_must_belong_to_slot_coach(self, db, service, parent, slot, day):
        other_coach = make_coach(db, "other-coach@example.com")
        physics = make_course(db, other_coach, title="Physics")

        with pytest.raises(ValidationException) as exc:
            _request(service, parent, slot, physics, day)
        assert exc.value.code == "COURSE_COACH_MISMATCH"

    def test_unknown_slot(self, service, parent, course, day):
        with pytest.raises(NotFoundException) as exc:
            service.create_request(parent, time_slot_id="missing", course_id=course.id, day=day)
        assert exc.value.code == "TIME_SLOT_NOT_FOUND"

    def test_parent_cannot_request_for_someone_else(self, service, parent, other_parent, slot, course, day):
        with pytest.raises(ForbiddenException):
            _request(service, parent, slot, course, day, student_id=other_parent.id)


class TestModeration:
    def test_approval_creates_scheduled_session(self, db, service, emails, admin, parent, slot, course, day):
        request = _request(service, parent, slot, course, day, notes="First lesson")

        approved = service.approve_request(admin, request.id, "Welcome aboard")

        assert approved.status == SessionRequestStatus.APPROVED.value
        assert approved.approved_by == admin.id
        assert approved.admin_notes == "Welcome aboard"
        session = approved.session
        assert session.status == SessionStatus.SCHEDULED.value
        assert session.student_id == parent.id
        assert session.description == "First lesson"
        assert session.meeting_url
        assert ensure_utc(session.start_time) == ensure_utc(request.start_time)
        emails.send_session_approved.assert_called_once()

        activity = db.query(AdminActivity).filter(AdminActivity.target_id == request.id).one()
        assert activity.action == "approve_session_request"

        notices, _ = service.list_notifications(parent)
        assert ScheduleNotificationType.SESSION_APPROVED.value in {n.type for n in notices}

    def test_only_pending_requests_can_be_decided(self, service, admin, parent, slot, course, day):
        request = _request(service, parent, slot, course, day)
        service.approve_request(admin, request.id)

        with pytest.raises(ValidationException) as exc:
            service.approve_request(admin, request.id)
        assert exc.value.code == "INVALID_REQUEST_STATUS"
        with pytest.raises(ValidationException):
            service.reject_request(admin, request.id, "Too late")

    def test_approval_rechecks_live_sessions(
        self, db, service, admin, parent, other_parent, slot, course, day
    ):
        request = _request(service, parent, slot, course, day)
        make_session(db, course, other_parent, ensure_utc(request.start_time))

        with pytest.raises(BookingConflictException):
            service.approve_request(admin, request.id)

        db.refresh(request)
        assert request.status == SessionRequestStatus.PENDING_APPROVAL.value
        assert request.session_id is None

    def test_rejection_frees_the_window(
        self, service, emails, admin, parent, other_parent, slot, course, day
    ):
        request = _request(service, parent, slot, course, day)

        rejected = service.reject_request(admin, request.id, "Coach is travelling")

        assert rejected.status == SessionRequestStatus.REJECTED.value
        assert rejected.rejection_reason == "Coach is travelling"
        assert rejected.session_id is None
        emails.send_session_rejected.assert_called_once()

        again = _request(service, other_parent, slot, course, day)
        assert again.status == SessionRequestStatus.PENDING_APPROVAL.value

    def test_rejection_needs_a_reason(self, service, admin, parent, slot, course, day):
        request = _request(service, parent, slot, course, day)

        with pytest.raises(ValidationException) as exc:
            service.reject_request(admin, request.id, "  ")
        assert exc.value.code == "REASON_REQUIRED"

    def test_requester_cancels(self, service, parent, other_parent, coach_user, slot, course, day):
        request = _request(service, parent, slot, course, day)

        with pytest.raises(ForbiddenException):
            service.cancel_request(other_parent, request.id)

        cancelled = service.cancel_request(parent, request.id)

        assert cancelled.status == SessionRequestStatus.CANCELLED.value
        notices, _ = service.list_notifications(coach_user)
        assert notices[0].type == ScheduleNotificationType.SESSION_CANCELLED.value
        assert _request(service, other_parent, slot, course, day).is_pending


class TestVisibility:
    def test_requests_are_scoped_to_the_caller(
        self, service, admin, parent, other_parent, coach_user, slot, course, day
    ):
        request = _request(service, parent, slot, course, day)

        assert service.list_requests(parent)[1] == 1
        assert service.list_requests(other_parent)[1] == 0
        assert service.list_requests(coach_user)[1] == 1
        assert service.list_requests(admin, status="PENDING_APPROVAL")[1] == 1
        assert service.list_requests(admin, status="APPROVED")[1] == 0

        assert service.get_request(coach_user, request.id).id == request.id
        with pytest.raises(ForbiddenException):
            service.get_request(other_parent, request.id)

    def test_notifications_are_marked_read(self, service, parent, other_parent, slot, course, day):
        _request(service, parent, slot, course, day)
        notices, _ = service.list_notifications(parent, is_read=False)

        with pytest.raises(ForbiddenException):
            service.mark_notification_read(other_parent, notices[0].id)
        assert service.mark_notification_read(parent, notices[0].id).is_read is True
        assert service.list_notifications(parent, is_read=False)[1] == 0

    def test_mark_all_read(self, service, parent, coach_user, slot, course, day):
        _request(service, parent, slot, course, day)
        _request(service, parent, slot, course, day, start_time="11:00")

        assert service.mark_all_notifications_read(coach_user) == {"updated": 2}
        assert service.list_notifications(coach_user, is_read=True)[1] == 2
        assert service.list_notifications(parent, is_read=False)[1] == 2

    def test_unknown_notification(self, service, parent):
        with pytest.raises(NotFoundException) as exc:
            service.mark_notification_read(parent, "missing")
        assert exc.value.code == "NOTIFICATION_NOT_FOUND"
