import unittest.mock

import pytest

from coachhub.core.enums import AvailabilityReviewStatus, ScheduleNotificationType
from coachhub.core.exceptions import NotFoundException, ValidationException
from coachhub.models.session_request import ScheduleNotification
from coachhub.services.availability_service import AvailabilityService


@pytest.fixture
def emails():
    return unittest.mock.MagicMock()


@pytest.fixture
def service(db, emails):
    return AvailabilityService(db, notification_service=emails)


@pytest.fixture
def monday(service, coach):
    days = service.set_weekly_availability(
        coach, [{"day_of_week": 0, "slots": [{"start_time": "09:00", "end_time": "12:00"}]}]
    )
    return days[0]


def test_saved_days_wait_for_review_and_notify_admins(db, service, admin, coach):
    days = service.set_weekly_availability(
        coach, [{"day_of_week": 2, "slots": [{"start_time": "14:00", "end_time": "16:00"}]}]
    )

    assert days[0].review_status == AvailabilityReviewStatus.PENDING.value
    assert days[0].is_active is True
    notice = db.query(ScheduleNotification).filter(ScheduleNotification.user_id == admin.id).one()
    assert notice.type == ScheduleNotificationType.AVAILABILITY_UPDATED.value
    assert notice.request_id is None


def test_review_queue_filters_by_status(service, admin, monday):
    pending, total = service.list_for_review(review_status="PENDING")
    assert total == 1
    assert pending[0].id == monday.id

    service.approve_availability(admin, monday.id)

    assert service.list_for_review(review_status="PENDING")[1] == 0
    assert service.list_for_review(review_status="APPROVED")[1] == 1


def test_rejection_deactivates_the_day(db, service, emails, admin, coach_user, monday):
    rejected = service.reject_availability(admin, monday.id, "Slots are too short", "See guidelines")

    assert rejected.review_status == AvailabilityReviewStatus.REJECTED.value
    assert rejected.is_active is False
    assert rejected.rejection_reason == "Slots are too short"
    assert rejected.reviewed_by == admin.id
    emails.send_availability_rejected.assert_called_once_with(
        coach_user, "Monday", "Slots are too short", "See guidelines"
    )
    coach_notice = db.query(ScheduleNotification).filter(ScheduleNotification.user_id == coach_user.id).one()
    assert "Slots are too short" in coach_notice.message

    approved = service.approve_availability(admin, monday.id, "Fixed")

    assert approved.review_status == AvailabilityReviewStatus.APPROVED.value
    assert approved.is_active is True
    assert approved.rejection_reason is None
    emails.send_availability_approved.assert_called_once_with(coach_user, "Monday", "Fixed")


def test_rejection_needs_a_reason(service, admin, monday):
    with pytest.raises(ValidationException) as exc:
        service.reject_availability(admin, monday.id, "")
    assert exc.value.code == "REASON_REQUIRED"


def test_unknown_availability(service, admin):
    with pytest.raises(NotFoundException) as exc:
        service.approve_availability(admin, "missing")
    assert exc.value.code == "AVAILABILITY_NOT_FOUND"
