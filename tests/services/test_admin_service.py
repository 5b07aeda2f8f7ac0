import pytest

from coachhub.core.enums import CoachStatus, CourseStatus
from coachhub.core.exceptions import NotFoundException, ValidationException
from coachhub.models.admin_activity import AdminActivity
from coachhub.services.admin_service import AdminService

from tests.conftest import make_coach, make_course


@pytest.fixture
def service(db):
    return AdminService(db)


@pytest.fixture
def pending_coach(db):
    return make_coach(db, "pending.coach@example.com", CoachStatus.PENDING)


class TestCoachModeration:
    def test_approve_pending_coach(self, db, service, admin, pending_coach):
        coach = service.approve_coach(admin, pending_coach.id, "Looks good")

        assert coach.status == CoachStatus.APPROVED.value
        assert coach.approved_by == admin.id
        activity = db.query(AdminActivity).filter_by(target_id=coach.id).one()
        assert activity.action == "approve_coach"

    def test_approve_twice_rejected(self, service, admin, pending_coach):
        service.approve_coach(admin, pending_coach.id)
        with pytest.raises(ValidationException) as exc:
            service.approve_coach(admin, pending_coach.id)
        assert exc.value.details["current_status"] == "APPROVED"

    def test_reject_records_reason(self, service, admin, pending_coach):
        coach = service.reject_coach(admin, pending_coach.id, "Missing certificates")

        assert coach.status == CoachStatus.REJECTED.value
        assert coach.rejection_reason == "Missing certificates"

    def test_suspend_and_reactivate(self, service, admin, coach):
        suspended = service.suspend_coach(admin, coach.id, reason="Complaints")
        assert suspended.status == CoachStatus.SUSPENDED.value
        assert suspended.user.is_active is False

        with pytest.raises(ValidationException):
            service.suspend_coach(admin, coach.id)

        reactivated = service.reactivate_coach(admin, coach.id)
        assert reactivated.status == CoachStatus.APPROVED.value
        assert reactivated.user.is_active is True

    def test_unknown_coach(self, service, admin):
        with pytest.raises(NotFoundException):
            service.approve_coach(admin, "01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_list_filters_by_status(self, service, coach, pending_coach):
        coaches, total = service.list_coaches(status="PENDING")
        assert total == 1
        assert coaches[0].id == pending_coach.id


class TestCourseModeration:
    def test_approve_activates_course(self, db, service, admin, coach):
        course = make_course(db, coach, status=CourseStatus.PENDING, is_active=False)

        approved = service.approve_course(admin, course.id)

        assert approved.status == CourseStatus.APPROVED.value
        assert approved.is_active is True
        with pytest.raises(ValidationException):
            service.approve_course(admin, course.id)

    def test_reject_deactivates_course(self, service, admin, course):
        rejected = service.reject_course(admin, course.id, "Too vague")

        assert rejected.status == CourseStatus.REJECTED.value
        assert rejected.is_active is False


def test_dashboard_counts(service, parent, coach, pending_coach, course):
    stats = service.dashboard_stats()

    assert stats["coaches"]["total"] == 2
    assert stats["coaches"]["pending"] == 1
    assert stats["courses"]["by_status"]["APPROVED"] == 1
    assert stats["users"]["by_role"]["PARENT"] == 1
