from datetime import date, timedelta

import pytest

from coachhub.core.enums import EnrollmentStatus, SessionStatus
from coachhub.core.exceptions import NotFoundException, ValidationException
from coachhub.services.child_service import ChildService, age_on
from coachhub.services.credit_ledger_service import CreditLedgerService

from tests.conftest import future, make_child, make_session


@pytest.fixture
def service(db):
    return ChildService(db)


def _child_data(**overrides):
    data = {"first_name": "Jamie", "last_name": "Parent", "date_of_birth": date(2016, 5, 4)}
    data.update(overrides)
    return data


def test_age_on_counts_whole_years():
    assert age_on(date(2010, 6, 15), date(2020, 6, 14)) == 9
    assert age_on(date(2010, 6, 15), date(2020, 6, 15)) == 10


def test_add_and_list(service, parent):
    child = service.add_child(parent, _child_data(interests=["chess"]))

    assert child.parent_id == parent.id
    assert [c.id for c in service.list_children(parent)] == [child.id]


def test_duplicate_child_rejected(service, parent):
    service.add_child(parent, _child_data())
    with pytest.raises(ValidationException) as exc:
        service.add_child(parent, _child_data())
    assert exc.value.code == "DUPLICATE_CHILD"


@pytest.mark.parametrize(
    "date_of_birth,code",
    [
        (date.today() + timedelta(days=1), "INVALID_DATE_OF_BIRTH"),
        (date(date.today().year - 19, 1, 1), "CHILD_TOO_OLD"),
    ],
)
def test_birth_date_rules(service, parent, date_of_birth, code):
    with pytest.raises(ValidationException) as exc:
        service.add_child(parent, _child_data(date_of_birth=date_of_birth))
    assert exc.value.code == code


def test_other_parents_child_is_invisible(db, service, parent, other_parent):
    child = make_child(db, other_parent)
    with pytest.raises(NotFoundException):
        service.get_child(parent, child.id)


def test_update_rechecks_duplicates(db, service, parent):
    make_child(db, parent, "Robin")
    sam = make_child(db, parent, "Sam")

    with pytest.raises(ValidationException):
        service.update_child(parent, sam.id, {"first_name": "Robin"})

    updated = service.update_child(parent, sam.id, {"school_name": "Hill School"})
    assert updated.school_name == "Hill School"


def test_cannot_remove_enrolled_child(db, service, parent, course, child):
    CreditLedgerService(db).apply_transaction(parent.id, "PURCHASE", "20", "Top up")
    CreditLedgerService(db).enroll_with_credits(parent.id, course.id, [child.id])

    with pytest.raises(ValidationException) as exc:
        service.remove_child(parent, child.id)
    assert exc.value.code == "CHILD_HAS_ACTIVE_ENROLLMENTS"


def test_remove_child(db, service, parent):
    child = make_child(db, parent, "Sam")
    service.remove_child(parent, child.id)
    assert service.list_children(parent) == []


def test_progress_summarises_enrolled_courses(db, service, parent, course, child):
    ledger = CreditLedgerService(db)
    ledger.apply_transaction(parent.id, "PURCHASE", "20", "Top up")
    ledger.enroll_with_credits(parent.id, course.id, [child.id])
    make_session(db, course, parent, future(hours=-2), status=SessionStatus.COMPLETED)
    make_session(db, course, parent, future(hours=24))

    progress = service.get_progress(parent, child.id, "week")

    assert progress["enrollments"]["total"] == 1
    assert progress["enrollments"]["by_status"][EnrollmentStatus.ACTIVE.value] == 1
    assert progress["total_sessions"] == 2
    assert progress["completed_sessions"] == 1
    assert progress["completion_rate"] == 50.0
    assert progress["total_hours"] == 1.0


def test_progress_rejects_unknown_period(service, parent, child):
    with pytest.raises(ValidationException):
        service.get_progress(parent, child.id, "decade")
