from datetime import datetime, timedelta, timezone

import pytest

from coachhub.core.enums import SessionStatus
from coachhub.core.exceptions import BookingConflictException, ValidationException
from coachhub.services.conflict_checker import ConflictChecker, intervals_overlap

from tests.conftest import future, make_session

T0 = datetime(2030, 5, 6, 14, 0, tzinfo=timezone.utc)


class TestIntervalsOverlap:
    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(hours=1), T0 + timedelta(hours=2))
        assert not intervals_overlap(T0 + timedelta(hours=1), T0 + timedelta(hours=2), T0, T0 + timedelta(hours=1))

    def test_partial_overlap(self):
        assert intervals_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(minutes=30), T0 + timedelta(hours=2))

    def test_containment(self):
        assert intervals_overlap(T0, T0 + timedelta(hours=3), T0 + timedelta(hours=1), T0 + timedelta(hours=2))

    def test_identical(self):
        assert intervals_overlap(T0, T0 + timedelta(hours=1), T0, T0 + timedelta(hours=1))


class TestValidateWindow:
    def test_naive_datetimes_are_treated_as_utc(self):
        start, end = ConflictChecker.validate_window(datetime(2030, 1, 1, 10), datetime(2030, 1, 1, 11))
        assert start.tzinfo is not None
        assert end - start == timedelta(hours=1)

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationException) as exc:
            ConflictChecker.validate_window(T0, T0)
        assert exc.value.code == "INVALID_TIME_WINDOW"


class TestConflictChecker:
    def test_overlapping_live_session_is_reported(self, db, course, parent):
        start = future()
        existing = make_session(db, course, parent, start)
        checker = ConflictChecker(db)

        conflicts = checker.check_session_conflicts(
            course.coach_id, start + timedelta(minutes=30), start + timedelta(minutes=90)
        )

        assert [c["session_id"] for c in conflicts] == [existing.id]

    def test_adjacent_session_is_free(self, db, course, parent):
        start = future()
        make_session(db, course, parent, start)
        checker = ConflictChecker(db)

        assert not checker.has_conflict(course.coach_id, start + timedelta(hours=1), start + timedelta(hours=2))
        assert not checker.has_conflict(course.coach_id, start - timedelta(hours=1), start)

    @pytest.mark.parametrize(
        "status", [SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW]
    )
    def test_terminal_sessions_do_not_block(self, db, course, parent, status):
        start = future()
        make_session(db, course, parent, start, status=status)

        assert not ConflictChecker(db).has_conflict(course.coach_id, start, start + timedelta(hours=1))

    def test_in_progress_session_blocks(self, db, course, parent):
        start = future()
        make_session(db, course, parent, start, status=SessionStatus.IN_PROGRESS)

        assert ConflictChecker(db).has_conflict(course.coach_id, start, start + timedelta(minutes=15))

    def test_excluded_session_is_ignored(self, db, course, parent):
        start = future()
        existing = make_session(db, course, parent, start)
        checker = ConflictChecker(db)

        assert not checker.has_conflict(
            course.coach_id, start + timedelta(minutes=15), start + timedelta(minutes=75), existing.id
        )

    def test_other_coach_is_independent(self, db, course, parent):
        start = future()
        make_session(db, course, parent, start)

        assert not ConflictChecker(db).has_conflict("01HZZZZZZZZZZZZZZZZZZZZZZZ", start, start + timedelta(hours=1))

    def test_assert_no_conflict_raises_with_details(self, db, course, parent):
        start = future()
        existing = make_session(db, course, parent, start)

        with pytest.raises(BookingConflictException) as exc:
            ConflictChecker(db).assert_no_conflict(course.coach_id, start, start + timedelta(hours=1))

        assert exc.value.status_code == 409
        assert exc.value.details["conflicts"][0]["session_id"] == existing.id

    def test_check_batch_reports_internal_overlaps(self, db, course):
        start = future()
        problems = ConflictChecker(db).check_batch(
            course.coach_id,
            [
                (start, start + timedelta(hours=1)),
                (start + timedelta(hours=1), start + timedelta(hours=2)),
                (start + timedelta(minutes=30), start + timedelta(minutes=90)),
            ],
        )

        assert problems == [
            {"index": 2, "type": "batch_overlap", "overlaps_index": 0},
            {"index": 2, "type": "batch_overlap", "overlaps_index": 1},
        ]
