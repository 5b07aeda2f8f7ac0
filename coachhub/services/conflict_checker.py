# coachhub/services/conflict_checker.py
"""
Conflict Checker Service for the CoachHub platform.

Handles booking conflict detection for coaching sessions:
- Half-open interval overlap between proposed and stored sessions
- Window validation before any write
- Batch checks for bulk booking, including overlaps inside the batch

Only live sessions (SCHEDULED, IN_PROGRESS) occupy a coach's calendar.
Sessions that merely touch ([14:00, 15:00) and [15:00, 16:00)) do not
conflict.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.exceptions import BookingConflictException, ValidationException
from ..core.timezone_utils import ensure_utc
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from .base import BaseService

logger = logging.getLogger(__name__)

Window = Tuple[datetime, datetime]


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """True when [s1, e1) and [s2, e2) share at least one instant."""
    return s1 < e2 and s2 < e1


class ConflictChecker(BaseService):
    """
    Service for checking session conflicts and time validation.

    Read-only: nothing here writes to the database.
    """

    def __init__(self, db: Session, repository: Optional[SessionRepository] = None):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_session_repository(db)

    @staticmethod
    def validate_window(start_time: datetime, end_time: datetime) -> Window:
        """
        Normalize a proposed window to UTC and require start < end.

        Raises:
            ValidationException: If the window is empty or inverted
        """
        start = ensure_utc(start_time)
        end = ensure_utc(end_time)
        if start >= end:
            raise ValidationException(
                "Session start time must be before end time",
                code="INVALID_TIME_WINDOW",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )
        return start, end

    @BaseService.measure_operation("check_session_conflicts")
    def check_session_conflicts(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List live sessions for the coach overlapping the proposed window.

        Args:
            coach_id: Coach whose calendar is checked
            start_time: Proposed start
            end_time: Proposed end
            exclude_session_id: Session to ignore (the one being rescheduled)

        Returns:
            List of conflicts with session details, empty when the window is free
        """
        start, end = self.validate_window(start_time, end_time)
        sessions = self.repository.get_conflicting_sessions(coach_id, start, end, exclude_session_id)

        conflicts = [
            session.to_conflict_dict()
            for session in sessions
            if intervals_overlap(start, end, ensure_utc(session.start_time), ensure_utc(session.end_time))
        ]

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} session conflicts for coach {coach_id} "
                f"between {start.isoformat()}-{end.isoformat()}"
            )

        return conflicts

    def has_conflict(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> bool:
        return bool(self.check_session_conflicts(coach_id, start_time, end_time, exclude_session_id))

    def assert_no_conflict(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> None:
        """
        Raises:
            BookingConflictException: If any live session overlaps the window
        """
        conflicts = self.check_session_conflicts(coach_id, start_time, end_time, exclude_session_id)
        if conflicts:
            prometheus_metrics.inc_booking_conflict("check")
            raise BookingConflictException(
                "Scheduling conflict detected: the coach already has a session at this time",
                details={"conflicts": conflicts},
            )

    @BaseService.measure_operation("check_batch")
    def check_batch(self, coach_id: str, windows: Sequence[Window]) -> List[Dict[str, Any]]:
        """
        Check several proposed windows at once.

        Reports conflicts against stored sessions and between the proposed
        windows themselves. Each entry carries the ``index`` of the window.
        """
        normalized = [self.validate_window(start, end) for start, end in windows]
        problems: List[Dict[str, Any]] = []

        for index, (start, end) in enumerate(normalized):
            stored = self.check_session_conflicts(coach_id, start, end)
            if stored:
                problems.append({"index": index, "type": "existing_session", "conflicts": stored})

            for other_index in range(index):
                other_start, other_end = normalized[other_index]
                if intervals_overlap(start, end, other_start, other_end):
                    problems.append(
                        {"index": index, "type": "batch_overlap", "overlaps_index": other_index}
                    )

        return problems
