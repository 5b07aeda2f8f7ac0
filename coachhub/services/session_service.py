# coachhub/services/session_service.py
"""
Session Service for the CoachHub platform.

Owns the coaching session lifecycle:

    SCHEDULED -> IN_PROGRESS -> COMPLETED
    SCHEDULED | IN_PROGRESS -> CANCELLED
    SCHEDULED -> NO_SHOW

COMPLETED, CANCELLED and NO_SHOW are terminal. Booking and rescheduling
lock the coach row before the conflict check so that two writers for the
same coach are serialized; on PostgreSQL the exclusion constraint on
``sessions`` is the final guard and its violation surfaces as a booking
conflict.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
import secrets
import string
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    DEFAULT_SLOT_DURATION,
    MAX_BULK_SESSIONS,
    MAX_SESSION_DURATION,
    MEETING_URL_BASE,
    MIN_SESSION_DURATION,
)
from ..core.enums import CourseStatus, SessionStatus, SessionType, UserRole
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidSessionTransitionException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, local_day_bounds_utc, local_to_utc, parse_hhmm, utc_now
from ..models.course import Course
from ..models.session import NO_OVERLAP_CONSTRAINT, CoachingSession
from ..models.session_request import SessionRequest
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService
from .conflict_checker import ConflictChecker, intervals_overlap
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing session for the coach"

STATUS_COLORS = {
    SessionStatus.SCHEDULED.value: "#3B82F6",
    SessionStatus.IN_PROGRESS.value: "#10B981",
    SessionStatus.COMPLETED.value: "#6B7280",
    SessionStatus.CANCELLED.value: "#EF4444",
    SessionStatus.NO_SHOW.value: "#F59E0B",
}
DEFAULT_STATUS_COLOR = "#6B7280"


def generate_meeting_url() -> str:
    """Meeting link in the ``abc-def-ghi`` room format."""
    groups = ["".join(secrets.choice(string.ascii_lowercase) for _ in range(3)) for _ in range(3)]
    return f"{MEETING_URL_BASE}/{'-'.join(groups)}"


@dataclass
class SessionWindow:
    start_time: datetime
    end_time: datetime
    session_type: str = SessionType.ONE_ON_ONE.value


class SessionService(BaseService):
    """
    Service layer for coaching session operations.

    Routes pass the authenticated ``User``; every permission decision is
    made here.
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_session_repository(db)
        self.course_repository = RepositoryFactory.create_course_repository(db)
        self.coach_repository = RepositoryFactory.create_coach_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.repository)
        self.notification_service = notification_service or NotificationService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _duration_minutes(start: datetime, end: datetime) -> int:
        minutes = int((end - start).total_seconds() // 60)
        if minutes < MIN_SESSION_DURATION or minutes > MAX_SESSION_DURATION:
            raise ValidationException(
                f"Session duration must be between {MIN_SESSION_DURATION} and {MAX_SESSION_DURATION} minutes",
                code="INVALID_DURATION",
                details={"duration": minutes},
            )
        return minutes

    def get_bookable_course(self, course_id: str) -> Course:
        course = self.course_repository.get_by_id(course_id)
        if not course or not course.is_active or course.status != CourseStatus.APPROVED.value:
            raise NotFoundException("Course not found or inactive", code="COURSE_NOT_FOUND")
        if course.coach is None or not course.coach.is_approved or course.coach.is_frozen:
            raise ValidationException(
                "This coach is not accepting bookings", code="COACH_NOT_AVAILABLE"
            )
        return course

    def resolve_student(self, actor: User, student_id: Optional[str]) -> User:
        if actor.role == UserRole.PARENT.value:
            if student_id and student_id != actor.id:
                raise ForbiddenException("Parents can only book sessions for themselves")
            return actor

        if not student_id:
            raise ValidationException("student_id is required", code="STUDENT_REQUIRED")
        student = self.user_repository.get_by_id(student_id, load_relationships=False)
        if not student or student.role != UserRole.PARENT.value:
            raise NotFoundException("Student not found", code="STUDENT_NOT_FOUND")
        return student

    def _is_session_coach(self, user: User, session: CoachingSession) -> bool:
        return user.is_coach and session.coach is not None and session.coach.user_id == user.id

    def _require_session(self, session_id: str) -> CoachingSession:
        session = self.repository.get_by_id(session_id)
        if not session:
            raise NotFoundException("Session not found", code="SESSION_NOT_FOUND")
        return session

    def _require_participant(self, user: User, session: CoachingSession) -> None:
        if user.is_admin or self._is_session_coach(user, session) or session.student_id == user.id:
            return
        raise ForbiddenException("You do not have access to this session")

    def _require_coach_or_admin(self, user: User, session: CoachingSession) -> None:
        if user.is_admin or self._is_session_coach(user, session):
            return
        raise ForbiddenException("Only the session's coach can perform this action")

    @staticmethod
    def _transition_error(
        session: CoachingSession, target: SessionStatus, message: str
    ) -> InvalidSessionTransitionException:
        return InvalidSessionTransitionException(
            message, current_status=session.status, target_status=target.value
        )

    def _conflict_from_integrity_error(self, exc: Exception) -> BookingConflictException:
        """Map a database-level overlap violation onto the domain conflict."""
        orig = getattr(exc, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint_name = getattr(diag, "constraint_name", "") or ""
        if not constraint_name and NO_OVERLAP_CONSTRAINT in str(orig or exc):
            constraint_name = NO_OVERLAP_CONSTRAINT

        prometheus_metrics.inc_booking_conflict("constraint")
        self.logger.warning(f"Booking rejected by database constraint {constraint_name or 'unknown'}")
        return BookingConflictException(
            GENERIC_CONFLICT_MESSAGE, details={"constraint": constraint_name or None}
        )

    def _flush_guarded(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise self._conflict_from_integrity_error(exc) from exc

    def _create_guarded(self, **fields: Any) -> CoachingSession:
        try:
            return self.repository.create(**fields)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise self._conflict_from_integrity_error(exc.__cause__) from exc
            raise

    def _lock_coach(self, coach_id: str) -> None:
        if self.coach_repository.lock_for_booking(coach_id) is None:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    @BaseService.measure_operation("book_session")
    def book_session(
        self,
        actor: User,
        course_id: str,
        start_time: datetime,
        end_time: datetime,
        session_type: str = SessionType.ONE_ON_ONE.value,
        notes: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> CoachingSession:
        """
        Book a session for a student in an approved, active course.

        Args:
            actor: Authenticated user; a parent books for themselves, an
                admin must name ``student_id``
            course_id: Course being booked
            start_time: Session start
            end_time: Session end (exclusive)
            session_type: ONE_ON_ONE, GROUP or ASSESSMENT
            notes: Optional description shown to the coach
            student_id: Student account, required when an admin books

        Raises:
            ValidationException: Bad window or duration
            NotFoundException: Course or student missing
            BookingConflictException: The coach is busy in that window
        """
        start, end = self.conflict_checker.validate_window(start_time, end_time)
        duration = self._duration_minutes(start, end)
        if start <= utc_now():
            raise ValidationException("Sessions must be booked in the future", code="START_IN_PAST")

        course = self.get_bookable_course(course_id)
        student = self.resolve_student(actor, student_id)
        session_type = SessionType(session_type).value

        with self.transaction():
            self._lock_coach(course.coach_id)
            self.conflict_checker.assert_no_conflict(course.coach_id, start, end)
            session = self._create_guarded(
                course_id=course.id,
                coach_id=course.coach_id,
                student_id=student.id,
                title=f"{course.title} - {session_type}",
                description=notes or f"Session for {course.title}",
                session_type=session_type,
                start_time=start,
                end_time=end,
                duration=duration,
                status=SessionStatus.SCHEDULED.value,
            )

        prometheus_metrics.inc_sessions_booked()
        self.log_operation("session_booked", session_id=session.id, coach_id=course.coach_id, student_id=student.id)

        session = self._require_session(session.id)
        self.notification_service.send_session_booked(session)
        return session

    @BaseService.measure_operation("bulk_book_sessions")
    def bulk_book_sessions(
        self,
        actor: User,
        course_id: str,
        windows: List[SessionWindow],
        student_id: Optional[str] = None,
    ) -> List[CoachingSession]:
        """
        Book several sessions at once. Either every session is created or none.

        Raises:
            BookingConflictException: Any window overlaps a live session or
                another window in the batch; ``details.conflicts`` lists them
        """
        if not windows:
            raise ValidationException("At least one session is required", code="SESSIONS_REQUIRED")
        if len(windows) > MAX_BULK_SESSIONS:
            raise ValidationException(
                f"At most {MAX_BULK_SESSIONS} sessions can be booked at once", code="TOO_MANY_SESSIONS"
            )

        normalized: List[Tuple[datetime, datetime, str]] = []
        now = utc_now()
        for window in windows:
            start, end = self.conflict_checker.validate_window(window.start_time, window.end_time)
            self._duration_minutes(start, end)
            if start <= now:
                raise ValidationException("Sessions must be booked in the future", code="START_IN_PAST")
            normalized.append((start, end, SessionType(window.session_type).value))

        course = self.get_bookable_course(course_id)
        student = self.resolve_student(actor, student_id)

        with self.transaction():
            self._lock_coach(course.coach_id)
            problems = self.conflict_checker.check_batch(
                course.coach_id, [(start, end) for start, end, _ in normalized]
            )
            if problems:
                prometheus_metrics.inc_booking_conflict("check")
                raise BookingConflictException(
                    "Scheduling conflicts detected", details={"conflicts": problems}
                )
            created = [
                self._create_guarded(
                    course_id=course.id,
                    coach_id=course.coach_id,
                    student_id=student.id,
                    title=f"{course.title} - {session_type}",
                    description=f"Bulk session for {course.title}",
                    session_type=session_type,
                    start_time=start,
                    end_time=end,
                    duration=self._duration_minutes(start, end),
                    status=SessionStatus.SCHEDULED.value,
                )
                for start, end, session_type in normalized
            ]

        prometheus_metrics.inc_sessions_booked(len(created))
        self.logger.info(
            f"Bulk booked {len(created)} sessions for course {course.id} and student {student.id}"
        )
        return created

    @BaseService.measure_operation("create_session")
    def create_session(self, coach_user: User, data: Dict[str, Any]) -> CoachingSession:
        """Coach schedules a session in one of their own courses."""
        coach = self.coach_repository.get_by_user_id(coach_user.id)
        if coach is None:
            raise ForbiddenException("Coach profile required")

        course = self.course_repository.get_by_id(data["course_id"])
        if not course or course.coach_id != coach.id:
            raise NotFoundException("Course not found or access denied", code="COURSE_NOT_FOUND")

        student = self.user_repository.get_by_id(data["student_id"], load_relationships=False)
        if not student or student.role != UserRole.PARENT.value:
            raise NotFoundException("Student not found", code="STUDENT_NOT_FOUND")

        start, end = self.conflict_checker.validate_window(data["start_time"], data["end_time"])
        duration = self._duration_minutes(start, end)

        with self.transaction():
            self._lock_coach(coach.id)
            self.conflict_checker.assert_no_conflict(coach.id, start, end)
            session = self._create_guarded(
                course_id=course.id,
                coach_id=coach.id,
                student_id=student.id,
                title=data.get("title") or course.title,
                description=data.get("description"),
                session_type=SessionType(data.get("session_type") or SessionType.ONE_ON_ONE.value).value,
                start_time=start,
                end_time=end,
                duration=duration,
                meeting_url=data.get("meeting_url"),
                status=SessionStatus.SCHEDULED.value,
            )

        prometheus_metrics.inc_sessions_booked()
        self.logger.info(f"Session created: {session.title} by coach {coach.id} for student {student.id}")
        return self._require_session(session.id)

    def create_from_request(self, request: SessionRequest) -> CoachingSession:
        """
        Materialize an approved booking request as a SCHEDULED session.

        Runs inside the caller's transaction: locks the coach, re-checks the
        window against live sessions and flushes without committing.
        """
        start, end = ensure_utc(request.start_time), ensure_utc(request.end_time)
        self._lock_coach(request.coach_id)
        self.conflict_checker.assert_no_conflict(request.coach_id, start, end)
        session = self._create_guarded(
            course_id=request.course_id,
            coach_id=request.coach_id,
            student_id=request.student_id,
            title=request.title,
            description=request.notes,
            session_type=SessionType.ONE_ON_ONE.value,
            start_time=start,
            end_time=end,
            duration=request.duration,
            meeting_url=generate_meeting_url(),
            status=SessionStatus.SCHEDULED.value,
        )
        prometheus_metrics.inc_sessions_booked()
        return session

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_session(self, user: User, session_id: str) -> CoachingSession:
        session = self._require_session(session_id)
        self._require_participant(user, session)
        return session

    def _scope_filters(self, user: User) -> Dict[str, Optional[str]]:
        if user.is_admin:
            return {}
        if user.is_coach:
            coach = self.coach_repository.get_by_user_id(user.id)
            if coach is None:
                raise ForbiddenException("Coach profile required")
            return {"coach_id": coach.id}
        return {"student_id": user.id}

    def list_sessions(
        self,
        user: User,
        *,
        status: Optional[str] = None,
        course_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[CoachingSession], int]:
        """Sessions visible to ``user``: own as coach or student, all for admins."""
        if status:
            status = SessionStatus(status).value
        return self.repository.list_sessions(
            **self._scope_filters(user),
            course_id=course_id,
            status=status,
            start_date=ensure_utc(start_date) if start_date else None,
            end_date=ensure_utc(end_date) if end_date else None,
            page=page,
            limit=limit,
        )

    def upcoming_sessions(self, user: User, limit: int = 10) -> List[CoachingSession]:
        return self.repository.get_upcoming(utc_now(), limit=limit, **self._scope_filters(user))

    def _calendar_entry(self, session: CoachingSession) -> Dict[str, Any]:
        color = STATUS_COLORS.get(session.status, DEFAULT_STATUS_COLOR)
        coach_user = session.coach.user if session.coach is not None else None
        return {
            "id": session.id,
            "title": session.title,
            "start": ensure_utc(session.start_time),
            "end": ensure_utc(session.end_time),
            "status": session.status,
            "course_title": session.course.title if session.course else None,
            "course_category": session.course.category if session.course else None,
            "coach_name": coach_user.full_name if coach_user else None,
            "student_name": session.student.full_name if session.student else None,
            "background_color": color,
            "border_color": color,
        }

    def _calendar_range(self, start_date: datetime, end_date: datetime) -> Tuple[datetime, datetime]:
        range_start, range_end = ensure_utc(start_date), ensure_utc(end_date)
        if range_start >= range_end:
            raise ValidationException("start_date must be before end_date", code="INVALID_DATE_RANGE")
        return range_start, range_end

    def calendar(self, user: User, start_date: datetime, end_date: datetime) -> List[Dict[str, Any]]:
        """Calendar entries for the caller within [start_date, end_date)."""
        range_start, range_end = self._calendar_range(start_date, end_date)
        sessions = self.repository.get_in_range(
            range_start=range_start, range_end=range_end, **self._scope_filters(user)
        )
        return [self._calendar_entry(session) for session in sessions]

    def user_calendar(
        self,
        actor: User,
        user_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Another user's calendar. Only the user themselves or an admin may read it."""
        if actor.id != user_id and not actor.is_admin:
            raise ForbiddenException("You can only view your own calendar")

        target = self.user_repository.get_by_id(user_id, load_relationships=False)
        if not target:
            raise NotFoundException("User not found", code="USER_NOT_FOUND")

        now = utc_now()
        range_start, range_end = self._calendar_range(
            start_date or now - timedelta(days=30), end_date or now + timedelta(days=90)
        )
        sessions = self.repository.get_in_range(
            range_start=range_start, range_end=range_end, **self._scope_filters(target)
        )
        return [self._calendar_entry(session) for session in sessions]

    def check_conflicts(
        self,
        coach_id: str,
        start_time: datetime,
        end_time: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        conflicts = self.conflict_checker.check_session_conflicts(
            coach_id, start_time, end_time, exclude_session_id
        )
        return {"has_conflicts": bool(conflicts), "conflicts": conflicts}

    @BaseService.measure_operation("available_slots")
    def available_slots(
        self, coach_id: str, day: date, duration: int = DEFAULT_SLOT_DURATION
    ) -> List[Dict[str, Any]]:
        """
        Free, bookable slots of ``duration`` minutes on ``day``.

        The coach's weekly windows are read in the coach's own timezone,
        cut into consecutive slots and filtered against live sessions and
        the current time.
        """
        if duration < MIN_SESSION_DURATION or duration > MAX_SESSION_DURATION:
            raise ValidationException("Invalid slot duration", code="INVALID_DURATION")

        coach = self.coach_repository.get_by_id(coach_id)
        if not coach:
            raise NotFoundException("Coach not found", code="COACH_NOT_FOUND")

        tz_name = coach.user.timezone if coach.user is not None else None
        availability = self.availability_repository.get_for_day(coach_id, day.weekday())
        if availability is None or not availability.is_active:
            return []

        day_start, day_end = local_day_bounds_utc(day, tz_name)
        busy = [
            (ensure_utc(s.start_time), ensure_utc(s.end_time))
            for s in self.repository.get_live_sessions_in_range(coach_id, day_start, day_end)
        ]

        now = utc_now()
        step = timedelta(minutes=duration)
        slots: List[Dict[str, Any]] = []
        for time_slot in availability.time_slots:
            if not time_slot.is_available:
                continue
            window_start = local_to_utc(day, parse_hhmm(time_slot.start_time), tz_name)
            window_end = local_to_utc(day, parse_hhmm(time_slot.end_time), tz_name)
            cursor = window_start
            while cursor + step <= window_end:
                slot_end = cursor + step
                if cursor > now and not any(intervals_overlap(cursor, slot_end, s, e) for s, e in busy):
                    slots.append({"start_time": cursor, "end_time": slot_end, "duration": duration})
                cursor = slot_end
        return slots

    # ------------------------------------------------------------------
    # Updates and transitions
    # ------------------------------------------------------------------

    @BaseService.measure_operation("update_session")
    def update_session(self, user: User, session_id: str, data: Dict[str, Any]) -> CoachingSession:
        """
        Coach edits title, description, meeting URL or notes. A time change
        re-runs the conflict check and is only allowed while SCHEDULED.
        """
        session = self._require_session(session_id)
        self._require_coach_or_admin(user, session)
        if session.is_terminal:
            raise ValidationException(
                "Cannot update a completed, cancelled or no-show session", code="SESSION_CLOSED"
            )

        new_start = data.get("start_time")
        new_end = data.get("end_time")

        with self.transaction():
            if new_start is not None or new_end is not None:
                if session.status != SessionStatus.SCHEDULED.value:
                    raise ValidationException(
                        "Only scheduled sessions can change time", code="SESSION_NOT_SCHEDULED"
                    )
                start, end = self.conflict_checker.validate_window(
                    new_start or session.start_time, new_end or session.end_time
                )
                self._lock_coach(session.coach_id)
                self.conflict_checker.assert_no_conflict(session.coach_id, start, end, session.id)
                session.start_time = start
                session.end_time = end
                session.duration = self._duration_minutes(start, end)

            for field in ("title", "description", "meeting_url", "notes"):
                if data.get(field) is not None:
                    setattr(session, field, data[field])
            self._flush_guarded()

        self.logger.info(f"Session updated: {session.id} by user {user.id}")
        return session

    @BaseService.measure_operation("start_session")
    def start_session(self, user: User, session_id: str, now: Optional[datetime] = None) -> CoachingSession:
        """
        SCHEDULED -> IN_PROGRESS, only within the start window around start_time.

        Raises:
            InvalidSessionTransitionException: Wrong status or outside the window
        """
        session = self._require_session(session_id)
        self._require_coach_or_admin(user, session)
        if session.status != SessionStatus.SCHEDULED.value:
            raise self._transition_error(
                session, SessionStatus.IN_PROGRESS, f"Cannot start a session that is {session.status}"
            )

        now = ensure_utc(now or utc_now())
        window = timedelta(minutes=settings.session_start_window_minutes)
        start = ensure_utc(session.start_time)
        if abs(now - start) > window:
            raise self._transition_error(
                session,
                SessionStatus.IN_PROGRESS,
                f"Sessions can only be started within {settings.session_start_window_minutes} "
                "minutes of the scheduled start time",
            )

        with self.transaction():
            session.status = SessionStatus.IN_PROGRESS.value
            session.started_at = now
            if not session.meeting_url:
                session.meeting_url = generate_meeting_url()
        self.logger.info(f"Session started: {session.id}")
        return session

    @BaseService.measure_operation("complete_session")
    def complete_session(
        self,
        user: User,
        session_id: str,
        notes: Optional[str] = None,
        recording_url: Optional[str] = None,
    ) -> CoachingSession:
        session = self._require_session(session_id)
        self._require_coach_or_admin(user, session)
        if session.status != SessionStatus.IN_PROGRESS.value:
            raise self._transition_error(
                session, SessionStatus.COMPLETED, "Only sessions in progress can be completed"
            )

        with self.transaction():
            session.status = SessionStatus.COMPLETED.value
            session.completed_at = utc_now()
            if notes is not None:
                session.notes = notes
            if recording_url is not None:
                session.recording_url = recording_url
        self.logger.info(f"Session completed: {session.id}")
        return session

    @BaseService.measure_operation("cancel_session")
    def cancel_session(self, user: User, session_id: str, reason: Optional[str] = None) -> CoachingSession:
        """Coach, student or admin cancels a live session. Both parties are emailed."""
        session = self._require_session(session_id)
        self._require_participant(user, session)
        if not session.is_live:
            raise self._transition_error(
                session, SessionStatus.CANCELLED, f"Cannot cancel a session that is {session.status}"
            )

        with self.transaction():
            session.status = SessionStatus.CANCELLED.value
            session.cancelled_at = utc_now()
            session.cancellation_reason = reason

        self.logger.info(f"Session cancelled: {session.id} by user {user.id}")
        self.notification_service.send_session_cancelled(session, reason)
        return session

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, user: User, session_id: str, reason: Optional[str] = None) -> CoachingSession:
        session = self._require_session(session_id)
        self._require_coach_or_admin(user, session)
        if session.status != SessionStatus.SCHEDULED.value:
            raise self._transition_error(
                session, SessionStatus.NO_SHOW, "Only scheduled sessions can be marked as no-show"
            )
        if ensure_utc(session.start_time) > utc_now():
            raise ValidationException(
                "A session cannot be marked as no-show before it starts", code="SESSION_NOT_STARTED"
            )

        with self.transaction():
            session.status = SessionStatus.NO_SHOW.value
            if reason:
                session.notes = f"{session.notes}\n\nNo-show: {reason}" if session.notes else f"No-show: {reason}"
        self.logger.info(f"Session marked no-show: {session.id}")
        return session

    @BaseService.measure_operation("join_session")
    def join_session(self, user: User, session_id: str) -> Dict[str, Any]:
        """
        Student joins between start and end time; a meeting URL is created
        on first join when the coach did not set one.
        """
        session = self._require_session(session_id)
        if session.student_id != user.id:
            raise NotFoundException("Session not found or access denied", code="SESSION_NOT_FOUND")
        if not session.is_live:
            raise ValidationException("Session is not available for joining", code="SESSION_NOT_JOINABLE")

        now = utc_now()
        if now < ensure_utc(session.start_time):
            raise ValidationException("Session has not started yet", code="SESSION_NOT_STARTED")
        if now > ensure_utc(session.end_time):
            raise ValidationException("Session has already ended", code="SESSION_ENDED")

        if not session.meeting_url:
            with self.transaction():
                session.meeting_url = generate_meeting_url()

        self.logger.info(f"Session joined: {session.id} by student {user.id}")
        coach_user = session.coach.user if session.coach is not None else None
        return {
            "meeting_url": session.meeting_url,
            "session": {
                "id": session.id,
                "title": session.title,
                "start_time": ensure_utc(session.start_time),
                "end_time": ensure_utc(session.end_time),
                "status": session.status,
                "course_title": session.course.title if session.course else None,
                "coach_name": coach_user.full_name if coach_user else None,
            },
        }

    def update_notes(self, user: User, session_id: str, notes: str) -> CoachingSession:
        session = self._require_session(session_id)
        self._require_coach_or_admin(user, session)
        with self.transaction():
            session.notes = notes
        return session

    @BaseService.measure_operation("reschedule_session")
    def reschedule_session(
        self,
        user: User,
        session_id: str,
        start_time: datetime,
        end_time: datetime,
        reason: Optional[str] = None,
    ) -> CoachingSession:
        """
        Move a SCHEDULED session to a new window.

        The conflict check ignores the session itself, so shifting a
        session within its own slot is allowed. The reason is appended to
        the notes and both parties are emailed.

        Raises:
            InvalidSessionTransitionException: Session is not SCHEDULED
            BookingConflictException: The new window is taken
        """
        session = self._require_session(session_id)
        if not (user.is_admin or self._is_session_coach(user, session) or session.student_id == user.id):
            raise ForbiddenException("You do not have permission to reschedule this session")
        if session.status != SessionStatus.SCHEDULED.value:
            raise self._transition_error(
                session, SessionStatus.SCHEDULED, "Only scheduled sessions can be rescheduled"
            )

        start, end = self.conflict_checker.validate_window(start_time, end_time)
        duration = self._duration_minutes(start, end)
        if start <= utc_now():
            raise ValidationException("Sessions must be rescheduled into the future", code="START_IN_PAST")

        old_start = ensure_utc(session.start_time)
        with self.transaction():
            self._lock_coach(session.coach_id)
            self.conflict_checker.assert_no_conflict(session.coach_id, start, end, session.id)
            session.start_time = start
            session.end_time = end
            session.duration = duration
            if reason:
                session.notes = f"{session.notes or ''}\n\nRescheduled: {reason}".strip()
            self._flush_guarded()

        rescheduled_by = "coach" if self._is_session_coach(user, session) else user.role.lower()
        self.log_operation(
            "session_rescheduled",
            session_id=session.id,
            old_start_time=old_start.isoformat(),
            new_start_time=start.isoformat(),
            rescheduled_by=rescheduled_by,
        )
        self.notification_service.send_session_rescheduled(session, old_start, reason)
        return session
