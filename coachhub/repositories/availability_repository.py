# coachhub/repositories/availability_repository.py
"""Weekly availability windows for coaches."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..core.exceptions import RepositoryException
from ..models.availability import CoachAvailability, TimeSlot
from ..models.coach import Coach
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[CoachAvailability]):
    def __init__(self, db: Session):
        super().__init__(db, CoachAvailability)
        self.logger = logging.getLogger(__name__)

    def get_for_coach(self, coach_id: str) -> List[CoachAvailability]:
        try:
            return (
                self.db.query(CoachAvailability)
                .options(selectinload(CoachAvailability.time_slots))
                .filter(CoachAvailability.coach_id == coach_id)
                .order_by(CoachAvailability.day_of_week)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability for coach {coach_id}: {str(e)}")
            raise RepositoryException(f"Failed to load availability: {str(e)}")

    def get_for_day(self, coach_id: str, day_of_week: int) -> Optional[CoachAvailability]:
        try:
            return (
                self.db.query(CoachAvailability)
                .options(selectinload(CoachAvailability.time_slots))
                .filter(
                    CoachAvailability.coach_id == coach_id,
                    CoachAvailability.day_of_week == day_of_week,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability day: {str(e)}")
            raise RepositoryException(f"Failed to load availability: {str(e)}")

    def replace_for_coach(self, coach_id: str, days: List[Dict[str, Any]]) -> List[CoachAvailability]:
        """
        Replace the coach's whole weekly schedule.

        Each entry of ``days`` holds ``day_of_week``, ``is_active`` and a list
        of ``slots`` with ``start_time``/``end_time`` strings.
        """
        try:
            for existing in self.get_for_coach(coach_id):
                self.db.delete(existing)
            self.db.flush()

            created: List[CoachAvailability] = []
            for day in days:
                availability = CoachAvailability(
                    coach_id=coach_id,
                    day_of_week=day["day_of_week"],
                    is_active=day.get("is_active", True),
                )
                availability.time_slots = [
                    TimeSlot(
                        start_time=slot["start_time"],
                        end_time=slot["end_time"],
                        is_available=slot.get("is_available", True),
                    )
                    for slot in day.get("slots", [])
                ]
                self.db.add(availability)
                created.append(availability)
            self.db.flush()
            return created
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing availability for coach {coach_id}: {str(e)}")
            raise RepositoryException(f"Failed to save availability: {str(e)}")

    def get_time_slot(self, time_slot_id: str) -> Optional[TimeSlot]:
        try:
            return (
                self.db.query(TimeSlot)
                .options(joinedload(TimeSlot.availability))
                .filter(TimeSlot.id == time_slot_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading time slot {time_slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to load time slot: {str(e)}")

    def list_for_review(
        self,
        *,
        review_status: Optional[str] = None,
        coach_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[CoachAvailability], int]:
        query = self.db.query(CoachAvailability).options(
            selectinload(CoachAvailability.time_slots),
            joinedload(CoachAvailability.coach).joinedload(Coach.user),
        )
        if review_status:
            query = query.filter(CoachAvailability.review_status == review_status)
        if coach_id:
            query = query.filter(CoachAvailability.coach_id == coach_id)
        query = query.order_by(CoachAvailability.created_at.desc(), CoachAvailability.day_of_week)
        return self._paginate(query, page, limit)
