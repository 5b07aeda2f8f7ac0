# coachhub/repositories/coach_repository.py
"""Coach profile data access, including the row lock used while booking."""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.coach import Coach
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CoachRepository(BaseRepository[Coach]):
    def __init__(self, db: Session):
        super().__init__(db, Coach)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Coach.user))

    def get_by_user_id(self, user_id: str) -> Optional[Coach]:
        try:
            return (
                self.db.query(Coach)
                .options(joinedload(Coach.user))
                .filter(Coach.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting coach for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve coach: {str(e)}")

    def lock_for_booking(self, coach_id: str) -> Optional[Coach]:
        """
        Lock the coach row for the rest of the transaction.

        Serializes concurrent check-then-insert booking paths for one coach.
        SQLite ignores FOR UPDATE; its database-level write lock serializes
        writers instead.
        """
        try:
            return (
                self.db.query(Coach)
                .filter(Coach.id == coach_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking coach {coach_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock coach: {str(e)}")

    def list_coaches(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Coach], int]:
        query = self.db.query(Coach).join(User, Coach.user_id == User.id).options(joinedload(Coach.user))
        if status:
            query = query.filter(Coach.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.email).like(pattern),
                    func.lower(Coach.domain).like(pattern),
                )
            )
        query = query.order_by(Coach.created_at.desc())
        return self._paginate(query, page, limit)

    def count_by_status(self) -> Dict[str, int]:
        try:
            rows = self.db.query(Coach.status, func.count(Coach.id)).group_by(Coach.status).all()
            return {status: count for status, count in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting coaches: {str(e)}")
            raise RepositoryException(f"Failed to count coaches: {str(e)}")
