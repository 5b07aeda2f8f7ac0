# coachhub/repositories/child_repository.py
"""Children and enrollment queries."""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import EnrollmentStatus
from ..core.exceptions import RepositoryException
from ..models.child import Child, Enrollment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

OPEN_ENROLLMENT_STATUSES = [status.value for status in EnrollmentStatus.open()]


class ChildRepository(BaseRepository[Child]):
    def __init__(self, db: Session):
        super().__init__(db, Child)
        self.logger = logging.getLogger(__name__)

    def list_for_parent(self, parent_id: str) -> List[Child]:
        return self._execute_query(
            self.db.query(Child)
            .filter(Child.parent_id == parent_id)
            .order_by(Child.first_name, Child.last_name)
        )

    def get_for_parent(self, child_id: str, parent_id: str) -> Optional[Child]:
        return self.find_one_by(id=child_id, parent_id=parent_id)

    def get_many_for_parent(self, child_ids: List[str], parent_id: str) -> List[Child]:
        if not child_ids:
            return []
        return self._execute_query(
            self.db.query(Child).filter(Child.id.in_(child_ids), Child.parent_id == parent_id)
        )

    def find_duplicate(
        self,
        parent_id: str,
        first_name: str,
        last_name: str,
        date_of_birth: date,
        exclude_child_id: Optional[str] = None,
    ) -> Optional[Child]:
        """A sibling record with the same name and birth date, compared case-insensitively."""
        try:
            query = self.db.query(Child).filter(
                Child.parent_id == parent_id,
                func.lower(Child.first_name) == first_name.strip().lower(),
                func.lower(Child.last_name) == last_name.strip().lower(),
                Child.date_of_birth == date_of_birth,
            )
            if exclude_child_id:
                query = query.filter(Child.id != exclude_child_id)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking duplicate child: {str(e)}")
            raise RepositoryException(f"Failed to check children: {str(e)}")


class EnrollmentRepository(BaseRepository[Enrollment]):
    def __init__(self, db: Session):
        super().__init__(db, Enrollment)

    def list_for_child(self, child_id: str) -> List[Enrollment]:
        return self._execute_query(
            self.db.query(Enrollment)
            .options(joinedload(Enrollment.course))
            .filter(Enrollment.child_id == child_id)
            .order_by(Enrollment.enrolled_at.desc())
        )

    def get_open_enrollments(self, child_ids: List[str], course_id: str) -> List[Enrollment]:
        """Open enrollments of any of ``child_ids`` in ``course_id``."""
        if not child_ids:
            return []
        return self._execute_query(
            self.db.query(Enrollment).filter(
                Enrollment.child_id.in_(child_ids),
                Enrollment.course_id == course_id,
                Enrollment.status.in_(OPEN_ENROLLMENT_STATUSES),
            )
        )

    def has_open_enrollments(self, child_id: str) -> bool:
        try:
            return (
                self.db.query(Enrollment.id)
                .filter(
                    Enrollment.child_id == child_id,
                    Enrollment.status.in_(OPEN_ENROLLMENT_STATUSES),
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking enrollments: {str(e)}")
            raise RepositoryException(f"Failed to check enrollments: {str(e)}")
