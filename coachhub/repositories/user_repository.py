# coachhub/repositories/user_repository.py
"""
User Repository for the CoachHub platform.

Accounts are unique per (email, role), so lookups by email either take a
role or return every account registered with that address.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    def get_by_email_and_role(self, email: str, role: str) -> Optional[User]:
        return self.find_one_by(email=self.normalize_email(email), role=role)

    def find_by_email(self, email: str) -> List[User]:
        """All accounts registered with ``email`` across roles."""
        try:
            return (
                self.db.query(User)
                .filter(User.email == self.normalize_email(email))
                .order_by(User.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding users by email: {str(e)}")
            raise RepositoryException(f"Failed to find users: {str(e)}")

    def get_by_verification_token(self, token: str) -> Optional[User]:
        return self.find_one_by(verification_token=token)

    def get_by_reset_token(self, token: str) -> Optional[User]:
        return self.find_one_by(reset_token=token)

    def count_by_role(self) -> Dict[str, int]:
        try:
            rows = self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
            return {role: count for role, count in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting users by role: {str(e)}")
            raise RepositoryException(f"Failed to count users: {str(e)}")

    def list_active_by_role(self, role: str) -> List[User]:
        try:
            return (
                self.db.query(User)
                .filter(User.role == role, User.is_active.is_(True))
                .order_by(User.created_at)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing {role} users: {str(e)}")
            raise RepositoryException(f"Failed to list users: {str(e)}")
