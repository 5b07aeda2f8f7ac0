# coachhub/repositories/admin_activity_repository.py
"""Admin audit trail."""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models.admin_activity import AdminActivity
from .base_repository import BaseRepository


class AdminActivityRepository(BaseRepository[AdminActivity]):
    def __init__(self, db: Session):
        super().__init__(db, AdminActivity)

    def record(
        self,
        admin_id: str,
        action: str,
        target_type: str,
        target_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> AdminActivity:
        return self.create(
            admin_id=admin_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details or {},
        )

    def list_activities(
        self,
        *,
        action: Optional[str] = None,
        target_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[AdminActivity], int]:
        query = self.db.query(AdminActivity)
        if action:
            query = query.filter(AdminActivity.action == action)
        if target_type:
            query = query.filter(AdminActivity.target_type == target_type)
        return self._paginate(
            query.order_by(AdminActivity.created_at.desc(), AdminActivity.id.desc()), page, limit
        )
