# coachhub/api/dependencies/database.py
"""
Database-related dependencies.

The engine belongs to the ``Database`` object created by the application
entry point and stored on ``app.state.database``.
"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from ...database import Database


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Commits when the request finishes cleanly, rolls back on error.

    Yields:
        Database session that will be closed after use
    """
    db = get_database(request).session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
