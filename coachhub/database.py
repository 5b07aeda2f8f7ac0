# coachhub/database.py
"""
Database engine, session factory, and metadata shared across the application.

The ``Database`` object is constructed explicitly by the process entry point
and handed to whatever needs it; there is no module-level engine. Request
handlers obtain sessions through the ``get_db`` dependency.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

Base: DeclarativeMeta = declarative_base()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in url


class Database:
    """Owns one SQLAlchemy engine and its session factory."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
    ) -> None:
        self.url = url
        engine_kwargs: Dict[str, Any] = {"echo": echo, "future": True}

        if _is_sqlite(url):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(url):
                # One shared connection so every session sees the same in-memory schema
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )

        self.engine: Engine = create_engine(url, **engine_kwargs)
        self._add_pool_events()
        self.session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False
        )
        logger.info("Database engine created for dialect %s", self.dialect_name)

    @classmethod
    def from_settings(cls, settings: Any) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def _add_pool_events(self) -> None:
        is_sqlite = self.dialect_name == "sqlite"

        @event.listens_for(self.engine, "connect")
        def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
            connection_record.info["connect_time"] = datetime.now()
            if is_sqlite:
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
            logger.debug("Database connection established")

        @event.listens_for(self.engine, "checkout")
        def _on_checkout(dbapi_connection: Any, connection_record: Any, connection_proxy: Any) -> None:
            logger.debug("Connection checked out from pool")

        @event.listens_for(self.engine, "checkin")
        def _on_checkin(dbapi_connection: Any, connection_record: Any) -> None:
            logger.debug("Connection returned to pool")

    def create_all(self) -> None:
        """Create all tables registered on ``Base``."""
        # Importing the package registers every model with the metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        from . import models  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope that commits on success and rolls back on error."""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def pool_status(self) -> Dict[str, int]:
        """Get current database pool statistics."""
        pool = self.engine.pool
        if not isinstance(pool, QueuePool):
            return {"size": 1, "checked_out": 0, "overflow": 0}
        return {
            "size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Return SQLAlchemy dialect name without touching Session.bind directly.

    Falls back to ``default`` when the bound engine cannot be resolved.
    """
    bind: Optional[Any]
    try:
        bind = session.get_bind()
    except Exception:
        bind = getattr(inspect(session), "bind", None)
    if bind is None:
        return default
    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", default) or default
