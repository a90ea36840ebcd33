"""Engine and session handling for the audit database."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Keyword arguments for ``create_engine``.

    Audit events are written from the HTTP thread and from background
    workers, so SQLite connections may cross threads. An in-memory SQLite
    database lives in a single shared connection; otherwise every new
    connection would see an empty database.
    """
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


class DatabaseManager:
    """Owns the engine and session factory of one audit database."""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo, **engine_options(database_url))
        self._sessions = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session committed on success and rolled back on error."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self) -> None:
        """Create the ``audit_events`` table if it does not exist."""
        Base.metadata.create_all(self.engine)
        logger.debug(f"Audit schema ready at {self.database_url}")

    def close(self) -> None:
        self.engine.dispose()

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Audit database check failed: {e}")
            return False
