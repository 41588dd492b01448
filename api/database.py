from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from ingestion.db.models import Base
from ingestion.db.session import check_connection, get_engine, session_scope


def init_db() -> None:
    """Verify the database is reachable and create missing tables."""
    check_connection()
    Base.metadata.create_all(bind=get_engine())


def session_dependency() -> Generator[Session, None, None]:
    with session_scope() as session:
        yield session
