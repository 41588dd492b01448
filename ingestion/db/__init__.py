"""Database utilities for articles and job locks."""

from .models import Article, Base, JobLock  # noqa: F401
from .session import (  # noqa: F401
    check_connection,
    get_engine,
    get_sessionmaker,
    session_scope,
    transaction,
)

__all__ = [
    "Article",
    "Base",
    "JobLock",
    "check_connection",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
    "transaction",
]
