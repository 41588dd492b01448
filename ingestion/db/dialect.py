"""Dialect-specific ``INSERT ... ON CONFLICT`` constructs."""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(session: Session, table: Any) -> Any:
    """Return an ``insert()`` for ``table`` that supports ``on_conflict_do_update``."""
    dialect = session.get_bind().dialect.name
    try:
        factory = _INSERTS[dialect]
    except KeyError as exc:
        raise NotImplementedError(f"upserts are not supported on {dialect}") from exc
    return factory(table)
