"""Distributed job lock on top of the ``job_locks`` table.

A lock is *held* while its record exists and ``expires_at`` lies in the future.
Expired records are free for anyone to take over, so a crashed holder blocks
the job for at most one TTL. All functions take the store handle (a
``sessionmaker``) explicitly and run in their own transaction.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ingestion.db.dialect import upsert_insert
from ingestion.db.models import JobLock
from ingestion.db.session import transaction
from ingestion.models.domain import LockStatus
from ingestion.utils.logging import get_logger

DEFAULT_TTL = timedelta(minutes=5)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def acquire(
    session_factory: sessionmaker[Session],
    job_name: str,
    instance_id: str,
    ttl: timedelta = DEFAULT_TTL,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """Try to take ``job_name`` for ``instance_id``; never raises.

    A single ``INSERT ... ON CONFLICT DO UPDATE ... WHERE expires_at < now``
    creates the record when absent and overwrites it only when expired. A
    live record owned by someone else is left untouched, so the ownership
    check afterwards fails.
    """
    now = now or _utcnow()
    expires_at = now + ttl
    try:
        with transaction(session_factory) as session:
            stmt = upsert_insert(session, JobLock).values(
                job_name=job_name,
                locked_at=now,
                locked_by=instance_id,
                expires_at=expires_at,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["job_name"],
                set_={
                    "locked_at": stmt.excluded.locked_at,
                    "locked_by": stmt.excluded.locked_by,
                    "expires_at": stmt.excluded.expires_at,
                },
                where=JobLock.expires_at < now,
            )
            session.execute(stmt)
            owner = session.scalar(select(JobLock.locked_by).where(JobLock.job_name == job_name))
    except SQLAlchemyError as exc:
        logger.error(
            "lock.acquire.failed",
            extra={"job_name": job_name, "instance_id": instance_id, "error": str(exc)},
        )
        return False

    acquired = owner == instance_id
    logger.debug(
        "lock.acquire",
        extra={"job_name": job_name, "instance_id": instance_id, "acquired": acquired},
    )
    return acquired


def release(session_factory: sessionmaker[Session], job_name: str, instance_id: str) -> bool:
    """Delete the lock if ``instance_id`` still owns it.

    Returns whether a record was removed. Storage errors are logged and
    swallowed; a stale lock expires on its own.
    """
    try:
        with transaction(session_factory) as session:
            result = session.execute(
                delete(JobLock).where(
                    JobLock.job_name == job_name,
                    JobLock.locked_by == instance_id,
                )
            )
            released = bool(result.rowcount)
    except SQLAlchemyError as exc:
        logger.error(
            "lock.release.failed",
            extra={"job_name": job_name, "instance_id": instance_id, "error": str(exc)},
        )
        return False

    if not released:
        logger.info("lock.release.not_owner", extra={"job_name": job_name, "instance_id": instance_id})
    return released


def get_lock_status(session_factory: sessionmaker[Session], job_name: str) -> Optional[LockStatus]:
    """Current lock record for ``job_name`` or ``None``; expired records included."""
    with transaction(session_factory) as session:
        record = session.get(JobLock, job_name)
        if record is None:
            return None
        return LockStatus.model_validate(record)
