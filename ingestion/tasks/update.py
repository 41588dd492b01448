"""Scheduled news refresh guarded by the distributed job lock."""

from __future__ import annotations

import os
import socket
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from celery import shared_task
from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from ingestion.connectors.base import BaseConnector
from ingestion.connectors.serpapi import SerpAPIConnector
from ingestion.db.session import get_sessionmaker, transaction
from ingestion.models.domain import (
    DEFAULT_SOURCE,
    DEFAULT_TITLE,
    ArticleDTO,
    SearchResult,
    UpsertResult,
    is_http_url,
)
from ingestion.repositories.articles import bulk_upsert_articles
from ingestion.services import lock_manager
from ingestion.settings import NEWS_UPDATE_JOB, Settings, get_settings
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

# Connector factory is kept pluggable for tests; it must return an object with .search(query, count).
CONNECTOR_FACTORY: Callable[[], BaseConnector] | None = None


@dataclass
class UpdateReport:
    """Outcome of one update_database() call."""

    instance_id: str
    acquired: bool
    results: Dict[str, UpsertResult] = field(default_factory=dict)
    empty: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def upserted(self) -> int:
        return sum(r.inserted + r.modified for r in self.results.values())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "instanceId": self.instance_id,
            "acquired": self.acquired,
            "categories": {q: r.model_dump() for q, r in self.results.items()},
            "empty": list(self.empty),
            "failed": list(self.failed),
            "error": self.error,
        }


@lru_cache()
def get_instance_id() -> str:
    """Lock owner identifier, stable for the lifetime of this process."""
    configured = get_settings().instance_id or os.getenv("HOSTNAME")
    if configured:
        return f"{configured}_{os.getpid()}"
    return f"{socket.gethostname()}_{os.getpid()}_{int(time.time() * 1000)}"


def _get_connector() -> BaseConnector:
    if CONNECTOR_FACTORY is not None:
        return CONNECTOR_FACTORY()
    return SerpAPIConnector()


def build_article(query: str, result: SearchResult, fetched_at: datetime) -> ArticleDTO:
    """Map a search hit onto the stored article shape, filling defaults."""
    image = result.thumbnail if is_http_url(result.thumbnail) else None
    if result.thumbnail and image is None:
        logger.debug("update.image.dropped", extra={"link": result.link, "image": result.thumbnail})
    return ArticleDTO(
        title=(result.title or "").strip() or DEFAULT_TITLE,
        description=result.snippet or "",
        link=result.link,
        image=image,
        source=result.source_name or DEFAULT_SOURCE,
        date=result.date or fetched_at.date().isoformat(),
        query=query,
        fetched_at=fetched_at,
    )


def _refresh_category(
    session_factory: sessionmaker[Session],
    connector: BaseConnector,
    query: str,
    count: int,
    report: UpdateReport,
) -> None:
    logger.info("update.category.fetch", extra={"query": query, "count": count})
    try:
        results = connector.search(query, count)
    except Exception as exc:
        logger.error("update.category.fetch_failed", extra={"query": query, "error": str(exc)})
        report.failed.append(query)
        return

    if not results:
        logger.info("update.category.empty", extra={"query": query})
        report.empty.append(query)
        return

    fetched_at = datetime.now(timezone.utc)
    try:
        articles = [build_article(query, r, fetched_at) for r in results]
    except ValidationError as exc:
        logger.error("update.category.transform_failed", extra={"query": query, "error": str(exc)})
        report.failed.append(query)
        return

    try:
        with transaction(session_factory) as session:
            outcome = bulk_upsert_articles(session, articles)
    except Exception as exc:
        logger.error("update.category.write_failed", extra={"query": query, "error": str(exc)})
        report.failed.append(query)
        return

    report.results[query] = outcome
    logger.info(
        "update.category.saved",
        extra={"query": query, "inserted": outcome.inserted, "modified": outcome.modified},
    )


def update_database(
    session_factory: sessionmaker[Session] | None = None,
    connector: BaseConnector | None = None,
    *,
    settings: Settings | None = None,
    instance_id: str | None = None,
) -> UpdateReport:
    """Refresh every configured category unless another instance holds the lock.

    Lock contention skips the run. Per-category failures are logged and the
    loop moves on. The lock is released on every exit path once taken.
    """
    cfg = settings or get_settings()
    factory = session_factory or get_sessionmaker(cfg)
    owner = instance_id or get_instance_id()
    ttl = timedelta(minutes=int(cfg.lock_ttl_minutes))

    logger.info("update.lock.acquire", extra={"instance_id": owner, "job_name": NEWS_UPDATE_JOB})
    if not lock_manager.acquire(factory, NEWS_UPDATE_JOB, owner, ttl):
        try:
            current = lock_manager.get_lock_status(factory, NEWS_UPDATE_JOB)
        except Exception as exc:
            logger.warning("update.lock.status_failed", extra={"error": str(exc)})
            current = None
        logger.info(
            "update.skipped",
            extra={
                "instance_id": owner,
                "locked_by": current.locked_by if current else None,
                "expires_at": current.expires_at.isoformat() if current else None,
            },
        )
        return UpdateReport(instance_id=owner, acquired=False)

    report = UpdateReport(instance_id=owner, acquired=True)
    try:
        logger.info("update.start", extra={"instance_id": owner})
        source = connector or _get_connector()
        for category in cfg.update_categories:
            _refresh_category(factory, source, category.query, int(category.count), report)
    except Exception as exc:
        logger.exception("update.failed", extra={"instance_id": owner})
        report.error = str(exc)
    finally:
        lock_manager.release(factory, NEWS_UPDATE_JOB, owner)
        logger.info(
            "update.completed",
            extra={"instance_id": owner, "categories": len(report.results), "failed": len(report.failed)},
        )
    return report


@shared_task(name="ingestion.tasks.update.update_news")
def update_news() -> Dict[str, Any]:  # pragma: no cover - wrapper
    return update_database().as_dict()
