"""Repositories for reading and upserting articles."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ingestion.db.dialect import upsert_insert
from ingestion.db.models import Article
from ingestion.models.domain import ArticleDTO, UpsertResult


def get_existing_links(session: Session, links: Iterable[str]) -> set[str]:
    stmt = select(Article.link).where(Article.link.in_(list(links)))
    return {row[0] for row in session.execute(stmt)}


def bulk_upsert_articles(session: Session, items: Sequence[ArticleDTO]) -> UpsertResult:
    """Insert new articles and overwrite existing ones in one statement, keyed by link."""
    # A single ON CONFLICT statement may not touch the same row twice.
    by_link: Dict[str, ArticleDTO] = {}
    for dto in items:
        by_link[dto.link] = dto
    if not by_link:
        return UpsertResult()

    existing = get_existing_links(session, by_link.keys())
    rows = [
        {
            "title": dto.title,
            "description": dto.description,
            "link": dto.link,
            "image": dto.image,
            "source": dto.source,
            "date": dto.date,
            "query": dto.query,
            "fetched_at": dto.fetched_at,
        }
        for dto in by_link.values()
    ]
    stmt = upsert_insert(session, Article).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["link"],
        set_={
            "title": stmt.excluded.title,
            "description": stmt.excluded.description,
            "image": stmt.excluded.image,
            "source": stmt.excluded.source,
            "date": stmt.excluded.date,
            "query": stmt.excluded.query,
            "fetched_at": stmt.excluded.fetched_at,
        },
    )
    session.execute(stmt)
    modified = len(existing)
    return UpsertResult(inserted=len(rows) - modified, modified=modified)


def list_articles(session: Session, query: str, limit: int) -> List[Article]:
    stmt = (
        select(Article)
        .where(Article.query == query)
        .order_by(Article.fetched_at.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt))


def get_article_by_link(session: Session, link: str) -> Optional[Article]:
    return session.scalar(select(Article).where(Article.link == link))


def latest_fetched_at(session: Session) -> Optional[datetime]:
    return session.scalar(select(func.max(Article.fetched_at)))


def count_articles(session: Session) -> int:
    return int(session.scalar(select(func.count()).select_from(Article)) or 0)
