"""SQLAlchemy models for articles and job locks."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Uuid


class Base(DeclarativeBase):
    """Base class for ORM models."""


class Article(Base):
    """News article; ``link`` is the natural key."""

    __tablename__ = "articles"
    __table_args__ = (
        UniqueConstraint("link", name="uq_articles_link"),
        Index("ix_articles_query", "query"),
        Index("ix_articles_fetched_at", "fetched_at"),
        Index("ix_articles_query_fetched", "query", "fetched_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    link: Mapped[str] = mapped_column(String(2048), nullable=False)
    image: Mapped[str | None] = mapped_column(String(2048))
    source: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[str] = mapped_column(String(64), nullable=False)
    query: Mapped[str] = mapped_column(String(255), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class JobLock(Base):
    """Cross-instance mutual exclusion record for a named job."""

    __tablename__ = "job_locks"

    job_name: Mapped[str] = mapped_column(String(120), primary_key=True)
    locked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    locked_by: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
