from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from ingestion.services import lock_manager

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'migrated.db'}"


def _upgrade_database(db_url: str) -> None:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "ingestion" / "db" / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


def test_migrations_create_expected_tables(sqlite_url: str) -> None:
    _upgrade_database(sqlite_url)
    inspector = inspect(create_engine(sqlite_url, future=True))

    assert {"articles", "job_locks"}.issubset(set(inspector.get_table_names()))

    article_columns = {column["name"] for column in inspector.get_columns("articles")}
    assert {"title", "description", "link", "image", "source", "date", "query", "fetched_at"} <= article_columns

    uniques = {tuple(u["column_names"]) for u in inspector.get_unique_constraints("articles")}
    assert ("link",) in uniques

    indexes = {i["name"] for i in inspector.get_indexes("articles")}
    assert {"ix_articles_query", "ix_articles_fetched_at"} <= indexes

    lock_columns = {column["name"] for column in inspector.get_columns("job_locks")}
    assert lock_columns == {"job_name", "locked_at", "locked_by", "expires_at"}


def test_lock_manager_works_on_migrated_schema(sqlite_url: str) -> None:
    _upgrade_database(sqlite_url)
    factory = sessionmaker(bind=create_engine(sqlite_url, future=True), expire_on_commit=False)

    assert lock_manager.acquire(factory, "news_update_job", "instance-a")
    assert not lock_manager.acquire(factory, "news_update_job", "instance-b")
