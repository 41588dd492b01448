from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.settings import reset_api_settings_cache  # noqa: E402
from ingestion.db.models import Base  # noqa: E402
from ingestion.db.session import get_engine, get_sessionmaker  # noqa: E402
from ingestion.settings import reset_settings_cache  # noqa: E402
from ingestion.tasks import update as update_mod  # noqa: E402
from llm.settings import reset_story_settings_cache  # noqa: E402


def _reset_caches() -> None:
    reset_settings_cache()
    reset_story_settings_cache()
    update_mod.get_instance_id.cache_clear()
    update_mod.CONNECTOR_FACTORY = None
    reset_api_settings_cache()


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'news.db'}")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("SERPAPI_KEY", "test-key")
    monkeypatch.setenv("APP_ENV", "test")
    for name in ("GEMINI_API_KEY", "CRON_SECRET", "NEWS_CACHE_REDIS_URL", "UPDATE_CATEGORIES", "INSTANCE_ID"):
        monkeypatch.delenv(name, raising=False)
    _reset_caches()
    yield
    _reset_caches()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture()
def session_factory():
    Base.metadata.create_all(bind=get_engine())
    return get_sessionmaker()
