from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import select

from ingestion.db.models import Article
from ingestion.db.session import transaction
from ingestion.models.domain import ArticleDTO, SearchResult
from ingestion.repositories.articles import bulk_upsert_articles
from ingestion.services import lock_manager
from ingestion.settings import NEWS_UPDATE_JOB, get_settings, reset_settings_cache
from ingestion.tasks import update as update_mod
from ingestion.tasks.update import build_article, get_instance_id, update_database


class FakeConnector:
    def __init__(self, responses: Dict[str, object]):
        self._responses = responses
        self.calls: List[tuple[str, int]] = []

    def search(self, query: str, count: int) -> List[SearchResult]:
        self.calls.append((query, count))
        outcome = self._responses.get(query, [])
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)  # type: ignore[arg-type]


def _hit(link: str, title: Optional[str] = "Headline", **kwargs) -> SearchResult:
    return SearchResult(link=link, title=title, **kwargs)


@pytest.fixture()
def settings(monkeypatch):
    monkeypatch.setenv(
        "UPDATE_CATEGORIES",
        json.dumps([{"query": "technology", "count": 10}, {"query": "sports", "count": 5}]),
    )
    reset_settings_cache()
    return get_settings()


def _stored(session_factory, query: str) -> List[Article]:
    with transaction(session_factory) as session:
        return list(session.scalars(select(Article).where(Article.query == query)))


def test_update_stores_articles_and_releases_lock(session_factory, settings):
    connector = FakeConnector(
        {
            "technology": [_hit("https://ex.com/t1", source_name="Ex", date="today", snippet="s")],
            "sports": [_hit("https://ex.com/s1")],
        }
    )

    report = update_database(session_factory, connector, settings=settings, instance_id="instance-a")

    assert report.acquired and report.error is None
    assert connector.calls == [("technology", 10), ("sports", 5)]
    assert report.results["technology"].inserted == 1
    assert [a.link for a in _stored(session_factory, "technology")] == ["https://ex.com/t1"]
    assert lock_manager.get_lock_status(session_factory, NEWS_UPDATE_JOB) is None


def test_empty_category_leaves_existing_articles_untouched(session_factory, settings):
    earlier = datetime(2025, 1, 1, tzinfo=timezone.utc)
    with transaction(session_factory) as session:
        bulk_upsert_articles(
            session,
            [
                ArticleDTO(
                    title="Old match report",
                    link="https://ex.com/old-sports",
                    source="Ex",
                    date="2025-01-01",
                    query="sports",
                    fetched_at=earlier,
                )
            ],
        )
    connector = FakeConnector({"technology": [_hit("https://ex.com/t1")], "sports": []})

    report = update_database(session_factory, connector, settings=settings, instance_id="instance-a")

    assert report.empty == ["sports"]
    assert [a.title for a in _stored(session_factory, "sports")] == ["Old match report"]
    assert len(_stored(session_factory, "technology")) == 1


def test_failed_category_does_not_block_others(session_factory, settings):
    connector = FakeConnector({"technology": RuntimeError("search down"), "sports": [_hit("https://ex.com/s1")]})

    report = update_database(session_factory, connector, settings=settings, instance_id="instance-a")

    assert report.failed == ["technology"]
    assert len(_stored(session_factory, "sports")) == 1
    assert lock_manager.get_lock_status(session_factory, NEWS_UPDATE_JOB) is None


def test_lock_contention_skips_run(session_factory, settings):
    assert lock_manager.acquire(session_factory, NEWS_UPDATE_JOB, "someone-else")
    connector = FakeConnector({"technology": [_hit("https://ex.com/t1")]})

    report = update_database(session_factory, connector, settings=settings, instance_id="instance-a")

    assert report.acquired is False
    assert connector.calls == []
    assert report.upserted == 0
    status = lock_manager.get_lock_status(session_factory, NEWS_UPDATE_JOB)
    assert status is not None and status.locked_by == "someone-else"


def test_unconvertible_hit_fails_only_its_category(session_factory, settings):
    # An empty link cannot become an article.
    connector = FakeConnector({"technology": [_hit("")], "sports": [_hit("https://ex.com/s1")]})

    report = update_database(session_factory, connector, settings=settings, instance_id="instance-a")

    assert report.error is None
    assert report.failed == ["technology"]
    assert [q for q, _ in connector.calls] == ["technology", "sports"]
    assert len(_stored(session_factory, "sports")) == 1
    assert lock_manager.get_lock_status(session_factory, NEWS_UPDATE_JOB) is None


def test_unexpected_error_is_caught_and_lock_released(session_factory, settings):
    def broken_factory():
        raise RuntimeError("connector misconfigured")

    update_mod.CONNECTOR_FACTORY = broken_factory

    report = update_database(session_factory, settings=settings, instance_id="instance-a")

    assert report.acquired
    assert report.error == "connector misconfigured"
    assert report.results == {}
    assert lock_manager.get_lock_status(session_factory, NEWS_UPDATE_JOB) is None


def test_concurrent_updates_run_a_single_pass(session_factory, settings):
    started = threading.Event()
    proceed = threading.Event()

    class BlockingConnector(FakeConnector):
        def search(self, query: str, count: int) -> List[SearchResult]:
            if not started.is_set():
                started.set()
                proceed.wait(timeout=10)
            return super().search(query, count)

    responses = {"technology": [_hit("https://ex.com/t1")], "sports": [_hit("https://ex.com/s1")]}
    first = BlockingConnector(responses)
    second = FakeConnector(responses)
    reports = {}

    worker = threading.Thread(
        target=lambda: reports.__setitem__(
            "first", update_database(session_factory, first, settings=settings, instance_id="instance-a")
        )
    )
    worker.start()
    assert started.wait(timeout=10)
    reports["second"] = update_database(session_factory, second, settings=settings, instance_id="instance-b")
    proceed.set()
    worker.join(timeout=30)

    assert reports["first"].acquired and not reports["second"].acquired
    assert [q for q, _ in first.calls] == ["technology", "sports"]
    assert second.calls == []
    assert reports["second"].upserted == 0
    assert reports["first"].upserted == 2


def test_connector_factory_is_used_when_no_connector_given(session_factory, settings):
    connector = FakeConnector({"technology": [_hit("https://ex.com/t1")]})
    update_mod.CONNECTOR_FACTORY = lambda: connector

    update_database(session_factory, settings=settings, instance_id="instance-a")

    assert connector.calls[0] == ("technology", 10)


def test_build_article_fills_defaults():
    fetched_at = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    article = build_article("technology", _hit("https://ex.com/x", title=None, thumbnail="data:image/png;base64,xx"), fetched_at)

    assert article.title == "No title available"
    assert article.description == ""
    assert article.image is None
    assert article.source == "Unknown source"
    assert article.date == "2025-03-01"
    assert article.query == "technology"


def test_build_article_keeps_http_thumbnail():
    article = build_article(
        "sports",
        _hit("https://ex.com/x", thumbnail="https://img.example.com/x.jpg", date="2 hours ago"),
        datetime.now(timezone.utc),
    )

    assert article.image == "https://img.example.com/x.jpg"
    assert article.date == "2 hours ago"


def test_instance_id_is_stable_per_process(monkeypatch):
    monkeypatch.setenv("INSTANCE_ID", "web-1")

    first = get_instance_id()

    assert first.startswith("web-1_")
    assert get_instance_id() == first
