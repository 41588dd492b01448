from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Annotated, Callable, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.db.session import check_connection, get_sessionmaker
from ingestion.repositories.articles import (
    count_articles,
    get_article_by_link,
    latest_fetched_at,
    list_articles,
)
from ingestion.services.lock_manager import get_lock_status
from ingestion.settings import NEWS_UPDATE_JOB, get_settings
from ingestion.tasks.update import UpdateReport, update_database
from llm.client.gemini_client import GeminiClient, LLMError

from .cache import InMemoryQueryCache, QueryCache, RedisQueryCache
from .database import session_dependency
from .models import (
    ArticleOut,
    ArticleResponse,
    DatabaseHealth,
    HealthResponse,
    NewsMeta,
    NewsResponse,
    StoryRequest,
    StoryResponse,
    UpdateJobHealth,
    UpdateResponse,
)
from .settings import ApiSettings, get_api_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@lru_cache()
def get_query_cache() -> QueryCache:
    settings = get_api_settings()
    if settings.news_cache_redis_url:
        return RedisQueryCache.from_url(settings.news_cache_redis_url, settings.news_cache_ttl_seconds)
    return InMemoryQueryCache(settings.news_cache_ttl_seconds)


def get_story_client() -> Optional[GeminiClient]:
    try:
        return GeminiClient.from_env()
    except RuntimeError as exc:
        logger.error("story.settings_invalid", extra={"error": str(exc)})
        return None


def get_update_runner() -> Callable[[], UpdateReport]:
    return update_database


SessionDep = Annotated[Session, Depends(session_dependency)]
SettingsDep = Annotated[ApiSettings, Depends(get_api_settings)]
CacheDep = Annotated[QueryCache, Depends(get_query_cache)]
StoryClientDep = Annotated[Optional[GeminiClient], Depends(get_story_client)]
UpdateRunnerDep = Annotated[Callable[[], UpdateReport], Depends(get_update_runner)]


def _story_status(story_client: Optional[GeminiClient]) -> str:
    if story_client is None:
        return "misconfigured"
    return "operational" if story_client.configured else "not_configured"


@router.get("/health", response_model=HealthResponse, tags=["system"])
def health_route(session: SessionDep, story_client: StoryClientDep):
    try:
        check_connection()
        last_update = latest_fetched_at(session)
        document_count = count_articles(session)
        lock = get_lock_status(get_sessionmaker(), NEWS_UPDATE_JOB)
    except SQLAlchemyError as exc:
        logger.error("health.degraded", extra={"error": str(exc)})
        return JSONResponse(status_code=500, content={"status": "degraded", "error": str(exc)})

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        database=DatabaseHealth(
            status="connected",
            last_update=last_update or "never",
            document_count=document_count,
        ),
        update_job=UpdateJobHealth(
            last_run=lock.locked_at if lock else "never",
            locked_by=lock.locked_by if lock else "none",
            expires_at=lock.expires_at if lock else "n/a",
        ),
        services={"gemini": _story_status(story_client)},
    )


@router.get("/news", response_model=NewsResponse)
def list_news_route(
    session: SessionDep,
    settings: SettingsDep,
    cache: CacheDep,
    query: Optional[str] = Query(default=None),
    num: Optional[str] = Query(default=None),
) -> NewsResponse:
    try:
        requested = int(num) if num is not None else settings.news_default_results
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid number parameter") from None
    if requested < 1:
        raise HTTPException(status_code=400, detail="Invalid number parameter")
    limit = min(requested, settings.news_max_results)
    search = (query or settings.news_default_query).strip()

    cached = cache.get(search)
    if cached is not None:
        articles = [ArticleOut.model_validate(item) for item in cached.articles[:limit]]
    else:
        rows = list_articles(session, search, settings.news_max_results)
        everything = [ArticleOut.model_validate(row) for row in rows]
        cache.set(search, [a.model_dump(mode="json") for a in everything])
        articles = everything[:limit]

    last_updated = articles[0].fetched_at if articles else None
    interval = timedelta(minutes=get_settings().update_interval_minutes)
    next_update = datetime.now(timezone.utc) + interval
    return NewsResponse(
        data=articles,
        meta=NewsMeta(count=len(articles), last_updated=last_updated, next_update=next_update),
        articles=articles,
        last_updated=last_updated,
        next_update=next_update,
    )


@router.get("/article", response_model=ArticleResponse)
def get_article_route(session: SessionDep, url: Optional[str] = Query(default=None)) -> ArticleResponse:
    if not url:
        raise HTTPException(status_code=400, detail="Article URL is required")
    article = get_article_by_link(session, url)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found in database")
    return ArticleResponse(article=ArticleOut.model_validate(article))


@router.post("/generate-story", response_model=StoryResponse)
def generate_story_route(payload: StoryRequest, story_client: StoryClientDep) -> StoryResponse:
    if not payload.title or not payload.source:
        raise HTTPException(status_code=400, detail="Title and source are required fields")
    if story_client is None or not story_client.configured:
        raise HTTPException(status_code=501, detail="Content generation service not configured")
    try:
        content = story_client.generate_story(payload.title, payload.source, payload.image_url)
    except LLMError as exc:
        logger.error("story.failed", extra={"title": payload.title, "error": str(exc)})
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return StoryResponse(content=content)


def _run_update(runner: Callable[[], UpdateReport], cache: QueryCache, message: str) -> UpdateResponse:
    report = runner()
    if report.results:
        cache.clear()
    return UpdateResponse(message=message, report=report.as_dict())


@router.post("/admin/update-now", response_model=UpdateResponse)
def update_now_route(runner: UpdateRunnerDep, cache: CacheDep) -> UpdateResponse:
    return _run_update(runner, cache, "Manual update triggered")


@router.post("/cron/update-news", response_model=UpdateResponse)
def cron_update_route(
    runner: UpdateRunnerDep,
    cache: CacheDep,
    settings: SettingsDep,
    x_cron_secret: Annotated[Optional[str], Header()] = None,
) -> UpdateResponse:
    if settings.cron_secret is None:
        raise HTTPException(status_code=503, detail="Cron trigger is not configured")
    expected = settings.cron_secret.get_secret_value()
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _run_update(runner, cache, "Scheduled update triggered")
