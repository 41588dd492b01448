"""Per-query article cache owned by the request layer."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol

import redis
from redis.exceptions import RedisError

from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedArticles:
    articles: List[dict]
    fetched_at: float


class QueryCache(Protocol):
    def get(self, query: str) -> Optional[CachedArticles]: ...  # noqa: D401
    def set(self, query: str, articles: List[dict]) -> None: ...  # noqa: D401
    def clear(self) -> None: ...  # noqa: D401


class InMemoryQueryCache:
    """Process-local mapping of query -> articles with a TTL check on read."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedArticles] = {}

    def get(self, query: str) -> Optional[CachedArticles]:
        entry = self._entries.get(query)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            self._entries.pop(query, None)
            return None
        return entry

    def set(self, query: str, articles: List[dict]) -> None:
        if self._ttl <= 0:
            return
        self._entries[query] = CachedArticles(articles=list(articles), fetched_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()


class RedisQueryCache:
    """Shared cache across API instances; Redis errors degrade to a cache miss."""

    def __init__(self, client: "redis.Redis", ttl_seconds: int, *, prefix: str = "news:query") -> None:
        self.client = client
        self.ttl = ttl_seconds
        self._prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int) -> "RedisQueryCache":
        return cls(redis.Redis.from_url(redis_url, decode_responses=True), ttl_seconds)

    def _key(self, query: str) -> str:
        return f"{self._prefix}:{query}"

    def get(self, query: str) -> Optional[CachedArticles]:
        try:
            data = self.client.get(self._key(query))
        except RedisError as exc:
            logger.warning("cache.get.failed", extra={"query": query, "error": str(exc)})
            return None
        if not data:
            return None
        payload = json.loads(data)
        return CachedArticles(articles=payload["articles"], fetched_at=payload["fetched_at"])

    def set(self, query: str, articles: List[dict]) -> None:
        if self.ttl <= 0:
            return
        payload = json.dumps({"articles": articles, "fetched_at": time.time()}, default=str)
        try:
            self.client.setex(self._key(query), self.ttl, payload)
        except RedisError as exc:
            logger.warning("cache.set.failed", extra={"query": query, "error": str(exc)})

    def clear(self) -> None:
        try:
            keys = list(self.client.scan_iter(match=f"{self._prefix}:*"))
            if keys:
                self.client.delete(*keys)
        except RedisError as exc:
            logger.warning("cache.clear.failed", extra={"error": str(exc)})
