"""Search connector abstraction, errors, and normalization helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ingestion.models.domain import SearchResult
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectorError(Exception):
    """Base connector error."""


class TransientError(ConnectorError):
    """Retryable error (e.g., rate limit, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (e.g., missing credentials, malformed payload)."""


class BaseConnector(ABC):
    """A search provider returning news hits for a query."""

    source: str

    def search(self, query: str, count: int) -> List[SearchResult]:
        raw = self._fetch_raw(query, count)
        return self._normalize(query, raw)

    @abstractmethod
    def _fetch_raw(self, query: str, count: int) -> List[Dict[str, Any]]:
        """Return a list of raw item dicts from the upstream."""

    def _normalize(self, query: str, items: Iterable[Dict[str, Any]]) -> List[SearchResult]:
        results: List[SearchResult] = []
        for item in items:
            result = self._normalize_item(item)
            if result is None:
                logger.debug("search.item.skipped", extra={"source": self.source, "query": query})
                continue
            results.append(result)
        return results

    def _normalize_item(self, item: Dict[str, Any]) -> Optional[SearchResult]:
        link = str(item.get("link") or item.get("url") or "").strip()
        if not link:
            return None
        source = item.get("source")
        if isinstance(source, dict):
            source_name = source.get("name")
        else:
            source_name = source
        return SearchResult(
            title=item.get("title"),
            snippet=item.get("snippet") or item.get("description"),
            link=link,
            thumbnail=item.get("thumbnail"),
            source_name=source_name,
            date=item.get("date"),
        )
