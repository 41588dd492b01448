"""SerpAPI Google News connector (provider-injected for tests/offline)."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from ingestion.services.http_client import FetchError, fetch_with_retry
from ingestion.settings import Settings, get_settings

from .base import BaseConnector, PermanentError, TransientError


ProviderFn = Callable[[str, int], List[Dict[str, Any]]]


class SerpAPIConnector(BaseConnector):
    """Connector for the SerpAPI ``google_news`` engine.

    - with a provider: offline mode, the provider returns raw result dicts
    - without one: real HTTP through the retrying client
    """

    source = "serpapi"

    def __init__(
        self,
        provider: Optional[ProviderFn] = None,
        *,
        settings: Optional[Settings] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self._provider = provider
        self._settings = settings
        self._sleep = sleep

    def _fetch_raw(self, query: str, count: int) -> List[Dict[str, Any]]:
        if self._provider is not None:
            return self._provider(query, count)

        cfg = self._settings or get_settings()
        if not cfg.serpapi_key:
            raise PermanentError("SERPAPI_KEY is not configured.")

        params = {
            "engine": cfg.serpapi_engine,
            "q": query,
            "api_key": cfg.serpapi_key.get_secret_value(),
            "num": int(count),
        }
        extra: Dict[str, Any] = {}
        if self._sleep is not None:
            extra["sleep"] = self._sleep
        try:
            resp = fetch_with_retry(
                cfg.serpapi_endpoint,
                params=params,
                timeout=float(cfg.http_timeout_seconds),
                retries=int(cfg.max_retries),
                backoff_seconds=float(cfg.retry_backoff_seconds),
                **extra,
            )
        except FetchError as exc:
            raise TransientError(f"search failed for {query!r}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise PermanentError("search response is not JSON") from exc
        items = data.get("news_results") if isinstance(data, dict) else None
        return list(items or [])
