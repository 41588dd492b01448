"""Outbound HTTP with a fixed retry count and linear backoff."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from ingestion.utils.logging import get_logger

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 1.0

logger = get_logger(__name__)


class FetchError(Exception):
    """Raised when every attempt of a retried request failed.

    The last underlying exception is chained as ``__cause__``.
    """

    def __init__(self, url: str, attempts: int, cause: Exception) -> None:
        super().__init__(f"request to {url} failed after {attempts} attempt(s): {cause}")
        self.url = url
        self.attempts = attempts
        self.cause = cause


def backoff_delay(attempt: int, base_seconds: float) -> float:
    """Delay before retry number ``attempt`` (1-based): ``base * attempt``."""
    return base_seconds * attempt


def fetch_with_retry(
    url: str,
    *,
    method: str = "GET",
    params: Optional[Mapping[str, Any]] = None,
    json: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_MAX_RETRIES,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> httpx.Response:
    """Issue one request, retrying up to ``retries`` more times on failure.

    Network errors, timeouts and non-2xx responses all count as failures.
    The wait before the n-th retry is ``backoff_seconds * n``. The successful
    response is returned untouched; interpreting the body is up to the caller.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")

    request_headers: Dict[str, str] = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)

    send = client.request if client is not None else httpx.request
    max_attempts = retries + 1
    attempt = 0
    while True:
        attempt += 1
        try:
            response = send(
                method,
                url,
                params=params,
                json=json,
                headers=request_headers,
                timeout=timeout,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPError as exc:
            remaining = max_attempts - attempt
            if remaining <= 0:
                logger.warning(
                    "http.failed",
                    extra={"url": url, "attempts": attempt, "error": str(exc)},
                )
                raise FetchError(url, attempt, exc) from exc
            delay = backoff_delay(attempt, backoff_seconds)
            logger.info(
                "http.retry",
                extra={"url": url, "attempts_left": remaining, "delay_seconds": delay, "error": str(exc)},
            )
            sleep(delay)
