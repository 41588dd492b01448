from __future__ import annotations

import logging

import httpx
import pytest

pytest.importorskip("pytest_httpx")

from ingestion.services.http_client import FetchError, backoff_delay, fetch_with_retry

URL = "https://api.example.com/resource"


class _Sleeps:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def test_success_returns_response_untouched(httpx_mock):
    httpx_mock.add_response(url=URL, json={"ok": True, "items": [1, 2]})
    sleeps = _Sleeps()

    resp = fetch_with_retry(URL, sleep=sleeps)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "items": [1, 2]}
    assert sleeps.calls == []


def test_always_failing_target_makes_initial_plus_retries_attempts(httpx_mock):
    for _ in range(3):
        httpx_mock.add_response(url=URL, status_code=503)
    sleeps = _Sleeps()

    with pytest.raises(FetchError) as exc:
        fetch_with_retry(URL, retries=2, backoff_seconds=1.0, sleep=sleeps)

    assert len(httpx_mock.get_requests()) == 3
    assert exc.value.attempts == 3
    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)
    assert sleeps.calls == [1.0, 2.0]


def test_recovers_after_transient_failure(httpx_mock):
    httpx_mock.add_response(url=URL, status_code=500)
    httpx_mock.add_response(url=URL, json={"ok": True})
    sleeps = _Sleeps()

    resp = fetch_with_retry(URL, retries=3, backoff_seconds=0.5, sleep=sleeps)

    assert resp.json() == {"ok": True}
    assert sleeps.calls == [0.5]


def test_timeout_without_retries_propagates_cause(httpx_mock):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url=URL)

    with pytest.raises(FetchError) as exc:
        fetch_with_retry(URL, retries=0, sleep=_Sleeps())

    assert exc.value.attempts == 1
    assert isinstance(exc.value.cause, httpx.ReadTimeout)


def test_post_sends_json_and_merges_headers(httpx_mock):
    httpx_mock.add_response(url=URL, method="POST", json={"done": True})

    fetch_with_retry(URL, method="POST", json={"a": 1}, headers={"X-Trace": "t1"}, sleep=_Sleeps())

    request = httpx_mock.get_requests()[0]
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["X-Trace"] == "t1"
    assert request.content == b'{"a":1}' or request.content == b'{"a": 1}'


def test_each_retry_is_logged_with_remaining_attempts(httpx_mock, caplog):
    for _ in range(3):
        httpx_mock.add_response(url=URL, status_code=502)
    caplog.set_level(logging.INFO, logger="ingestion.services.http_client")

    with pytest.raises(FetchError):
        fetch_with_retry(URL, retries=2, sleep=_Sleeps())

    retries = [r for r in caplog.records if r.getMessage() == "http.retry"]
    assert [r.attempts_left for r in retries] == [2, 1]


def test_backoff_is_linear():
    assert [backoff_delay(n, 1.5) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]


def test_negative_retries_rejected():
    with pytest.raises(ValueError):
        fetch_with_retry(URL, retries=-1)
