"""Tests for the metadata search client: retry, breaker, degradation."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import httpx
import pytest
from circuitbreaker import CircuitBreakerMonitor
from tenacity import wait_none

from nsmigrate.dependency.metadata_search import (
    ArtifactCandidate,
    MavenCentralSearch,
    _breaker_registry,
)

BASE_URL = "https://search.example/solrsearch/select"


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    """Reset circuit breakers between tests."""
    _breaker_registry.clear()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Iterator[None]:
    """Disable tenacity wait time for fast tests."""
    fetch: Any = MavenCentralSearch._fetch  # pyright: ignore[reportPrivateUsage]
    original_wait = fetch.retry.wait
    fetch.retry.wait = wait_none()
    yield
    fetch.retry.wait = original_wait


def _client(handler: Any) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _ok(docs: list[dict[str, str]]) -> httpx.Response:
    return httpx.Response(200, json={"response": {"docs": docs}})


class TestSearch:
    def test_parses_docs(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok([
                {"g": "jakarta.mail", "a": "jakarta.mail-api",
                 "latestVersion": "2.1.2"},
                {"g": "jakarta.mail", "a": "incomplete"},
            ])

        search = MavenCentralSearch(BASE_URL, client=_client(handler))
        result = search.search("g:jakarta.mail*")
        assert result == [
            ArtifactCandidate("jakarta.mail", "jakarta.mail-api", "2.1.2")
        ]
        assert seen[0].url.params["q"] == "g:jakarta.mail*"
        assert seen[0].url.params["wt"] == "json"

    def test_malformed_payload_returns_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        search = MavenCentralSearch(BASE_URL, client=_client(handler))
        assert search.search("g:x*") == []

    def test_client_error_not_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(404)

        search = MavenCentralSearch(BASE_URL, client=_client(handler))
        assert search.search("g:x*") == []
        assert calls == 1

    def test_server_error_retried_then_recovers(self) -> None:
        responses = iter([httpx.Response(503), _ok([
            {"g": "jakarta.el", "a": "jakarta.el-api", "v": "5.0.1"},
        ])])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        search = MavenCentralSearch(BASE_URL, client=_client(handler))
        result = search.search("g:jakarta.el*")
        assert [c.latest_version for c in result] == ["5.0.1"]


class TestCircuitBreaker:
    def test_circuit_opens_after_threshold(self) -> None:
        """Three retried 500s open the breaker; later calls skip HTTP."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        search = MavenCentralSearch(
            BASE_URL, client=_client(handler), failure_threshold=3
        )
        assert search.search("g:a*") == []
        assert calls == 3

        assert search.search("g:b*") == []
        assert calls == 3

    def test_breaker_shared_per_endpoint(self) -> None:
        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502)

        MavenCentralSearch(
            BASE_URL, client=_client(failing), failure_threshold=3
        ).search("g:a*")

        calls = 0

        def healthy(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return _ok([])

        other = MavenCentralSearch(BASE_URL, client=_client(healthy))
        assert other.search("g:a*") == []
        assert calls == 0
