"""Artifact metadata search against a Maven Central style solr endpoint.

Network-backed and unreliable by contract: timeouts, HTTP errors,
an open circuit and malformed payloads all degrade to an empty
candidate list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from nsmigrate.constants import (
    CB_SEARCH_FAILURE_THRESHOLD,
    CB_SEARCH_RECOVERY_TIMEOUT,
    METADATA_SEARCH_ROWS,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from nsmigrate.resilience.errors import classify_error, is_retryable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactCandidate:
    group: str
    name: str
    latest_version: str


class MetadataSearch(Protocol):
    def search(self, query: str) -> list[ArtifactCandidate]: ...


def _is_breaker_failure(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Only retryable (infrastructure) errors count toward opening.

    A 404 or malformed query is the caller's problem, not an outage.
    """
    return is_retryable(thrown_value)


# Per-endpoint circuit breaker registry
_breaker_registry: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]


def _get_breaker(  # pyright: ignore[reportUnknownParameterType]
    endpoint: str,
    failure_threshold: int = CB_SEARCH_FAILURE_THRESHOLD,
    recovery_timeout: int = CB_SEARCH_RECOVERY_TIMEOUT,
) -> CircuitBreaker:
    """Breaker per endpoint; the first caller fixes its thresholds."""
    if endpoint not in _breaker_registry:
        _breaker_registry[endpoint] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=_is_breaker_failure,
            name=f"metadata_{endpoint}",
        )
    return _breaker_registry[endpoint]


def _parse_docs(payload: Any) -> list[ArtifactCandidate]:
    docs = payload.get("response", {}).get("docs", [])
    candidates: list[ArtifactCandidate] = []
    for doc in docs:
        group = doc.get("g")
        name = doc.get("a")
        version = doc.get("latestVersion") or doc.get("v")
        if group and name and version:
            candidates.append(
                ArtifactCandidate(
                    group=str(group),
                    name=str(name),
                    latest_version=str(version),
                )
            )
    return candidates


class MavenCentralSearch:
    """Synchronous search client with retry and circuit breaking."""

    def __init__(
        self,
        base_url: str = "https://search.maven.org/solrsearch/select",
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        failure_threshold: int = CB_SEARCH_FAILURE_THRESHOLD,
        recovery_timeout: int = CB_SEARCH_RECOVERY_TIMEOUT,
    ) -> None:
        self._base_url = base_url
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._client = client or httpx.Client(timeout=timeout)

    def _breaker(self) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
        return _get_breaker(
            self._base_url, self._failure_threshold, self._recovery_timeout
        )

    def close(self) -> None:
        self._client.close()

    def search(self, query: str) -> list[ArtifactCandidate]:
        breaker = self._breaker()
        if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
            logger.warning(
                "event=metadata_search_skipped reason=circuit_open query=%s",
                query,
            )
            return []
        try:
            payload = self._fetch(query)
            candidates = _parse_docs(payload)
        except CircuitBreakerError:
            logger.warning(
                "event=metadata_search_skipped reason=circuit_open query=%s",
                query,
            )
            return []
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning(
                "event=metadata_search_failed query=%s error_class=%s"
                " error=%s",
                query,
                classify_error(exc).value,
                exc,
            )
            return []
        logger.debug(
            "event=metadata_search query=%s results=%d",
            query,
            len(candidates),
        )
        return candidates

    @retry(
        stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
        wait=wait_exponential_jitter(
            initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
        ),
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    def _fetch(self, query: str) -> Any:
        breaker = self._breaker()
        with breaker:  # pyright: ignore[reportUnknownMemberType]
            response = self._client.get(
                self._base_url,
                params={
                    "q": query,
                    "rows": METADATA_SEARCH_ROWS,
                    "wt": "json",
                },
            )
            response.raise_for_status()
        return response.json()
