"""HTTP fetcher for the results feed.

The feed returns the most recent draws of the game as JSON. Its shape is not
stable, so the fetcher only retrieves and decodes the payload; shape handling
lives in normalizer.py. There are no retries here: an unavailable feed yields
an empty snapshot and the next poll tick tries again.
"""

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests

from .normalizer import DEFAULT_LIMIT, ResultEntry, normalize_feed

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
DEFAULT_HEADERS = {"User-Agent": "Mozilla/5.0", "Accept": "application/json"}

# Health status thresholds
CONSECUTIVE_FAILURES_DEGRADED = 3
CONSECUTIVE_FAILURES_DOWN = 10


class FeedFetchError(Exception):
    """Raised when the feed cannot be retrieved or decoded."""
    def __init__(self, url: str, message: str, original_error: Optional[Exception] = None):
        self.url = url
        self.message = message
        self.original_error = original_error
        super().__init__(f"{url}: {message}")


def _status_for(consecutive_failures: int) -> str:
    if consecutive_failures >= CONSECUTIVE_FAILURES_DOWN:
        return "DOWN"
    if consecutive_failures >= CONSECUTIVE_FAILURES_DEGRADED:
        return "DEGRADED"
    return "OK"


@dataclass(frozen=True)
class FeedHealth:
    """
    Rolling health status of the feed source.

    Immutable: record_success()/record_failure() return the next value, and
    the fetcher swaps its reference, so a reader on another thread always
    sees one consistent record.
    """
    last_success_at: Optional[str] = None
    last_failure_at: Optional[str] = None
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    entries_last_fetch: int = 0
    status: str = "OK"  # OK, DEGRADED, DOWN

    def record_success(self, entries: int, timestamp: Optional[datetime] = None) -> "FeedHealth":
        timestamp = timestamp or datetime.now(timezone.utc)
        return replace(
            self,
            last_success_at=timestamp.isoformat(),
            consecutive_failures=0,
            last_error=None,
            entries_last_fetch=entries,
            status=_status_for(0),
        )

    def record_failure(self, error: str, timestamp: Optional[datetime] = None) -> "FeedHealth":
        timestamp = timestamp or datetime.now(timezone.utc)
        failures = self.consecutive_failures + 1
        return replace(
            self,
            last_failure_at=timestamp.isoformat(),
            consecutive_failures=failures,
            last_error=error,
            entries_last_fetch=0,
            status=_status_for(failures),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "last_success_at": self.last_success_at,
            "last_failure_at": self.last_failure_at,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
            "entries_last_fetch": self.entries_last_fetch,
        }


class FeedFetcher:
    """Fetch the latest draw history from the configured feed URL."""

    def __init__(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = REQUEST_TIMEOUT,
        limit_param: Optional[str] = "pageSize",
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.params = dict(params or {})
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.timeout = timeout
        self.limit_param = limit_param
        self.session = session or requests.Session()
        self.health = FeedHealth()

    def _fetch_impl(self, limit: int) -> Any:
        params = dict(self.params)
        if self.limit_param:
            params[self.limit_param] = limit
        # Cache buster; several feeds serve stale CDN copies without it
        params.setdefault("ts", int(time.time() * 1000))

        try:
            response = self.session.get(
                self.url, params=params, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(self.url, f"Feed request failed: {e}", e) from e

        try:
            return response.json()
        except ValueError as e:
            raise FeedFetchError(self.url, f"Feed returned invalid JSON: {e}", e) from e

    def fetch(self, limit: int = DEFAULT_LIMIT) -> Tuple[Any, Optional[str]]:
        """
        Fetch the raw feed payload.

        Returns:
            Tuple of (payload, error_message)
            - On success: (payload, None)
            - On failure: (None, error_message)
        """
        try:
            return self._fetch_impl(limit), None
        except FeedFetchError as e:
            logger.warning(f"Feed fetch failed: {e}")
            return None, str(e)

    def fetch_snapshot(self, limit: int = DEFAULT_LIMIT) -> List[ResultEntry]:
        """Fetch and normalize; [] means the feed is unavailable right now."""
        payload, error = self.fetch(limit)
        if error:
            self.health = self.health.record_failure(error)
            return []

        entries = normalize_feed(payload, limit=limit)
        if entries:
            self.health = self.health.record_success(len(entries))
        else:
            self.health = self.health.record_failure("Feed payload contained no parseable results")
        return entries
