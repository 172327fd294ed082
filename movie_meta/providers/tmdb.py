from __future__ import annotations

import json
import logging
import socket
import time
import urllib.error
import urllib.parse
import urllib.request
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from ..config import ProviderSettings
from ..models import CandidateResult, ProviderError

logger = logging.getLogger(__name__)

TMDB_API_BASE = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/original"
USER_AGENT = "movie-meta/0.1"


class TMDbClient:
    """Movie search against TheMovieDB v3 API."""

    name = "TheMovieDB"

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key required")
        self.settings = settings
        self._open = opener or urllib.request.urlopen
        self._sleep = sleep

    def search(self, title: str, year: Optional[int] = None) -> List[CandidateResult]:
        params: Dict[str, Any] = {
            "api_key": self.settings.tmdb_api_key,
            "query": title,
            "language": self.settings.language,
            "include_adult": "true" if self.settings.include_adult else "false",
        }
        if year is not None:
            params["year"] = year
        url = f"{TMDB_API_BASE}/search/movie?{urllib.parse.urlencode(params)}"
        data = self._request_with_retries(url, label=f"search {title!r}")
        results = data.get("results") or []
        logger.debug("TMDB returned %d result(s) for %r (%s)", len(results), title, year)
        return [self._candidate(row) for row in results if row.get("title")]

    def configuration(self) -> Dict[str, Any]:
        params = urllib.parse.urlencode({"api_key": self.settings.tmdb_api_key})
        return self._request_with_retries(f"{TMDB_API_BASE}/configuration?{params}", label="configuration")

    def _request_with_retries(self, url: str, *, label: str) -> Dict[str, Any]:
        attempts = max(1, 1 + self.settings.network_retries)
        backoff = max(0.0, self.settings.network_retry_backoff_seconds)
        last_exc: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return self._request(url)
            except Exception as exc:
                if not self._is_transient_network_error(exc):
                    raise ProviderError(f"TMDB {label} failed: {exc}") from exc
                last_exc = exc
                if attempt >= attempts:
                    break
                sleep_for = backoff * (2 ** (attempt - 1))
                logger.debug("TMDB %s attempt %d failed (%s); retrying in %.2fs", label, attempt, exc, sleep_for)
                if sleep_for:
                    self._sleep(sleep_for)
        logger.warning("TMDB %s failed after %d attempt(s): %s", label, attempts, last_exc)
        raise ProviderError(f"TMDB {label} failed: {last_exc}") from last_exc

    def _request(self, url: str) -> Dict[str, Any]:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        with self._open(req, timeout=self.settings.request_timeout_seconds) as resp:
            payload = json.load(resp)
        if not isinstance(payload, dict):
            raise ValueError("unexpected TMDB response shape")
        return payload

    @staticmethod
    def _is_transient_network_error(exc: Exception) -> bool:
        if isinstance(exc, urllib.error.HTTPError):
            return exc.code == 429 or exc.code >= 500
        return isinstance(exc, (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError))

    @staticmethod
    def _candidate(row: Dict[str, Any]) -> CandidateResult:
        return CandidateResult(
            title=str(row.get("title")),
            release_date=parse_release_date(row.get("release_date")),
            overview=row.get("overview") or "",
            poster_path=row.get("poster_path") or None,
            tmdb_id=row.get("id"),
        )


def parse_release_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.debug("Ignoring malformed TMDB release date %r", value)
        return None
