"""URL fetching with a requests backend and retry/rate-limit logic."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import requests

from .config import CrawlConfig
from .types import FetchResult, FetchState, is_html_content_type
from .url import host_from_url

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class _AttemptConfig:
    attempts: int
    backoff_seconds: float


class Fetcher:
    """Fetch URLs over HTTP with `requests`.

    Concurrency model:
    - One `requests.Session` per worker thread.
    - Rate limiting is per host and shared across threads.

    Each URL runs through `pending -> fetching -> {success, retrying, failed}`.
    A response that carries any HTTP status is terminal: 4xx/5xx answers are
    reported as-is and never retried. Only transport errors (timeouts, DNS,
    refused or reset connections) move to `retrying`, and once the attempt
    budget is spent the last error becomes the `failed` result.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

        self._thread_local = threading.local()

        self._rate_lock = threading.Lock()
        self._next_allowed_time_by_host: dict[str, float] = {}

        self._robots_lock = threading.Lock()
        self._robots_cache: dict[str, RobotFileParser | None] = {}

        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch(self, url: str, *, leaf: bool = False) -> FetchResult:
        """Fetch one URL with retries and policies; never raises for transport errors."""

        url = (url or "").strip()
        if not host_from_url(url):
            return self._failure(url, "Invalid or unsupported URL", attempts=0)

        if self._is_closed():
            return self._failure(url, "Fetcher is closed", attempts=0)

        if self.config.respect_robots and not self._is_allowed_by_robots(url):
            return self._failure(url, "Blocked by robots.txt", attempts=0)

        attempt_cfg = _AttemptConfig(
            attempts=max(1, self.config.retries + 1),
            backoff_seconds=max(0.0, self.config.retry_backoff_seconds),
        )
        return self._fetch_with_retries(url, leaf=leaf, attempt_cfg=attempt_cfg)

    def close(self) -> None:
        """Close every per-thread session."""

        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    @staticmethod
    def _failure(url: str, error: str, *, attempts: int = 1) -> FetchResult:
        return FetchResult(
            requested_url=url,
            final_url=None,
            status_code=None,
            content_type=None,
            body=None,
            attempts=attempts,
            error=error,
        )

    def _fetch_with_retries(
        self,
        url: str,
        *,
        leaf: bool,
        attempt_cfg: _AttemptConfig,
    ) -> FetchResult:
        state = FetchState.PENDING
        result: FetchResult | None = None

        for attempt in range(1, attempt_cfg.attempts + 1):
            if self._is_closed():
                return self._failure(url, "Fetcher is closed", attempts=attempt - 1)

            LOGGER.debug("Fetch %s: %s -> %s", url, state.value, FetchState.FETCHING.value)
            result = self._fetch_once(url, leaf=leaf)
            result.attempts = attempt

            state = self._next_state(result, attempt, attempt_cfg.attempts)
            LOGGER.debug(
                "Fetch %s attempt %d/%d -> %s (status=%s, error=%s)",
                url,
                attempt,
                attempt_cfg.attempts,
                state.value,
                result.status_code,
                result.error,
            )
            if state != FetchState.RETRYING:
                break

            if attempt_cfg.backoff_seconds > 0:
                # Linear backoff.
                time.sleep(attempt_cfg.backoff_seconds * attempt)

        if result is None:
            return self._failure(url, "Unknown fetch failure", attempts=0)

        if state == FetchState.FAILED:
            LOGGER.info("Fetch failed for %s after %d attempt(s): %s", url, result.attempts, result.error)
        return result

    @staticmethod
    def is_terminal(result: FetchResult) -> bool:
        """Any HTTP status ends the retry loop; only transport errors retry."""

        return result.status_code is not None

    @classmethod
    def _next_state(cls, result: FetchResult, attempt: int, max_attempts: int) -> FetchState:
        if cls.is_terminal(result):
            return FetchState.SUCCESS
        if attempt < max_attempts:
            return FetchState.RETRYING
        return FetchState.FAILED

    def _fetch_once(self, url: str, *, leaf: bool) -> FetchResult:
        self._wait_for_rate_limit(url)
        started = time.perf_counter()

        session = self._thread_local_session()

        try:
            with session.get(
                url,
                headers=self.config.headers(),
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
                stream=True,
            ) as response:
                content_type = response.headers.get("Content-Type")
                body: bytes | None = None
                if not leaf or is_html_content_type(content_type):
                    body = self._read_body(response)
                elapsed_ms = int((time.perf_counter() - started) * 1000)

                return FetchResult(
                    requested_url=url,
                    final_url=response.url or url,
                    status_code=response.status_code,
                    content_type=content_type,
                    body=body,
                    elapsed_ms=elapsed_ms,
                    error=None,
                )
        except requests.RequestException as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                elapsed_ms=elapsed_ms,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def _read_body(self, response: requests.Response) -> bytes:
        limit = self.config.max_body_bytes
        chunks: list[bytes] = []
        size = 0
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            if not chunk:
                continue
            chunks.append(chunk)
            size += len(chunk)
            if size >= limit:
                LOGGER.debug("Body of %s truncated at %d bytes", response.url, limit)
                break
        return b"".join(chunks)[:limit]

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _wait_for_rate_limit(self, url: str) -> None:
        wait_seconds = max(0.0, self.config.rate_limit_seconds)
        if wait_seconds <= 0:
            return

        host = host_from_url(url) or ""

        while True:
            with self._rate_lock:
                now = time.monotonic()
                next_allowed = self._next_allowed_time_by_host.get(host, 0.0)
                if now >= next_allowed:
                    self._next_allowed_time_by_host[host] = now + wait_seconds
                    return
                sleep_for = next_allowed - now

            if sleep_for > 0:
                time.sleep(sleep_for)

    def _is_allowed_by_robots(self, url: str) -> bool:
        parsed = urlsplit(url)
        host_key = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"

        with self._robots_lock:
            cached = host_key in self._robots_cache
            parser = self._robots_cache.get(host_key)

        if not cached:
            parser = self._load_robots_parser(host_key)
            with self._robots_lock:
                self._robots_cache[host_key] = parser

        # Unreadable robots.txt fails open.
        if parser is None:
            return True

        return parser.can_fetch(self.config.user_agent or "*", url)

    def _load_robots_parser(self, host_root: str) -> RobotFileParser | None:
        robots_url = f"{host_root}/robots.txt"

        try:
            response = self._thread_local_session().get(
                robots_url,
                headers={"User-Agent": self.config.user_agent},
                timeout=min(10.0, self.config.timeout_seconds),
            )
        except requests.RequestException as exc:
            LOGGER.debug("Could not load %s: %s", robots_url, exc)
            return None

        if response.status_code >= 400:
            return None

        parser = RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(response.text.splitlines())
        return parser


__all__ = ["Fetcher"]
