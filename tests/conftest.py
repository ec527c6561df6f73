"""Shared fixtures: a small in-memory website and a fake fetcher serving it."""

from __future__ import annotations

import threading
from typing import Mapping

import pytest

from brokenlinks.crawler.config import CrawlConfig
from brokenlinks.crawler.types import FetchResult
from brokenlinks.crawler.url import normalize_url

HTML = "text/html; charset=utf-8"

BASE_URL = "https://example.com/"


def page(body: str, title: str | None = None) -> str:
    head = f"<title>{title}</title>" if title else ""
    return f"<html><head>{head}</head><body>{body}</body></html>"


# url -> (status, content_type, body) or an error string.
Site = Mapping[str, "tuple[int, str | None, str] | str"]


class FakeFetcher:
    """Serve canned responses keyed by canonical URL; unknown URLs are 404."""

    def __init__(self, site: Site) -> None:
        self._site = {normalize_url(url): response for url, response in site.items()}
        self._lock = threading.Lock()
        self.calls: list[tuple[str, bool]] = []
        self.closed = False

    def fetch(self, url: str, *, leaf: bool = False) -> FetchResult:
        with self._lock:
            self.calls.append((url, leaf))

        response = self._site.get(normalize_url(url), (404, HTML, page("Not found")))
        if isinstance(response, str):
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                error=response,
            )

        status, content_type, body = response
        return FetchResult(
            requested_url=url,
            final_url=url,
            status_code=status,
            content_type=content_type,
            body=body.encode("utf-8"),
        )

    def close(self) -> None:
        self.closed = True

    @property
    def fetched_urls(self) -> list[str]:
        with self._lock:
            return [normalize_url(url) for url, _ in self.calls]


def make_config(**overrides) -> CrawlConfig:
    params = {
        "base_url": BASE_URL,
        "concurrency": 2,
        "rate_limit_seconds": 0.0,
        "retry_backoff_seconds": 0.0,
    }
    params.update(overrides)
    return CrawlConfig(**params)


@pytest.fixture
def config() -> CrawlConfig:
    return make_config()


@pytest.fixture
def small_site() -> dict:
    """Base links to A; A links to B (dead), C and back to itself via a fragment."""

    return {
        "https://example.com/": (
            200,
            HTML,
            page('<a href="/a">Go to A</a>', title="Home"),
        ),
        "https://example.com/a": (
            200,
            HTML,
            page(
                '<h2 id="section1">One</h2>'
                '<a href="/b">B</a>'
                '<a href="/c">C</a>'
                '<a href="/a#section1">Self</a>'
                '<a href="/c#missing">C missing</a>',
                title="Page A",
            ),
        ),
        "https://example.com/b": (404, HTML, page("gone")),
        "https://example.com/c": (200, HTML, page('<p id="intro">C</p>', title="Page C")),
    }
