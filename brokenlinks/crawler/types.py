"""Core type definitions for the link-checking crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class LinkType(str, Enum):
    """Where a discovered link points, relative to the crawled site."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    RESOURCE = "resource"
    UNKNOWN = "unknown"


class UrlState(str, Enum):
    """Frontier visitation state of one canonical URL."""

    UNSEEN = "unseen"
    ENQUEUED = "enqueued"
    OBSERVED = "observed"


class FetchState(str, Enum):
    """States of the per-URL fetch retry machine."""

    PENDING = "pending"
    FETCHING = "fetching"
    SUCCESS = "success"
    RETRYING = "retrying"
    FAILED = "failed"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CrawlStage(str, Enum):
    """Pipeline stage names for error reporting."""

    FETCH = "fetch"
    EXTRACT = "extract"
    STORE = "store"
    NOTIFY = "notify"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for manifests/JSONL."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def is_html_content_type(content_type: str | None) -> bool:
    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    return normalized in {"text/html", "application/xhtml+xml"}


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A crawl candidate tracked by the frontier.

    `leaf` entries are fetched for liveness only and never expanded.
    """

    url: str
    depth: int
    referrer: str | None = None
    raw_url: str | None = None
    leaf: bool = False
    is_base: bool = False
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FetchResult:
    """Terminal outcome of fetching one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    attempts: int = 1
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )

    @property
    def is_html(self) -> bool:
        return self.body is not None and is_html_content_type(self.content_type)


@dataclass(frozen=True, slots=True)
class LinkReference:
    """One anchor occurrence discovered on a page."""

    href: str
    url: str
    normalized_url: str
    text: str
    link_type: LinkType
    is_image: bool = False
    fragment: str = ""

    def to_json(self) -> JSONDict:
        return {
            "href": self.href,
            "url": self.url,
            "normalized_url": self.normalized_url,
            "text": self.text,
            "link_type": self.link_type.value,
            "is_image": self.is_image,
            "fragment": self.fragment,
        }


@dataclass(slots=True)
class PageLinks:
    """Links extracted from one page, split by what the crawl does with them."""

    links: list[LinkReference] = field(default_factory=list)
    crawl_candidates: list[str] = field(default_factory=list)
    check_candidates: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PageObservation:
    """One fetch attempt whose links were not extracted.

    Covers failed fetches, leaf checks (external pages, resources) and pages
    whose extraction failed. See `ExtractedPage` for the other variant.
    """

    url: str
    requested_url: str
    depth: int
    referrer: str | None = None
    is_base: bool = False
    status_code: int | None = None
    error: str | None = None
    title: str | None = None
    fragment_ids: frozenset[str] = frozenset()
    observed_at: str = field(default_factory=utc_now_iso)

    @property
    def links_extracted(self) -> bool:
        return False

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "requested_url": self.requested_url,
            "depth": self.depth,
            "referrer": self.referrer,
            "is_base": self.is_base,
            "status_code": self.status_code,
            "error": self.error,
            "title": self.title,
            "fragment_ids": sorted(self.fragment_ids),
            "links": None,
            "observed_at": self.observed_at,
        }


@dataclass(frozen=True, slots=True)
class ExtractedPage(PageObservation):
    """A fetched page whose outbound links were extracted."""

    links: tuple[LinkReference, ...] = ()

    @property
    def links_extracted(self) -> bool:
        return True

    def to_json(self) -> JSONDict:
        payload = PageObservation.to_json(self)
        payload["links"] = [link.to_json() for link in self.links]
        return payload


@dataclass(frozen=True, slots=True)
class StatusClassification:
    """Bucketed outcome for one (status, error) pair."""

    status: str
    is_error: bool
    issue_type: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True, slots=True)
class LinkEdge:
    """A link reference resolved against the crawl results."""

    source_url: str
    url: str
    normalized_url: str
    text: str
    link_type: LinkType
    status_code: int | None
    error: str | None
    fragment: str
    fragment_valid: bool
    crawled: bool
    status: str
    is_broken: bool
    issue_type: str | None = None
    severity: Severity | None = None

    def to_json(self) -> JSONDict:
        return {
            "source_url": self.source_url,
            "url": self.url,
            "normalized_url": self.normalized_url,
            "text": self.text,
            "link_type": self.link_type.value,
            "status_code": self.status_code,
            "error": self.error,
            "fragment": self.fragment,
            "fragment_valid": self.fragment_valid,
            "crawled": self.crawled,
            "status": self.status,
            "is_broken": self.is_broken,
            "issue_type": self.issue_type,
            "severity": None if self.severity is None else self.severity.value,
        }


@dataclass(slots=True)
class ResultPage:
    """One node of the reachable result graph."""

    url: str
    title: str | None
    edges: list[LinkEdge] = field(default_factory=list)

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "title": self.title,
            "links": [edge.to_json() for edge in self.edges],
        }


@dataclass(slots=True)
class CrawlReport:
    """Resolver output: ordered result pages plus derived edge views."""

    base_url: str
    pages: list[ResultPage] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now_iso)

    def edges(self) -> list[LinkEdge]:
        return [edge for page in self.pages for edge in page.edges]

    @property
    def broken_edges(self) -> list[LinkEdge]:
        return [edge for edge in self.edges() if edge.is_broken]

    @property
    def uncrawled_edges(self) -> list[LinkEdge]:
        return [edge for edge in self.edges() if not edge.crawled]

    @property
    def invalid_fragment_edges(self) -> list[LinkEdge]:
        return [
            edge
            for edge in self.edges()
            if edge.crawled and not edge.is_broken and not edge.fragment_valid
        ]

    def summary(self) -> dict[str, Any]:
        edges = self.edges()
        broken = [edge for edge in edges if edge.is_broken]

        by_severity: dict[str, int] = {}
        by_issue: dict[str, int] = {}
        for edge in broken:
            if edge.severity is not None:
                by_severity[edge.severity.value] = by_severity.get(edge.severity.value, 0) + 1
            if edge.issue_type is not None:
                by_issue[edge.issue_type] = by_issue.get(edge.issue_type, 0) + 1

        return {
            "pages": len(self.pages),
            "links": len(edges),
            "broken": len(broken),
            "uncrawled": sum(1 for edge in edges if not edge.crawled),
            "invalid_fragments": len(self.invalid_fragment_edges),
            "broken_by_severity": by_severity,
            "broken_by_issue_type": by_issue,
        }

    def to_json(self) -> list[JSONDict]:
        return [page.to_json() for page in self.pages]


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    """One error row written to errors.jsonl."""

    stage: CrawlStage
    url: str
    message: str
    error_type: str | None = None
    referrer: str | None = None
    status_code: int | None = None
    created_at: str = field(default_factory=utc_now_iso)
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    @classmethod
    def from_exception(
        cls,
        *,
        stage: CrawlStage,
        url: str,
        exc: Exception,
        **kwargs: Any,
    ) -> "ErrorRecord":
        return cls(
            stage=stage,
            url=url,
            message=str(exc),
            error_type=exc.__class__.__name__,
            **kwargs,
        )

    def to_json(self) -> JSONDict:
        return {
            "stage": self.stage.value,
            "url": self.url,
            "message": self.message,
            "error_type": self.error_type,
            "referrer": self.referrer,
            "status_code": self.status_code,
            "created_at": self.created_at,
            "metadata": self.metadata,
        }


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_visited: int = 0
    frontier_skipped_depth: int = 0
    frontier_skipped_budget: int = 0

    fetched_ok: int = 0
    fetched_error: int = 0
    pages_extracted: int = 0
    extraction_errors: int = 0
    links_discovered: int = 0
    observations: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_visited": self.frontier_skipped_visited,
            "frontier_skipped_depth": self.frontier_skipped_depth,
            "frontier_skipped_budget": self.frontier_skipped_budget,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "pages_extracted": self.pages_extracted,
            "extraction_errors": self.extraction_errors,
            "links_discovered": self.links_discovered,
            "observations": self.observations,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlReport",
    "CrawlStage",
    "CrawlStats",
    "ErrorRecord",
    "ExtractedPage",
    "FetchResult",
    "FetchState",
    "FrontierItem",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "LinkEdge",
    "LinkReference",
    "LinkType",
    "PageLinks",
    "PageObservation",
    "ResultPage",
    "Severity",
    "StatusClassification",
    "UrlState",
    "is_html_content_type",
    "utc_now_iso",
]
