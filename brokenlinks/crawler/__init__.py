"""Crawler package: config, shared types, and pipeline components."""

from .classifier import LinkPolicy, classify_link_type, extract_links, parse_document
from .config import CrawlConfig, NotificationConfig, load_config, save_config
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .notification import EmailNotifier, notify_if_needed
from .pipeline import Pipeline
from .report import render_email_report, render_html_report
from .resolver import build_lookup, classify_status, resolve_link, resolve_results
from .stats import StatsCollector
from .storage import Storage
from .store import ObservationStore
from .types import (
    CrawlReport,
    CrawlStage,
    CrawlStats,
    ErrorRecord,
    ExtractedPage,
    FetchResult,
    FetchState,
    FrontierItem,
    LinkEdge,
    LinkReference,
    LinkType,
    PageLinks,
    PageObservation,
    ResultPage,
    Severity,
    StatusClassification,
    UrlState,
    utc_now_iso,
)
from .url import host_from_url, is_same_site, normalize_url, registrable_domain, resolve_href

__all__ = [
    "CrawlConfig",
    "CrawlReport",
    "CrawlStage",
    "CrawlStats",
    "EmailNotifier",
    "EnqueueResult",
    "EnqueueStatus",
    "ErrorRecord",
    "ExtractedPage",
    "FetchResult",
    "FetchState",
    "Fetcher",
    "Frontier",
    "FrontierItem",
    "LinkEdge",
    "LinkPolicy",
    "LinkReference",
    "LinkType",
    "NotificationConfig",
    "ObservationStore",
    "PageLinks",
    "PageObservation",
    "Pipeline",
    "ResultPage",
    "Severity",
    "StatsCollector",
    "StatusClassification",
    "Storage",
    "UrlState",
    "build_lookup",
    "classify_link_type",
    "classify_status",
    "extract_links",
    "host_from_url",
    "is_same_site",
    "load_config",
    "normalize_url",
    "notify_if_needed",
    "parse_document",
    "registrable_domain",
    "render_email_report",
    "render_html_report",
    "resolve_href",
    "resolve_link",
    "resolve_results",
    "save_config",
    "utc_now_iso",
]
