"""Rebuild the reachable link graph from raw page observations.

The resolver replays the crawl over already-collected data: starting at the
base page it walks outbound links breadth-first, resolves every link against
a canonical-URL lookup table, validates fragments, and classifies failures.
It never trusts the raw observation list directly, so stale or unreachable
observations never surface in a report.
"""

from __future__ import annotations

from collections import deque
import logging
from typing import Iterable, Mapping

from .constants import (
    CONNECTION_RESET_SIGNATURES,
    DNS_FAILURE_SIGNATURES,
    STATUS_CLIENT_ERROR,
    STATUS_NOT_MODIFIED,
    STATUS_OK,
    STATUS_REDIRECTION,
    STATUS_SERVER_ERROR,
    TIMEOUT_SIGNATURES,
)
from .types import (
    CrawlReport,
    LinkEdge,
    LinkReference,
    PageObservation,
    ResultPage,
    Severity,
    StatusClassification,
)
from .url import normalize_url

LOGGER = logging.getLogger(__name__)


UNCRAWLED = StatusClassification(status="Not Crawled", is_error=False)

# (status label, issue type, severity) per specific HTTP code.
_SPECIFIC_STATUS: dict[int, tuple[str, str, Severity]] = {
    401: ("Unauthorized", "401_unauthorized", Severity.MEDIUM),
    403: ("Forbidden", "403_forbidden", Severity.MEDIUM),
    404: ("Not Found", "404_not_found", Severity.HIGH),
    410: ("Gone", "410_gone", Severity.HIGH),
    429: ("Too Many Requests", "429_too_many_requests", Severity.MEDIUM),
    500: ("Server Error", "500_server_error", Severity.HIGH),
    502: ("Bad Gateway", "502_bad_gateway", Severity.MEDIUM),
    503: ("Service Unavailable", "503_service_unavailable", Severity.MEDIUM),
    504: ("Gateway Timeout", "504_gateway_timeout", Severity.MEDIUM),
}

# Ordered: the first matching signature group wins.
_ERROR_BUCKETS: tuple[tuple[tuple[str, ...], str, str, Severity], ...] = (
    (TIMEOUT_SIGNATURES, "Timeout", "timeout", Severity.HIGH),
    (DNS_FAILURE_SIGNATURES, "Not Found / Connection Failed", "dns_failure", Severity.HIGH),
    (CONNECTION_RESET_SIGNATURES, "Connection Reset", "connection_reset", Severity.MEDIUM),
)


def classify_error(error: str) -> StatusClassification:
    lowered = error.lower()
    for signatures, status, issue_type, severity in _ERROR_BUCKETS:
        if any(signature in lowered for signature in signatures):
            return StatusClassification(status, True, issue_type, severity)
    return StatusClassification("Error", True, "fetch_error", Severity.MEDIUM)


def classify_status(status_code: int | None, error: str | None = None) -> StatusClassification:
    """Bucket a fetch outcome into a status label, issue type and severity.

    An error message always wins over the status code. Redirects (3xx other
    than 304) are reported as such but are not errors.
    """

    if error:
        return classify_error(error)

    if not status_code:
        return StatusClassification("No Response", True, "no_response", Severity.MEDIUM)

    if STATUS_OK <= status_code < STATUS_REDIRECTION:
        return StatusClassification("OK", False)

    if status_code == STATUS_NOT_MODIFIED:
        return StatusClassification("Not Modified", False)

    if STATUS_REDIRECTION <= status_code < STATUS_CLIENT_ERROR:
        return StatusClassification("Redirect", False, "redirect", Severity.LOW)

    specific = _SPECIFIC_STATUS.get(status_code)
    if specific is not None:
        status, issue_type, severity = specific
        return StatusClassification(status, True, issue_type, severity)

    if STATUS_CLIENT_ERROR <= status_code < STATUS_SERVER_ERROR:
        return StatusClassification("Client Error", True, "4xx_client_error", Severity.MEDIUM)

    if status_code >= STATUS_SERVER_ERROR:
        return StatusClassification("Server Error", True, "5xx_server_error", Severity.MEDIUM)

    # 1xx and other non-final codes.
    return StatusClassification("Unknown", True, "unknown_status", Severity.MEDIUM)


def build_lookup(observations: Iterable[PageObservation]) -> dict[str, PageObservation]:
    """Map canonical URL -> observation; the last observation for a URL wins."""

    lookup: dict[str, PageObservation] = {}
    for observation in observations:
        lookup[observation.url] = observation
    return lookup


def resolve_link(
    reference: LinkReference,
    lookup: Mapping[str, PageObservation],
    *,
    source_url: str,
) -> LinkEdge:
    """Resolve one link reference against the crawled pages."""

    target = lookup.get(reference.normalized_url)
    fragment = reference.fragment

    if target is None:
        return LinkEdge(
            source_url=source_url,
            url=reference.url,
            normalized_url=reference.normalized_url,
            text=reference.text,
            link_type=reference.link_type,
            status_code=None,
            error=None,
            fragment=fragment,
            # Unknown status is not a missing fragment.
            fragment_valid=not fragment,
            crawled=False,
            status=UNCRAWLED.status,
            is_broken=False,
        )

    classification = classify_status(target.status_code, target.error)
    fragment_valid = not fragment or fragment in target.fragment_ids

    issue_type = classification.issue_type
    severity = classification.severity
    if not classification.is_error and not fragment_valid:
        issue_type = "missing_fragment"
        severity = Severity.LOW

    return LinkEdge(
        source_url=source_url,
        url=reference.url,
        normalized_url=reference.normalized_url,
        text=reference.text,
        link_type=reference.link_type,
        status_code=target.status_code,
        error=target.error,
        fragment=fragment,
        fragment_valid=fragment_valid,
        crawled=True,
        status=classification.status,
        is_broken=classification.is_error,
        issue_type=issue_type,
        severity=severity,
    )


def resolve_results(base_url: str, observations: Iterable[PageObservation]) -> CrawlReport:
    """Walk the reachable graph from `base_url` and resolve every link on it."""

    base = normalize_url(base_url)
    if base is None:
        raise ValueError(f"Invalid base URL: {base_url!r}")

    lookup = build_lookup(observations)
    report = CrawlReport(base_url=base)

    pending: deque[str] = deque([base])
    done: set[str] = set()

    while pending:
        url = pending.popleft()
        if url in done:
            continue
        done.add(url)

        LOGGER.debug("Processing result: %s", url)
        observation = lookup.get(url)
        page = ResultPage(url=url, title=None if observation is None else observation.title)
        report.pages.append(page)

        if observation is None or not observation.links_extracted:
            continue

        for reference in observation.links:
            page.edges.append(resolve_link(reference, lookup, source_url=url))
            # Only pages that were themselves link-extracted contribute new nodes.
            if reference.normalized_url not in done:
                pending.append(reference.normalized_url)

    LOGGER.info(
        "Resolved %d pages from %d observations",
        len(report.pages),
        len(lookup),
    )
    return report


__all__ = [
    "UNCRAWLED",
    "build_lookup",
    "classify_error",
    "classify_status",
    "resolve_link",
    "resolve_results",
]
