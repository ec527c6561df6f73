"""Tests for brokenlinks.crawler.resolver."""

from __future__ import annotations

import pytest

from brokenlinks.crawler.resolver import build_lookup, classify_status, resolve_link, resolve_results
from brokenlinks.crawler.types import (
    ExtractedPage,
    LinkReference,
    LinkType,
    PageObservation,
    Severity,
)


def _ref(url: str, *, fragment: str = "", link_type: LinkType = LinkType.INTERNAL) -> LinkReference:
    href = f"{url}#{fragment}" if fragment else url
    return LinkReference(
        href=href,
        url=href,
        normalized_url=url,
        text="link",
        link_type=link_type,
        fragment=fragment,
    )


def _page(url: str, *links: LinkReference, status: int = 200, ids=(), **kwargs) -> ExtractedPage:
    return ExtractedPage(
        url=url,
        requested_url=url,
        depth=0,
        status_code=status,
        title=f"Title of {url}",
        fragment_ids=frozenset(ids),
        links=tuple(links),
        **kwargs,
    )


def _leaf(url: str, *, status: int | None = 200, error: str | None = None, ids=()) -> PageObservation:
    return PageObservation(
        url=url,
        requested_url=url,
        depth=1,
        status_code=status,
        error=error,
        fragment_ids=frozenset(ids),
    )


BASE = "https://example.com"
A = "https://example.com/a"
B = "https://example.com/b"
C = "https://example.com/c"


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "status, label, issue, severity",
        [
            (404, "Not Found", "404_not_found", Severity.HIGH),
            (403, "Forbidden", "403_forbidden", Severity.MEDIUM),
            (401, "Unauthorized", "401_unauthorized", Severity.MEDIUM),
            (418, "Client Error", "4xx_client_error", Severity.MEDIUM),
            (500, "Server Error", "500_server_error", Severity.HIGH),
            (502, "Bad Gateway", "502_bad_gateway", Severity.MEDIUM),
            (503, "Service Unavailable", "503_service_unavailable", Severity.MEDIUM),
            (599, "Server Error", "5xx_server_error", Severity.MEDIUM),
        ],
    )
    def test_error_statuses(self, status, label, issue, severity):
        result = classify_status(status)
        assert (result.status, result.is_error, result.issue_type, result.severity) == (
            label,
            True,
            issue,
            severity,
        )

    def test_ok_and_not_modified(self):
        assert not classify_status(200).is_error
        assert not classify_status(204).is_error
        assert classify_status(304).status == "Not Modified"
        assert not classify_status(304).is_error

    def test_redirect_is_low_severity_not_error(self):
        result = classify_status(301)
        assert result.status == "Redirect"
        assert not result.is_error
        assert result.severity == Severity.LOW

    def test_missing_status(self):
        result = classify_status(None)
        assert result.is_error
        assert result.issue_type == "no_response"

    @pytest.mark.parametrize(
        "error, issue, severity",
        [
            ("ReadTimeout: read timeout=15", "timeout", Severity.HIGH),
            ("Navigation timed out after 30 seconds", "timeout", Severity.HIGH),
            ("ConnectionError: NameResolutionError: Failed to resolve 'nope.invalid'", "dns_failure", Severity.HIGH),
            ("ConnectionError: [Errno 111] Connection refused", "dns_failure", Severity.HIGH),
            ("ConnectionError: ('Connection aborted.', ConnectionResetError(104, 'Connection reset by peer'))", "connection_reset", Severity.MEDIUM),
            ("TooManyRedirects: Exceeded 30 redirects.", "fetch_error", Severity.MEDIUM),
        ],
    )
    def test_error_message_wins(self, error, issue, severity):
        result = classify_status(200, error)
        assert result.is_error
        assert (result.issue_type, result.severity) == (issue, severity)


class TestResolveLink:
    def test_uncrawled_is_not_broken(self):
        edge = resolve_link(_ref(B), {}, source_url=A)
        assert not edge.crawled
        assert not edge.is_broken
        assert edge.fragment_valid
        assert edge.status_code is None

    def test_uncrawled_with_fragment_is_not_fragment_valid(self):
        edge = resolve_link(_ref(B, fragment="x"), {}, source_url=A)
        assert not edge.crawled
        assert not edge.fragment_valid
        assert not edge.is_broken

    def test_fragment_validation(self):
        lookup = build_lookup([_leaf(C, ids={"intro"})])
        assert resolve_link(_ref(C, fragment="intro"), lookup, source_url=A).fragment_valid

        missing = resolve_link(_ref(C, fragment="nope"), lookup, source_url=A)
        assert not missing.fragment_valid
        assert not missing.is_broken
        assert missing.issue_type == "missing_fragment"
        assert missing.severity == Severity.LOW

    def test_error_copied(self):
        lookup = build_lookup([_leaf(B, status=None, error="ReadTimeout: timed out")])
        edge = resolve_link(_ref(B), lookup, source_url=A)
        assert edge.crawled
        assert edge.is_broken
        assert edge.status == "Timeout"
        assert edge.error == "ReadTimeout: timed out"

    def test_last_write_wins(self):
        lookup = build_lookup([_leaf(B, status=500), _leaf(B, status=200)])
        assert lookup[B].status_code == 200
        assert not resolve_link(_ref(B), lookup, source_url=A).is_broken


class TestResolveResults:
    def test_reachable_graph(self):
        observations = [
            _page(BASE, _ref(A), is_base=True),
            _page(A, _ref(B), _ref(C), _ref(A, fragment="section1"), ids={"section1"}),
            _leaf(B, status=404),
            _page(C),
        ]
        report = resolve_results("https://www.example.com/", observations)

        assert [page.url for page in report.pages] == [BASE, A, B, C]
        assert report.pages[0].title == f"Title of {BASE}"

        broken = report.broken_edges
        assert len(broken) == 1
        assert (broken[0].source_url, broken[0].normalized_url, broken[0].status_code) == (A, B, 404)

        self_link = report.pages[1].edges[2]
        assert self_link.fragment_valid
        assert not self_link.is_broken

    def test_unreachable_observations_ignored(self):
        observations = [
            _page(BASE, _ref(A)),
            _page(A),
            _page("https://example.com/orphan"),
        ]
        report = resolve_results(BASE, observations)
        assert [page.url for page in report.pages] == [BASE, A]

    def test_leaf_nodes_do_not_expand(self):
        observations = [
            _page(BASE, _ref("https://other.org/x", link_type=LinkType.EXTERNAL)),
            # A separately fetched leaf that happens to carry links must not contribute.
            _leaf("https://other.org/x"),
            _page("https://other.org/y"),
        ]
        report = resolve_results(BASE, observations)
        assert [page.url for page in report.pages] == [BASE, "https://other.org/x"]
        assert report.pages[1].edges == []

    def test_uncrawled_target_still_listed(self):
        report = resolve_results(BASE, [_page(BASE, _ref(A))])
        assert [page.url for page in report.pages] == [BASE, A]
        assert report.pages[1].title is None
        assert len(report.uncrawled_edges) == 1
        assert report.broken_edges == []

    def test_each_source_gets_own_edge(self):
        observations = [
            _page(BASE, _ref(A), _ref(B)),
            _page(A, _ref(B)),
            _leaf(B, status=500),
        ]
        report = resolve_results(BASE, observations)
        assert sorted(edge.source_url for edge in report.broken_edges) == [BASE, A]

    def test_summary(self):
        observations = [
            _page(BASE, _ref(A), _ref(B), _ref(C, fragment="gone")),
            _leaf(A, status=404),
            _leaf(C),
        ]
        summary = resolve_results(BASE, observations).summary()
        assert summary["links"] == 3
        assert summary["broken"] == 1
        assert summary["uncrawled"] == 1
        assert summary["invalid_fragments"] == 1
        assert summary["broken_by_severity"] == {"high": 1}
        assert summary["broken_by_issue_type"] == {"404_not_found": 1}

    def test_invalid_base_url(self):
        with pytest.raises(ValueError):
            resolve_results("not a url", [])
