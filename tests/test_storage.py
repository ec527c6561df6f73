"""Tests for brokenlinks.crawler.storage."""

from __future__ import annotations

import json

from brokenlinks.crawler.resolver import resolve_results
from brokenlinks.crawler.storage import Storage, dataset_row
from brokenlinks.crawler.types import (
    CrawlStage,
    ErrorRecord,
    ExtractedPage,
    LinkReference,
    LinkType,
    PageObservation,
)

from conftest import make_config


def _obs(url: str, status: int | None, error: str | None = None) -> PageObservation:
    return PageObservation(url=url, requested_url=url, depth=1, status_code=status, error=error, title="T")


class TestDatasetRow:
    def test_full_row(self):
        row = dataset_row(_obs("https://example.com/a", 200))
        assert row["url"] == "https://example.com/a"
        assert row["links"] is None
        assert row["fragment_ids"] == []

    def test_only_broken_filters_ok(self):
        assert dataset_row(_obs("https://example.com/a", 200), only_broken=True) is None

    def test_only_broken_compact(self):
        row = dataset_row(_obs("https://example.com/a", None, "ReadTimeout"), only_broken=True)
        assert row == {
            "url": "https://example.com/a",
            "is_base": False,
            "status_code": None,
            "title": "T",
            "referrer": None,
        }


def test_layout_and_paths(tmp_path):
    storage = Storage(tmp_path / "out")
    assert storage.logs_dir.is_dir()
    assert storage.manifests_dir.is_dir()
    assert storage.paths["report_html"].endswith("OUTPUT.html")


def test_save_observation_respects_filter(tmp_path):
    storage = Storage(tmp_path, save_only_broken_links=True)
    assert not storage.save_observation(_obs("https://example.com/a", 200))
    assert storage.save_observation(_obs("https://example.com/b", 500))

    rows = [json.loads(line) for line in storage.dataset_path.read_text(encoding="utf-8").splitlines()]
    assert [row["url"] for row in rows] == ["https://example.com/b"]


def test_save_error(tmp_path):
    storage = Storage(tmp_path)
    storage.save_error(
        ErrorRecord.from_exception(stage=CrawlStage.EXTRACT, url="https://example.com/a", exc=ValueError("bad"))
    )
    row = json.loads(storage.errors_path.read_text(encoding="utf-8"))
    assert (row["stage"], row["error_type"], row["message"]) == ("extract", "ValueError", "bad")


def test_save_report(tmp_path):
    link = LinkReference(
        href="/b",
        url="https://example.com/b",
        normalized_url="https://example.com/b",
        text="B",
        link_type=LinkType.INTERNAL,
    )
    observations = [
        ExtractedPage(url="https://example.com", requested_url="https://example.com/", depth=0, status_code=200, links=(link,)),
        _obs("https://example.com/b", 404),
    ]
    report = resolve_results("https://example.com/", observations)

    storage = Storage(tmp_path)
    storage.save_report(report, "https://example.com/")

    pages = json.loads(storage.report_json_path.read_text(encoding="utf-8"))
    assert pages[0]["links"][0]["status"] == "Not Found"
    broken = json.loads(storage.broken_links_path.read_text(encoding="utf-8"))
    assert broken[0]["severity"] == "high"
    assert "<table>" in storage.report_html_path.read_text(encoding="utf-8")


def test_manifests(tmp_path):
    storage = Storage(tmp_path)
    config = make_config()
    storage.save_crawl_config(config)
    storage.save_crawl_stats({"fetched_ok": 3})

    saved = json.loads(storage.crawl_config_path.read_text(encoding="utf-8"))
    assert saved["base_url"] == config.base_url
    assert "smtp_password" not in saved["notification"]
    assert json.loads(storage.crawl_stats_path.read_text(encoding="utf-8")) == {"fetched_ok": 3}
