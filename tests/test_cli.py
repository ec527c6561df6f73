"""Tests for the brokenlinks.crawl command line entrypoint."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest

from brokenlinks import crawl
from brokenlinks.crawler.types import CrawlReport


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_build_config_from_flags(tmp_path):
    args = crawl.parse_args(
        [
            "--base_url",
            "https://example.com",
            "--max_pages",
            "10",
            "--check_external_links",
            "--notify",
            "a@x.com",
            "--notify",
            "b@x.com",
            "--no_respect_robots",
        ]
    )
    config = crawl.build_config(args)
    assert config.max_pages == 10
    assert config.check_external_links
    assert not config.crawl_subdomains
    assert config.notification.emails == ["a@x.com", "b@x.com"]
    assert config.respect_robots is False


def test_build_config_file_with_overrides(tmp_path):
    path = tmp_path / "crawl.json"
    path.write_text(
        json.dumps(
            {
                "base_url": "https://example.com",
                "max_depth": 4,
                "notification": {"smtp_host": "smtp", "smtp_password": "pw"},
            }
        ),
        encoding="utf-8",
    )
    args = crawl.parse_args(["--config", str(path), "--max_depth", "1"])
    config = crawl.build_config(args)
    assert config.max_depth == 1
    assert config.notification.smtp_password == "pw"


def test_build_config_requires_base_url():
    with pytest.raises(ValueError):
        crawl.build_config(crawl.parse_args([]))


def test_main_config_error_exit_code(tmp_path):
    assert crawl.main(["--output_dir", str(tmp_path)]) == 2


def test_main_success(tmp_path, capsys):
    result = {
        "report": CrawlReport(base_url="https://example.com"),
        "paths": {"output_dir": str(tmp_path), "report_html": str(tmp_path / "OUTPUT.html")},
        "stats": {"fetched_ok": 1, "report": {"pages": 1, "broken": 0}},
    }
    with patch.object(crawl, "Pipeline") as pipeline_cls:
        pipeline_cls.return_value.run.return_value = result
        code = crawl.main(["--base_url", "https://example.com", "--output_dir", str(tmp_path)])

    assert code == 0
    out = capsys.readouterr().out
    assert "=== Crawl Complete ===" in out
    assert "fetched_ok: 1" in out
    assert (tmp_path / "logs" / "crawl.log").exists()


def test_main_failure_exit_codes(tmp_path):
    with patch.object(crawl, "Pipeline") as pipeline_cls:
        pipeline_cls.return_value.run.side_effect = RuntimeError("boom")
        assert crawl.main(["--base_url", "https://example.com", "--output_dir", str(tmp_path)]) == 1

        pipeline_cls.return_value.run.side_effect = KeyboardInterrupt
        assert crawl.main(["--base_url", "https://example.com", "--output_dir", str(tmp_path)]) == 130
