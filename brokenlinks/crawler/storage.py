"""Filesystem-backed storage for crawl reports, datasets and manifests.

Storage owns the on-disk layout. Other modules should use this API instead of
building paths manually.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Mapping

from .config import CrawlConfig
from .constants import JSON_INDENT
from .report import render_html_report
from .resolver import classify_status
from .types import CrawlReport, CrawlStats, ErrorRecord, JSONDict, PageObservation


def dataset_row(observation: PageObservation, *, only_broken: bool = False) -> JSONDict | None:
    """Build the dataset row for one observation, or None when it is filtered out.

    With `only_broken`, rows are reduced to a flat, CSV-friendly subset and
    only observations with an error status are kept.
    """

    if not only_broken:
        return observation.to_json()

    if not classify_status(observation.status_code, observation.error).is_error:
        return None

    return {
        "url": observation.url,
        "is_base": observation.is_base,
        "status_code": observation.status_code,
        "title": observation.title,
        "referrer": observation.referrer,
    }


class Storage:
    """Persist crawl outputs under a single `output_dir` root."""

    def __init__(self, output_dir: str | Path, *, save_only_broken_links: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.save_only_broken_links = save_only_broken_links

        self.manifests_dir = self.output_dir / "manifests"
        self.logs_dir = self.output_dir / "logs"

        self.report_json_path = self.output_dir / "OUTPUT.json"
        self.report_html_path = self.output_dir / "OUTPUT.html"
        self.broken_links_path = self.output_dir / "broken_links.json"
        self.dataset_path = self.output_dir / "dataset.jsonl"
        self.errors_path = self.output_dir / "errors.jsonl"
        self.crawl_config_path = self.manifests_dir / "crawl_config.json"
        self.crawl_stats_path = self.manifests_dir / "crawl_stats.json"

        self._jsonl_lock = threading.Lock()

        self._ensure_layout()

    @property
    def paths(self) -> JSONDict:
        """Return important output paths for logging/CLI status messages."""

        return {
            "output_dir": str(self.output_dir),
            "report_json": str(self.report_json_path),
            "report_html": str(self.report_html_path),
            "broken_links": str(self.broken_links_path),
            "dataset": str(self.dataset_path),
            "errors": str(self.errors_path),
            "crawl_config": str(self.crawl_config_path),
            "crawl_stats": str(self.crawl_stats_path),
            "log_dir": str(self.logs_dir),
        }

    def _ensure_layout(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.manifests_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def save_observation(self, observation: PageObservation) -> bool:
        """Append one observation to `dataset.jsonl`; returns False if filtered out."""

        row = dataset_row(observation, only_broken=self.save_only_broken_links)
        if row is None:
            return False
        self._append_jsonl(self.dataset_path, row)
        return True

    def save_error(self, record: ErrorRecord) -> None:
        """Append error record to `errors.jsonl`."""

        self._append_jsonl(self.errors_path, record.to_json())

    def save_report(self, report: CrawlReport, base_url: str | None = None) -> None:
        """Write the JSON and HTML reports plus the flattened broken-link list."""

        base = base_url or report.base_url
        self._atomic_write_json(self.report_json_path, report.to_json())
        self._atomic_write_text(self.report_html_path, render_html_report(report, base))
        self._atomic_write_json(
            self.broken_links_path,
            [edge.to_json() for edge in report.broken_edges],
        )

    def save_crawl_config(self, config: CrawlConfig | Mapping[str, Any]) -> None:
        """Write crawl config manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(config, CrawlConfig):
            payload = config.to_dict()
        else:
            payload = config
        self._atomic_write_json(self.crawl_config_path, dict(payload))

    def save_crawl_stats(self, stats: CrawlStats | Mapping[str, Any]) -> None:
        """Write crawl stats manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(stats, CrawlStats):
            payload = stats.to_json()
        else:
            payload = stats
        self._atomic_write_json(self.crawl_stats_path, dict(payload))

    def _append_jsonl(self, path: Path, payload: Mapping[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._jsonl_lock:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    @classmethod
    def _atomic_write_json(cls, path: Path, payload: Any) -> None:
        content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n"
        cls._atomic_write_text(path, content)

    @staticmethod
    def _atomic_write_text(path: Path, content: str) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


__all__ = ["Storage", "dataset_row"]
