"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Iterable, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .types import CrawlReport, CrawlStats, FetchResult


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe and intended for use across concurrent
    fetch/extract workers.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._frontier_extra: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int | bool] = {}

        self._fetch_kind_counts: dict[str, dict[str, int]] = defaultdict(
            lambda: {"ok": 0, "error": 0}
        )
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_retried = 0
        self._fetch_elapsed_ms_total = 0
        self._fetch_elapsed_samples = 0
        self._fetch_bytes_total = 0

        self._extract_error_type_counts: dict[str, int] = defaultdict(int)

        self._report_summary: dict[str, Any] = {}
        self._storage_error_rows = 0
        self._dataset_rows = 0
        self._notifications_sent = 0

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier admission outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            if status == EnqueueStatus.ENQUEUED:
                self._core.frontier_enqueued += 1
                return
            if status == EnqueueStatus.SKIPPED_SEEN:
                self._core.frontier_skipped_visited += 1
                return
            if status == EnqueueStatus.SKIPPED_DEPTH:
                self._core.frontier_skipped_depth += 1
                return
            if status == EnqueueStatus.SKIPPED_GLOBAL_BUDGET:
                self._core.frontier_skipped_budget += 1
                return

            # Extra skip reasons not present in CrawlStats core fields.
            self._frontier_extra[status.value] += 1

    def record_enqueue_many(self, results: Iterable[EnqueueResult]) -> None:
        for result in results:
            self.record_enqueue(result)

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_fetch(self, result: FetchResult, *, leaf: bool = False) -> None:
        """Record one terminal fetch result."""

        with self._lock:
            state = "ok" if result.ok else "error"
            self._fetch_kind_counts["leaf" if leaf else "page"][state] += 1

            if result.ok:
                self._core.fetched_ok += 1
            else:
                self._core.fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1

            if result.error:
                err_type = result.error.split(":", maxsplit=1)[0].strip() or "Unknown"
                self._fetch_error_type_counts[err_type] += 1

            if result.attempts > 1:
                self._fetch_retried += 1

            if result.elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(result.elapsed_ms)
                self._fetch_elapsed_samples += 1

            if result.body is not None:
                self._fetch_bytes_total += len(result.body)

    def record_extraction(self, links: int) -> None:
        """Record one page whose links were extracted."""

        with self._lock:
            self._core.pages_extracted += 1
            self._core.links_discovered += links

    def record_extraction_error(self, error_type: str) -> None:
        with self._lock:
            self._core.extraction_errors += 1
            self._extract_error_type_counts[error_type or "Unknown"] += 1

    def record_observation(self) -> None:
        with self._lock:
            self._core.observations += 1

    def record_dataset_row(self, count: int = 1) -> None:
        if count <= 0:
            return
        with self._lock:
            self._dataset_rows += count

    def record_error_saved(self, count: int = 1) -> None:
        """Record persisted error rows in storage."""

        if count <= 0:
            return
        with self._lock:
            self._storage_error_rows += count

    def record_report(self, report: CrawlReport) -> None:
        """Attach the resolved report summary."""

        summary = report.summary()
        with self._lock:
            self._report_summary = summary

    def record_notification(self) -> None:
        with self._lock:
            self._notifications_sent += 1

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def core(self) -> CrawlStats:
        """Return a copy of the core `CrawlStats` record."""

        with self._lock:
            return CrawlStats(**{name: getattr(self._core, name) for name in CrawlStats.__slots__})

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = (
                _parse_iso_utc(self._core.finished_at)
                if self._core.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetch_elapsed_avg = (
                self._fetch_elapsed_ms_total / self._fetch_elapsed_samples
                if self._fetch_elapsed_samples > 0
                else 0.0
            )

            fetched_total = self._core.fetched_ok + self._core.fetched_error

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "extra_status_counts": dict(self._frontier_extra),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "by_kind": {
                        str(kind): dict(bucket) for kind, bucket in self._fetch_kind_counts.items()
                    },
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_type_counts": dict(self._fetch_error_type_counts),
                    "retried": self._fetch_retried,
                    "elapsed_ms_total": self._fetch_elapsed_ms_total,
                    "elapsed_ms_samples": self._fetch_elapsed_samples,
                    "elapsed_ms_avg": fetch_elapsed_avg,
                    "bytes_total": self._fetch_bytes_total,
                },
                "extract": {
                    "error_type_counts": dict(self._extract_error_type_counts),
                },
                "report": dict(self._report_summary),
                "storage": {
                    "dataset_rows": self._dataset_rows,
                    "error_rows": self._storage_error_rows,
                },
                "notifications_sent": self._notifications_sent,
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
