"""End-to-end crawl pipeline orchestration."""

from __future__ import annotations

import logging
from pathlib import Path
import smtplib
import threading
from typing import Any, Protocol

from .classifier import extract_fragment_ids, extract_links, extract_title, parse_document
from .config import CrawlConfig
from .fetcher import Fetcher
from .frontier import Frontier, admitted_urls
from .notification import EmailNotifier, Notifier, notify_if_needed
from .resolver import resolve_results
from .stats import StatsCollector
from .storage import Storage
from .store import ObservationStore
from .types import (
    CrawlReport,
    CrawlStage,
    ErrorRecord,
    ExtractedPage,
    FetchResult,
    FrontierItem,
    PageObservation,
)

LOGGER = logging.getLogger(__name__)


class FetcherLike(Protocol):
    def fetch(self, url: str, *, leaf: bool = False) -> FetchResult: ...

    def close(self) -> None: ...


class Pipeline:
    """Orchestrates frontier, fetcher, classifier, resolver, storage and stats.

    The crawl phase runs `config.concurrency` worker threads against the
    frontier; `frontier.join()` is the barrier after which the observation
    snapshot is resolved into a report exactly once.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        output_dir: str | Path,
        storage: Storage | None = None,
        fetcher: FetcherLike | None = None,
        stats: StatsCollector | None = None,
        notifier: Notifier | None = None,
        store: ObservationStore | None = None,
    ) -> None:
        self.config = config

        self.storage = storage or Storage(
            output_dir,
            save_only_broken_links=config.save_only_broken_links,
        )
        self.fetcher = fetcher or Fetcher(config)
        self.stats = stats or StatsCollector()
        self.store = store or ObservationStore()

        if notifier is None and config.notification.enabled:
            notifier = EmailNotifier(config.notification)
        self.notifier = notifier

        self._owns_fetcher = fetcher is None
        self.store.add_listener(self._on_observation)

    def run(self) -> dict[str, Any]:
        """Crawl, resolve, persist and notify; returns report, output paths and stats."""

        self.storage.save_crawl_config(self.config)
        LOGGER.info("Starting crawl of %s", self.config.base_url)

        try:
            self._crawl()
        finally:
            if self._owns_fetcher:
                self.fetcher.close()

        report = resolve_results(self.config.base_url, self.store.snapshot())
        self.stats.record_report(report)
        self.storage.save_report(report, self.config.base_url)

        summary = report.summary()
        LOGGER.info(
            "Crawl finished: %d pages, %d links, %d broken, %d not crawled",
            summary["pages"],
            summary["links"],
            summary["broken"],
            summary["uncrawled"],
        )

        self._notify(report)

        self.stats.finish()
        stats_payload = self.stats.to_json()
        self.storage.save_crawl_stats(stats_payload)

        return {
            "report": report,
            "paths": self.storage.paths,
            "stats": stats_payload,
        }

    def _crawl(self) -> None:
        frontier = Frontier(self.config)

        seed_result = frontier.seed()
        self.stats.record_enqueue(seed_result)

        workers = [
            threading.Thread(
                target=self._frontier_worker,
                args=(frontier,),
                name=f"crawler-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.concurrency)
        ]

        for worker in workers:
            worker.start()

        frontier.join()
        frontier.close()

        for worker in workers:
            worker.join(timeout=5.0)

        self.stats.record_frontier_snapshot(frontier.snapshot())

    def _frontier_worker(self, frontier: Frontier) -> None:
        while True:
            item = frontier.pop(block=True, timeout=0.5)
            if item is None:
                if frontier.closed and frontier.empty():
                    return
                continue

            try:
                self._handle_item(frontier, item)
            except Exception as exc:
                LOGGER.exception("Worker failed on %s", item.url)
                self._record_exception_error(CrawlStage.STORE, item.url, exc, referrer=item.referrer)
            finally:
                frontier.task_done()

    def _handle_item(self, frontier: Frontier, item: FrontierItem) -> None:
        fetch_url = item.raw_url or item.url
        LOGGER.debug("Fetching %s (depth=%d, leaf=%s)", fetch_url, item.depth, item.leaf)

        fetch_result = self.fetcher.fetch(fetch_url, leaf=item.leaf)
        self.stats.record_fetch(fetch_result, leaf=item.leaf)
        if not fetch_result.ok:
            self._record_fetch_error(item, fetch_result)

        observation = self._observe(frontier, item, fetch_result)
        self.store.append(observation)
        frontier.mark_observed(item.url)

    def _observe(
        self,
        frontier: Frontier,
        item: FrontierItem,
        fetch_result: FetchResult,
    ) -> PageObservation:
        fields: dict[str, Any] = {
            "url": item.url,
            "requested_url": fetch_result.requested_url,
            "depth": item.depth,
            "referrer": item.referrer,
            "is_base": item.is_base,
            "status_code": fetch_result.status_code,
            "error": fetch_result.error,
        }

        if not fetch_result.ok or not fetch_result.is_html:
            return PageObservation(**fields)

        page_url = fetch_result.final_url or fetch_result.requested_url
        try:
            soup = parse_document(fetch_result.body or b"")
            fields["title"] = extract_title(soup)
            fields["fragment_ids"] = extract_fragment_ids(soup)
            if item.leaf:
                return PageObservation(**fields)

            page_links = extract_links(
                soup,
                page_url=page_url,
                base_url=self.config.base_url,
                policy=self.config.link_policy,
            )
        except Exception as exc:
            LOGGER.warning("Link extraction failed for %s: %s", item.url, exc)
            self.stats.record_extraction_error(exc.__class__.__name__)
            self._record_exception_error(
                CrawlStage.EXTRACT,
                item.url,
                exc,
                referrer=item.referrer,
                status_code=fetch_result.status_code,
            )
            return PageObservation(**fields)

        enqueue_results = frontier.admit_links(page_links, item)
        self.stats.record_enqueue_many(enqueue_results)
        self.stats.record_extraction(len(page_links.links))
        LOGGER.debug(
            "Extracted %d links from %s, admitted %s",
            len(page_links.links),
            item.url,
            admitted_urls(enqueue_results),
        )

        return ExtractedPage(**fields, links=tuple(page_links.links))

    def _on_observation(self, observation: PageObservation) -> None:
        self.stats.record_observation()
        if self.storage.save_observation(observation):
            self.stats.record_dataset_row()

    def _notify(self, report: CrawlReport) -> None:
        emails = self.config.notification.emails
        try:
            if notify_if_needed(self.notifier, report, self.config.base_url, emails):
                self.stats.record_notification()
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            LOGGER.error("Failed to send notification: %s", exc)
            self._record_exception_error(CrawlStage.NOTIFY, self.config.base_url, exc)

    def _record_fetch_error(self, item: FrontierItem, fetch_result: FetchResult) -> None:
        message = fetch_result.error or (
            f"HTTP status {fetch_result.status_code}"
            if fetch_result.status_code is not None
            else "Unknown fetch failure"
        )
        error_type = message.split(":", maxsplit=1)[0].strip() if ":" in message else None

        error = ErrorRecord(
            stage=CrawlStage.FETCH,
            url=item.url,
            message=message,
            error_type=error_type,
            referrer=item.referrer,
            status_code=fetch_result.status_code,
            metadata={
                "final_url": fetch_result.final_url,
                "attempts": fetch_result.attempts,
                "leaf": item.leaf,
            },
        )
        self.storage.save_error(error)
        self.stats.record_error_saved()

    def _record_exception_error(
        self,
        stage: CrawlStage,
        url: str,
        exc: Exception,
        **kwargs: Any,
    ) -> None:
        error = ErrorRecord.from_exception(stage=stage, url=url, exc=exc, **kwargs)
        self.storage.save_error(error)
        self.stats.record_error_saved()


__all__ = ["Pipeline"]
