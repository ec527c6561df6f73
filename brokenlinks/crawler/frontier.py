"""Thread-safe frontier queue with scope, depth and budget enforcement."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from .classifier import is_archive_url
from .config import CrawlConfig
from .types import FrontierItem, PageLinks, UrlState
from .url import is_same_site, normalize_url


class EnqueueStatus(str, Enum):
    """Result status for frontier admission attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_GLOBAL_BUDGET = "skipped_global_budget"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one admission attempt."""

    status: EnqueueStatus
    normalized_url: str | None = None
    item: FrontierItem | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Frontier queue used by producer/consumer crawl workers.

    - Every canonical URL moves `unseen -> enqueued -> observed` and never back.
    - Admission is an atomic check-and-set, so a URL discovered by two workers
      at once is admitted exactly once, at the depth of the first caller.
    - `max_pages` caps admitted URLs and `max_depth` caps admitted depth; both
      are exact ceilings.
    - Leaf entries (external links, resources, skip-pattern pages) are fetched
      for liveness but never expanded, so they ignore domain scope.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

        self._queue: queue.Queue[FrontierItem] = queue.Queue()
        self._lock = threading.Lock()

        self._states: dict[str, UrlState] = {}
        self._admitted = 0

        self._enqueued_count = 0
        self._dequeued_count = 0
        self._observed_count = 0
        self._leaf_count = 0
        self._skipped_seen_count = 0
        self._skipped_depth_count = 0
        self._skipped_budget_count = 0
        self._skipped_invalid_count = 0
        self._skipped_out_of_scope_count = 0

        self._closed = False

    def seed(self, base_url: str | None = None) -> EnqueueResult:
        """Seed frontier with the base URL at depth 0."""

        return self.admit(base_url or self.config.base_url, depth=0, referrer=None, is_base=True)

    def admit(
        self,
        url: str,
        *,
        depth: int,
        referrer: str | None = None,
        leaf: bool = False,
        is_base: bool = False,
    ) -> EnqueueResult:
        """Attempt to admit one URL; rejections are reported, never raised."""

        normalized = normalize_url(url)
        if not normalized:
            with self._lock:
                self._skipped_invalid_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)

        if depth > self.config.max_depth:
            with self._lock:
                self._skipped_depth_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_DEPTH, normalized_url=normalized)

        if not leaf and not self.in_scope(normalized):
            with self._lock:
                self._skipped_out_of_scope_count += 1
            return EnqueueResult(EnqueueStatus.SKIPPED_OUT_OF_SCOPE, normalized_url=normalized)

        with self._lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, normalized_url=normalized)

            if self._states.get(normalized, UrlState.UNSEEN) != UrlState.UNSEEN:
                self._skipped_seen_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, normalized_url=normalized)

            if self._admitted >= self.config.max_pages:
                self._skipped_budget_count += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_GLOBAL_BUDGET, normalized_url=normalized)

            self._states[normalized] = UrlState.ENQUEUED
            self._admitted += 1

            item = FrontierItem(
                url=normalized,
                depth=depth,
                referrer=referrer,
                raw_url=url.strip(),
                leaf=leaf,
                is_base=is_base,
            )
            self._queue.put(item)
            self._enqueued_count += 1
            if leaf:
                self._leaf_count += 1

        return EnqueueResult(
            EnqueueStatus.ENQUEUED,
            normalized_url=normalized,
            item=item,
        )

    def admit_links(self, page_links: PageLinks, parent: FrontierItem) -> list[EnqueueResult]:
        """Admit the links discovered on `parent`, preserving document order.

        Crawl candidates become traversable entries; check-only candidates
        become leaves.
        """

        depth = self.child_depth(parent)
        results = [
            self.admit(url, depth=depth, referrer=parent.url)
            for url in page_links.crawl_candidates
        ]

        crawl_keys = {normalize_url(url) for url in page_links.crawl_candidates}
        results.extend(
            self.admit(url, depth=depth, referrer=parent.url, leaf=True)
            for url in page_links.check_candidates
            if normalize_url(url) not in crawl_keys
        )
        return results

    @staticmethod
    def child_depth(parent: FrontierItem) -> int:
        """Depth for links found on `parent`; archive listings do not add depth."""

        if is_archive_url(parent.url):
            return parent.depth
        return parent.depth + 1

    def in_scope(self, normalized_url: str) -> bool:
        return is_same_site(
            normalized_url,
            self.config.base_url,
            include_subdomains=self.config.crawl_subdomains,
        )

    def mark_observed(self, url: str) -> None:
        """Record that an observation exists for `url`."""

        normalized = normalize_url(url) or url
        with self._lock:
            if self._states.get(normalized) != UrlState.OBSERVED:
                self._states[normalized] = UrlState.OBSERVED
                self._observed_count += 1

    def state(self, url: str) -> UrlState:
        normalized = normalize_url(url) or url
        with self._lock:
            return self._states.get(normalized, UrlState.UNSEEN)

    def pop(self, *, block: bool = True, timeout: float | None = None) -> FrontierItem | None:
        """Pop one frontier item for a worker thread.

        Returns `None` when no item is available under the requested blocking mode.
        """

        try:
            if block:
                item = self._queue.get(block=True, timeout=timeout)
            else:
                item = self._queue.get(block=False)
        except queue.Empty:
            return None

        with self._lock:
            self._dequeued_count += 1
        return item

    def drain(self) -> Iterator[FrontierItem]:
        """Yield queued items in FIFO order until the queue is empty.

        Single-threaded counterpart of the worker loop: items admitted while
        iterating are yielded too.
        """

        while True:
            item = self.pop(block=False)
            if item is None:
                return
            try:
                yield item
            finally:
                self.task_done()

    def task_done(self) -> None:
        """Mark one popped task as finished (delegates to Queue.task_done)."""

        self._queue.task_done()

    def join(self) -> None:
        """Block until all queued tasks are marked done."""

        self._queue.join()

    def close(self) -> None:
        """Close frontier to future admissions."""

        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        """Approximate queue size."""

        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "closed": self._closed,
                "queue_size": self._queue.qsize(),
                "admitted": self._admitted,
                "enqueued": self._enqueued_count,
                "leaf_enqueued": self._leaf_count,
                "dequeued": self._dequeued_count,
                "observed": self._observed_count,
                "skipped_seen": self._skipped_seen_count,
                "skipped_depth": self._skipped_depth_count,
                "skipped_budget": self._skipped_budget_count,
                "skipped_invalid": self._skipped_invalid_count,
                "skipped_out_of_scope": self._skipped_out_of_scope_count,
            }


def admitted_urls(results: Iterable[EnqueueResult]) -> list[str]:
    return [result.normalized_url for result in results if result.accepted and result.normalized_url]


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
    "admitted_urls",
]
