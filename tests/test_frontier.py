"""Tests for brokenlinks.crawler.frontier."""

from __future__ import annotations

import threading

from brokenlinks.crawler.frontier import EnqueueStatus, Frontier
from brokenlinks.crawler.types import FrontierItem, PageLinks, UrlState

from conftest import make_config


def _drain_urls(frontier: Frontier) -> list[str]:
    return [item.url for item in frontier.drain()]


class TestAdmission:
    def test_seed_is_base_at_depth_zero(self):
        frontier = Frontier(make_config())
        result = frontier.seed()
        assert result.accepted
        assert result.item.depth == 0
        assert result.item.is_base
        assert result.item.url == "https://example.com"
        assert result.item.raw_url == "https://example.com/"

    def test_same_canonical_url_admitted_once(self):
        frontier = Frontier(make_config())
        first = frontier.admit("https://example.com/a", depth=1)
        second = frontier.admit("https://WWW.example.com/a/#frag", depth=1)
        assert first.accepted
        assert second.status == EnqueueStatus.SKIPPED_SEEN
        assert frontier.qsize() == 1

    def test_invalid_url(self):
        frontier = Frontier(make_config())
        assert frontier.admit("mailto:a@b.c", depth=1).status == EnqueueStatus.SKIPPED_INVALID_URL

    def test_depth_ceiling_is_exact(self):
        frontier = Frontier(make_config(max_depth=2))
        assert frontier.admit("https://example.com/two", depth=2).accepted
        assert frontier.admit("https://example.com/three", depth=3).status == EnqueueStatus.SKIPPED_DEPTH

    def test_out_of_scope_rejected_unless_leaf(self):
        frontier = Frontier(make_config())
        assert (
            frontier.admit("https://other.org/x", depth=1).status
            == EnqueueStatus.SKIPPED_OUT_OF_SCOPE
        )
        assert frontier.admit("https://other.org/x", depth=1, leaf=True).accepted

    def test_budget_is_exact(self):
        frontier = Frontier(make_config(max_pages=3))
        results = [frontier.admit(f"https://example.com/p{i}", depth=1) for i in range(10)]
        assert sum(result.accepted for result in results) == 3
        assert results[3].status == EnqueueStatus.SKIPPED_GLOBAL_BUDGET

    def test_closed_frontier_rejects(self):
        frontier = Frontier(make_config())
        frontier.close()
        assert frontier.admit("https://example.com/a", depth=1).status == EnqueueStatus.SKIPPED_CLOSED

    def test_states_progress(self):
        frontier = Frontier(make_config())
        assert frontier.state("https://example.com/a") == UrlState.UNSEEN
        frontier.admit("https://example.com/a", depth=1)
        assert frontier.state("https://example.com/a") == UrlState.ENQUEUED
        frontier.mark_observed("https://example.com/a/")
        assert frontier.state("https://example.com/a") == UrlState.OBSERVED
        # Observed URLs never go back to the queue.
        assert frontier.admit("https://example.com/a", depth=1).status == EnqueueStatus.SKIPPED_SEEN

    def test_concurrent_admission_is_at_most_once(self):
        frontier = Frontier(make_config(max_pages=1000))
        urls = [f"https://example.com/p{i}" for i in range(50)]
        barrier = threading.Barrier(8)
        accepted: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            for url in urls:
                result = frontier.admit(url, depth=1)
                if result.accepted:
                    with lock:
                        accepted.append(result.normalized_url)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(accepted) == sorted(urls)
        assert frontier.qsize() == len(urls)


class TestAdmitLinks:
    def test_crawl_and_leaf_entries(self):
        frontier = Frontier(make_config())
        parent = FrontierItem(url="https://example.com", depth=0)
        links = PageLinks(
            crawl_candidates=["https://example.com/a"],
            check_candidates=["https://example.com/a", "https://other.org/x"],
        )
        results = frontier.admit_links(links, parent)
        assert [result.item.leaf for result in results] == [False, True]
        assert all(result.item.depth == 1 for result in results)
        assert all(result.item.referrer == "https://example.com" for result in results)

    def test_archive_parent_does_not_add_depth(self):
        parent = FrontierItem(url="https://example.com/tag/python", depth=2)
        assert Frontier.child_depth(parent) == 2
        assert Frontier.child_depth(FrontierItem(url="https://example.com/post", depth=2)) == 3


class TestDrain:
    def test_fifo_including_items_added_while_draining(self):
        frontier = Frontier(make_config())
        frontier.seed()
        seen: list[str] = []
        for item in frontier.drain():
            seen.append(item.url)
            if item.is_base:
                frontier.admit("https://example.com/a", depth=1)
                frontier.admit("https://example.com/b", depth=1)
        assert seen == ["https://example.com", "https://example.com/a", "https://example.com/b"]
        assert frontier.empty()

    def test_snapshot_counts(self):
        frontier = Frontier(make_config())
        frontier.seed()
        frontier.admit("https://example.com/", depth=0)
        frontier.admit("https://other.org/x", depth=1, leaf=True)
        _drain_urls(frontier)
        snapshot = frontier.snapshot()
        assert snapshot["admitted"] == 2
        assert snapshot["leaf_enqueued"] == 1
        assert snapshot["skipped_seen"] == 1
        assert snapshot["dequeued"] == 2
