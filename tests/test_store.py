"""Tests for brokenlinks.crawler.store."""

from __future__ import annotations

import threading

from brokenlinks.crawler.store import ObservationStore
from brokenlinks.crawler.types import PageObservation


def _observation(i: int) -> PageObservation:
    return PageObservation(url=f"https://example.com/p{i}", requested_url=f"https://example.com/p{i}", depth=1)


def test_append_and_snapshot():
    store = ObservationStore()
    store.append(_observation(1))
    store.append(_observation(2))
    snapshot = store.snapshot()
    assert [obs.url for obs in snapshot] == ["https://example.com/p1", "https://example.com/p2"]
    assert len(store) == 2

    store.append(_observation(3))
    # Earlier snapshots are stable.
    assert len(snapshot) == 2


def test_listeners_called_per_append():
    store = ObservationStore()
    received: list[str] = []
    store.add_listener(lambda obs: received.append(obs.url))
    store.append(_observation(7))
    assert received == ["https://example.com/p7"]


def test_concurrent_appends():
    store = ObservationStore()

    def worker(offset: int) -> None:
        for i in range(100):
            store.append(_observation(offset * 100 + i))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 400
    assert len({obs.url for obs in store}) == 400
