"""Append-only, thread-safe log of page observations."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Iterator

from .types import PageObservation

LOGGER = logging.getLogger(__name__)

AppendListener = Callable[[PageObservation], None]


class ObservationStore:
    """Collect one `PageObservation` per fetch attempt.

    Appends are safe from concurrent workers; no ordering among them is
    promised. Readers take a `snapshot()` once the crawl has drained.
    """

    def __init__(self, observations: Iterable[PageObservation] | None = None) -> None:
        self._lock = threading.Lock()
        self._observations: list[PageObservation] = list(observations or [])
        self._listeners: list[AppendListener] = []

    def add_listener(self, listener: AppendListener) -> None:
        """Register a callback invoked after each append (outside the lock)."""

        with self._lock:
            self._listeners.append(listener)

    def append(self, observation: PageObservation) -> None:
        with self._lock:
            self._observations.append(observation)
            listeners = list(self._listeners)

        LOGGER.debug(
            "Observed %s (status=%s, error=%s)",
            observation.url,
            observation.status_code,
            observation.error,
        )
        for listener in listeners:
            listener(observation)

    def snapshot(self) -> tuple[PageObservation, ...]:
        with self._lock:
            return tuple(self._observations)

    def __len__(self) -> int:
        with self._lock:
            return len(self._observations)

    def __iter__(self) -> Iterator[PageObservation]:
        return iter(self.snapshot())


__all__ = ["AppendListener", "ObservationStore"]
