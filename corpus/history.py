"""Per-session log of search results."""

from __future__ import annotations

import threading

from file_search.types import SearchResult


class QueryHistory:
    """Search results of one session, most recent first."""

    def __init__(self):
        self._results: list[SearchResult] = []
        self._lock = threading.Lock()

    def add(self, result: SearchResult) -> None:
        with self._lock:
            self._results.insert(0, result)

    @property
    def results(self) -> tuple[SearchResult, ...]:
        with self._lock:
            return tuple(self._results)

    def has_results(self) -> bool:
        return bool(self._results)

    def clear(self) -> None:
        with self._lock:
            self._results.clear()

    def __len__(self) -> int:
        return len(self._results)
