import threading
from collections import OrderedDict
from typing import Hashable

from shared.models.search import SearchResult


class SearchCache:
    """Bounded FIFO memo of ranked search results.

    When an insert pushes the size above the capacity, the entry inserted
    first is evicted. Reads do not refresh an entry's position.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity <= 0:
            raise ValueError(f"Search cache capacity must be positive, got {capacity}.")
        self.capacity = capacity
        self._entries: OrderedDict[Hashable, list[SearchResult]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> list[SearchResult] | None:
        with self._lock:
            results = self._entries.get(key)
            if results is None:
                return None
            # handed-out results never alias the memo
            return [result.model_copy(deep=True) for result in results]

    def put(self, key: Hashable, results: list[SearchResult]) -> bool:
        """Store a result list. Returns True if an older entry had to be evicted."""
        with self._lock:
            self._entries[key] = [result.model_copy(deep=True) for result in results]
            if len(self._entries) > self.capacity:
                self._entries.popitem(last=False)
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
