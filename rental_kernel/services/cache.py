"""
Read-model cache registry.

Contract reads that callers cache (contracts per building, the active
contract of a flat, a flat's occupancy summary) are evicted by the cache
listener after every committed contract change.  ``InMemoryCacheRegistry``
is a process-local implementation; any object with ``evict`` fits.
"""

from __future__ import annotations

import threading
from typing import Any, Hashable, Protocol, runtime_checkable

FLATS_WITH_CONTRACTS = "flats_with_contracts"  # keyed by building id
FLAT_ACTIVE_CONTRACT = "flat_active_contract"  # keyed by flat id
FLAT_OCCUPANCY_SUMMARY = "flat_occupancy_summary"  # keyed by flat id


@runtime_checkable
class CacheRegistry(Protocol):
    def evict(self, cache_name: str, key: Hashable) -> None: ...


class InMemoryCacheRegistry:
    def __init__(self) -> None:
        self._caches: dict[str, dict[Hashable, Any]] = {}
        self._lock = threading.Lock()

    def get(self, cache_name: str, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            return self._caches.get(cache_name, {}).get(key, default)

    def put(self, cache_name: str, key: Hashable, value: Any) -> None:
        with self._lock:
            self._caches.setdefault(cache_name, {})[key] = value

    def evict(self, cache_name: str, key: Hashable) -> None:
        with self._lock:
            self._caches.get(cache_name, {}).pop(key, None)

    def contains(self, cache_name: str, key: Hashable) -> bool:
        with self._lock:
            return key in self._caches.get(cache_name, {})

    def clear(self) -> None:
        with self._lock:
            self._caches.clear()
