"""Bounded in-process cache for geocoding results."""

from __future__ import annotations

import re
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from .models import GeocodeResult

_WHITESPACE = re.compile(r"\s+")


def normalize_address(address: str) -> str:
    return _WHITESPACE.sub(" ", address.strip().lower())


class GeocodeCache:
    """LRU cache keyed by normalized address with an optional time-to-live.

    Safe to share between threads. Only successful lookups are stored.
    """

    def __init__(
        self,
        max_entries: int = 5000,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, GeocodeResult]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, address: str) -> GeocodeResult | None:
        key = normalize_address(address)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, result = entry
            if self.ttl_seconds is not None and self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return result

    def put(self, address: str, result: GeocodeResult) -> None:
        key = normalize_address(address)
        with self._lock:
            self._entries[key] = (self._clock(), result)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self.get(address) is not None
