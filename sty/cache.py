"""Time-windowed memoization for Sty.

Composing the site's global data touches the filesystem (and sometimes the
network) repeatedly while a rebuild wave runs. ``MemoCache`` keeps the result
of such a derivation for a short window so repeated calls inside the window
reuse it. It is an I/O bound, not a correctness mechanism: staleness is capped
by the window and callers invalidate it when they know inputs changed.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")


@dataclass
class _Entry:
    value: Any
    expires_at: float


class MemoCache:
    """Keyed memoization with a fixed expiry window per entry.

    Attributes:
        ttl: Window length in seconds.
    """

    def __init__(self, ttl: float = 2.0, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            ttl: Seconds an entry stays valid after it was computed.
            clock: Monotonic time source, replaceable in tests.
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """Return the cached value for ``key``, computing it when missing or expired.

        The computation runs outside the lock; when two threads race on an
        expired key both compute and the last writer wins.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at > now:
                return entry.value
        value = compute()
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + self.ttl)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry, forcing the next lookups to recompute."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
