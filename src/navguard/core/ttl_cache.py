"""Sweep-on-read expiring key-value cache.

Shared by every keyed temporal policy (incoming-call dedupe, per-conversation
notification dedupe).  There is no background timer: expired entries are
dropped as a side effect of the next read, and every read takes the
caller's clock value instead of consulting the system clock, so behaviour
is fully deterministic under test.

Clock skew: an entry stamped *after* ``now`` (the wall clock moved
backwards) is re-anchored to ``now`` on the next read.  Its age is then
zero, so it still suppresses, but never for longer than one TTL on the
current clock and never with a negative age.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class ExpiringCache(Generic[K, V]):
    """Mapping of key -> (value, stamped_at) with a fixed TTL in milliseconds.

    An entry whose age is strictly greater than ``ttl_ms`` is expired.

    Args:
        ttl_ms: Entry lifetime in milliseconds.  Must be positive.
    """

    def __init__(self, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        self._ttl_ms = ttl_ms
        self._entries: dict[K, tuple[V, int]] = {}

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def put(self, key: K, value: V, now: int) -> None:
        """Store *value* under *key*, stamped at *now*."""
        self._entries[key] = (value, now)

    def sweep(self, now: int) -> list[K]:
        """Drop expired entries and return the keys that were removed."""
        expired: list[K] = []
        for key, (value, stamped_at) in list(self._entries.items()):
            if stamped_at > now:
                self._entries[key] = (value, now)
            elif now - stamped_at > self._ttl_ms:
                expired.append(key)
        for key in expired:
            del self._entries[key]
        return expired

    def get(self, key: K, now: int) -> V | None:
        """Return the live value for *key*, or ``None`` if absent or expired."""
        self.sweep(now)
        entry = self._entries.get(key)
        return entry[0] if entry is not None else None

    def stamped_at(self, key: K, now: int) -> int | None:
        """Return when *key* was last stored, or ``None`` if absent or expired."""
        self.sweep(now)
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    def age_ms(self, key: K, now: int) -> int | None:
        """Milliseconds since *key* was stored (never negative), or ``None``."""
        stamped = self.stamped_at(key, now)
        if stamped is None:
            return None
        return max(0, now - stamped)

    def keys(self) -> list[K]:
        """Keys currently held, including ones that would expire on the next sweep."""
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._entries))
