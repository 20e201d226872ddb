import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float

class TTLCache(Generic[K, V]):
    """Bounded-staleness read-through cache.

    Entries are valid for ``ttl_seconds`` after they were last set. The clock
    is injectable so tests can move time forward deterministically. No locking:
    two callers racing on a miss may both refresh, which is harmless because
    refreshes are idempotent reads.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            return None
        return entry.value

    def peek(self, key: K) -> V | None:
        """Return the last value stored under key, expired or not."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set(self, key: K, value: V) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def invalidate(self, key: K) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries and self.get(key) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._entries)
