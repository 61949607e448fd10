import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_STRIPES = 64


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[K, V]):
    """
    In-memory map whose entries expire after a per-entry TTL.

    Expired entries are evicted lazily on read. cleanup() evicts the rest
    and only bounds memory. Every operation locks a single stripe chosen
    by the key's hash, so unrelated keys never wait on each other.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._items: dict = {}
        self._locks = [threading.Lock() for _ in range(_STRIPES)]

    def _lock_for(self, key: K) -> threading.Lock:
        return self._locks[hash(key) % _STRIPES]

    def set(self, key: K, value: V, ttl: float) -> None:
        entry = _Entry(value=value, expires_at=self._clock() + ttl)
        with self._lock_for(key):
            self._items[key] = entry

    def get(self, key: K) -> Tuple[Optional[V], bool]:
        with self._lock_for(key):
            entry = self._items.get(key)
            if entry is None:
                return None, False

            if self._clock() >= entry.expires_at:
                del self._items[key]
                return None, False

            return entry.value, True

    def delete(self, key: K) -> None:
        with self._lock_for(key):
            self._items.pop(key, None)

    def cleanup(self) -> int:
        """Evict every expired entry. Returns how many were removed."""
        removed = 0

        # Snapshot keys so concurrent writers never see a resized dict
        for key in list(self._items.keys()):
            with self._lock_for(key):
                entry = self._items.get(key)
                if entry is not None and self._clock() >= entry.expires_at:
                    del self._items[key]
                    removed += 1

        return removed

    def __len__(self) -> int:
        return len(self._items)
