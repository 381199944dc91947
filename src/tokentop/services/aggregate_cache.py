"""Per-session usage row cache with least-recently-accessed eviction."""

import threading
import time
from typing import Callable, Iterable, Sequence

from tokentop.types import AggregateCacheEntry, UsageRow

DEFAULT_MAX_ENTRIES = 10_000


class SessionAggregateCache:
    """Caches aggregated usage rows keyed by session id.

    An entry is only valid while the session's ``updated_at`` matches the
    value it was computed from. Eviction bounds memory; an evicted session
    is simply recomputed on its next request.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[str, AggregateCacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, session_id: str, updated_at: int) -> tuple[UsageRow, ...] | None:
        """Return cached rows, or None on a miss."""
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None or entry.updated_at != updated_at:
                self.misses += 1
                return None
            entry.last_accessed = self._clock()
            self.hits += 1
            return entry.rows

    def put(self, session_id: str, updated_at: int, rows: Sequence[UsageRow]) -> tuple[UsageRow, ...]:
        frozen = tuple(rows)
        with self._lock:
            self._entries[session_id] = AggregateCacheEntry(
                session_id=session_id,
                updated_at=updated_at,
                rows=frozen,
                last_accessed=self._clock(),
            )
            self._evict()
        return frozen

    def _evict(self):
        overflow = len(self._entries) - self._max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.values(), key=lambda e: e.last_accessed)
        for entry in oldest[:overflow]:
            del self._entries[entry.session_id]

    def prune(self, live_session_ids: Iterable[str]) -> int:
        live = set(live_session_ids)
        with self._lock:
            stale = [sid for sid in self._entries if sid not in live]
            for sid in stale:
                del self._entries[sid]
        return len(stale)

    def remove(self, session_id: str):
        with self._lock:
            self._entries.pop(session_id, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._entries
