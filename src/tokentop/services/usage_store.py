"""Refresh coordinator: the public entry point of the ingestion pipeline."""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, Signal, Slot, QThread

from tokentop.services.aggregate_cache import DEFAULT_MAX_ENTRIES, SessionAggregateCache
from tokentop.services.config_manager import IngestSettings
from tokentop.services.file_watcher import DirectoryWatcher
from tokentop.services.metadata_cache import EnvelopeReader, FileMetadataCache
from tokentop.services.path_resolver import PathResolver
from tokentop.services.reconciliation import DEFAULT_INTERVAL_MS, ReconciliationScheduler
from tokentop.services.usage_aggregator import MessageReader, UsageAggregator
from tokentop.types import SessionEnvelope, UsageRow

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_MS = 2000


@dataclass(frozen=True)
class _Memo:
    created_at: float
    limit: int | None
    rows: tuple


class _RefreshWorker(QThread):
    """Background thread running one refresh pass."""

    rows_ready = Signal(int, list)  # generation, rows

    def __init__(self, store: "SessionUsageStore", generation: int, parent=None):
        super().__init__(parent)
        self._store = store
        self._generation = generation

    def run(self):
        try:
            rows = self._store._list_usage(generation=self._generation)
        except Exception:
            logger.exception("Usage refresh failed")
            rows = []
        self.rows_ready.emit(self._generation, rows)


class SessionUsageStore(QObject):
    """Answers "what are the current usage rows" with minimal filesystem work.

    Owns the directory watcher, the reconciliation scheduler and both caches.
    Callers only ever receive fresh lists of immutable rows.
    """

    usage_refreshed = Signal(list)
    _partitions_seen = Signal(list)
    _start_requested = Signal()

    def __init__(
        self,
        storage_root: str | Path | None = None,
        parent=None,
        *,
        cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        reconcile_interval_ms: int = DEFAULT_INTERVAL_MS,
        aggregate_cache_max: int = DEFAULT_MAX_ENTRIES,
        envelope_reader: EnvelopeReader | None = None,
        message_reader: MessageReader | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(parent)
        self._resolver = PathResolver(storage_root)
        self._clock = clock
        self._ttl_s = cache_ttl_ms / 1000.0
        self._metadata = FileMetadataCache(envelope_reader)
        self._aggregates = SessionAggregateCache(aggregate_cache_max, clock)
        self._aggregator = UsageAggregator(self._resolver, message_reader)
        self._watcher = DirectoryWatcher(self)
        self._scheduler = ReconciliationScheduler(reconcile_interval_ms, self)

        self._memo: _Memo | None = None
        self._memo_lock = threading.Lock()
        self._started = False
        self._stopped = False
        self._worker: _RefreshWorker | None = None
        self._generation = 0
        self._last_stats: dict = {}

        # Watch registration must happen on the thread owning the watcher.
        self._partitions_seen.connect(self._watch_partitions)
        self._start_requested.connect(self.start)

    @classmethod
    def from_settings(cls, settings: IngestSettings, parent=None, **kwargs) -> "SessionUsageStore":
        return cls(
            settings.storage_root,
            parent,
            cache_ttl_ms=settings.cache_ttl_ms,
            reconcile_interval_ms=settings.reconcile_interval_ms,
            aggregate_cache_max=settings.aggregate_cache_max,
            **kwargs,
        )

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    @property
    def watcher(self) -> DirectoryWatcher:
        return self._watcher

    @property
    def scheduler(self) -> ReconciliationScheduler:
        return self._scheduler

    def is_started(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @Slot()
    def start(self):
        """Begin watching and the reconciliation timer. Idempotent."""
        if self._started:
            return
        self._started = True
        self._stopped = False
        if not self._watcher.watch_root(str(self._resolver.sessions_root)):
            logger.debug("Sessions root %s not watchable yet", self._resolver.sessions_root)
        self._scheduler.start()

    @Slot()
    def stop(self):
        """Tear down watches and timers. Idempotent."""
        self._started = False
        self._stopped = True
        self._generation += 1  # in-flight worker results are discarded
        self._scheduler.stop()
        self._watcher.stop()
        with self._memo_lock:
            self._memo = None

    def cleanup(self):
        """Stop and wait briefly for any running refresh worker."""
        self.stop()
        if self._worker is not None and self._worker.isRunning():
            self._worker.wait(2000)
        self._worker = None

    def request_full_sweep(self):
        self._scheduler.request_sweep()

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def list_usage(
        self,
        session_id: str | None = None,
        limit: int | None = None,
        since: int | None = None,
    ) -> list[UsageRow]:
        """Return usage rows, most recently updated sessions first.

        ``limit`` caps the number of sessions considered, not rows.
        ``since`` keeps only sessions updated after that epoch-ms value.
        The first call starts watching; after ``stop()`` it stays stopped.
        """
        if not self._started and not self._stopped:
            self._start_requested.emit()
        return self._list_usage(session_id, limit, since)

    def _list_usage(
        self,
        session_id: str | None = None,
        limit: int | None = None,
        since: int | None = None,
        generation: int | None = None,
    ) -> list[UsageRow]:
        unfiltered = session_id is None and since is None
        if unfiltered:
            memo = self._fresh_memo(limit)
            if memo is not None:
                logger.debug("Using cached usage rows (within TTL): %d", len(memo.rows))
                return list(memo.rows)

        dirty = self._watcher.drain_dirty()
        force = self._scheduler.consume()
        if force:
            logger.debug("Full reconciliation sweep triggered")

        stat_before = self._metadata.stat_count
        skip_before = self._metadata.stat_skip_count
        parse_before = self._metadata.parse_count
        hits_before = self._aggregates.hits
        misses_before = self._aggregates.misses

        rows: list[UsageRow] = []
        envelopes, complete = self._collect_envelopes(dirty, force)
        if envelopes is None:
            return rows

        if complete:
            self._aggregates.prune(envelopes)

        selected = [
            e for e in envelopes.values()
            if (session_id is None or e.id == session_id)
            and (since is None or e.updated_at > since)
        ]
        selected.sort(key=lambda e: e.updated_at, reverse=True)
        if limit is not None and limit >= 0:
            selected = selected[:limit]

        for envelope in selected:
            rows.extend(self._session_rows(envelope))

        if unfiltered:
            with self._memo_lock:
                # A worker finishing after stop() must not repopulate the memo.
                if generation is None or generation == self._generation:
                    self._memo = _Memo(created_at=self._clock(), limit=limit, rows=tuple(rows))

        self._last_stats = {
            "rows": len(rows),
            "session_files": len(envelopes),
            "sessions": len(selected),
            "stat_checks": self._metadata.stat_count - stat_before,
            "stat_skips": self._metadata.stat_skip_count - skip_before,
            "json_parses": self._metadata.parse_count - parse_before,
            "dirty_paths": len(dirty),
            "full_sweep": force,
            "aggregate_cache_hits": self._aggregates.hits - hits_before,
            "aggregate_cache_misses": self._aggregates.misses - misses_before,
            "metadata_index_size": len(self._metadata),
            "aggregate_cache_size": len(self._aggregates),
        }
        logger.debug("Parsed sessions: %s", self._last_stats)
        return rows

    def stats(self) -> dict:
        stats = dict(self._last_stats)
        stats["metadata_index_size"] = len(self._metadata)
        stats["aggregate_cache_size"] = len(self._aggregates)
        stats["dirty_pending"] = self._watcher.dirty_count()
        return stats

    @Slot()
    def refresh(self):
        """Run ``list_usage`` on a background thread and emit ``usage_refreshed``."""
        self.start()
        if self._worker is not None and self._worker.isRunning():
            return
        self._generation += 1
        worker = _RefreshWorker(self, self._generation, self)
        worker.rows_ready.connect(self._on_rows_ready)
        worker.finished.connect(self._on_worker_finished)
        worker.finished.connect(worker.deleteLater)
        self._worker = worker
        worker.start()

    @Slot(int, list)
    def _on_rows_ready(self, generation: int, rows: list):
        # Stale result: stopped or superseded while loading
        if generation != self._generation:
            return
        self.usage_refreshed.emit(rows)

    @Slot()
    def _on_worker_finished(self):
        if self.sender() is self._worker:
            self._worker = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fresh_memo(self, limit: int | None) -> _Memo | None:
        with self._memo_lock:
            memo = self._memo
        if memo is None or not memo.rows or memo.limit != limit:
            return None
        if self._clock() - memo.created_at >= self._ttl_s:
            return None
        return memo

    def _collect_envelopes(
        self, dirty: set[str], force: bool,
    ) -> tuple[dict[str, SessionEnvelope] | None, bool]:
        """Resolve every session envelope on disk, keyed by session id.

        Returns (None, False) when the sessions root itself cannot be listed.
        The boolean is True when every partition was listed.
        """
        try:
            partitions = self._resolver.list_partitions()
        except OSError:
            logger.debug("Failed to read session directories", exc_info=True)
            return None, False

        if self._started and partitions:
            self._partitions_seen.emit([str(p) for p in partitions])

        envelopes: dict[str, SessionEnvelope] = {}
        seen_paths: set[str] = set()
        complete = True
        for partition in partitions:
            try:
                files = self._resolver.list_session_files(partition)
            except OSError:
                logger.debug("Skipping unreadable partition %s", partition, exc_info=True)
                complete = False
                continue

            for path in files:
                key = str(path)
                seen_paths.add(key)
                envelope = self._metadata.resolve(key, dirty=key in dirty, force_full=force)
                if envelope is None:
                    continue
                existing = envelopes.get(envelope.id)
                if existing is None or envelope.updated_at > existing.updated_at:
                    envelopes[envelope.id] = envelope

        if complete:
            self._metadata.prune(seen_paths)
        return envelopes, complete

    def _session_rows(self, envelope: SessionEnvelope) -> tuple[UsageRow, ...]:
        cached = self._aggregates.get(envelope.id, envelope.updated_at)
        if cached is not None:
            return cached

        try:
            rows = self._aggregator.aggregate(envelope)
        except OSError:
            logger.debug("Failed to read messages for session %s", envelope.id, exc_info=True)
            return ()
        except Exception:
            logger.exception("Failed to aggregate session %s", envelope.id)
            return ()

        if rows is None:
            # No message directory yet; retry on the next pass.
            return ()
        return self._aggregates.put(envelope.id, envelope.updated_at, rows)

    @Slot(list)
    def _watch_partitions(self, partitions: list):
        if not self._started:
            return
        if not self._watcher.is_watching(str(self._resolver.sessions_root)):
            self._watcher.watch_root(str(self._resolver.sessions_root))
        for partition in partitions:
            self._watcher.watch_partition(partition)
