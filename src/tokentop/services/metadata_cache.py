"""In-memory mtime cache for parsed session envelopes."""

import logging
import os
import threading
from typing import Callable, Iterable

from tokentop.services.json_reader import read_session_envelope
from tokentop.types import FileMetadataEntry, SessionEnvelope

logger = logging.getLogger(__name__)

EnvelopeReader = Callable[[str], SessionEnvelope | None]


class FileMetadataCache:
    """Caches session envelopes by file path to avoid re-reading JSON files.

    An entry is trusted without touching the filesystem unless the path was
    reported dirty or a full sweep is forced. Even then the file body is
    only re-read when its mtime moved.
    """

    def __init__(self, reader: EnvelopeReader | None = None):
        self._reader = reader or read_session_envelope
        self._entries: dict[str, FileMetadataEntry] = {}
        self._lock = threading.Lock()
        self.stat_count = 0
        self.stat_skip_count = 0
        self.parse_count = 0

    def resolve(self, path: str, dirty: bool = False, force_full: bool = False) -> SessionEnvelope | None:
        with self._lock:
            cached = self._entries.get(path)

        if cached is not None and not dirty and not force_full:
            self.stat_skip_count += 1
            return cached.envelope

        self.stat_count += 1
        try:
            mtime = os.stat(path).st_mtime
        except OSError:
            self.remove(path)
            return None

        if cached is not None and cached.mtime == mtime:
            return cached.envelope

        self.parse_count += 1
        envelope = self._reader(path)
        with self._lock:
            if envelope is None:
                self._entries.pop(path, None)
            else:
                self._entries[path] = FileMetadataEntry(path=path, mtime=mtime, envelope=envelope)
        if envelope is None:
            logger.debug("Unparseable session file %s", path)
        return envelope

    def get(self, path: str) -> SessionEnvelope | None:
        with self._lock:
            entry = self._entries.get(path)
        return entry.envelope if entry else None

    def prune(self, seen_paths: Iterable[str]) -> int:
        """Drop entries whose path was not seen in the latest full listing."""
        seen = set(seen_paths)
        with self._lock:
            stale = [p for p in self._entries if p not in seen]
            for p in stale:
                del self._entries[p]
        return len(stale)

    def remove(self, path: str):
        with self._lock:
            self._entries.pop(path, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries
