"""File system watcher that collects dirty session file paths."""

import logging
import os
import threading

from PySide6.QtCore import QObject, Signal, QFileSystemWatcher

from tokentop.services.path_resolver import is_record_file_name

logger = logging.getLogger(__name__)


class DirectoryWatcher(QObject):
    """Watches the sessions root and its partitions for session file changes.

    Callbacks never touch the ingestion caches. They only add paths to the
    dirty set, which the refresh coordinator drains on its next pass.
    """

    paths_dirtied = Signal(int)    # number of dirty paths pending
    partition_added = Signal(str)  # partition directory path

    def __init__(self, parent=None):
        super().__init__(parent)
        self._watcher = QFileSystemWatcher(self)
        self._root = ""
        self._partitions: dict[str, set[str]] = {}  # partition -> known session files
        self._dirty: set[str] = set()
        self._lock = threading.Lock()

        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    @property
    def root(self) -> str:
        return self._root

    def watch_root(self, path: str) -> bool:
        """Watch the sessions root and every partition already under it.

        Returns False when the root could not be watched (typically because
        it does not exist yet); calling again later retries.
        """
        path = os.path.abspath(path)
        self._root = path
        if path not in self._watcher.directories():
            if not self._add_path(path):
                return False

        for partition in _list_subdirs(path):
            self.watch_partition(partition)
        return True

    def watch_partition(self, path: str) -> bool:
        """Watch one partition directory and its session files. Idempotent."""
        path = os.path.abspath(path)
        if path in self._partitions:
            return True
        if not self._add_path(path):
            return False

        known = set(_list_session_files(path))
        self._partitions[path] = known
        for file_path in known:
            self._add_path(file_path)
        return True

    def is_watching(self, path: str) -> bool:
        path = os.path.abspath(path)
        if path in self._partitions:
            return True
        return path == self._root and path in self._watcher.directories()

    def watched_partitions(self) -> list[str]:
        return sorted(self._partitions)

    def mark_dirty(self, path: str):
        with self._lock:
            self._dirty.add(path)
            count = len(self._dirty)
        self.paths_dirtied.emit(count)

    def drain_dirty(self) -> set[str]:
        """Return and clear the set of paths changed since the last drain."""
        with self._lock:
            drained = self._dirty
            self._dirty = set()
        return drained

    def dirty_count(self) -> int:
        with self._lock:
            return len(self._dirty)

    def stop(self):
        """Stop all file watching. Safe to call more than once."""
        if self._watcher.files():
            self._watcher.removePaths(self._watcher.files())
        if self._watcher.directories():
            self._watcher.removePaths(self._watcher.directories())
        self._partitions.clear()
        self._root = ""
        with self._lock:
            self._dirty.clear()

    def _add_path(self, path: str) -> bool:
        if not os.path.exists(path):
            return False
        try:
            added = self._watcher.addPath(path)
        except RuntimeError:
            added = False
        if not added:
            logger.debug("Could not watch %s, relying on reconciliation", path)
        return added

    def _on_file_changed(self, path: str):
        # Qt drops the watch when a file is replaced by rename; re-add it.
        if os.path.exists(path) and path not in self._watcher.files():
            self._add_path(path)
        elif not os.path.exists(path):
            partition = self._partitions.get(os.path.dirname(path))
            if partition is not None:
                partition.discard(path)
        self.mark_dirty(path)

    def _on_directory_changed(self, path: str):
        if path == self._root:
            self._on_root_changed()
            return

        known = self._partitions.get(path)
        if known is None:
            return
        if not os.path.isdir(path):
            del self._partitions[path]
            for file_path in known:
                self.mark_dirty(file_path)
            return

        current = set(_list_session_files(path))
        for file_path in current - known:
            self._add_path(file_path)
            self.mark_dirty(file_path)
        for file_path in known - current:
            self.mark_dirty(file_path)
        self._partitions[path] = current

    def _on_root_changed(self):
        for partition in _list_subdirs(self._root):
            if partition in self._partitions:
                continue
            if self.watch_partition(partition):
                for file_path in self._partitions[partition]:
                    self.mark_dirty(file_path)
                self.partition_added.emit(partition)

        for partition in list(self._partitions):
            if not os.path.isdir(partition):
                for file_path in self._partitions.pop(partition):
                    self.mark_dirty(file_path)


def _list_subdirs(path: str) -> list[str]:
    try:
        with os.scandir(path) as it:
            return sorted(e.path for e in it if e.is_dir())
    except OSError:
        return []


def _list_session_files(path: str) -> list[str]:
    try:
        with os.scandir(path) as it:
            return [e.path for e in it if is_record_file_name(e.name) and e.is_file()]
    except OSError:
        return []
