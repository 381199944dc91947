"""Real-time token activity feed from the agent's part files."""

import logging
import os
import time

from PySide6.QtCore import QObject, Signal, QFileSystemWatcher, QTimer

from tokentop.services.json_reader import read_part_record
from tokentop.services.path_resolver import PathResolver, is_record_file_name
from tokentop.types import ActivityUpdate

logger = logging.getLogger(__name__)

MESSAGE_DIR_PREFIX = "msg_"
SETTLE_DELAY_MS = 50


class ActivityWatcher(QObject):
    """Emits an ActivityUpdate for every new part file carrying tokens.

    Only message directories created after ``start()`` are followed, so
    historical parts are never replayed.
    """

    activity = Signal(object)  # ActivityUpdate

    def __init__(self, resolver: PathResolver, parent=None):
        super().__init__(parent)
        self._resolver = resolver
        self._watcher = QFileSystemWatcher(self)
        self._parts_root = ""
        self._baseline: set[str] = set()
        self._message_dirs: set[str] = set()
        self._seen_parts: set[str] = set()
        self._debounce_timers: dict[str, QTimer] = {}

        self._watcher.directoryChanged.connect(self._on_directory_changed)

    def is_running(self) -> bool:
        return bool(self._parts_root)

    def start(self):
        if self._parts_root:
            return
        parts_root = str(self._resolver.parts_root)
        if not os.path.isdir(parts_root) or not self._watcher.addPath(parts_root):
            logger.debug("Parts directory %s not watchable", parts_root)
            return
        self._parts_root = parts_root
        self._baseline = set(_list_message_dirs(parts_root))

    def stop(self):
        if self._watcher.directories():
            self._watcher.removePaths(self._watcher.directories())
        for timer in self._debounce_timers.values():
            timer.stop()
            timer.deleteLater()
        self._debounce_timers.clear()
        self._parts_root = ""
        self._baseline.clear()
        self._message_dirs.clear()
        self._seen_parts.clear()

    def watch_message_dir(self, path: str):
        """Follow one message directory, scanning parts already inside it."""
        if path in self._message_dirs:
            return
        if not os.path.isdir(path) or not self._watcher.addPath(path):
            logger.debug("Could not watch message dir %s", path)
            return
        self._message_dirs.add(path)
        self.scan_message_dir(path)

    def scan_message_dir(self, path: str):
        try:
            with os.scandir(path) as it:
                names = sorted(e.name for e in it if is_record_file_name(e.name))
        except OSError:
            return
        for name in names:
            self._process_part(os.path.join(path, name))

    def _process_part(self, part_path: str):
        if part_path in self._seen_parts:
            return
        part = read_part_record(part_path)
        if part is None:
            # Possibly mid-write; the next directory event retries it.
            return
        self._seen_parts.add(part_path)
        if part.tokens is None:
            return
        self.activity.emit(ActivityUpdate(
            session_id=part.session_id,
            message_id=part.message_id,
            tokens=part.tokens,
            timestamp=int(time.time() * 1000),
        ))

    def _on_directory_changed(self, path: str):
        if path == self._parts_root:
            self._debounce(path, self._scan_parts_root)
        elif path in self._message_dirs:
            self._debounce(path, lambda: self.scan_message_dir(path))

    def _scan_parts_root(self):
        current = set(_list_message_dirs(self._parts_root))
        self._baseline &= current
        for msg_dir in self._message_dirs - current:
            self._forget_message_dir(msg_dir)
        for msg_dir in sorted(current - self._baseline):
            self.watch_message_dir(msg_dir)

    def _forget_message_dir(self, path: str):
        """Drop a message directory that no longer exists."""
        self._message_dirs.discard(path)
        if path in self._watcher.directories():
            self._watcher.removePath(path)
        timer = self._debounce_timers.pop(path, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()
        prefix = path + os.sep
        self._seen_parts = {p for p in self._seen_parts if not p.startswith(prefix)}

    def _debounce(self, key: str, callback):
        """Let writers settle before reading, coalescing repeated events."""
        timer = self._debounce_timers.get(key)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(lambda: self._fire(key, callback))
            self._debounce_timers[key] = timer
        timer.start(SETTLE_DELAY_MS)

    def _fire(self, key: str, callback):
        timer = self._debounce_timers.pop(key, None)
        if timer is not None:
            timer.deleteLater()
        callback()


def _list_message_dirs(parts_root: str) -> list[str]:
    try:
        with os.scandir(parts_root) as it:
            return [e.path for e in it if e.name.startswith(MESSAGE_DIR_PREFIX) and e.is_dir()]
    except OSError:
        return []
