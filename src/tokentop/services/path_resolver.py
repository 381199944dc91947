"""Resolve the agent's on-disk storage layout.

    <storage>/session/<partition-id>/<session-id>.json
    <storage>/message/<session-id>/<message-id>.json
    <storage>/part/<message-id>/<part-id>.json
"""

import os
from pathlib import Path

DEFAULT_STORAGE_ROOT = Path.home() / ".local" / "share" / "opencode" / "storage"

SESSION_FILE_SUFFIX = ".json"


def is_record_file_name(name: str) -> bool:
    return name.endswith(SESSION_FILE_SUFFIX) and not name.startswith(".")


class PathResolver:
    """Enumerates partitions, session files and message files.

    Missing directories resolve to empty listings. Other OS errors
    propagate so callers can decide what to skip.
    """

    def __init__(self, storage_root: str | Path | None = None):
        root = Path(storage_root).expanduser() if storage_root else DEFAULT_STORAGE_ROOT
        # Absolute and normalized so paths match the watcher's dirty set.
        self._storage_root = Path(os.path.abspath(root))

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    @property
    def sessions_root(self) -> Path:
        return self._storage_root / "session"

    @property
    def messages_root(self) -> Path:
        return self._storage_root / "message"

    @property
    def parts_root(self) -> Path:
        return self._storage_root / "part"

    def list_partitions(self) -> list[Path]:
        try:
            entries = list(self.sessions_root.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []
        return sorted(e for e in entries if _is_dir(e))

    def list_session_files(self, partition: str | Path) -> list[Path]:
        return _list_record_files(Path(partition))

    def message_dir(self, session_id: str) -> Path:
        primary = self.messages_root / session_id
        if primary.is_dir():
            return primary
        legacy = self._storage_root / "messages" / session_id
        if legacy.is_dir():
            return legacy
        return primary

    def list_message_files(self, session_id: str) -> list[Path]:
        return _list_record_files(self.message_dir(session_id))

    def part_dir(self, message_id: str) -> Path:
        return self.parts_root / message_id


def _list_record_files(directory: Path) -> list[Path]:
    try:
        entries = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    return sorted(e for e in entries if is_record_file_name(e.name) and _is_file(e))


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False
