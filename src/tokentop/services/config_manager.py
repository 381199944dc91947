"""Application configuration manager wrapping QSettings."""

import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal, Slot, QSettings

logger = logging.getLogger(__name__)

# Default values
DEFAULTS = {
    "ingest/storageRoot": "~/.local/share/opencode/storage",
    "ingest/cacheTtlMs": 2000,
    "ingest/reconcileIntervalMs": 10 * 60 * 1000,
    "ingest/aggregateCacheMax": 10_000,
    "ingest/activeThresholdMs": 2 * 60 * 1000,
    "ingest/refreshIntervalMs": 1000,
    "advanced/debugLogging": False,
}


@dataclass(frozen=True)
class IngestSettings:
    storage_root: str
    cache_ttl_ms: int
    reconcile_interval_ms: int
    aggregate_cache_max: int
    active_threshold_ms: int
    refresh_interval_ms: int
    debug_logging: bool = False


class ConfigManager(QObject):
    """Centralized settings with typed accessors and change notification."""

    settings_changed = Signal(str)  # key

    def __init__(self, parent=None):
        super().__init__(parent)
        self._settings = QSettings()

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._settings.value(key, DEFAULTS.get(key, "")))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        val = self._settings.value(key, DEFAULTS.get(key, 0))
        try:
            return int(val)
        except (ValueError, TypeError):
            logger.warning("Invalid integer for %s: %r", key, val)
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        val = self._settings.value(key, DEFAULTS.get(key, False))
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ("true", "1", "yes")
        return bool(val)

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str)
    def reset(self, key: str):
        """Drop a stored value so its default applies again."""
        self._settings.remove(key)
        self.settings_changed.emit(key)

    def ingest_settings(self) -> IngestSettings:
        return IngestSettings(
            storage_root=self.get_string("ingest/storageRoot"),
            cache_ttl_ms=max(0, self.get_int("ingest/cacheTtlMs")),
            reconcile_interval_ms=max(1000, self.get_int("ingest/reconcileIntervalMs")),
            aggregate_cache_max=max(1, self.get_int("ingest/aggregateCacheMax")),
            active_threshold_ms=max(0, self.get_int("ingest/activeThresholdMs")),
            refresh_interval_ms=max(100, self.get_int("ingest/refreshIntervalMs")),
            debug_logging=self.get_bool("advanced/debugLogging"),
        )
