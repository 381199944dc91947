"""Services for tokentop."""

from tokentop.services.usage_store import SessionUsageStore
from tokentop.services.path_resolver import PathResolver
from tokentop.services.file_watcher import DirectoryWatcher
from tokentop.services.metadata_cache import FileMetadataCache
from tokentop.services.aggregate_cache import SessionAggregateCache
from tokentop.services.reconciliation import ReconciliationScheduler
from tokentop.services.usage_aggregator import UsageAggregator
from tokentop.services.activity_watcher import ActivityWatcher
from tokentop.services.config_manager import ConfigManager, IngestSettings
from tokentop.services.session_summary import summarize_sessions

__all__ = [
    "SessionUsageStore",
    "PathResolver",
    "DirectoryWatcher",
    "FileMetadataCache",
    "SessionAggregateCache",
    "ReconciliationScheduler",
    "UsageAggregator",
    "ActivityWatcher",
    "ConfigManager",
    "IngestSettings",
    "summarize_sessions",
]
