"""Type definitions for tokentop."""

from tokentop.types.sessions import (
    AggregateCacheEntry,
    FileMetadataEntry,
    MessageRecord,
    ModelRef,
    PartRecord,
    SessionEnvelope,
    TokenCounts,
)
from tokentop.types.usage import (
    ActivityUpdate,
    SessionAggregate,
    SessionStatus,
    SessionStream,
    UsageRow,
)

__all__ = [
    "AggregateCacheEntry",
    "FileMetadataEntry",
    "MessageRecord",
    "ModelRef",
    "PartRecord",
    "SessionEnvelope",
    "TokenCounts",
    "ActivityUpdate",
    "SessionAggregate",
    "SessionStatus",
    "SessionStream",
    "UsageRow",
]
