"""Session and message record types parsed from agent storage."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TokenCounts:
    input: int = 0
    output: int = 0
    reasoning: Optional[int] = None
    cache_read: Optional[int] = None
    cache_write: Optional[int] = None


@dataclass(frozen=True)
class SessionEnvelope:
    id: str
    directory_path: str
    updated_at: int
    created_at: int
    title: str = ""
    project_id: str = ""


@dataclass(frozen=True)
class ModelRef:
    provider_id: str = ""
    model_id: str = ""


@dataclass(frozen=True)
class MessageRecord:
    id: str
    session_id: str
    role: str
    time_created: int
    time_completed: Optional[int] = None
    provider_id: str = ""
    model_id: str = ""
    model: Optional[ModelRef] = None
    tokens: Optional[TokenCounts] = None
    cost: Optional[float] = None

    @property
    def sort_time(self) -> int:
        if self.time_completed is not None:
            return self.time_completed
        return self.time_created


@dataclass(frozen=True)
class PartRecord:
    id: str
    session_id: str
    message_id: str
    type: str = ""
    tokens: Optional[TokenCounts] = None
    cost: Optional[float] = None


@dataclass
class FileMetadataEntry:
    path: str
    mtime: float
    envelope: SessionEnvelope


@dataclass
class AggregateCacheEntry:
    session_id: str
    updated_at: int
    rows: tuple = field(default_factory=tuple)
    last_accessed: float = 0.0
