"""Usage-level types produced by the ingestion pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tokentop.types.sessions import TokenCounts


@dataclass(frozen=True)
class UsageRow:
    session_id: str
    provider_id: str
    model_id: str
    tokens: TokenCounts
    timestamp: int
    session_updated_at: int
    session_name: Optional[str] = None
    project_path: Optional[str] = None
    cost: Optional[float] = None

    def to_dict(self) -> dict:
        tokens = {"input": self.tokens.input, "output": self.tokens.output}
        if self.tokens.cache_read:
            tokens["cacheRead"] = self.tokens.cache_read
        if self.tokens.cache_write:
            tokens["cacheWrite"] = self.tokens.cache_write
        data = {
            "sessionId": self.session_id,
            "providerId": self.provider_id,
            "modelId": self.model_id,
            "tokens": tokens,
            "timestamp": self.timestamp,
            "sessionUpdatedAt": self.session_updated_at,
        }
        if self.session_name:
            data["sessionName"] = self.session_name
        if self.project_path:
            data["projectPath"] = self.project_path
        if self.cost is not None:
            data["cost"] = self.cost
        return data


@dataclass(frozen=True)
class ActivityUpdate:
    """Token delta observed from a single part file."""
    session_id: str
    message_id: str
    tokens: TokenCounts
    timestamp: int


class SessionStatus(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"


@dataclass
class SessionStream:
    provider_id: str
    model_id: str
    tokens: TokenCounts
    request_count: int = 0
    cost_usd: Optional[float] = None


@dataclass
class SessionAggregate:
    session_id: str
    agent_id: str
    agent_name: str
    started_at: int
    last_activity_at: int
    status: SessionStatus
    totals: TokenCounts
    request_count: int = 0
    streams: list[SessionStream] = field(default_factory=list)
    project_path: Optional[str] = None
    total_cost_usd: Optional[float] = None
