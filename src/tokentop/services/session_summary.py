"""Fold usage rows into per-session aggregates grouped by model stream."""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from tokentop.types import (
    SessionAggregate,
    SessionStatus,
    SessionStream,
    TokenCounts,
    UsageRow,
)
from tokentop.utils.pricing import estimate_model_cost

ACTIVE_THRESHOLD_MS = 2 * 60 * 1000

CostLookup = Callable[[UsageRow], Optional[float]]


def row_cost(row: UsageRow) -> float | None:
    """Agent-reported cost, falling back to the price table."""
    if row.cost is not None:
        return row.cost
    return estimate_model_cost(row.provider_id, row.model_id, row.tokens)


def sum_tokens(a: TokenCounts, b: TokenCounts) -> TokenCounts:
    cache_read = (a.cache_read or 0) + (b.cache_read or 0)
    cache_write = (a.cache_write or 0) + (b.cache_write or 0)
    return TokenCounts(
        input=a.input + b.input,
        output=a.output + b.output,
        cache_read=cache_read or None,
        cache_write=cache_write or None,
    )


def _add_cost(total: float | None, cost: float | None) -> float | None:
    if cost is None:
        return total
    return cost if total is None else total + cost


@dataclass
class _SessionAccumulator:
    timestamps: list[int] = field(default_factory=list)
    project_path: Optional[str] = None
    session_updated_at: Optional[int] = None
    streams: dict[tuple[str, str], SessionStream] = field(default_factory=dict)


def summarize_sessions(
    rows: Iterable[UsageRow],
    agent_id: str = "opencode",
    agent_name: str = "OpenCode",
    now: int | None = None,
    active_threshold_ms: int = ACTIVE_THRESHOLD_MS,
    cost_lookup: CostLookup = row_cost,
) -> list[SessionAggregate]:
    """Group rows by session, then by (provider, model) stream.

    Results are ordered by last activity, newest first.
    """
    if now is None:
        now = int(time.time() * 1000)

    sessions: dict[str, _SessionAccumulator] = {}
    for row in rows:
        acc = sessions.setdefault(row.session_id, _SessionAccumulator())
        acc.timestamps.append(row.timestamp)
        if row.project_path and not acc.project_path:
            acc.project_path = row.project_path
        if row.session_updated_at and (
            acc.session_updated_at is None or row.session_updated_at > acc.session_updated_at
        ):
            acc.session_updated_at = row.session_updated_at

        key = (row.provider_id, row.model_id)
        stream = acc.streams.get(key)
        if stream is None:
            stream = SessionStream(provider_id=row.provider_id, model_id=row.model_id,
                                   tokens=TokenCounts())
            acc.streams[key] = stream
        stream.tokens = sum_tokens(stream.tokens, row.tokens)
        stream.request_count += 1
        stream.cost_usd = _add_cost(stream.cost_usd, cost_lookup(row))

    results = []
    for session_id, acc in sessions.items():
        last_activity = max(acc.timestamps)
        last_seen = acc.session_updated_at or last_activity
        status = SessionStatus.ACTIVE if now - last_seen <= active_threshold_ms else SessionStatus.IDLE

        totals = TokenCounts()
        total_cost = None
        request_count = 0
        for stream in acc.streams.values():
            totals = sum_tokens(totals, stream.tokens)
            total_cost = _add_cost(total_cost, stream.cost_usd)
            request_count += stream.request_count

        results.append(SessionAggregate(
            session_id=session_id,
            agent_id=agent_id,
            agent_name=agent_name,
            started_at=min(acc.timestamps),
            last_activity_at=last_activity,
            status=status,
            totals=totals,
            request_count=request_count,
            streams=list(acc.streams.values()),
            project_path=acc.project_path,
            total_cost_usd=round(total_cost, 6) if total_cost is not None else None,
        ))

    results.sort(key=lambda a: a.last_activity_at, reverse=True)
    return results
