"""Turn a session's message records into usage rows."""

import logging
from typing import Callable, Iterable

from tokentop.services.json_reader import read_message_record
from tokentop.services.path_resolver import PathResolver
from tokentop.types import MessageRecord, SessionEnvelope, TokenCounts, UsageRow

logger = logging.getLogger(__name__)

MessageReader = Callable[[str], MessageRecord | None]

UNKNOWN = "unknown"
USAGE_ROLE = "assistant"


def resolve_provider_id(message: MessageRecord) -> str:
    if message.provider_id:
        return message.provider_id
    if message.model and message.model.provider_id:
        return message.model.provider_id
    return UNKNOWN


def resolve_model_id(message: MessageRecord) -> str:
    if message.model_id:
        return message.model_id
    if message.model and message.model.model_id:
        return message.model.model_id
    return UNKNOWN


def build_usage_row(session: SessionEnvelope, message: MessageRecord) -> UsageRow | None:
    """Build a row for an assistant message carrying tokens, else None."""
    if message.role != USAGE_ROLE or message.tokens is None:
        return None

    tokens = TokenCounts(
        input=message.tokens.input,
        output=message.tokens.output,
        cache_read=message.tokens.cache_read or None,
        cache_write=message.tokens.cache_write or None,
    )
    return UsageRow(
        session_id=session.id,
        provider_id=resolve_provider_id(message),
        model_id=resolve_model_id(message),
        tokens=tokens,
        timestamp=message.sort_time,
        session_updated_at=session.updated_at,
        session_name=session.title or None,
        project_path=session.directory_path or None,
        cost=message.cost,
    )


def aggregate_messages(session: SessionEnvelope, messages: Iterable[MessageRecord]) -> list[UsageRow]:
    """Order messages newest first and emit one row per usage-bearing record."""
    ordered = sorted(messages, key=lambda m: (m.sort_time, m.id), reverse=True)
    rows = []
    for message in ordered:
        row = build_usage_row(session, message)
        if row is not None:
            rows.append(row)
    return rows


class UsageAggregator:
    """Reads a session's message files and aggregates them into rows."""

    def __init__(self, resolver: PathResolver, reader: MessageReader | None = None):
        self._resolver = resolver
        self._reader = reader or read_message_record

    def aggregate(self, session: SessionEnvelope) -> list[UsageRow] | None:
        """Return the session's rows, or None if it has no message directory."""
        if not self._resolver.message_dir(session.id).is_dir():
            return None
        files = self._resolver.list_message_files(session.id)
        if not files:
            return []

        messages = []
        for path in files:
            message = self._reader(str(path))
            if message is None:
                continue
            messages.append(message)

        rows = aggregate_messages(session, messages)
        logger.debug(
            "Aggregated session %s: %d message files, %d usage rows",
            session.id, len(files), len(rows),
        )
        return rows

