"""Structural parsers for the agent's session, message and part JSON files."""

import logging
from pathlib import Path
from typing import Any

import orjson

from tokentop.types.sessions import (
    MessageRecord,
    ModelRef,
    PartRecord,
    SessionEnvelope,
    TokenCounts,
)

logger = logging.getLogger(__name__)

# Agent records are small; anything larger is not one of ours.
MAX_FILE_SIZE = 10 * 1024 * 1024


def read_json_file(file_path: str | Path) -> dict | None:
    """Read a JSON object from disk.

    Returns None when the file is missing, oversized, malformed, or does not
    hold an object at the top level.
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError:
        return None

    if len(data) > MAX_FILE_SIZE:
        logger.warning(
            "%s exceeds %dMB, skipping",
            path.name, MAX_FILE_SIZE // (1024 * 1024),
        )
        return None

    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        logger.debug("Malformed JSON in %s: %s", path.name, e)
        return None

    if not isinstance(raw, dict):
        return None
    return raw


def read_session_envelope(file_path: str | Path) -> SessionEnvelope | None:
    raw = read_json_file(file_path)
    if raw is None:
        return None
    return parse_session_envelope(raw)


def read_message_record(file_path: str | Path) -> MessageRecord | None:
    raw = read_json_file(file_path)
    if raw is None:
        return None
    return parse_message_record(raw)


def read_part_record(file_path: str | Path) -> PartRecord | None:
    raw = read_json_file(file_path)
    if raw is None:
        return None
    return parse_part_record(raw)


def parse_session_envelope(raw: dict) -> SessionEnvelope | None:
    """Parse a raw session dict. Requires ``id`` and ``time.updated``."""
    session_id = raw.get("id")
    if not isinstance(session_id, str) or not session_id:
        return None

    time_info = raw.get("time")
    if not isinstance(time_info, dict):
        return None
    updated = _as_int(time_info.get("updated"))
    if updated is None:
        return None
    created = _as_int(time_info.get("created"))

    return SessionEnvelope(
        id=session_id,
        directory_path=_as_str(raw.get("directory")),
        updated_at=updated,
        created_at=created if created is not None else updated,
        title=_as_str(raw.get("title")),
        project_id=_as_str(raw.get("projectID")),
    )


def parse_message_record(raw: dict) -> MessageRecord | None:
    message_id = raw.get("id")
    if not isinstance(message_id, str) or not message_id:
        return None

    time_info = raw.get("time")
    if not isinstance(time_info, dict):
        time_info = {}
    created = _as_int(time_info.get("created"))

    model = None
    raw_model = raw.get("model")
    if isinstance(raw_model, dict):
        model = ModelRef(
            provider_id=_as_str(raw_model.get("providerID")),
            model_id=_as_str(raw_model.get("modelID")),
        )

    return MessageRecord(
        id=message_id,
        session_id=_as_str(raw.get("sessionID")),
        role=_as_str(raw.get("role")),
        time_created=created if created is not None else 0,
        time_completed=_as_int(time_info.get("completed")),
        provider_id=_as_str(raw.get("providerID")),
        model_id=_as_str(raw.get("modelID")),
        model=model,
        tokens=parse_tokens(raw.get("tokens")),
        cost=_as_float(raw.get("cost")),
    )


def parse_part_record(raw: dict) -> PartRecord | None:
    part_id = raw.get("id")
    if not isinstance(part_id, str) or not part_id:
        return None
    return PartRecord(
        id=part_id,
        session_id=_as_str(raw.get("sessionID")),
        message_id=_as_str(raw.get("messageID")),
        type=_as_str(raw.get("type")),
        tokens=parse_tokens(raw.get("tokens")),
        cost=_as_float(raw.get("cost")),
    )


def parse_tokens(raw: Any) -> TokenCounts | None:
    """Parse an agent ``tokens`` block (``cache`` nested as read/write)."""
    if not isinstance(raw, dict):
        return None
    cache = raw.get("cache")
    if not isinstance(cache, dict):
        cache = {}
    return TokenCounts(
        input=_as_int(raw.get("input")) or 0,
        output=_as_int(raw.get("output")) or 0,
        reasoning=_as_int(raw.get("reasoning")),
        cache_read=_as_int(cache.get("read")),
        cache_write=_as_int(cache.get("write")),
    )


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""
