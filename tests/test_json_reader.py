"""Tests for tokentop.services.json_reader."""

from tokentop.services.json_reader import (
    parse_message_record,
    parse_part_record,
    parse_session_envelope,
    parse_tokens,
    read_json_file,
    read_session_envelope,
)
from tokentop.types import TokenCounts


class TestReadJsonFile:
    def test_object(self, tmp_path):
        f = tmp_path / "a.json"
        f.write_text('{"id": "x"}')
        assert read_json_file(f) == {"id": "x"}

    def test_missing(self, tmp_path):
        assert read_json_file(tmp_path / "missing.json") is None

    def test_malformed(self, tmp_path):
        f = tmp_path / "a.json"
        f.write_text("{")
        assert read_json_file(f) is None

    def test_non_object(self, tmp_path):
        f = tmp_path / "a.json"
        f.write_text("[1, 2, 3]")
        assert read_json_file(f) is None


class TestSessionEnvelope:
    def test_full(self):
        env = parse_session_envelope({
            "id": "ses_1", "projectID": "p", "directory": "/src", "title": "T",
            "time": {"created": 10, "updated": 20},
        })
        assert env.id == "ses_1"
        assert env.project_id == "p"
        assert env.directory_path == "/src"
        assert env.title == "T"
        assert (env.created_at, env.updated_at) == (10, 20)

    def test_created_defaults_to_updated(self):
        env = parse_session_envelope({"id": "ses_1", "time": {"updated": 20}})
        assert env.created_at == 20

    def test_requires_id_and_updated(self):
        assert parse_session_envelope({"time": {"updated": 1}}) is None
        assert parse_session_envelope({"id": "", "time": {"updated": 1}}) is None
        assert parse_session_envelope({"id": "ses_1"}) is None
        assert parse_session_envelope({"id": "ses_1", "time": {"updated": "soon"}}) is None

    def test_read_from_disk(self, tmp_path):
        f = tmp_path / "ses.json"
        f.write_text('{"id": "ses_1", "time": {"updated": 7}}')
        assert read_session_envelope(f).updated_at == 7


class TestMessageRecord:
    def test_full(self):
        msg = parse_message_record({
            "id": "msg_1", "sessionID": "ses_1", "role": "assistant",
            "time": {"created": 1, "completed": 2},
            "providerID": "anthropic", "modelID": "claude",
            "model": {"providerID": "p2", "modelID": "m2"},
            "tokens": {"input": 3, "output": 4, "reasoning": 5, "cache": {"read": 6, "write": 7}},
            "cost": 0.5,
        })
        assert msg.role == "assistant"
        assert msg.sort_time == 2
        assert msg.model.provider_id == "p2"
        assert msg.tokens == TokenCounts(input=3, output=4, reasoning=5, cache_read=6, cache_write=7)
        assert msg.cost == 0.5

    def test_minimal(self):
        msg = parse_message_record({"id": "msg_1"})
        assert msg.tokens is None
        assert msg.time_created == 0
        assert msg.model is None

    def test_requires_id(self):
        assert parse_message_record({"role": "assistant"}) is None


class TestTokens:
    def test_missing_fields_default_to_zero(self):
        assert parse_tokens({}) == TokenCounts()

    def test_not_a_dict(self):
        assert parse_tokens(None) is None
        assert parse_tokens(5) is None


class TestPartRecord:
    def test_part(self):
        part = parse_part_record({
            "id": "prt_1", "sessionID": "ses_1", "messageID": "msg_1",
            "type": "step-finish", "tokens": {"input": 1, "output": 2},
        })
        assert part.message_id == "msg_1"
        assert part.tokens.output == 2

    def test_requires_id(self):
        assert parse_part_record({"sessionID": "ses_1"}) is None
