import json
import tempfile
import unittest
from pathlib import Path

from backend.errors import GatewayError
from backend.models import SessionFilter
from backend.parsers.transcripts import TranscriptStore
from backend.services.sessions import (
    SessionService,
    validate_model,
    validate_session_id,
    validate_session_key,
    validate_session_type,
)

_SESSION_ID = "0b9c8f2e-4d1a-4c3b-9e7f-5a6b7c8d9e0f"


class _RecordingGateway:
    def __init__(self, sessions=None, list_error: Exception | None = None, mutate_error: Exception | None = None) -> None:
        self.sessions = sessions or []
        self.list_error = list_error
        self.mutate_error = mutate_error
        self.calls: list[tuple] = []

    def list_sessions(self):
        self.calls.append(("list",))
        if self.list_error:
            raise self.list_error
        return list(self.sessions)

    def change_model(self, session_key, model):
        self.calls.append(("model", session_key, model))
        if self.mutate_error:
            raise self.mutate_error

    def archive_session(self, session_key):
        self.calls.append(("archive", session_key))
        if self.mutate_error:
            raise self.mutate_error


class ValidationTests(unittest.TestCase):
    def test_session_id_must_be_uuid_shaped(self) -> None:
        self.assertTrue(validate_session_id(_SESSION_ID).valid)
        self.assertTrue(validate_session_id(_SESSION_ID.upper()).valid)
        for bad in ("", "abc", "../../etc/passwd", "0b9c8f2e4d1a4c3b9e7f5a6b7c8d9e0f", _SESSION_ID + "0"):
            with self.subTest(bad=bad):
                self.assertFalse(validate_session_id(bad).valid)
        self.assertEqual(validate_session_id("").errors, ["Session ID is required"])

    def test_session_key_prefix(self) -> None:
        self.assertTrue(validate_session_key("agent:main:main").valid)
        self.assertEqual(validate_session_key("cron:x").errors, ["Invalid session key format"])
        self.assertEqual(validate_session_key("").errors, ["Session key is required"])

    def test_model_length(self) -> None:
        self.assertTrue(validate_model("m" * 100).valid)
        self.assertEqual(validate_model("m" * 101).errors, ["Model name too long"])
        self.assertEqual(validate_model("").errors, ["Model is required"])
        self.assertFalse(validate_model("   ").valid)

    def test_model_length_ignores_surrounding_whitespace(self) -> None:
        padded = "  " + "m" * 100 + "  "
        self.assertTrue(validate_model(padded).valid)

    def test_session_type_must_be_known(self) -> None:
        self.assertTrue(validate_session_type(None).valid)
        self.assertTrue(validate_session_type("cron").valid)
        self.assertEqual(validate_session_type("bogus").errors, ["Invalid session type: bogus"])


class SessionServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)
        self.gateway = _RecordingGateway([
            {
                "key": "agent:main:main",
                "kind": "direct",
                "updatedAt": 1700000000000,
                "ageMs": 5,
                "sessionId": _SESSION_ID,
                "model": "claude-opus-4-6",
                "totalTokens": 4000,
                "contextTokens": 8000,
            },
        ])
        self.service = SessionService(gateway=self.gateway, store=TranscriptStore(self.root))

    def _write_transcript(self, session_id: str, lines: list[str]) -> None:
        (self.root / f"{session_id}.jsonl").write_text("\n".join(lines), encoding="utf-8")

    def _events(self) -> list[str]:
        return [
            json.dumps({"type": "model_change", "modelId": "claude-opus-4-6"}),
            json.dumps({"type": "message", "id": "e1", "timestamp": "2026-02-16T10:00:00Z",
                        "message": {"role": "user", "content": "hello"}}),
            "{broken",
            json.dumps({"type": "message", "id": "e2", "timestamp": "2026-02-16T10:00:01Z",
                        "message": {"role": "assistant", "content": [
                            {"type": "text", "text": "checking"},
                            {"type": "tool_use", "id": "t1", "name": "exec", "input": {"cmd": "ls"}},
                        ]}}),
        ]

    def test_get_session_merges_registry_metadata(self) -> None:
        self._write_transcript(_SESSION_ID, self._events())

        result = self.service.get_session(_SESSION_ID)

        self.assertTrue(result.success)
        data = result.data
        self.assertEqual(data.key, "agent:main:main")
        self.assertEqual(data.type, "main")
        self.assertEqual(data.contextUsedPercent, 50)
        self.assertEqual(data.messageCount, 3)
        self.assertEqual(len(data.messages), 3)
        self.assertEqual(data.skippedLines, 1)
        self.assertEqual(data.messages[2].toolName, "exec")
        self.assertTrue(all(m.model == "claude-opus-4-6" for m in data.messages))
        self.assertEqual(len(result.warnings), 1)

    def test_get_session_without_registry_entry_uses_default(self) -> None:
        other_id = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
        self._write_transcript(other_id, self._events()[:2])

        result = self.service.get_session(other_id)

        self.assertTrue(result.success)
        self.assertEqual(result.data.type, "unknown")
        self.assertEqual(result.data.key, f"unknown:{other_id}")
        self.assertEqual(result.data.messageCount, 1)
        self.assertEqual(result.warnings, [])

    def test_get_session_survives_metadata_gateway_failure(self) -> None:
        service = SessionService(
            gateway=_RecordingGateway(list_error=GatewayError("Command not found: openclaw")),
            store=TranscriptStore(self.root),
        )
        self._write_transcript(_SESSION_ID, self._events())

        result = service.get_session(_SESSION_ID)

        self.assertTrue(result.success)
        self.assertEqual(result.data.type, "unknown")
        self.assertTrue(any("metadata unavailable" in w for w in result.warnings))

    def test_get_session_rejects_bad_id_before_io(self) -> None:
        result = self.service.get_session("../secrets")
        self.assertFalse(result.success)
        self.assertEqual(result.errorKind, "validation")
        self.assertIn("expected UUID", result.error)
        self.assertEqual(self.gateway.calls, [])

    def test_get_session_missing_transcript(self) -> None:
        result = self.service.get_session(_SESSION_ID)
        self.assertFalse(result.success)
        self.assertEqual(result.errorKind, "not_found")
        self.assertEqual(result.error, "Session not found")

    def test_get_transcript_paginates_messages(self) -> None:
        lines = [
            json.dumps({"type": "message", "id": f"e{i}", "message": {"role": "user", "content": str(i)}})
            for i in range(7)
        ]
        self._write_transcript(_SESSION_ID, lines)

        result = self.service.get_transcript(_SESSION_ID, offset=5, limit=5)

        self.assertTrue(result.success)
        self.assertEqual([m.content for m in result.data.items], ["5", "6"])
        self.assertEqual(result.data.total, 7)
        self.assertFalse(result.data.hasMore)
        first_page = self.service.get_transcript(_SESSION_ID, offset=0, limit=5)
        self.assertTrue(first_page.data.hasMore)

    def test_get_transcript_rejects_bad_paging(self) -> None:
        result = self.service.get_transcript(_SESSION_ID, offset=-1, limit=0)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Offset must be non-negative; Limit must be positive")

    def test_list_sessions_wraps_gateway_failure(self) -> None:
        service = SessionService(gateway=_RecordingGateway(list_error=GatewayError("Command timed out after 10s: sessions list")))
        result = service.list_sessions(SessionFilter())
        self.assertFalse(result.success)
        self.assertEqual(result.errorKind, "gateway")
        self.assertIn("timed out", result.error)
        self.assertIsNone(result.data)

    def test_list_sessions_success(self) -> None:
        result = self.service.list_sessions(SessionFilter(type="main"))
        self.assertTrue(result.success)
        self.assertEqual(result.data.total, 1)

    def test_query_sessions_rejects_unknown_type_without_calling_gateway(self) -> None:
        result = self.service.query_sessions("bogus")
        self.assertFalse(result.success)
        self.assertEqual(result.errorKind, "validation")
        self.assertEqual(self.gateway.calls, [])

    def test_change_model_strips_padded_name(self) -> None:
        result = self.service.change_model("agent:main:main", "  " + "m" * 100 + " ")
        self.assertTrue(result.success)
        self.assertEqual(self.gateway.calls, [("model", "agent:main:main", "m" * 100)])

    def test_session_stats(self) -> None:
        result = self.service.get_session_stats()
        self.assertTrue(result.success)
        self.assertEqual(result.data.byType, {"main": 1})

    def test_change_model_validates_then_delegates(self) -> None:
        result = self.service.change_model("agent:main:main", "gpt-5")
        self.assertTrue(result.success)
        self.assertEqual(self.gateway.calls, [("model", "agent:main:main", "gpt-5")])

    def test_change_model_rejects_bad_input_without_calling_gateway(self) -> None:
        bad_key = self.service.change_model("main", "gpt-5")
        bad_model = self.service.change_model("agent:main:main", "x" * 101)
        self.assertEqual(bad_key.error, "Invalid session key format")
        self.assertEqual(bad_model.error, "Model name too long")
        self.assertEqual(bad_model.errorKind, "validation")
        self.assertEqual(self.gateway.calls, [])

    def test_change_model_reports_gateway_failure(self) -> None:
        service = SessionService(
            gateway=_RecordingGateway(mutate_error=GatewayError("Command failed with exit code 1: session model")),
            store=TranscriptStore(self.root),
        )
        result = service.change_model("agent:main:main", "gpt-5")
        self.assertFalse(result.success)
        self.assertEqual(result.errorKind, "gateway")

    def test_archive_session(self) -> None:
        self.assertTrue(self.service.archive_session("agent:main:cron:job-1").success)
        self.assertFalse(self.service.archive_session("").success)
        self.assertEqual(self.gateway.calls, [("archive", "agent:main:cron:job-1")])


if __name__ == "__main__":
    unittest.main()
