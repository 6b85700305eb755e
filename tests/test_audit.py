"""Tests for input redaction and the audit trail."""

import pytest
from loguru import logger

from langfuse_mcp.gate import AuditPhase, Mode, redact_input
from langfuse_mcp.gate.audit import LARGE_OBJECT, REDACTED, is_sensitive_key

TS = "2024-05-01T12:00:00.000Z"


@pytest.fixture
def audit_lines():
    """Collect everything written to the audit sink."""
    lines = []
    handler_id = logger.add(
        lambda message: lines.append(str(message).rstrip("\n")),
        format="{message}",
        filter=lambda record: record["extra"].get("audit") is True,
    )
    yield lines
    logger.remove(handler_id)


class TestRedaction:
    @pytest.mark.parametrize(
        "key",
        [
            "secretKey", "secret_key", "apiKey", "API-KEY", "password", "token", "accessToken",
            "authorization", "apiToken", "sessionToken", "bearerToken", "idToken", "clientSecret",
        ],
    )
    def test_sensitive_keys(self, key):
        assert is_sensitive_key(key)

    @pytest.mark.parametrize("key", ["name", "totalTokens", "maxTokens", "itemId", "content", "datasetName"])
    def test_ordinary_keys(self, key):
        assert not is_sensitive_key(key)

    def test_redacts_at_any_depth(self):
        redacted = redact_input({
            "name": "golden",
            "secretKey": "sk-lf-123",
            "metadata": {"owner": "me", "password": "hunter2"},
            "items": [{"apiKey": "k"}],
        })
        assert redacted["name"] == "golden"
        assert redacted["secretKey"] == REDACTED
        assert redacted["metadata"] == {"owner": "me", "password": REDACTED}
        assert redacted["items"] == [{"apiKey": REDACTED}]

    def test_long_strings_truncated(self):
        redacted = redact_input({"content": "a" * 250})
        assert redacted["content"] == "a" * 200 + "...[truncated]"

    def test_large_objects_elided(self):
        redacted = redact_input({"input": {"values": list(range(200))}, "small": {"a": 1}})
        assert redacted["input"] == LARGE_OBJECT
        assert redacted["small"] == {"a": 1}

    def test_original_untouched(self):
        args = {"secretKey": "sk", "nested": {"token": "t"}}
        redact_input(args)
        assert args == {"secretKey": "sk", "nested": {"token": "t"}}

    def test_none(self):
        assert redact_input(None) == {}


class TestAuditTrail:
    def test_mode_init_line(self, audit, audit_lines):
        entry = audit.record_mode_init(Mode.READ_ONLY, 24)
        assert entry.format_line() == f"[AUDIT] {TS} MODE_INIT mode=readonly tools_exposed=24"
        assert audit_lines == [entry.format_line()]

    def test_mode_init_only_once(self, audit):
        audit.record_mode_init(Mode.READ_WRITE, 32)
        with pytest.raises(RuntimeError):
            audit.record_mode_init(Mode.READ_ONLY, 24)

    def test_denial_lines(self, audit):
        denied = audit.record_denial("create_note", Mode.READ_ONLY)
        unconfirmed = audit.record_confirmation_denial("delete_item")
        assert denied.format_line() == f"[AUDIT] {TS} PERMISSION_DENIED tool=create_note mode=readonly"
        assert unconfirmed.format_line() == f"[AUDIT] {TS} CONFIRMATION_REQUIRED tool=delete_item"

    def test_start_and_success(self, audit):
        start = audit.record_start("create_note", {"title": "t"})
        success = audit.record_success(
            "create_note", {"title": "t"}, {"id": "n-1"}, 12.4, lambda r: f"note_id={r['id']}"
        )
        assert start.format_line() == f'[AUDIT] {TS} STARTING create_note args={{"title": "t"}}'
        assert success.format_line() == (
            f'[AUDIT] {TS} SUCCESS create_note args={{"title": "t"}} duration=12ms note_id=n-1'
        )
        assert success.summary == "note_id=n-1"

    def test_success_without_summarizer(self, audit):
        entry = audit.record_success("create_note", {}, {"id": "x"}, 1.0)
        assert entry.summary is None

    def test_long_args_listed_by_key(self, audit):
        args = {"title": "t" * 60, "body": "b" * 60}
        entry = audit.record_success("create_note", args, {}, 5.0)
        assert 'args={"title", "body"}' in entry.format_line()

    def test_error_line(self, audit):
        entry = audit.record_error("create_note", {"title": "t"}, RuntimeError("boom"), 3.2)
        assert entry.phase is AuditPhase.ERROR
        assert entry.format_line().endswith('duration=3ms error="boom"')

    def test_error_from_exception_without_message(self, audit):
        entry = audit.record_error("create_note", {}, ValueError(), 1.0)
        assert entry.error_message == "ValueError"

    def test_newline_in_error_stays_on_one_line(self, audit, audit_lines):
        forged = f"boom\n[AUDIT] {TS} SUCCESS delete_item args={{}} deleted=true"
        audit.record_error("create_note", {"title": "t"}, forged, 1.0)

        assert len(audit_lines) == 1
        assert "\n" not in audit_lines[0]
        assert audit_lines[0].endswith('error="boom\\n[AUDIT] ' + TS + ' SUCCESS delete_item args={} deleted=true"')

    def test_newline_in_key_stays_on_one_line(self, audit, audit_lines):
        key = f"note\n[AUDIT] {TS} SUCCESS delete_item args={{}} deleted=true"
        audit.record_success("create_note", {key: "v" * 120}, {}, 1.0)

        assert len(audit_lines) == 1
        assert "\n" not in audit_lines[0]
        assert '"note\\n[AUDIT]' in audit_lines[0]

    def test_summary_kept_on_one_line(self, audit):
        entry = audit.record_success("create_note", {}, {}, 1.0, lambda r: "note_id=a\nb")
        assert entry.format_line().endswith("note_id=a\\nb")

    def test_failing_summarizer_omits_summary(self, audit, audit_lines):
        def summarize(result):
            return result["missing"]

        entry = audit.record_success("create_note", {}, {"id": "n-1"}, 1.0, summarize)

        assert entry.phase is AuditPhase.SUCCESS
        assert entry.summary is None
        assert len(audit_lines) == 1

    def test_non_string_summary_ignored(self, audit):
        entry = audit.record_success("create_note", {}, {}, 1.0, lambda r: 42)
        assert entry.summary is None

    def test_entries_are_redacted_and_immutable(self, audit):
        entry = audit.record_start("create_note", {"title": "t", "secretKey": "sk"})
        assert entry.redacted_input["secretKey"] == REDACTED
        with pytest.raises(TypeError):
            entry.redacted_input["title"] = "changed"
        with pytest.raises(AttributeError):
            entry.phase = AuditPhase.SUCCESS

    def test_secret_never_reaches_sink(self, audit, audit_lines):
        audit.record_start("create_note", {"title": "t", "secretKey": "sk-lf-very-secret"})
        assert len(audit_lines) == 1
        assert "sk-lf-very-secret" not in audit_lines[0]
        assert REDACTED in audit_lines[0]

    def test_entries_in_order(self, audit):
        audit.record_start("create_note", {})
        audit.record_success("create_note", {}, {}, 1.0)
        audit.record_denial("delete_item", Mode.READ_ONLY)
        assert [e.phase for e in audit.entries] == [
            AuditPhase.START,
            AuditPhase.SUCCESS,
            AuditPhase.DENIED_PERMISSION,
        ]
        assert len(audit.entries_for("create_note")) == 2

    def test_to_dict(self, audit):
        entry = audit.record_success("create_note", {"title": "t"}, {"id": "n"}, 2.5)
        data = entry.to_dict()
        assert data["phase"] == "success"
        assert data["operation"] == "create_note"
        assert data["input"] == {"title": "t"}
        assert data["duration_ms"] == 2.5
        assert data["timestamp"] == TS
