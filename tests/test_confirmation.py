"""Tests for the confirmation guard."""

import pytest

from langfuse_mcp.gate import AuditPhase, ConfirmationGuard, ConfirmationRequired


class TestConfirmationGuard:
    @pytest.fixture
    def guard(self, registry, audit):
        return ConfirmationGuard(registry, audit)

    def test_confirmed_true_passes(self, guard, audit):
        guard.require_confirmation("delete_item", True)
        assert audit.entries == ()

    @pytest.mark.parametrize("confirmed", [None, False, "true", 1, "yes"])
    def test_anything_else_is_rejected(self, guard, audit, confirmed):
        with pytest.raises(ConfirmationRequired) as exc_info:
            guard.require_confirmation("delete_item", confirmed)

        assert exc_info.value.operation == "delete_item"
        assert '"confirmed": true' in exc_info.value.message
        assert [e.phase for e in audit.entries] == [AuditPhase.DENIED_CONFIRMATION]

    def test_reversible_write_needs_nothing(self, guard, audit):
        guard.require_confirmation("create_note")
        assert audit.entries == ()

    def test_read_and_unknown_need_nothing(self, guard, audit):
        guard.require_confirmation("list_items")
        guard.require_confirmation("unknown")
        assert audit.entries == ()

    def test_error_payload(self, guard):
        with pytest.raises(ConfirmationRequired) as exc_info:
            guard.require_confirmation("delete_item")
        payload = exc_info.value.to_dict()
        assert payload["error"] == "confirmation_required"
        assert payload["confirmationField"] == "confirmed"
