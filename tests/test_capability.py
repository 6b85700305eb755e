"""Tests for the operation registry and the capability gate."""

import pytest

from langfuse_mcp.gate import (
    CapabilityClass,
    CapabilityGate,
    DuplicateOperationError,
    Mode,
    OperationDescriptor,
    OperationRegistry,
)


class TestOperationRegistry:
    def test_lookup(self, registry):
        assert registry.get("list_items").capability is CapabilityClass.READ
        assert registry.get("missing") is None
        assert "create_note" in registry
        assert "missing" not in registry
        assert len(registry) == 3

    def test_preserves_order(self, registry):
        assert registry.names() == ["list_items", "create_note", "delete_item"]

    def test_write_operations(self, registry):
        assert [d.name for d in registry.write_operations()] == ["create_note", "delete_item"]

    def test_irreversible_flag(self, registry):
        assert registry.get("delete_item").is_irreversible
        assert not registry.get("create_note").is_irreversible
        assert not registry.get("list_items").is_irreversible

    def test_duplicate_name_rejected(self, registry):
        model = registry.get("list_items").input_model
        descriptor = OperationDescriptor("list_items", CapabilityClass.READ, "x", model)
        with pytest.raises(DuplicateOperationError):
            OperationRegistry([descriptor, descriptor])

    def test_input_schema_uses_camel_case(self, registry):
        schema = registry.get("delete_item").input_schema()
        assert "itemId" in schema["properties"]
        assert schema["required"] == ["itemId"]

    def test_descriptor_is_immutable(self, registry):
        with pytest.raises(AttributeError):
            registry.get("list_items").capability = CapabilityClass.WRITE


class TestCapabilityGate:
    def test_read_only_mode(self, registry):
        gate = CapabilityGate(registry, Mode.READ_ONLY)
        assert gate.is_permitted("list_items")
        assert not gate.is_permitted("create_note")
        assert not gate.is_permitted("delete_item")

    def test_read_write_mode(self, registry):
        gate = CapabilityGate(registry, Mode.READ_WRITE)
        assert all(gate.is_permitted(name) for name in registry.names())

    def test_unknown_never_permitted(self, registry):
        for mode in Mode:
            assert not CapabilityGate(registry, mode).is_permitted("drop_everything")

    def test_is_write_class_ignores_mode(self, registry):
        gate = CapabilityGate(registry, Mode.READ_ONLY)
        assert gate.is_write_class("create_note")
        assert not gate.is_write_class("list_items")
        assert not gate.is_write_class("unknown")

    def test_permitted_operations(self, registry):
        gate = CapabilityGate(registry, Mode.READ_ONLY)
        assert [d.name for d in gate.permitted_operations()] == ["list_items"]
        assert len(gate.permitted_operations(Mode.READ_WRITE)) == 3

    def test_permitted_matches_is_permitted(self, registry):
        for mode in Mode:
            gate = CapabilityGate(registry, mode)
            permitted = {d.name for d in gate.permitted_operations()}
            assert permitted == {n for n in registry.names() if gate.is_permitted(n)}

    def test_explicit_mode_argument(self, registry):
        gate = CapabilityGate(registry, Mode.READ_ONLY)
        assert gate.is_permitted("create_note", Mode.READ_WRITE)
        assert gate.mode is Mode.READ_ONLY
