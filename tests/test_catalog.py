"""Tests for the production operation catalog."""

import asyncio

import pytest

from langfuse_mcp.gate import (
    AuditPhase,
    AuditTrail,
    CallState,
    CapabilityClass,
    CapabilityGate,
    Mode,
    build_dispatcher,
)
from langfuse_mcp.tools import build_handlers, build_registry

READ_OPERATIONS = {
    "list_projects",
    "get_projects",
    "project_overview",
    "usage_by_model",
    "usage_by_service",
    "top_expensive_traces",
    "get_trace_detail",
    "get_metrics",
    "get_traces",
    "get_observations",
    "get_observation_detail",
    "get_cost_analysis",
    "get_daily_metrics",
    "get_health_status",
    "list_models",
    "get_model_detail",
    "list_prompts",
    "get_prompt_detail",
    "list_datasets",
    "get_dataset",
    "list_dataset_items",
    "get_dataset_item",
    "list_comments",
    "get_comment",
}

WRITE_OPERATIONS = {
    "write_create_dataset",
    "write_create_dataset_item",
    "write_create_comment",
    "write_delete_dataset_item",
    "create_dataset",
    "create_dataset_item",
    "create_comment",
    "delete_dataset_item",
}


@pytest.fixture
def catalog_registry():
    return build_registry()


class TestCatalog:
    def test_all_operations_registered(self, catalog_registry):
        assert set(catalog_registry.names()) == READ_OPERATIONS | WRITE_OPERATIONS

    def test_write_classification_is_explicit(self, catalog_registry):
        writes = {d.name for d in catalog_registry.write_operations()}
        assert writes == WRITE_OPERATIONS

    def test_reads_are_read_class(self, catalog_registry):
        for name in READ_OPERATIONS:
            assert catalog_registry.get(name).capability is CapabilityClass.READ

    def test_only_deletes_are_irreversible(self, catalog_registry):
        irreversible = {d.name for d in catalog_registry if d.is_irreversible}
        assert irreversible == {"write_delete_dataset_item", "delete_dataset_item"}

    def test_every_operation_has_a_handler(self, catalog_registry):
        assert set(build_handlers()) == set(catalog_registry.names())

    def test_legacy_names_share_handlers(self):
        handlers = build_handlers()
        assert handlers["create_dataset"] is handlers["write_create_dataset"]
        assert handlers["delete_dataset_item"] is handlers["write_delete_dataset_item"]

    def test_input_schemas_are_objects(self, catalog_registry):
        for descriptor in catalog_registry:
            assert descriptor.input_schema()["type"] == "object", descriptor.name

    def test_delete_schema_advertises_confirmation(self, catalog_registry):
        schema = catalog_registry.get("write_delete_dataset_item").input_schema()
        assert "confirmed" in schema["properties"]
        assert schema["required"] == ["itemId"]

    def test_read_only_exposes_reads(self, catalog_registry):
        gate = CapabilityGate(catalog_registry, Mode.READ_ONLY)
        assert {d.name for d in gate.permitted_operations()} == READ_OPERATIONS

    @pytest.mark.parametrize(
        "name, result, summary",
        [
            ("write_create_dataset", {"id": "ds-1"}, "created_id=ds-1"),
            ("create_dataset_item", {"id": "it-1"}, "created_item_id=it-1"),
            ("write_create_comment", {"id": "c-1"}, "comment_id=c-1"),
            ("write_delete_dataset_item", {"deleted": True}, "deleted=true"),
            ("write_create_dataset", "unexpected", None),
            ("write_create_comment", {}, None),
        ],
    )
    def test_summarizers(self, catalog_registry, name, result, summary):
        assert catalog_registry.get(name).summarizer(result) == summary


class TestCatalogDispatch:
    def test_confirmed_delete_end_to_end(self, mock_api, project_config, fixed_clock):
        mock_api.routes[("DELETE", "/api/public/dataset-items/item-9")] = {"message": "ok"}
        audit = AuditTrail(clock=fixed_clock)
        dispatcher = build_dispatcher(
            build_registry(),
            build_handlers(),
            Mode.READ_WRITE,
            audit=audit,
            client=mock_api.client(project_config),
        )

        result = asyncio.run(
            dispatcher.dispatch("write_delete_dataset_item", {"itemId": "item-9", "confirmed": True})
        )

        assert result.state is CallState.COMPLETED
        success = audit.entries[-1]
        assert success.phase is AuditPhase.SUCCESS
        assert success.summary == "deleted=true"

    def test_legacy_write_denied_in_read_only(self, mock_api, project_config, fixed_clock):
        audit = AuditTrail(clock=fixed_clock)
        dispatcher = build_dispatcher(
            build_registry(),
            build_handlers(),
            Mode.READ_ONLY,
            audit=audit,
            client=mock_api.client(project_config),
        )

        result = asyncio.run(dispatcher.dispatch("create_dataset", {"name": "golden"}))

        assert result.state is CallState.DENIED_PERMISSION
        assert audit.entries[-1].phase is AuditPhase.DENIED_PERMISSION
        assert mock_api.requests == []

    def test_mode_init_counts(self, fixed_clock):
        audit = AuditTrail(clock=fixed_clock)
        build_dispatcher(build_registry(), build_handlers(), Mode.READ_WRITE, audit=audit)
        assert audit.entries[0].permitted_count == len(READ_OPERATIONS) + len(WRITE_OPERATIONS)
