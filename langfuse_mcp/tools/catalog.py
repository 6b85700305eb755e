"""The operation catalog: every tool, its classification and its handler.

Write operations are listed explicitly. The ``write_`` prefix is a naming
convention for clients; classification comes only from the entries below,
which is why the legacy unprefixed names carry their own WRITE entries.
"""

from __future__ import annotations

from typing import Any

from ..gate import (
    CapabilityClass,
    Destructiveness,
    Handler,
    OperationDescriptor,
    OperationRegistry,
)
from ..gate.registry import Summarizer
from . import analytics, comments, datasets, system, traces
from .common import EmptyInput

READ = CapabilityClass.READ
WRITE = CapabilityClass.WRITE
IRREVERSIBLE = Destructiveness.IRREVERSIBLE


def _id_summary(label: str) -> Summarizer:
    def summarize(result: Any) -> str | None:
        if isinstance(result, dict) and result.get("id"):
            return f"{label}={result['id']}"
        return None

    return summarize


def _deleted_summary(result: Any) -> str | None:
    if isinstance(result, dict) and result.get("deleted") is True:
        return "deleted=true"
    return None


_dataset_created = _id_summary("created_id")
_item_created = _id_summary("created_item_id")
_comment_created = _id_summary("comment_id")

_CREATE_DATASET = "Create a new dataset in the project."
_CREATE_DATASET_ITEM = "Create a dataset item (upserts when an existing id is supplied)."
_CREATE_COMMENT = "Add a comment to a trace, observation, session or prompt."
_DELETE_DATASET_ITEM = (
    "Permanently delete a dataset item. Irreversible: requires confirmed=true."
)


def _read(name: str, description: str, model, handler: Handler) -> tuple[OperationDescriptor, Handler]:
    return OperationDescriptor(name, READ, description, model), handler


def _write(
    name: str,
    description: str,
    model,
    handler: Handler,
    summarizer: Summarizer,
    destructiveness: Destructiveness = Destructiveness.REVERSIBLE,
) -> tuple[OperationDescriptor, Handler]:
    descriptor = OperationDescriptor(
        name, WRITE, description, model, destructiveness=destructiveness, summarizer=summarizer
    )
    return descriptor, handler


CATALOG: list[tuple[OperationDescriptor, Handler]] = [
    # Projects and analytics
    _read("list_projects", "List the configured Langfuse project.", EmptyInput, analytics.list_projects),
    _read("get_projects", "Alias of list_projects.", EmptyInput, analytics.list_projects),
    _read(
        "project_overview",
        "Cost, token and trace totals for a time window, broken down by environment.",
        analytics.ProjectOverviewInput,
        analytics.project_overview,
    ),
    _read(
        "usage_by_model",
        "Usage and cost per model for a time window.",
        analytics.UsageByModelInput,
        analytics.usage_by_model,
    ),
    _read(
        "usage_by_service",
        "Usage and cost per service, using a service tag key.",
        analytics.UsageByServiceInput,
        analytics.usage_by_service,
    ),
    _read(
        "get_metrics",
        "Query aggregated metrics from the traces or observations view.",
        analytics.GetMetricsInput,
        analytics.get_metrics,
    ),
    _read(
        "get_daily_metrics",
        "Daily usage totals with per-trace averages, optionally filling missing days.",
        analytics.DailyMetricsInput,
        analytics.get_daily_metrics,
    ),
    _read(
        "get_cost_analysis",
        "Cost breakdown by model and by day, with an optional per-user breakdown.",
        analytics.CostAnalysisInput,
        analytics.get_cost_analysis,
    ),
    # Traces and observations
    _read(
        "top_expensive_traces",
        "The most expensive traces in a time window.",
        traces.TopExpensiveTracesInput,
        traces.top_expensive_traces,
    ),
    _read(
        "get_trace_detail",
        "One trace with a summary of its observations.",
        traces.TraceDetailInput,
        traces.get_trace_detail,
    ),
    _read(
        "get_traces",
        "Filter, sort and page through traces.",
        traces.GetTracesInput,
        traces.get_traces,
    ),
    _read(
        "get_observations",
        "Filter and page through observations, optionally with truncated input/output.",
        traces.GetObservationsInput,
        traces.get_observations,
    ),
    _read(
        "get_observation_detail",
        "One observation with usage, metadata and truncated input/output.",
        traces.ObservationDetailInput,
        traces.get_observation_detail,
    ),
    # System
    _read("get_health_status", "Langfuse API health and version.", EmptyInput, system.get_health_status),
    _read("list_models", "Model definitions and prices.", system.PageInput, system.list_models),
    _read(
        "get_model_detail", "One model definition.", system.ModelDetailInput, system.get_model_detail
    ),
    _read("list_prompts", "Prompts, filtered by name, label or tag.", system.ListPromptsInput, system.list_prompts),
    _read(
        "get_prompt_detail",
        "One prompt by name, version or label.",
        system.PromptDetailInput,
        system.get_prompt_detail,
    ),
    # Datasets
    _read("list_datasets", "Datasets in the project.", datasets.ListDatasetsInput, datasets.list_datasets),
    _read("get_dataset", "One dataset by name.", datasets.DatasetNameInput, datasets.get_dataset),
    _read(
        "list_dataset_items",
        "Dataset items, filtered by dataset or source.",
        datasets.ListDatasetItemsInput,
        datasets.list_dataset_items,
    ),
    _read("get_dataset_item", "One dataset item.", datasets.DatasetItemIdInput, datasets.get_dataset_item),
    # Comments
    _read("list_comments", "Comments, filtered by object or author.", comments.ListCommentsInput, comments.list_comments),
    _read("get_comment", "One comment.", comments.CommentIdInput, comments.get_comment),
    # Writes
    _write(
        "write_create_dataset",
        _CREATE_DATASET,
        datasets.CreateDatasetInput,
        datasets.create_dataset,
        _dataset_created,
    ),
    _write(
        "write_create_dataset_item",
        _CREATE_DATASET_ITEM,
        datasets.CreateDatasetItemInput,
        datasets.create_dataset_item,
        _item_created,
    ),
    _write(
        "write_create_comment",
        _CREATE_COMMENT,
        comments.CreateCommentInput,
        comments.create_comment,
        _comment_created,
    ),
    _write(
        "write_delete_dataset_item",
        _DELETE_DATASET_ITEM,
        datasets.DeleteDatasetItemInput,
        datasets.delete_dataset_item,
        _deleted_summary,
        IRREVERSIBLE,
    ),
    # Legacy write names
    _write(
        "create_dataset",
        _CREATE_DATASET,
        datasets.CreateDatasetInput,
        datasets.create_dataset,
        _dataset_created,
    ),
    _write(
        "create_dataset_item",
        _CREATE_DATASET_ITEM,
        datasets.CreateDatasetItemInput,
        datasets.create_dataset_item,
        _item_created,
    ),
    _write(
        "create_comment",
        _CREATE_COMMENT,
        comments.CreateCommentInput,
        comments.create_comment,
        _comment_created,
    ),
    _write(
        "delete_dataset_item",
        _DELETE_DATASET_ITEM,
        datasets.DeleteDatasetItemInput,
        datasets.delete_dataset_item,
        _deleted_summary,
        IRREVERSIBLE,
    ),
]


def build_registry() -> OperationRegistry:
    return OperationRegistry(descriptor for descriptor, _ in CATALOG)


def build_handlers() -> dict[str, Handler]:
    return {descriptor.name: handler for descriptor, handler in CATALOG}
