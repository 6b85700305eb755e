"""Dataset and dataset-item operations.

Reads pass through to the API. Creation is reversible; deleting an item is
not and carries a ``confirmed`` flag that the confirmation guard checks
before this module is ever reached.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, StrictBool

from ..client import LangfuseClient
from .common import ToolInput


class ListDatasetsInput(ToolInput):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class DatasetNameInput(ToolInput):
    dataset_name: str


class ListDatasetItemsInput(ToolInput):
    dataset_name: str | None = None
    source_trace_id: str | None = None
    source_observation_id: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class DatasetItemIdInput(ToolInput):
    item_id: str


class CreateDatasetInput(ToolInput):
    name: str = Field(min_length=1)
    description: str | None = None
    metadata: Any = None


class CreateDatasetItemInput(ToolInput):
    dataset_name: str = Field(min_length=1)
    input: Any = None
    expected_output: Any = None
    metadata: Any = None
    source_trace_id: str | None = None
    source_observation_id: str | None = None
    id: str | None = Field(default=None, description="Optional item id; an existing id is upserted")
    status: Literal["ACTIVE", "ARCHIVED"] | None = None


class DeleteDatasetItemInput(ToolInput):
    item_id: str = Field(min_length=1)
    confirmed: StrictBool | None = Field(
        default=None, description="Must be true to acknowledge that the deletion is permanent"
    )


async def list_datasets(client: LangfuseClient, args: ListDatasetsInput) -> Any:
    return await client.list_datasets(page=args.page, limit=args.limit)


async def get_dataset(client: LangfuseClient, args: DatasetNameInput) -> Any:
    return await client.get_dataset(args.dataset_name)


async def list_dataset_items(client: LangfuseClient, args: ListDatasetItemsInput) -> Any:
    return await client.list_dataset_items(
        dataset_name=args.dataset_name,
        source_trace_id=args.source_trace_id,
        source_observation_id=args.source_observation_id,
        page=args.page,
        limit=args.limit,
    )


async def get_dataset_item(client: LangfuseClient, args: DatasetItemIdInput) -> Any:
    return await client.get_dataset_item(args.item_id)


async def create_dataset(client: LangfuseClient, args: CreateDatasetInput) -> Any:
    return await client.create_dataset(args.name, args.description, args.metadata)


async def create_dataset_item(client: LangfuseClient, args: CreateDatasetItemInput) -> Any:
    return await client.create_dataset_item(args.model_dump(by_alias=True, exclude_none=True))


async def delete_dataset_item(client: LangfuseClient, args: DeleteDatasetItemInput) -> dict[str, Any]:
    response = await client.delete_dataset_item(args.item_id)
    return {"deleted": True, "itemId": args.item_id, "response": response}
