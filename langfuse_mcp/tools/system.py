"""Health, model and prompt lookups."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from ..client import LangfuseClient
from .common import EmptyInput, ToolInput, rows


class PageInput(ToolInput):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class ModelDetailInput(ToolInput):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(description="The Langfuse model definition ID")


class ListPromptsInput(PageInput):
    name: str | None = None
    label: str | None = None
    tag: str | None = None


class PromptDetailInput(ToolInput):
    prompt_name: str
    version: int | None = Field(default=None, ge=1)
    label: str | None = None


async def get_health_status(client: LangfuseClient, args: EmptyInput) -> dict[str, Any]:
    health = await client.health()
    health = health if isinstance(health, dict) else {}
    return {
        "projectId": client.project_id,
        "baseUrl": client.config.base_url,
        "status": health.get("status", "unknown"),
        "version": health.get("version"),
    }


async def list_models(client: LangfuseClient, args: PageInput) -> dict[str, Any]:
    response = await client.list_models(page=args.page, limit=args.limit)
    models = [
        {
            "id": model.get("id"),
            "modelName": model.get("modelName"),
            "matchPattern": model.get("matchPattern"),
            "unit": model.get("unit"),
            "inputPrice": model.get("inputPrice"),
            "outputPrice": model.get("outputPrice"),
            "totalPrice": model.get("totalPrice"),
            "isLangfuseManaged": model.get("isLangfuseManaged"),
        }
        for model in rows(response)
    ]
    return {"projectId": client.project_id, "models": models, "meta": _meta(response)}


async def get_model_detail(client: LangfuseClient, args: ModelDetailInput) -> Any:
    return await client.get_model(args.model_id)


async def list_prompts(client: LangfuseClient, args: ListPromptsInput) -> dict[str, Any]:
    response = await client.list_prompts(
        name=args.name, label=args.label, tag=args.tag, page=args.page, limit=args.limit
    )
    return {"projectId": client.project_id, "prompts": rows(response), "meta": _meta(response)}


async def get_prompt_detail(client: LangfuseClient, args: PromptDetailInput) -> Any:
    return await client.get_prompt(args.prompt_name, version=args.version, label=args.label)


def _meta(response: Any) -> Any:
    return response.get("meta") if isinstance(response, dict) else None
