"""Async client for the Langfuse public REST API.

One call in, one JSON document out, or a LangfuseAPIError. Credentials are
sent as HTTP basic auth exactly as configured.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import httpx
from loguru import logger

from .config import ProjectConfig

# Values accepted by the traces endpoint's orderBy parameter
SUPPORTED_TRACE_ORDER_BY = ("timestamp", "name", "totalCost")

ERROR_BODY_EXCERPT = 200


class LangfuseAPIError(Exception):
    """A Langfuse API call failed.

    ``status`` is None when the request never got a response (timeout,
    connection error).
    """

    def __init__(self, status: int | None, message: str, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


def _query_params(params: dict[str, Any]) -> list[tuple[str, str]]:
    """Flatten params, dropping None and repeating list values."""
    flat: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        values: Iterable[Any] = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            if isinstance(item, bool):
                flat.append((key, "true" if item else "false"))
            else:
                flat.append((key, str(item)))
    return flat


class LangfuseClient:
    """Thin async wrapper over the Langfuse public API.

    Example:
        client = LangfuseClient(load_project_config())
        traces = await client.list_traces(limit=10, order_by="totalCost")
        await client.aclose()
    """

    def __init__(
        self,
        config: ProjectConfig,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            config: Project credentials and base URL
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            auth=httpx.BasicAuth(config.public_key, config.secret_key.get_secret_value()),
            timeout=timeout,
            transport=transport,
        )

    @property
    def project_id(self) -> str:
        return self.config.id

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        label: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http.request(
                method,
                path,
                params=_query_params(params or {}),
                json=body,
            )
        except httpx.HTTPError as exc:
            raise LangfuseAPIError(None, f"{label} API request failed: {exc}") from exc

        if response.is_error:
            excerpt = response.text[:ERROR_BODY_EXCERPT]
            logger.debug(f"{method} {path} -> {response.status_code}: {excerpt}")
            raise LangfuseAPIError(
                response.status_code,
                f"{label} API error: {response.status_code} {response.reason_phrase}. "
                f"Response: {excerpt}",
                body=excerpt,
            )

        if not response.content:
            return {}
        return response.json()

    # Metrics

    async def get_metrics(
        self,
        view: str,
        from_: str,
        to: str,
        metrics: list[dict[str, str]],
        dimensions: list[dict[str, str]] | None = None,
        filters: list[dict[str, Any]] | None = None,
    ) -> Any:
        query = {
            "view": view,
            "fromTimestamp": from_,
            "toTimestamp": to,
            "metrics": metrics,
            "dimensions": dimensions or [],
            "filters": filters or [],
        }
        return await self._request(
            "GET", "/api/public/metrics", "Metrics", params={"query": json.dumps(query)}
        )

    async def get_daily_metrics(
        self,
        trace_name: str | None = None,
        user_id: str | None = None,
        tags: list[str] | None = None,
        from_: str | None = None,
        to: str | None = None,
        limit: int | None = None,
    ) -> Any:
        return await self._request(
            "GET",
            "/api/public/metrics/daily",
            "Daily Metrics",
            params={
                "traceName": trace_name,
                "userId": user_id,
                "tags": tags,
                "fromTimestamp": from_,
                "toTimestamp": to,
                "limit": limit,
            },
        )

    # Traces and observations

    async def list_traces(
        self,
        page: int | None = None,
        limit: int | None = None,
        name: str | None = None,
        user_id: str | None = None,
        tags: list[str] | None = None,
        order_by: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> Any:
        if order_by not in SUPPORTED_TRACE_ORDER_BY:
            order_by = None
        return await self._request(
            "GET",
            "/api/public/traces",
            "Traces",
            params={
                "page": page,
                "limit": limit,
                "name": name,
                "userId": user_id,
                "tags": tags,
                "orderBy": order_by,
                "fromTimestamp": from_,
                "toTimestamp": to,
            },
        )

    async def get_trace(self, trace_id: str) -> Any:
        return await self._request("GET", f"/api/public/traces/{trace_id}", "Trace")

    async def list_observations(
        self,
        trace_id: str | None = None,
        from_start_time: str | None = None,
        to_start_time: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        name: str | None = None,
        user_id: str | None = None,
        type_: str | None = None,
        level: str | None = None,
        environment: list[str] | None = None,
    ) -> Any:
        return await self._request(
            "GET",
            "/api/public/observations",
            "Observations",
            params={
                "traceId": trace_id,
                "fromStartTime": from_start_time,
                "toStartTime": to_start_time,
                "page": page,
                "limit": limit,
                "name": name,
                "userId": user_id,
                "type": type_,
                "level": level,
                "environment": environment,
            },
        )

    async def get_observation(self, observation_id: str) -> Any:
        return await self._request(
            "GET", f"/api/public/observations/{observation_id}", "Observation"
        )

    # System

    async def health(self) -> Any:
        return await self._request("GET", "/api/public/health", "Health")

    async def list_projects(self) -> Any:
        return await self._request("GET", "/api/public/projects", "Projects")

    async def list_models(self, page: int | None = None, limit: int | None = None) -> Any:
        return await self._request(
            "GET", "/api/public/models", "Models", params={"page": page, "limit": limit}
        )

    async def get_model(self, model_id: str) -> Any:
        return await self._request("GET", f"/api/public/models/{model_id}", "Model")

    async def list_prompts(
        self,
        name: str | None = None,
        label: str | None = None,
        tag: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Any:
        return await self._request(
            "GET",
            "/api/public/v2/prompts",
            "Prompts",
            params={"name": name, "label": label, "tag": tag, "page": page, "limit": limit},
        )

    async def get_prompt(
        self, name: str, version: int | None = None, label: str | None = None
    ) -> Any:
        return await self._request(
            "GET",
            f"/api/public/v2/prompts/{name}",
            "Prompt",
            params={"version": version, "label": label},
        )

    # Datasets

    async def list_datasets(self, page: int | None = None, limit: int | None = None) -> Any:
        return await self._request(
            "GET", "/api/public/v2/datasets", "Datasets", params={"page": page, "limit": limit}
        )

    async def get_dataset(self, dataset_name: str) -> Any:
        return await self._request("GET", f"/api/public/v2/datasets/{dataset_name}", "Dataset")

    async def create_dataset(
        self,
        name: str,
        description: str | None = None,
        metadata: Any = None,
    ) -> Any:
        body = {"name": name, "description": description, "metadata": metadata}
        return await self._request(
            "POST",
            "/api/public/v2/datasets",
            "Create Dataset",
            body={k: v for k, v in body.items() if v is not None},
        )

    async def list_dataset_items(
        self,
        dataset_name: str | None = None,
        source_trace_id: str | None = None,
        source_observation_id: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> Any:
        return await self._request(
            "GET",
            "/api/public/dataset-items",
            "Dataset Items",
            params={
                "datasetName": dataset_name,
                "sourceTraceId": source_trace_id,
                "sourceObservationId": source_observation_id,
                "page": page,
                "limit": limit,
            },
        )

    async def get_dataset_item(self, item_id: str) -> Any:
        return await self._request("GET", f"/api/public/dataset-items/{item_id}", "Dataset Item")

    async def create_dataset_item(self, item: dict[str, Any]) -> Any:
        return await self._request(
            "POST",
            "/api/public/dataset-items",
            "Create Dataset Item",
            body={k: v for k, v in item.items() if v is not None},
        )

    async def delete_dataset_item(self, item_id: str) -> Any:
        return await self._request(
            "DELETE", f"/api/public/dataset-items/{item_id}", "Delete Dataset Item"
        )

    # Comments

    async def list_comments(
        self,
        page: int | None = None,
        limit: int | None = None,
        object_type: str | None = None,
        object_id: str | None = None,
        author_user_id: str | None = None,
    ) -> Any:
        return await self._request(
            "GET",
            "/api/public/comments",
            "Comments",
            params={
                "page": page,
                "limit": limit,
                "objectType": object_type.upper() if object_type else None,
                "objectId": object_id,
                "authorUserId": author_user_id,
            },
        )

    async def get_comment(self, comment_id: str) -> Any:
        return await self._request("GET", f"/api/public/comments/{comment_id}", "Comment")

    async def create_comment(
        self,
        object_type: str,
        object_id: str,
        content: str,
        author_user_id: str | None = None,
    ) -> Any:
        # The comments endpoint requires the backend project id, not our label
        projects = await self.list_projects()
        data = projects.get("data") if isinstance(projects, dict) else None
        project_id = data[0].get("id") if data else None

        body = {
            "projectId": project_id,
            "objectType": object_type.upper(),
            "objectId": object_id,
            "content": content,
            "authorUserId": author_user_id,
        }
        return await self._request(
            "POST",
            "/api/public/comments",
            "Create Comment",
            body={k: v for k, v in body.items() if v is not None},
        )
