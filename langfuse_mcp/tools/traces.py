"""Trace and observation queries."""

from __future__ import annotations

import asyncio
from typing import Any, Literal

from pydantic import Field

from ..client import LangfuseClient
from .common import (
    TimeWindowInput,
    ToolInput,
    environment_tags,
    iso,
    number,
    rows,
    truncate_content,
)


class TopExpensiveTracesInput(TimeWindowInput):
    limit: int = Field(default=10, ge=1, le=100, description="Number of traces to return")
    environment: str | None = None


class TraceDetailInput(ToolInput):
    trace_id: str = Field(description="The trace ID to retrieve")


class GetTracesInput(TimeWindowInput):
    limit: int = Field(default=25, ge=1, le=100)
    page: int = Field(default=1, ge=1)
    order_by: Literal["timestamp", "totalCost", "name"] = "timestamp"
    order_direction: Literal["asc", "desc"] = "desc"
    user_id: str | None = None
    name: str | None = None
    tags: list[str] | None = None
    environment: str | None = None
    min_cost: float | None = Field(default=None, ge=0)
    max_cost: float | None = Field(default=None, ge=0)


class GetObservationsInput(TimeWindowInput):
    limit: int = Field(default=10, ge=1, le=50)
    page: int = Field(default=1, ge=1)
    trace_id: str | None = None
    type: Literal["GENERATION", "SPAN", "EVENT"] | None = None
    model: str | None = None
    name: str | None = None
    user_id: str | None = None
    level: Literal["DEBUG", "DEFAULT", "WARNING", "ERROR"] | None = None
    environment: str | None = None
    min_cost: float | None = Field(default=None, ge=0)
    max_cost: float | None = Field(default=None, ge=0)
    include_input_output: bool = Field(default=False, description="Include (truncated) input/output payloads")
    truncate_content: int = Field(default=500, ge=100, le=2000)


class ObservationDetailInput(ToolInput):
    observation_id: str
    include_input_output: bool = True
    truncate_content: int = Field(default=2000, ge=100, le=2000)


def _observation_cost(observation: dict[str, Any]) -> float:
    return number(observation.get("calculatedTotalCost") or observation.get("totalCost"))


def _observation_model(observation: dict[str, Any]) -> str | None:
    return observation.get("providedModelName") or observation.get("model")


def _summarize_observation(observation: dict[str, Any], payloads: bool, max_length: int) -> dict[str, Any]:
    usage = observation.get("usage") if isinstance(observation.get("usage"), dict) else {}
    summary = {
        "id": observation.get("id"),
        "traceId": observation.get("traceId"),
        "type": observation.get("type"),
        "name": observation.get("name"),
        "startTime": observation.get("startTime"),
        "endTime": observation.get("endTime"),
        "model": _observation_model(observation),
        "level": observation.get("level"),
        "statusMessage": observation.get("statusMessage"),
        "totalCost": _observation_cost(observation),
        "totalTokens": number(usage.get("total") or observation.get("totalTokens")),
        "latency": observation.get("latency"),
    }
    if payloads:
        summary["input"] = truncate_content(observation.get("input"), max_length)
        summary["output"] = truncate_content(observation.get("output"), max_length)
    return summary


def _pagination(response: Any, page: int, limit: int, fallback_total: int) -> dict[str, Any]:
    meta = response.get("meta") if isinstance(response, dict) else None
    meta = meta if isinstance(meta, dict) else {}
    total = int(number(meta.get("totalItems"))) or fallback_total
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": int(number(meta.get("totalPages"))) or max(1, -(-total // limit)),
    }


async def top_expensive_traces(client: LangfuseClient, args: TopExpensiveTracesInput) -> dict[str, Any]:
    response = await client.list_traces(
        from_=iso(args.from_),
        to=iso(args.to),
        limit=100,
        order_by="totalCost",
        tags=environment_tags(args.environment) or None,
    )

    traces = [
        {
            "traceId": trace.get("id"),
            "name": trace.get("name"),
            "totalCost": number(trace.get("totalCost")),
            "totalTokens": number(trace.get("totalTokens")),
            "timestamp": trace.get("timestamp"),
            "userId": trace.get("userId"),
            "tags": trace.get("tags") or [],
        }
        for trace in rows(response)
        if number(trace.get("totalCost")) > 0
    ]
    traces.sort(key=lambda t: t["totalCost"], reverse=True)

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "traces": traces[: args.limit],
    }


async def get_trace_detail(client: LangfuseClient, args: TraceDetailInput) -> dict[str, Any]:
    trace, observations = await asyncio.gather(
        client.get_trace(args.trace_id),
        client.list_observations(trace_id=args.trace_id, limit=100),
    )
    trace = trace if isinstance(trace, dict) else {}

    return {
        "traceId": trace.get("id", args.trace_id),
        "name": trace.get("name"),
        "timestamp": trace.get("timestamp"),
        "userId": trace.get("userId"),
        "sessionId": trace.get("sessionId"),
        "tags": trace.get("tags") or [],
        "metadata": trace.get("metadata"),
        "totalCost": number(trace.get("totalCost")),
        "latency": trace.get("latency"),
        "observations": [
            _summarize_observation(obs, payloads=False, max_length=0) for obs in rows(observations)
        ],
    }


async def get_traces(client: LangfuseClient, args: GetTracesInput) -> dict[str, Any]:
    tags = list(args.tags or [])
    tags.extend(environment_tags(args.environment))

    response = await client.list_traces(
        page=args.page,
        limit=args.limit,
        name=args.name,
        user_id=args.user_id,
        tags=tags or None,
        order_by=args.order_by,
        from_=iso(args.from_),
        to=iso(args.to),
    )

    traces = []
    for trace in rows(response):
        cost = number(trace.get("totalCost"))
        if args.min_cost is not None and cost < args.min_cost:
            continue
        if args.max_cost is not None and cost > args.max_cost:
            continue
        traces.append(
            {
                "id": trace.get("id"),
                "name": trace.get("name"),
                "timestamp": trace.get("timestamp"),
                "userId": trace.get("userId"),
                "sessionId": trace.get("sessionId"),
                "tags": trace.get("tags") or [],
                "totalCost": cost,
                "totalTokens": number(trace.get("totalTokens")),
                "latency": trace.get("latency"),
                "observationCount": len(trace.get("observations") or []),
            }
        )

    if args.order_by == "totalCost":
        sort_key = lambda t: t["totalCost"]  # noqa: E731
    else:
        sort_key = lambda t: str(t[args.order_by] or "")  # noqa: E731
    traces.sort(key=sort_key, reverse=args.order_direction == "desc")

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "traces": traces,
        "pagination": _pagination(response, args.page, args.limit, len(traces)),
    }


async def get_observations(client: LangfuseClient, args: GetObservationsInput) -> dict[str, Any]:
    response = await client.list_observations(
        trace_id=args.trace_id,
        from_start_time=iso(args.from_),
        to_start_time=iso(args.to),
        page=args.page,
        limit=args.limit,
        name=args.name,
        user_id=args.user_id,
        type_=args.type,
        level=args.level,
        environment=[args.environment] if args.environment else None,
    )

    observations = []
    for obs in rows(response):
        model = _observation_model(obs) or ""
        if args.model and args.model.lower() not in model.lower():
            continue
        cost = _observation_cost(obs)
        if args.min_cost is not None and cost < args.min_cost:
            continue
        if args.max_cost is not None and cost > args.max_cost:
            continue
        observations.append(
            _summarize_observation(obs, args.include_input_output, args.truncate_content)
        )

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "observations": observations,
        "pagination": _pagination(response, args.page, args.limit, len(observations)),
    }


async def get_observation_detail(client: LangfuseClient, args: ObservationDetailInput) -> dict[str, Any]:
    observation = await client.get_observation(args.observation_id)
    observation = observation if isinstance(observation, dict) else {}

    detail = _summarize_observation(observation, args.include_input_output, args.truncate_content)
    detail["id"] = detail["id"] or args.observation_id
    detail["usage"] = observation.get("usage")
    detail["metadata"] = observation.get("metadata")
    detail["modelParameters"] = observation.get("modelParameters")
    detail["parentObservationId"] = observation.get("parentObservationId")
    return detail
