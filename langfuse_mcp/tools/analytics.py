"""Project-level cost and usage analytics."""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Literal

from pydantic import Field

from ..client import LangfuseClient
from .common import (
    EmptyInput,
    TimeWindowInput,
    ToolInput,
    as_utc,
    environment_filters,
    environment_tags,
    iso,
    number,
    rows,
)

DEFAULT_METRICS = [
    {"measure": "totalCost", "aggregation": "sum"},
    {"measure": "totalTokens", "aggregation": "sum"},
    {"measure": "count", "aggregation": "count"},
]


class MetricSpec(ToolInput):
    measure: str
    aggregation: str


class DimensionSpec(ToolInput):
    field: str


class FilterSpec(ToolInput):
    column: str
    operator: str
    value: Any = None
    type: str | None = None


class ProjectOverviewInput(TimeWindowInput):
    environment: str | None = Field(default=None, description='Optional environment filter (e.g., "production")')


class UsageByModelInput(TimeWindowInput):
    environment: str | None = None
    limit: int = Field(default=20, ge=1, description="Maximum number of models to return")


class UsageByServiceInput(TimeWindowInput):
    service_tag_key: str = Field(default="service", description="Tag key for service identification")
    environment: str | None = None
    limit: int = Field(default=20, ge=1, description="Maximum number of services to return")


class GetMetricsInput(TimeWindowInput):
    view: Literal["traces", "observations"] = "traces"
    metrics: list[MetricSpec] = Field(
        default_factory=lambda: [MetricSpec(**m) for m in DEFAULT_METRICS]
    )
    dimensions: list[DimensionSpec] | None = None
    filters: list[FilterSpec] | None = None
    environment: str | None = None


class DailyMetricsInput(TimeWindowInput):
    environment: str | None = None
    fill_missing_days: bool = Field(default=True, description="Include zero rows for days without data")


class CostAnalysisInput(TimeWindowInput):
    environment: str | None = None
    include_user_breakdown: bool = Field(default=False, description="Also break costs down by user")
    limit: int = Field(default=10, ge=1, le=100, description="Maximum entries per breakdown")


def _metric_key(measure: str, aggregation: str) -> str:
    # The metrics API names aggregated columns "<measure>_<aggregation>"
    return f"{measure}_{aggregation}"


async def list_projects(client: LangfuseClient, args: EmptyInput) -> dict[str, Any]:
    return {"projects": [client.project_id]}


async def project_overview(client: LangfuseClient, args: ProjectOverviewInput) -> dict[str, Any]:
    response = await client.get_metrics(
        view="traces",
        from_=iso(args.from_),
        to=iso(args.to),
        metrics=DEFAULT_METRICS,
        dimensions=[{"field": "environment"}],
        filters=environment_filters(args.environment),
    )

    total_cost = total_tokens = total_traces = 0
    by_environment = []
    for row in rows(response):
        cost = number(row.get("totalCost_sum"))
        tokens = number(row.get("totalTokens_sum"))
        traces = number(row.get("count_count"))
        total_cost += cost
        total_tokens += tokens
        total_traces += traces
        if row.get("environment"):
            by_environment.append(
                {"environment": row["environment"], "cost": cost, "tokens": tokens, "traces": traces}
            )

    overview: dict[str, Any] = {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "totalCostUsd": total_cost,
        "totalTokens": total_tokens,
        "totalTraces": total_traces,
    }
    if by_environment:
        overview["byEnvironment"] = by_environment
    return overview


async def usage_by_model(client: LangfuseClient, args: UsageByModelInput) -> dict[str, Any]:
    response = await client.get_metrics(
        view="observations",
        from_=iso(args.from_),
        to=iso(args.to),
        metrics=DEFAULT_METRICS,
        dimensions=[{"field": "providedModelName"}],
        filters=environment_filters(args.environment),
    )

    models = [
        {
            "model": row.get("providedModelName") or "unknown",
            "totalCost": number(row.get("totalCost_sum")),
            "totalTokens": number(row.get("totalTokens_sum")),
            "observationCount": number(row.get("count_count")),
        }
        for row in rows(response)
    ]
    models.sort(key=lambda m: m["totalCost"], reverse=True)

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "models": models[: args.limit],
    }


async def usage_by_service(client: LangfuseClient, args: UsageByServiceInput) -> dict[str, Any]:
    response = await client.get_metrics(
        view="traces",
        from_=iso(args.from_),
        to=iso(args.to),
        metrics=DEFAULT_METRICS,
        dimensions=[{"field": "tags"}],
        filters=environment_filters(args.environment),
    )

    prefix = f"{args.service_tag_key}:"
    services: dict[str, dict[str, Any]] = {}
    for row in rows(response):
        tags = row.get("tags") if isinstance(row.get("tags"), list) else []
        service_tag = next((t for t in tags if isinstance(t, str) and t.startswith(prefix)), None)
        if service_tag is None:
            continue
        service = service_tag[len(prefix):]
        usage = services.setdefault(
            service, {"service": service, "totalCost": 0, "totalTokens": 0, "traceCount": 0}
        )
        usage["totalCost"] += number(row.get("totalCost_sum"))
        usage["totalTokens"] += number(row.get("totalTokens_sum"))
        usage["traceCount"] += number(row.get("count_count"))

    ranked = sorted(services.values(), key=lambda s: s["totalCost"], reverse=True)
    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "serviceTagKey": args.service_tag_key,
        "services": ranked[: args.limit],
    }


async def get_metrics(client: LangfuseClient, args: GetMetricsInput) -> dict[str, Any]:
    filters = [f.model_dump(exclude_none=True) for f in args.filters or []]
    filters.extend(environment_filters(args.environment))
    metrics = [{"measure": m.measure, "aggregation": m.aggregation} for m in args.metrics]
    dimensions = [{"field": d.field} for d in args.dimensions] if args.dimensions else None

    response = await client.get_metrics(
        view=args.view,
        from_=iso(args.from_),
        to=iso(args.to),
        metrics=metrics,
        dimensions=dimensions,
        filters=filters,
    )
    data = rows(response)

    aggregated: OrderedDict[tuple[str, str], float] = OrderedDict()
    for row in data:
        for metric in args.metrics:
            column = _metric_key(metric.measure, metric.aggregation)
            if row.get(column) is None:
                continue
            value = number(row[column])
            key = (metric.measure, metric.aggregation)
            if key not in aggregated:
                aggregated[key] = value
            elif metric.aggregation in ("sum", "count"):
                aggregated[key] += value
            elif metric.aggregation == "max":
                aggregated[key] = max(aggregated[key], value)
            elif metric.aggregation == "min":
                aggregated[key] = min(aggregated[key], value)
            else:
                aggregated[key] = value

    seen: set[tuple[str, str]] = set()
    dimension_values = []
    for row in data:
        for dim in args.dimensions or []:
            if row.get(dim.field) is None:
                continue
            pair = (dim.field, str(row[dim.field]))
            if pair not in seen:
                seen.add(pair)
                dimension_values.append({"field": pair[0], "value": pair[1]})

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "view": args.view,
        "metrics": [
            {"measure": measure, "aggregation": aggregation, "value": value}
            for (measure, aggregation), value in aggregated.items()
        ],
        "dimensions": dimension_values,
    }


def _day_totals(day: dict[str, Any]) -> dict[str, Any]:
    usage = day.get("usage") if isinstance(day.get("usage"), list) else []
    tokens = 0
    observations = 0
    for entry in usage:
        total = number(entry.get("totalUsage")) or (
            number(entry.get("inputUsage")) + number(entry.get("outputUsage"))
        )
        tokens += total
        observations += number(entry.get("countObservations"))

    cost = number(day.get("totalCost"))
    traces = number(day.get("countTraces"))
    return {
        "date": day.get("date"),
        "totalCost": cost,
        "totalTokens": tokens,
        "totalTraces": traces,
        "totalObservations": observations or number(day.get("countObservations")),
        "avgCostPerTrace": round(cost / traces, 4) if traces else 0,
        "avgTokensPerTrace": round(tokens / traces, 2) if traces else 0,
    }


def _empty_day(day: str) -> dict[str, Any]:
    return {
        "date": day,
        "totalCost": 0,
        "totalTokens": 0,
        "totalTraces": 0,
        "totalObservations": 0,
        "avgCostPerTrace": 0,
        "avgTokensPerTrace": 0,
    }


def _days_between(start: date, end: date) -> list[str]:
    return [(start + timedelta(days=i)).isoformat() for i in range((end - start).days + 1)]


def _daily_rows_in_window(response: Any, start: date, end: date) -> list[dict[str, Any]]:
    selected = []
    for day in rows(response):
        raw = str(day.get("date") or "")[:10]
        try:
            day_date = date.fromisoformat(raw)
        except ValueError:
            continue
        if start <= day_date <= end:
            selected.append(day)
    return selected


async def get_daily_metrics(client: LangfuseClient, args: DailyMetricsInput) -> dict[str, Any]:
    response = await client.get_daily_metrics(tags=environment_tags(args.environment) or None)

    start, end = as_utc(args.from_).date(), as_utc(args.to).date()
    daily = [_day_totals(day) for day in _daily_rows_in_window(response, start, end)]

    if args.fill_missing_days:
        by_date = {str(d["date"])[:10]: d for d in daily}
        daily = [by_date.get(day) or _empty_day(day) for day in _days_between(start, end)]

    daily.sort(key=lambda d: str(d["date"]))
    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "dailyData": daily,
    }


def _percentage(part: float, total: float) -> float:
    return round(part / total * 100, 2) if total else 0


async def get_cost_analysis(client: LangfuseClient, args: CostAnalysisInput) -> dict[str, Any]:
    response = await client.get_daily_metrics(tags=environment_tags(args.environment) or None)
    start, end = as_utc(args.from_).date(), as_utc(args.to).date()
    days = _daily_rows_in_window(response, start, end)

    total_cost = 0
    by_day = []
    models: dict[str, dict[str, Any]] = {}
    for day in days:
        totals = _day_totals(day)
        total_cost += totals["totalCost"]
        by_day.append(
            {
                "date": totals["date"],
                "cost": totals["totalCost"],
                "tokens": totals["totalTokens"],
                "traces": totals["totalTraces"],
            }
        )
        for entry in day.get("usage") or []:
            name = entry.get("model") or "unknown"
            model = models.setdefault(name, {"model": name, "cost": 0, "tokens": 0, "observations": 0})
            model["cost"] += number(entry.get("totalCost"))
            model["tokens"] += number(entry.get("totalUsage")) or (
                number(entry.get("inputUsage")) + number(entry.get("outputUsage"))
            )
            model["observations"] += number(entry.get("countObservations"))

    by_model = sorted(models.values(), key=lambda m: m["cost"], reverse=True)[: args.limit]
    for model in by_model:
        model["percentage"] = _percentage(model["cost"], total_cost)

    breakdown: dict[str, Any] = {
        "byModel": by_model,
        "byDay": sorted(by_day, key=lambda d: str(d["date"])),
    }

    if args.include_user_breakdown:
        traces = await client.list_traces(
            from_=iso(args.from_),
            to=iso(args.to),
            limit=100,
            tags=environment_tags(args.environment) or None,
        )
        users: dict[str, dict[str, Any]] = {}
        for trace in rows(traces):
            user_id = trace.get("userId") or "anonymous"
            user = users.setdefault(user_id, {"userId": user_id, "cost": 0, "tokens": 0, "traces": 0})
            user["cost"] += number(trace.get("totalCost"))
            user["tokens"] += number(trace.get("totalTokens"))
            user["traces"] += 1
        by_user = sorted(users.values(), key=lambda u: u["cost"], reverse=True)[: args.limit]
        user_total = sum(u["cost"] for u in users.values())
        for user in by_user:
            user["percentage"] = _percentage(user["cost"], user_total)
        breakdown["byUser"] = by_user

    return {
        "projectId": client.project_id,
        "from": iso(args.from_),
        "to": iso(args.to),
        "totalCost": total_cost,
        "breakdown": breakdown,
    }
