"""Shared input models and helpers for operation handlers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TRUNCATION_SUFFIX = "...[truncated]"


class ToolInput(BaseModel):
    """Base input model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class EmptyInput(ToolInput):
    pass


class TimeWindowInput(ToolInput):
    from_: datetime = Field(alias="from", description="Start timestamp (ISO 8601)")
    to: datetime = Field(description="End timestamp (ISO 8601)")

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindowInput":
        if as_utc(self.from_) > as_utc(self.to):
            raise ValueError("'from' must not be after 'to'")
        return self


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso(value: datetime | None) -> str | None:
    """ISO 8601 in UTC with millisecond precision and a Z suffix."""
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def environment_filters(environment: str | None) -> list[dict[str, Any]]:
    if not environment:
        return []
    return [{"column": "environment", "operator": "equals", "value": environment, "type": "string"}]


def environment_tags(environment: str | None) -> list[str]:
    return [f"environment:{environment}"] if environment else []


def rows(response: Any) -> list[dict[str, Any]]:
    """The ``data`` array of a Langfuse list response, or an empty list."""
    if isinstance(response, dict) and isinstance(response.get("data"), list):
        return [row for row in response["data"] if isinstance(row, dict)]
    return []


def truncate_content(content: Any, max_length: int) -> Any:
    """Cut long strings (or the JSON form of objects) to ``max_length`` characters."""
    if not content:
        return content
    if isinstance(content, str):
        if len(content) > max_length:
            return content[:max_length] + TRUNCATION_SUFFIX
        return content
    if isinstance(content, (dict, list)):
        serialized = json.dumps(content, default=str)
        if len(serialized) > max_length:
            return serialized[:max_length] + TRUNCATION_SUFFIX
    return content


def number(value: Any) -> float:
    """Coerce a possibly missing numeric field to a number."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0
