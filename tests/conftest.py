"""Shared fixtures: a small operation catalog and a mocked Langfuse API."""

from datetime import datetime, timezone

import httpx
import pytest
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from langfuse_mcp.client import LangfuseClient
from langfuse_mcp.config import ProjectConfig
from langfuse_mcp.gate import (
    AuditTrail,
    CapabilityClass,
    Destructiveness,
    OperationDescriptor,
    OperationRegistry,
)


class CamelInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ListItemsInput(CamelInput):
    limit: int = 10


class CreateNoteInput(CamelInput):
    title: str
    secret_key: str | None = None


class DeleteItemInput(CamelInput):
    item_id: str
    confirmed: bool | None = None


def _note_summary(result):
    if isinstance(result, dict) and result.get("id"):
        return f"note_id={result['id']}"
    return None


@pytest.fixture
def registry():
    """Three operations: one read, one reversible write, one irreversible write."""
    return OperationRegistry([
        OperationDescriptor("list_items", CapabilityClass.READ, "List items", ListItemsInput),
        OperationDescriptor(
            "create_note",
            CapabilityClass.WRITE,
            "Create a note",
            CreateNoteInput,
            summarizer=_note_summary,
        ),
        OperationDescriptor(
            "delete_item",
            CapabilityClass.WRITE,
            "Delete an item",
            DeleteItemInput,
            destructiveness=Destructiveness.IRREVERSIBLE,
        ),
    ])


class RecordingHandlers:
    """Handlers for the fixture registry that remember every invocation."""

    def __init__(self):
        self.calls = []
        self.fail_with = None

    async def list_items(self, client, args):
        self.calls.append(("list_items", args))
        return {"data": [{"id": str(i)} for i in range(args.limit)]}

    async def create_note(self, client, args):
        self.calls.append(("create_note", args))
        if self.fail_with is not None:
            raise self.fail_with
        return {"id": "note-1", "title": args.title}

    async def delete_item(self, client, args):
        self.calls.append(("delete_item", args))
        return {"deleted": True, "itemId": args.item_id}

    def mapping(self):
        return {
            "list_items": self.list_items,
            "create_note": self.create_note,
            "delete_item": self.delete_item,
        }


@pytest.fixture
def recording_handlers():
    return RecordingHandlers()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def audit(fixed_clock):
    return AuditTrail(clock=fixed_clock)


@pytest.fixture
def project_config():
    return ProjectConfig(
        id="abc12345",
        base_url="https://langfuse.test",
        public_key="pk-lf-abc12345-0000",
        secret_key="sk-lf-secret",
    )


class MockLangfuseAPI:
    """Routes requests to canned JSON responses and records them.

    Example:
        api = MockLangfuseAPI({("GET", "/api/public/health"): {"status": "OK"}})
        client = api.client(project_config)
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def client(self, config: ProjectConfig) -> LangfuseClient:
        return LangfuseClient(config, transport=httpx.MockTransport(self.handler))

    def last(self, path: str) -> httpx.Request:
        matching = [r for r in self.requests if r.url.path == path]
        assert matching, f"no request to {path}"
        return matching[-1]


@pytest.fixture
def mock_api():
    return MockLangfuseAPI()
