"""MCP stdio server exposing the Langfuse operation catalog.

Run via an MCP client config (stdio transport):
  langfuse-mcp serve            # read-only
  langfuse-mcp serve --readwrite

Only operations permitted under the startup mode are advertised, and every
call goes through the Dispatcher, so an unadvertised write tool is still
refused (and audited) if a client calls it by name.
"""

from __future__ import annotations

from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .client import LangfuseClient
from .gate import AuditTrail, CapabilityGate, Dispatcher, Mode, build_dispatcher
from .gate.mode import MODE_ENV_VAR
from .tools import build_handlers, build_registry

WRITE_PREFIX = "[WRITE] "


class ToolCallError(Exception):
    """Raised from call_tool so the SDK returns the text with isError set."""


def server_name(mode: Mode) -> str:
    return f"langfuse-analytics-{mode.value}"


def build_tool_list(gate: CapabilityGate) -> list[Tool]:
    """Tools advertised to clients: exactly the operations permitted in the gate's mode."""
    permitted = gate.permitted_operations()
    tools = []
    for descriptor in permitted:
        description = descriptor.description
        if gate.mode is Mode.READ_WRITE and descriptor.is_write:
            description = WRITE_PREFIX + description
        tools.append(
            Tool(
                name=descriptor.name,
                description=description,
                inputSchema=descriptor.input_schema(),
            )
        )
    logger.info(f"Exposing {len(permitted)}/{len(gate.registry)} tools in {gate.mode.value} mode")
    return tools


def create_app(dispatcher: Dispatcher) -> Server:
    """Build the MCP server around an already wired dispatcher."""
    app = Server(server_name(dispatcher.gate.mode))

    @app.list_tools()
    async def list_tools():
        return build_tool_list(dispatcher.gate)

    @app.call_tool()
    async def call_tool(name: str, arguments: dict | None):
        result = await dispatcher.dispatch(name, arguments)
        if result.is_error:
            raise ToolCallError(result.to_text())
        return [TextContent(type="text", text=result.to_text())]

    return app


async def serve(mode: Mode, client: LangfuseClient, audit: AuditTrail | None = None) -> None:
    """Run the stdio server until the client disconnects or the task is cancelled.

    The HTTP client is closed on every exit path.
    """
    registry = build_registry()
    dispatcher = build_dispatcher(registry, build_handlers(), mode, audit=audit, client=client)
    app = create_app(dispatcher)

    permitted = len(dispatcher.gate.permitted_operations())
    logger.info(
        f"Starting {server_name(mode)} for project {client.project_id} "
        f"({permitted}/{len(registry)} tools)"
    )
    if mode is Mode.READ_WRITE:
        logger.warning("Read-write mode: write tools are enabled and audited")
    else:
        logger.info(f"Write tools disabled. Set {MODE_ENV_VAR}=readwrite or pass --readwrite to enable them")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await client.aclose()
        logger.info("Langfuse client closed")
