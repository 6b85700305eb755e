"""CLI commands for langfuse-mcp."""

import asyncio
import json

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from .client import LangfuseClient
from .config import ConfigError, load_project_config, load_server_settings
from .gate import CapabilityGate, Mode, mode_from_cli, resolve_mode
from .logs import configure_logging
from .server import serve
from .tools import build_registry

console = Console()
# stdout belongs to the MCP protocol while serving
err_console = Console(stderr=True)

MODE_HELP = "Operating mode: readonly (default) or readwrite (also accepts rw, write)"


def _resolve(mode_option: str | None, readwrite: bool, readonly: bool, env_mode: str | None) -> Mode:
    raw = mode_from_cli(mode_option, readwrite, readonly)
    return resolve_mode(raw if raw is not None else env_mode)


@click.group()
@click.version_option(package_name="langfuse-mcp")
def main() -> None:
    """Langfuse MCP - capability-gated MCP gateway for Langfuse analytics."""


@main.command("serve")
@click.option("-m", "--mode", "mode_option", default=None, help=MODE_HELP)
@click.option("--readwrite", "--rw", "readwrite", is_flag=True, help="Enable write tools")
@click.option("--readonly", "--ro", "readonly", is_flag=True, help="Force read-only mode")
def serve_command(mode_option: str | None, readwrite: bool, readonly: bool) -> None:
    """Run the MCP server over stdio."""
    try:
        settings = load_server_settings()
        config = load_project_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        raise SystemExit(1)

    configure_logging(settings.log_level)
    mode = _resolve(mode_option, readwrite, readonly, settings.mode)
    client = LangfuseClient(config, timeout=settings.timeout)

    try:
        asyncio.run(serve(mode, client))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


@main.command("tools")
@click.option("-m", "--mode", "mode_option", default=None, help=MODE_HELP)
@click.option("--readwrite", "--rw", "readwrite", is_flag=True, help="Show tools for read-write mode")
@click.option("-f", "--format", "fmt", default="table", type=click.Choice(["table", "json"]), help="Output format")
def list_tools(mode_option: str | None, readwrite: bool, fmt: str) -> None:
    """List the tools a server would advertise in the given mode."""
    try:
        settings = load_server_settings()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise SystemExit(1)

    mode = _resolve(mode_option, readwrite, False, settings.mode)
    gate = CapabilityGate(build_registry(), mode)
    permitted = gate.permitted_operations()

    if fmt == "json":
        click.echo(json.dumps({"mode": mode.value, "tools": [d.to_dict() for d in permitted]}, indent=2))
        return

    table = Table(title=f"Tools in {mode.value} mode ({len(permitted)}/{len(gate.registry)})")
    table.add_column("Name", style="cyan")
    table.add_column("Class")
    table.add_column("Destructive")
    table.add_column("Description", max_width=60)

    for d in permitted:
        style = "yellow" if d.is_write else "green"
        table.add_row(
            d.name,
            f"[{style}]{d.capability.value}[/{style}]",
            "[red]yes[/red]" if d.is_irreversible else "",
            d.description,
        )

    console.print(table)


if __name__ == "__main__":
    main()
