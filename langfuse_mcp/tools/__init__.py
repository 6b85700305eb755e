"""Operation handlers backed by the Langfuse API.

Usage:
    from langfuse_mcp.tools import build_handlers, build_registry

    registry = build_registry()
    handlers = build_handlers()
"""

from .catalog import CATALOG, build_handlers, build_registry

__all__ = ["CATALOG", "build_handlers", "build_registry"]
