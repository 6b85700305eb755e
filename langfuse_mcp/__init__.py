"""
langfuse-mcp: an MCP gateway over the Langfuse observability API.

Read-only by default. Write tools are only advertised and dispatched when the
process starts in read-write mode, irreversible writes demand
``confirmed: true``, and every attempted write lands in a redacted audit
trail on stderr.
"""

__version__ = "0.1.0"
