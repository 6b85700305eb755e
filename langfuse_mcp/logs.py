"""Loguru setup for the stdio server.

Stdout carries the MCP protocol, so every sink writes to stderr. Audit
records (bound with ``audit=True``) get their own plain sink that is never
filtered by the diagnostic log level.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger

DIAGNOSTIC_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} - {message}"


def _is_audit(record) -> bool:
    return record["extra"].get("audit") is True


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Replace loguru's default handler with the server's stderr sinks."""
    stream = stream or sys.stderr
    logger.remove()
    logger.add(
        stream,
        level=level.upper(),
        format=DIAGNOSTIC_FORMAT,
        filter=lambda record: not _is_audit(record),
    )
    logger.add(stream, level="INFO", format="{message}", filter=_is_audit)
    logger.debug(f"Logging configured at level {level.upper()}")
