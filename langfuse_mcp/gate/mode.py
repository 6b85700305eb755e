"""Process-wide operating mode.

The mode is resolved once at startup and never changes afterwards. Write
access is opt-in: only an explicitly recognized token grants it, and a
missing or malformed value falls back to read-only.
"""

from __future__ import annotations

from enum import Enum


class Mode(str, Enum):
    READ_ONLY = "readonly"
    READ_WRITE = "readwrite"


READ_WRITE_TOKENS = frozenset({"readwrite", "rw", "write"})

# Environment variable carrying the raw mode token
MODE_ENV_VAR = "LANGFUSE_MCP_MODE"


def resolve_mode(raw: str | None) -> Mode:
    """Map a raw configuration value to a Mode.

    Matching is case-insensitive and ignores surrounding whitespace. Any
    value that is not a recognized read-write token, including None,
    resolves to Mode.READ_ONLY.
    """
    if raw is None:
        return Mode.READ_ONLY
    if raw.strip().lower() in READ_WRITE_TOKENS:
        return Mode.READ_WRITE
    return Mode.READ_ONLY


def mode_from_cli(
    mode_option: str | None = None,
    readwrite_flag: bool = False,
    readonly_flag: bool = False,
) -> str | None:
    """Pick the raw mode token given on the command line, if any.

    An explicit --mode wins over the boolean flags, and --readwrite wins
    over --readonly. Returns None when nothing was given, so the caller can
    fall back to the environment.
    """
    if mode_option:
        return mode_option
    if readwrite_flag:
        return Mode.READ_WRITE.value
    if readonly_flag:
        return Mode.READ_ONLY.value
    return None
