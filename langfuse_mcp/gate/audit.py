"""Append-only audit trail for mutating operations.

Every entry is redacted before it is stored or written, then emitted as a
single ``[AUDIT]`` line on a loguru logger bound with ``audit=True``. The
server routes those records to stderr so that audit output never touches
the MCP protocol stream on stdout.

Read operations produce no entries. What gets recorded:

- MODE_INIT once at startup
- every permission denial and every confirmation denial
- START before a write handler runs, then SUCCESS or ERROR after it
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

from loguru import logger

from .mode import Mode

if TYPE_CHECKING:
    from loguru import Logger

REDACTED = "[REDACTED]"
LARGE_OBJECT = "[large object]"
TRUNCATION_SUFFIX = "...[truncated]"

MAX_STRING_LENGTH = 200
MAX_OBJECT_LENGTH = 300
# Above this length the log line lists argument keys instead of values
MAX_INLINE_ARGS_LENGTH = 100

# Compared against keys lower-cased with "_" and "-" removed
SENSITIVE_KEYS = frozenset({
    "secret",
    "token",
    "password",
    "passwd",
    "passphrase",
    "authorization",
})
SENSITIVE_SUFFIXES = (
    "secret",
    "secretkey",
    "password",
    "apikey",
    "token",
    "credential",
    "credentials",
    "privatekey",
)


class AuditPhase(str, Enum):
    MODE_INIT = "mode_init"
    DENIED_PERMISSION = "denied_permission"
    DENIED_CONFIRMATION = "denied_confirmation"
    START = "start"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def label(self) -> str:
        """Marker used in the audit log line."""
        return _PHASE_LABELS[self]


_PHASE_LABELS = {
    AuditPhase.MODE_INIT: "MODE_INIT",
    AuditPhase.DENIED_PERMISSION: "PERMISSION_DENIED",
    AuditPhase.DENIED_CONFIRMATION: "CONFIRMATION_REQUIRED",
    AuditPhase.START: "STARTING",
    AuditPhase.SUCCESS: "SUCCESS",
    AuditPhase.ERROR: "ERROR",
}


def is_sensitive_key(key: str) -> bool:
    normalized = key.lower().replace("_", "").replace("-", "")
    return normalized in SENSITIVE_KEYS or normalized.endswith(SENSITIVE_SUFFIXES)


def _scrub(value: Any) -> Any:
    """Replace sensitive keys at any depth."""
    if isinstance(value, Mapping):
        return {
            str(k): REDACTED if is_sensitive_key(str(k)) else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def _bound_size(value: Any) -> Any:
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            return value[:MAX_STRING_LENGTH] + TRUNCATION_SUFFIX
        return value
    if isinstance(value, (Mapping, list)):
        if len(json.dumps(value, default=str)) > MAX_OBJECT_LENGTH:
            return LARGE_OBJECT
    return value


def redact_input(args: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of ``args`` that is safe to write to the audit sink.

    Sensitive values become ``[REDACTED]``; long strings are truncated and
    large objects are elided.
    """
    scrubbed = _scrub(dict(args or {}))
    return {key: _bound_size(value) for key, value in scrubbed.items()}


def _single_line(text: str) -> str:
    # One entry, one physical line
    return text.replace("\r", "\\r").replace("\n", "\\n")


def _format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AuditEntry:
    """One immutable audit record."""

    timestamp: datetime
    phase: AuditPhase
    operation_name: str | None = None
    redacted_input: Mapping[str, Any] | None = None
    error_message: str | None = None
    duration_ms: float | None = None
    mode: Mode | None = None
    permitted_count: int | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "timestamp": _format_timestamp(self.timestamp),
            "phase": self.phase.value,
            "operation": self.operation_name,
        }
        if self.redacted_input is not None:
            data["input"] = dict(self.redacted_input)
        if self.error_message is not None:
            data["error"] = self.error_message
        if self.duration_ms is not None:
            data["duration_ms"] = round(self.duration_ms, 2)
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.permitted_count is not None:
            data["permitted_count"] = self.permitted_count
        if self.summary is not None:
            data["summary"] = self.summary
        return data

    def format_line(self) -> str:
        parts = ["[AUDIT]", _format_timestamp(self.timestamp), self.phase.label]

        if self.phase is AuditPhase.MODE_INIT:
            parts.append(f"mode={self.mode.value if self.mode else 'unknown'}")
            parts.append(f"tools_exposed={self.permitted_count}")
            return " ".join(parts)

        if self.phase is AuditPhase.DENIED_PERMISSION:
            parts.append(f"tool={self.operation_name}")
            parts.append(f"mode={self.mode.value if self.mode else 'unknown'}")
            return " ".join(parts)

        if self.phase is AuditPhase.DENIED_CONFIRMATION:
            parts.append(f"tool={self.operation_name}")
            return " ".join(parts)

        parts.append(str(self.operation_name))
        args = dict(self.redacted_input or {})
        args_json = json.dumps(args, default=str)
        if self.phase is AuditPhase.START or len(args_json) <= MAX_INLINE_ARGS_LENGTH:
            parts.append(f"args={args_json}")
        else:
            parts.append("args={" + ", ".join(json.dumps(key) for key in args) + "}")
        if self.duration_ms is not None:
            parts.append(f"duration={round(self.duration_ms)}ms")
        if self.summary:
            parts.append(_single_line(self.summary))
        if self.error_message is not None:
            parts.append(f"error={json.dumps(self.error_message)}")
        return " ".join(parts)


class AuditTrail:
    """Single writer of audit entries.

    One instance is built at startup and handed to the components that
    record entries. Entries are appended in call order and never modified.

    Example:
        audit = AuditTrail()
        audit.record_start("write_create_dataset", {"name": "golden"})
        audit.record_success("write_create_dataset", {"name": "golden"}, {"id": "ds-1"}, 12.5)

        [e.phase for e in audit.entries]  # [AuditPhase.START, AuditPhase.SUCCESS]
    """

    def __init__(
        self,
        sink: "Logger | None" = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the audit trail.

        Args:
            sink: loguru logger to write to (default: the global loguru logger)
            clock: Returns the current time; injectable for tests
        """
        self._sink = (sink or logger).bind(audit=True)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: list[AuditEntry] = []
        self._mode_recorded = False

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        return tuple(self._entries)

    def entries_for(self, operation_name: str) -> list[AuditEntry]:
        return [e for e in self._entries if e.operation_name == operation_name]

    def record_mode_init(self, mode: Mode, permitted_count: int) -> AuditEntry:
        if self._mode_recorded:
            raise RuntimeError("Mode initialization has already been recorded")
        self._mode_recorded = True
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.MODE_INIT,
                mode=mode,
                permitted_count=permitted_count,
            )
        )

    def record_denial(self, operation_name: str, current_mode: Mode) -> AuditEntry:
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.DENIED_PERMISSION,
                operation_name=operation_name,
                mode=current_mode,
            )
        )

    def record_confirmation_denial(self, operation_name: str) -> AuditEntry:
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.DENIED_CONFIRMATION,
                operation_name=operation_name,
            )
        )

    def record_start(self, operation_name: str, args: Mapping[str, Any] | None) -> AuditEntry:
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.START,
                operation_name=operation_name,
                redacted_input=MappingProxyType(redact_input(args)),
            )
        )

    def record_success(
        self,
        operation_name: str,
        args: Mapping[str, Any] | None,
        result: Any,
        duration_ms: float,
        summarizer: Callable[[Any], str | None] | None = None,
    ) -> AuditEntry:
        """Record a completed write.

        ``summarizer`` extracts a salient detail from the result, such as the
        id of a created entity. Without one, or when it returns None, the
        entry simply carries no summary. A summarizer that raises is treated
        the same way.
        """
        summary = None
        if summarizer is not None:
            try:
                summary = summarizer(result)
            except Exception as exc:
                logger.debug(f"Summarizer for {operation_name} failed: {exc!r}")
        if not isinstance(summary, str):
            summary = None
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.SUCCESS,
                operation_name=operation_name,
                redacted_input=MappingProxyType(redact_input(args)),
                duration_ms=duration_ms,
                summary=summary,
            )
        )

    def record_error(
        self,
        operation_name: str,
        args: Mapping[str, Any] | None,
        error: BaseException | str,
        duration_ms: float,
    ) -> AuditEntry:
        message = error if isinstance(error, str) else (str(error) or error.__class__.__name__)
        return self._append(
            AuditEntry(
                timestamp=self._clock(),
                phase=AuditPhase.ERROR,
                operation_name=operation_name,
                redacted_input=MappingProxyType(redact_input(args)),
                error_message=message,
                duration_ms=duration_ms,
            )
        )

    def _append(self, entry: AuditEntry) -> AuditEntry:
        self._entries.append(entry)
        self._sink.info(entry.format_line())
        return entry
