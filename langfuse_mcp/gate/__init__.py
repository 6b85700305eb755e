"""Capability gating and audit core.

Decides which operations may run under the process mode, demands explicit
confirmation for irreversible ones, and keeps a redacted audit trail of
every attempted write:

- **Registry**: static catalog of operation descriptors
- **Mode**: read-only or read-write, fixed at startup
- **CapabilityGate**: permission predicates over registry and mode
- **ConfirmationGuard**: ``confirmed: true`` check for irreversible writes
- **AuditTrail**: append-only, redacted log of mutating actions
- **Dispatcher**: runs one call through all of the above

Usage:
    from langfuse_mcp.gate import build_dispatcher, resolve_mode

    mode = resolve_mode(os.environ.get("LANGFUSE_MCP_MODE"))
    dispatcher = build_dispatcher(registry, handlers, mode, client=client)

    result = await dispatcher.dispatch("write_delete_dataset_item", {"itemId": "x", "confirmed": True})
"""

from __future__ import annotations

from typing import Any, Mapping

from .audit import AuditEntry, AuditPhase, AuditTrail, redact_input
from .capability import CapabilityGate
from .confirmation import ConfirmationGuard
from .dispatcher import CallState, Dispatcher, Handler, ToolResult
from .errors import (
    ConfirmationRequired,
    GateError,
    HandlerFailure,
    PermissionDenied,
    UnknownOperation,
)
from .mode import Mode, mode_from_cli, resolve_mode
from .registry import (
    CapabilityClass,
    Destructiveness,
    DuplicateOperationError,
    OperationDescriptor,
    OperationRegistry,
)


def build_dispatcher(
    registry: OperationRegistry,
    handlers: Mapping[str, Handler],
    mode: Mode,
    audit: AuditTrail | None = None,
    client: Any = None,
) -> Dispatcher:
    """Wire the gate, guard and audit trail together and record MODE_INIT."""
    audit = audit or AuditTrail()
    gate = CapabilityGate(registry, mode)
    guard = ConfirmationGuard(registry, audit)
    dispatcher = Dispatcher(gate, guard, audit, handlers, client)
    audit.record_mode_init(mode, len(gate.permitted_operations()))
    return dispatcher


__all__ = [
    # Registry
    "CapabilityClass",
    "Destructiveness",
    "DuplicateOperationError",
    "OperationDescriptor",
    "OperationRegistry",
    # Mode
    "Mode",
    "mode_from_cli",
    "resolve_mode",
    # Gating
    "CapabilityGate",
    "ConfirmationGuard",
    # Audit
    "AuditEntry",
    "AuditPhase",
    "AuditTrail",
    "redact_input",
    # Dispatch
    "CallState",
    "Dispatcher",
    "Handler",
    "ToolResult",
    "build_dispatcher",
    # Errors
    "ConfirmationRequired",
    "GateError",
    "HandlerFailure",
    "PermissionDenied",
    "UnknownOperation",
]
