"""Single entry point for executing a named operation.

A call moves through these states:

    RECEIVED -> PERMISSION_CHECKED -> [CONFIRMATION_CHECKED -> STARTED] -> HANDLER_INVOKED

and ends in exactly one terminal state: COMPLETED, FAILED,
DENIED_PERMISSION, DENIED_CONFIRMATION or UNKNOWN_OPERATION. The bracketed
steps only apply to write operations. Every terminal state maps to a
ToolResult; no exception escapes dispatch().
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger

from .audit import AuditTrail
from .capability import CapabilityGate
from .confirmation import ConfirmationGuard
from .errors import (
    ConfirmationRequired,
    GateError,
    HandlerFailure,
    PermissionDenied,
    UnknownOperation,
)
from .registry import OperationDescriptor

# (backend client, validated input) -> JSON-serializable payload
Handler = Callable[[Any, Any], Awaitable[Any]]


class CallState(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    DENIED_PERMISSION = "denied_permission"
    DENIED_CONFIRMATION = "denied_confirmation"
    UNKNOWN_OPERATION = "unknown_operation"


_STATE_FOR_ERROR: dict[type[GateError], CallState] = {
    UnknownOperation: CallState.UNKNOWN_OPERATION,
    PermissionDenied: CallState.DENIED_PERMISSION,
    ConfirmationRequired: CallState.DENIED_CONFIRMATION,
    HandlerFailure: CallState.FAILED,
}


@dataclass
class ToolResult:
    """Outcome of one dispatched call."""

    operation: str
    state: CallState
    payload: Any
    error: GateError | None = field(default=None, repr=False)

    @property
    def is_error(self) -> bool:
        return self.state is not CallState.COMPLETED

    @classmethod
    def success(cls, operation: str, payload: Any) -> "ToolResult":
        return cls(operation=operation, state=CallState.COMPLETED, payload=payload)

    @classmethod
    def failure(cls, error: GateError) -> "ToolResult":
        return cls(
            operation=error.operation,
            state=_STATE_FOR_ERROR.get(type(error), CallState.FAILED),
            payload=error.to_dict(),
            error=error,
        )

    def to_text(self) -> str:
        return json.dumps(self.payload, indent=2, default=str)


class Dispatcher:
    """Routes a named call through the gate, the guard and the audit trail.

    Example:
        dispatcher = Dispatcher(gate, guard, audit, handlers, client)

        result = await dispatcher.dispatch("get_traces", {"limit": 5})
        if result.is_error:
            print(result.payload["message"])
    """

    def __init__(
        self,
        gate: CapabilityGate,
        guard: ConfirmationGuard,
        audit: AuditTrail,
        handlers: Mapping[str, Handler],
        client: Any = None,
    ):
        """Initialize the dispatcher.

        Args:
            gate: Capability gate holding the registry and the process mode
            guard: Confirmation guard for irreversible operations
            audit: The process-wide audit trail
            handlers: One handler per registered operation name
            client: Backend client passed to every handler

        Raises:
            ValueError: If a handler has no descriptor or a descriptor has no handler
        """
        names = set(gate.registry.names())
        orphans = sorted(set(handlers) - names)
        if orphans:
            raise ValueError(f"Handlers without a registered operation: {', '.join(orphans)}")
        missing = sorted(names - set(handlers))
        if missing:
            raise ValueError(f"Registered operations without a handler: {', '.join(missing)}")

        self.gate = gate
        self.guard = guard
        self.audit = audit
        self.client = client
        self._handlers = dict(handlers)

    async def dispatch(self, name: str, raw_input: Mapping[str, Any] | None = None) -> ToolResult:
        args = dict(raw_input or {})

        descriptor = self.gate.registry.get(name)
        if descriptor is None:
            return ToolResult.failure(UnknownOperation(name))

        if not self.gate.is_permitted(name):
            if self.gate.is_write_class(name):
                self.audit.record_denial(name, self.gate.mode)
            return ToolResult.failure(PermissionDenied(name, self.gate.mode))

        if not descriptor.is_write:
            return await self._invoke_read(descriptor, args)

        try:
            self.guard.require_confirmation(name, args.get(ConfirmationRequired.confirmation_field))
        except ConfirmationRequired as exc:
            return ToolResult.failure(exc)

        return await self._invoke_write(descriptor, args)

    async def _invoke_read(self, descriptor: OperationDescriptor, args: dict[str, Any]) -> ToolResult:
        try:
            payload = await self._run_handler(descriptor, args)
        except Exception as exc:
            logger.debug(f"Read operation {descriptor.name} failed: {exc}")
            return ToolResult.failure(HandlerFailure(descriptor.name, exc))
        return ToolResult.success(descriptor.name, payload)

    async def _invoke_write(self, descriptor: OperationDescriptor, args: dict[str, Any]) -> ToolResult:
        self.audit.record_start(descriptor.name, args)
        start = time.perf_counter()
        try:
            payload = await self._run_handler(descriptor, args)
        except Exception as exc:
            failure = HandlerFailure(descriptor.name, exc)
            self.audit.record_error(descriptor.name, args, failure.message, _elapsed_ms(start))
            return ToolResult.failure(failure)

        self.audit.record_success(
            descriptor.name, args, payload, _elapsed_ms(start), descriptor.summarizer
        )
        return ToolResult.success(descriptor.name, payload)

    async def _run_handler(self, descriptor: OperationDescriptor, args: dict[str, Any]) -> Any:
        validated = descriptor.input_model.model_validate(args)
        return await self._handlers[descriptor.name](self.client, validated)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
