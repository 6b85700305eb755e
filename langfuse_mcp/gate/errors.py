"""Error taxonomy of the gating core.

These exceptions never leave the Dispatcher: it converts each of them into
a structured error payload for the caller.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .mode import MODE_ENV_VAR, Mode


class GateError(Exception):
    """Base class for every failure the Dispatcher reports to a caller."""

    kind = "gate_error"

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "operation": self.operation,
        }


class UnknownOperation(GateError):
    kind = "unknown_operation"

    def __init__(self, operation: str):
        super().__init__(operation, f"Unknown tool: {operation}")


class PermissionDenied(GateError):
    kind = "permission_denied"

    def __init__(self, operation: str, current_mode: Mode):
        self.current_mode = current_mode
        super().__init__(
            operation,
            f'Permission denied: "{operation}" requires {Mode.READ_WRITE.value} mode. '
            f"This server is running in {current_mode.value} mode. "
            f"Set {MODE_ENV_VAR}={Mode.READ_WRITE.value} to enable write operations.",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["currentMode"] = self.current_mode.value
        data["requiredMode"] = Mode.READ_WRITE.value
        data["configHint"] = f"{MODE_ENV_VAR}={Mode.READ_WRITE.value}"
        return data


class ConfirmationRequired(GateError):
    kind = "confirmation_required"

    confirmation_field = "confirmed"

    def __init__(self, operation: str):
        super().__init__(
            operation,
            f'Confirmation required: "{operation}" is a destructive operation. '
            f'Add "{self.confirmation_field}": true to your request to proceed.',
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["confirmationField"] = self.confirmation_field
        return data


class HandlerFailure(GateError):
    """The operation handler, input validation or the backend failed."""

    kind = "handler_failure"

    def __init__(self, operation: str, cause: BaseException):
        self.cause = cause
        super().__init__(operation, describe_exception(cause))


def describe_exception(exc: BaseException) -> str:
    """Short, caller-facing description of an exception."""
    if isinstance(exc, ValidationError):
        parts = []
        for err in exc.errors()[:5]:
            location = ".".join(str(p) for p in err.get("loc", ())) or "input"
            parts.append(f"{location}: {err.get('msg', 'invalid value')}")
        return "Invalid arguments: " + "; ".join(parts)
    return str(exc) or exc.__class__.__name__
