"""Explicit per-call confirmation for irreversible operations."""

from __future__ import annotations

from typing import Any

from .audit import AuditTrail
from .errors import ConfirmationRequired
from .registry import OperationRegistry


class ConfirmationGuard:
    """Rejects irreversible calls that do not carry ``confirmed: true``.

    Only the literal boolean True counts. ``"true"``, ``1`` or any other
    truthy value is treated as not confirmed.
    """

    def __init__(self, registry: OperationRegistry, audit: AuditTrail):
        self._registry = registry
        self._audit = audit

    def require_confirmation(self, name: str, confirmed: Any = None) -> None:
        """Raise ConfirmationRequired if ``name`` is irreversible and unconfirmed.

        The denial is recorded in the audit trail before raising.
        """
        descriptor = self._registry.get(name)
        if descriptor is None or not descriptor.is_irreversible:
            return
        if confirmed is True:
            return

        self._audit.record_confirmation_denial(name)
        raise ConfirmationRequired(name)
