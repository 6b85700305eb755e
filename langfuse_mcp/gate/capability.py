"""Capability gate: which operations are permitted in the current mode."""

from __future__ import annotations

from .mode import Mode
from .registry import CapabilityClass, OperationDescriptor, OperationRegistry


class CapabilityGate:
    """Pure predicates over the operation registry and the process mode.

    Read operations are always permitted. Write operations are permitted
    only in read-write mode. Unknown names are never permitted.

    Example:
        gate = CapabilityGate(registry, Mode.READ_ONLY)

        gate.is_permitted("get_traces")          # True
        gate.is_permitted("write_create_dataset")  # False
        gate.is_write_class("write_create_dataset")  # True, regardless of mode
    """

    def __init__(self, registry: OperationRegistry, mode: Mode):
        self._registry = registry
        self._mode = mode

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    def is_permitted(self, name: str, mode: Mode | None = None) -> bool:
        descriptor = self._registry.get(name)
        if descriptor is None:
            return False
        return self._permits(descriptor, mode or self._mode)

    def is_write_class(self, name: str) -> bool:
        descriptor = self._registry.get(name)
        return descriptor is not None and descriptor.is_write

    def permitted_operations(self, mode: Mode | None = None) -> list[OperationDescriptor]:
        """Descriptors permitted in ``mode`` (default: the gate's mode), in registry order."""
        effective = mode or self._mode
        return [d for d in self._registry if self._permits(d, effective)]

    @staticmethod
    def _permits(descriptor: OperationDescriptor, mode: Mode) -> bool:
        if descriptor.capability is CapabilityClass.READ:
            return True
        return mode is Mode.READ_WRITE
