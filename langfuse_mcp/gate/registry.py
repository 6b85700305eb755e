"""Static catalog of every operation the server can perform.

Each operation is described once, by an immutable OperationDescriptor that
tags it with a capability class and a destructiveness flag. Whether an
operation writes is always looked up here, never inferred from its name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Iterator

from pydantic import BaseModel


class CapabilityClass(str, Enum):
    """Whether an operation only reads backend state or can mutate it."""

    READ = "read"
    WRITE = "write"


class Destructiveness(str, Enum):
    """Whether a write can be undone. Only meaningful for WRITE operations."""

    REVERSIBLE = "reversible"
    IRREVERSIBLE = "irreversible"


Summarizer = Callable[[Any], "str | None"]


@dataclass(frozen=True)
class OperationDescriptor:
    """Immutable description of one dispatchable operation."""

    name: str
    capability: CapabilityClass
    description: str
    input_model: type[BaseModel]
    destructiveness: Destructiveness = Destructiveness.REVERSIBLE
    # Extracts a salient identifier from a write result for the audit trail
    summarizer: Summarizer | None = None

    @property
    def is_write(self) -> bool:
        return self.capability is CapabilityClass.WRITE

    @property
    def is_irreversible(self) -> bool:
        return self.is_write and self.destructiveness is Destructiveness.IRREVERSIBLE

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the input contract, with camelCase property names."""
        return self.input_model.model_json_schema(by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "capability": self.capability.value,
            "destructiveness": self.destructiveness.value,
            "description": self.description,
        }


class DuplicateOperationError(ValueError):
    """Raised when two descriptors share the same operation name."""


class OperationRegistry:
    """Ordered, read-only lookup table from operation name to descriptor.

    Example:
        registry = OperationRegistry([
            OperationDescriptor("get_trace", CapabilityClass.READ, "...", GetTraceInput),
        ])
        registry.get("get_trace").is_write  # False
        registry.get("missing")  # None
    """

    def __init__(self, descriptors: Iterable[OperationDescriptor]):
        self._descriptors: dict[str, OperationDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in self._descriptors:
                raise DuplicateOperationError(
                    f"Operation registered twice: {descriptor.name}"
                )
            self._descriptors[descriptor.name] = descriptor

    def get(self, name: str) -> OperationDescriptor | None:
        return self._descriptors.get(name)

    def names(self) -> list[str]:
        return list(self._descriptors)

    def write_operations(self) -> list[OperationDescriptor]:
        return [d for d in self._descriptors.values() if d.is_write]

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)
