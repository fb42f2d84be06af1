"""Compiler warnings and results shared by both compiler passes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

EMPTY_NAME = "empty-name"
DUPLICATE_NAME = "duplicate-name"
ARRAY_MISSING_ITEMS = "array-missing-items"
INAPPLICABLE_CONSTRAINT = "inapplicable-constraint"
INVALID_ENUM_VALUE = "invalid-enum-value"
CONFLICTING_TERM = "conflicting-term"
UNKNOWN_PREFIX = "unknown-prefix"


@dataclass(frozen=True)
class CompilerWarning:
    """A semantically incomplete node found during compilation.

    Attributes:
        code: Machine-readable warning code (e.g. ``empty-name``).
        message: Human-readable description.
        property_id: Id of the offending node, if any.
        path: Dotted path of names from the root to the node.
    """

    code: str
    message: str
    property_id: str | None = None
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def __str__(self) -> str:
        where = f" at {self.path}" if self.path else ""
        return f"[{self.code}]{where}: {self.message}"


@dataclass
class CompileResult:
    """A compiled document plus the warnings collected while building it."""

    document: dict[str, Any]
    warnings: list[CompilerWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def codes(self) -> list[str]:
        return [w.code for w in self.warnings]


def child_path(parent_path: str, name: str) -> str:
    label = name or "<unnamed>"
    return f"{parent_path}.{label}" if parent_path else label
