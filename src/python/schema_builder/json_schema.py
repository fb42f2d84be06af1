"""Compile a property tree into a JSON Schema for credential validation.

The validation schema keeps the tree's nesting: every ``object`` node becomes
an object schema with its own ``properties``, ``required`` list and
``additionalProperties`` flag, every ``array`` node an array schema whose
``items`` come from the node's items child.

The pass is read-only and total. Incomplete nodes (empty names, arrays
without items, constraints that do not apply to the type) never raise; they
are compiled as well as possible and reported as ``CompilerWarning`` entries.
"""

from __future__ import annotations

import math
from typing import Any

from schema_builder.diagnostics import (
    ARRAY_MISSING_ITEMS,
    DUPLICATE_NAME,
    EMPTY_NAME,
    INAPPLICABLE_CONSTRAINT,
    INVALID_ENUM_VALUE,
    CompileResult,
    CompilerWarning,
    child_path,
)
from schema_builder.model import (
    ARRAY,
    BOOLEAN,
    INTEGER,
    NUMBER,
    OBJECT,
    STRING,
    PropertyNode,
    SchemaMetadata,
)

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

# Constraint attribute -> JSON Schema keyword
CONSTRAINT_KEYWORDS = {
    "min_length": "minLength",
    "max_length": "maxLength",
    "minimum": "minimum",
    "maximum": "maximum",
    "precision": "multipleOf",
    "pattern": "pattern",
    "format": "format",
    "enum": "enum",
}

# Constraints each type can carry
APPLICABLE_CONSTRAINTS = {
    STRING: frozenset({"min_length", "max_length", "pattern", "format", "enum"}),
    INTEGER: frozenset({"minimum", "maximum", "format", "enum"}),
    NUMBER: frozenset({"minimum", "maximum", "precision", "format", "enum"}),
    BOOLEAN: frozenset(),
    OBJECT: frozenset(),
    ARRAY: frozenset(),
}


def compile_json_schema(
    properties: list[PropertyNode], metadata: SchemaMetadata
) -> CompileResult:
    """Compile top-level properties into a nested validation schema.

    Args:
        properties: Top-level property nodes.
        metadata: Schema metadata; ``additional_properties`` is applied at
            every object level.

    Returns:
        CompileResult whose document is the root object schema.
    """
    warnings: list[CompilerWarning] = []
    document = _object_schema(
        properties, bool(metadata.additional_properties), "", warnings
    )
    return CompileResult(document, warnings)


def _object_schema(
    children: list[PropertyNode],
    additional_properties: bool,
    path: str,
    warnings: list[CompilerWarning],
) -> dict[str, Any]:
    compiled: dict[str, Any] = {}
    required: list[str] = []
    seen: set[str] = set()

    for child in children:
        name = child.name or ""
        here = child_path(path, name)
        if not name:
            warnings.append(
                CompilerWarning(
                    EMPTY_NAME,
                    "Property has no name; compiled under an empty key",
                    child.id,
                    here,
                )
            )
        elif name in seen:
            warnings.append(
                CompilerWarning(
                    DUPLICATE_NAME,
                    f"Property name {name!r} is used more than once; "
                    "the last definition wins",
                    child.id,
                    here,
                )
            )
        seen.add(name)

        compiled[name] = _property_schema(child, additional_properties, here, warnings)
        if child.required and name not in required:
            required.append(name)

    schema: dict[str, Any] = {"type": "object", "properties": compiled}
    if required:
        schema["required"] = required
    schema["additionalProperties"] = additional_properties
    return schema


def _property_schema(
    node: PropertyNode,
    additional_properties: bool,
    path: str,
    warnings: list[CompilerWarning],
) -> dict[str, Any]:
    if node.type == OBJECT:
        schema = _object_schema(
            node.properties or [], additional_properties, path, warnings
        )
    elif node.type == ARRAY:
        schema = {"type": "array"}
        if node.items is not None:
            schema["items"] = _property_schema(
                node.items, additional_properties, f"{path}[]", warnings
            )
        else:
            warnings.append(
                CompilerWarning(
                    ARRAY_MISSING_ITEMS,
                    "Array has no item definition; items are unconstrained",
                    node.id,
                    path,
                )
            )
    else:
        schema = {"type": node.type}

    if node.display_name:
        schema["title"] = node.display_name
    if node.description:
        schema["description"] = node.description
    if node.constraints is not None:
        schema.update(_constraint_keywords(node, path, warnings))
    return schema


def _constraint_keywords(
    node: PropertyNode, path: str, warnings: list[CompilerWarning]
) -> dict[str, Any]:
    applicable = APPLICABLE_CONSTRAINTS.get(node.type, frozenset())
    keywords: dict[str, Any] = {}

    for attr, value in node.constraints.present().items():
        if attr not in applicable:
            warnings.append(
                CompilerWarning(
                    INAPPLICABLE_CONSTRAINT,
                    f"Constraint {attr!r} does not apply to {node.type} properties",
                    node.id,
                    path,
                )
            )
            continue

        if attr == "enum":
            values = _enum_values(node, value, path, warnings)
            if values:
                keywords["enum"] = values
            continue

        try:
            keywords[CONSTRAINT_KEYWORDS[attr]] = _constraint_value(attr, value)
        except (TypeError, ValueError) as e:
            warnings.append(
                CompilerWarning(
                    INAPPLICABLE_CONSTRAINT,
                    f"Constraint {attr!r} value {value!r} is unusable ({e}); skipped",
                    node.id,
                    path,
                )
            )

    return keywords


def _constraint_value(attr: str, value: Any) -> Any:
    """Return the keyword value for one constraint.

    Lengths and precision must be non-negative integers; bounds must be
    finite numbers. Numeric strings are coerced. Pattern and format must
    already be strings.

    Raises:
        TypeError: If the value has the wrong type.
        ValueError: If the value cannot be coerced or is out of range.
    """
    if attr in ("min_length", "max_length", "precision"):
        number = _coerce_number(value, INTEGER)
        if number < 0:
            raise ValueError("must not be negative")
        return 10**-number if attr == "precision" else number
    if attr in ("minimum", "maximum"):
        number = _coerce_number(value, NUMBER)
        if not math.isfinite(number):
            raise ValueError("not a finite number")
        return number
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _enum_values(
    node: PropertyNode,
    values: list[Any],
    path: str,
    warnings: list[CompilerWarning],
) -> list[Any]:
    if node.type == STRING:
        return [str(v) for v in values]

    coerced = []
    for value in values:
        try:
            coerced.append(_coerce_number(value, node.type))
        except (TypeError, ValueError):
            warnings.append(
                CompilerWarning(
                    INVALID_ENUM_VALUE,
                    f"Enum value {value!r} is not a valid {node.type}; dropped",
                    node.id,
                    path,
                )
            )
    return coerced


def _coerce_number(value: Any, node_type: str) -> int | float:
    if isinstance(value, bool):
        raise TypeError("booleans are not numbers")
    if node_type == INTEGER:
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return int(value.strip())
        raise TypeError(f"cannot coerce {type(value).__name__}")

    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"{text!r} is not a finite number")
        return number
    raise TypeError(f"cannot coerce {type(value).__name__}")
