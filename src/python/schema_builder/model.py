"""Property-tree data model for credential schemas.

A credential's attributes are described by a tree of ``PropertyNode``
objects. Each node owns its children by value: an ``object`` node owns an
ordered list of child properties, an ``array`` node owns exactly one
``items`` node. Scalar nodes own nothing.

This module only defines the data contract and its serialized form. All
structural edits go through ``schema_builder.tree.PropertyTree``.

The serialized form uses the camelCase keys of the console's persisted
projects::

    {
      "id": "prop_...",
      "name": "full_name",
      "displayName": "Full Name",
      "type": "string",
      "required": true,
      "constraints": {"maxLength": 120}
    }
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field, fields
from typing import Any, Iterator

import base58

# ---------------------------------------------------------------------------
# Type union
# ---------------------------------------------------------------------------

STRING = "string"
INTEGER = "integer"
NUMBER = "number"
BOOLEAN = "boolean"
OBJECT = "object"
ARRAY = "array"

PROPERTY_TYPES = (STRING, INTEGER, NUMBER, BOOLEAN, OBJECT, ARRAY)
CONTAINER_TYPES = frozenset({OBJECT, ARRAY})

# Labels shown in the property tree
PROPERTY_TYPE_LABELS = {
    STRING: "Text",
    INTEGER: "Integer",
    NUMBER: "Number",
    BOOLEAN: "Yes/No",
    OBJECT: "Object",
    ARRAY: "List",
}

# Schema modes
MODE_JSONLD_CONTEXT = "jsonld-context"
MODE_JSON_SCHEMA = "json-schema"
SCHEMA_MODES = (MODE_JSONLD_CONTEXT, MODE_JSON_SCHEMA)

_ID_PREFIX = "prop_"


def new_property_id() -> str:
    """Generate a fresh opaque property id (``prop_`` + base58 of 16 random bytes)."""
    return _ID_PREFIX + base58.b58encode(secrets.token_bytes(16)).decode("ascii")


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

# attribute name -> serialized key
_CONSTRAINT_KEYS = {
    "max_length": "maxLength",
    "min_length": "minLength",
    "minimum": "minimum",
    "maximum": "maximum",
    "precision": "precision",
    "pattern": "pattern",
    "format": "format",
    "enum": "enum",
}


@dataclass
class PropertyConstraints:
    """Optional validation constraints for a property.

    Every field is independently optional. Which ones apply depends on the
    property type, but the model accepts any combination; the compiler
    decides what to emit.
    """

    max_length: int | None = None
    min_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    precision: int | None = None
    pattern: str | None = None
    format: str | None = None
    enum: list[Any] | None = None

    def is_empty(self) -> bool:
        return not self.to_dict()

    def present(self) -> dict[str, Any]:
        """Return the set constraints keyed by attribute name."""
        result = {}
        for attr in _CONSTRAINT_KEYS:
            value = getattr(self, attr)
            if value is None or value == "" or value == []:
                continue
            result[attr] = value
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert to the serialized form, omitting unset constraints."""
        return {
            _CONSTRAINT_KEYS[attr]: (list(value) if attr == "enum" else value)
            for attr, value in self.present().items()
        }

    def copy(self) -> PropertyConstraints:
        return PropertyConstraints.from_dict(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PropertyConstraints:
        """Create from the serialized form (camelCase or snake_case keys)."""
        data = data or {}
        kwargs = {}
        for attr, key in _CONSTRAINT_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
            elif attr in data:
                kwargs[attr] = data[attr]
        if kwargs.get("enum") is not None:
            kwargs["enum"] = list(kwargs["enum"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Property nodes
# ---------------------------------------------------------------------------


@dataclass
class PropertyNode:
    """One entry in a credential's attribute tree.

    Attributes:
        id: Opaque identifier, unique across the tree and never reused.
        name: Machine-safe property key (may be empty while editing).
        type: One of ``PROPERTY_TYPES``.
        display_name: Optional human-facing label.
        description: Optional human-facing description.
        required: Whether the parent object requires this property.
        properties: Ordered children; a list only when ``type == "object"``.
        items: Item schema node; only when ``type == "array"``.
        constraints: Optional validation constraints.
        source_vocab_property_id: Id of the vocabulary property this node was
            imported from (a reference, not ownership).
        json_ld_term: Linked-data term copied from the vocabulary property.
    """

    id: str = field(default_factory=new_property_id)
    name: str = ""
    type: str = STRING
    display_name: str | None = None
    description: str | None = None
    required: bool = False
    properties: list[PropertyNode] | None = None
    items: PropertyNode | None = None
    constraints: PropertyConstraints | None = None
    source_vocab_property_id: str | None = None
    json_ld_term: str | None = None

    def __post_init__(self) -> None:
        if self.type == OBJECT and self.properties is None:
            self.properties = []

    def children(self) -> list[PropertyNode]:
        """Owned children in traversal order: properties, then items."""
        if self.type == OBJECT:
            return list(self.properties or [])
        if self.type == ARRAY and self.items is not None:
            return [self.items]
        return []

    def to_dict(self) -> dict[str, Any]:
        """Convert to the serialized form, omitting unset fields."""
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "required": self.required,
        }
        if self.display_name is not None:
            d["displayName"] = self.display_name
        if self.description is not None:
            d["description"] = self.description
        if self.type == OBJECT:
            d["properties"] = [child.to_dict() for child in self.properties or []]
        if self.type == ARRAY and self.items is not None:
            d["items"] = self.items.to_dict()
        if self.constraints is not None and not self.constraints.is_empty():
            d["constraints"] = self.constraints.to_dict()
        if self.source_vocab_property_id is not None:
            d["sourceVocabPropertyId"] = self.source_vocab_property_id
        if self.json_ld_term is not None:
            d["jsonLdTerm"] = self.json_ld_term
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyNode:
        """Create a node (and its subtree) from the serialized form.

        Children that the node's type cannot own are dropped. A missing id is
        replaced with a fresh one. Type and id-uniqueness checks are the
        tree's job (see ``PropertyTree.from_dict``).
        """
        node_type = data.get("type", STRING)
        properties = None
        items = None
        if node_type == OBJECT:
            properties = [cls.from_dict(c) for c in data.get("properties") or []]
        elif node_type == ARRAY and data.get("items"):
            items = cls.from_dict(data["items"])

        constraints = None
        if data.get("constraints"):
            constraints = PropertyConstraints.from_dict(data["constraints"])

        return cls(
            id=data.get("id") or new_property_id(),
            name=data.get("name") or "",
            type=node_type,
            display_name=data.get("displayName"),
            description=data.get("description"),
            required=bool(data.get("required", False)),
            properties=properties,
            items=items,
            constraints=constraints,
            source_vocab_property_id=data.get("sourceVocabPropertyId"),
            json_ld_term=data.get("jsonLdTerm"),
        )


def can_have_children(node: PropertyNode) -> bool:
    """Return True if the node's type permits children."""
    return node.type in CONTAINER_TYPES


def iter_subtree(node: PropertyNode) -> Iterator[PropertyNode]:
    """Yield ``node`` and its descendants depth-first (properties, then items)."""
    yield node
    for child in node.children():
        yield from iter_subtree(child)


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------

_METADATA_KEYS = {
    "title": "title",
    "description": "description",
    "mode": "mode",
    "category": "category",
    "credential_name": "credentialName",
    "additional_properties": "additionalProperties",
}


@dataclass
class SchemaMetadata:
    """Per-tree metadata.

    ``additional_properties`` is the strict-validation toggle: ``False``
    rejects instance fields that the schema does not declare.
    """

    title: str = ""
    description: str = ""
    mode: str = MODE_JSON_SCHEMA
    category: str | None = None
    credential_name: str | None = None
    additional_properties: bool = False

    def to_dict(self) -> dict[str, Any]:
        d = {}
        for attr, key in _METADATA_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                d[key] = value
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SchemaMetadata:
        data = data or {}
        kwargs = {}
        for attr, key in _METADATA_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
        return cls(**kwargs)


METADATA_FIELDS = tuple(f.name for f in fields(SchemaMetadata))
