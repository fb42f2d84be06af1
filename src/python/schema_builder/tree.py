"""Tree mutation engine for credential property trees.

``PropertyTree`` is one editing session over a property tree: the top-level
properties, the schema metadata, and the editor bookkeeping (selected node,
expanded nodes). Every structural operation is built on a single depth-first
lookup and is atomic: arguments are validated before anything changes, so a
rejected operation leaves the tree exactly as it was.

Failure policy:
- Structural illegality (adding a child to a scalar, an unknown type, ...)
  raises ``StructuralViolation``; the tree is unchanged.
- Operating on an id that is not in the tree is a benign no-op, signalled by
  a ``None`` or ``False`` return value.

Usage:
    tree = PropertyTree()
    address = tree.add_property(type="object", name="address")
    tree.add_property(address.id, name="city")
    tree.move_property(address.id, "down")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from schema_builder.context_url import suggest_credential_name
from schema_builder.model import (
    ARRAY,
    METADATA_FIELDS,
    MODE_JSONLD_CONTEXT,
    OBJECT,
    PROPERTY_TYPES,
    SCHEMA_MODES,
    STRING,
    PropertyConstraints,
    PropertyNode,
    SchemaMetadata,
    can_have_children,
    iter_subtree,
)

DIRECTIONS = ("up", "down")

# Fields editable through add_property/update_property
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "display_name",
        "description",
        "type",
        "required",
        "constraints",
        "source_vocab_property_id",
        "json_ld_term",
    }
)


class StructuralViolation(ValueError):
    """An illegal structural mutation was rejected; the tree is unchanged."""

    pass


@dataclass
class _Location:
    node: PropertyNode
    parent: PropertyNode | None
    # The sibling list that holds the node, or None for an array's items node
    siblings: list[PropertyNode] | None


class PropertyTree:
    """A mutable credential property tree plus its editing state."""

    def __init__(
        self,
        properties: list[PropertyNode] | None = None,
        metadata: SchemaMetadata | None = None,
    ) -> None:
        self.properties: list[PropertyNode] = list(properties or [])
        self.metadata: SchemaMetadata = metadata or SchemaMetadata()
        self.selected_id: str | None = None
        self.expanded: set[str] = set()
        self.revision = 0
        _check_nodes(self.properties)

    # -----------------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------------

    def _locate(self, property_id: str) -> _Location | None:
        """Depth-first search: object properties in order, then array items."""

        def _walk(
            nodes: list[PropertyNode], parent: PropertyNode | None
        ) -> _Location | None:
            for node in nodes:
                if node.id == property_id:
                    return _Location(node, parent, nodes)
                found = _descend(node)
                if found:
                    return found
            return None

        def _descend(node: PropertyNode) -> _Location | None:
            if node.type == OBJECT and node.properties:
                found = _walk(node.properties, node)
                if found:
                    return found
            if node.type == ARRAY and node.items is not None:
                if node.items.id == property_id:
                    return _Location(node.items, node, None)
                return _descend(node.items)
            return None

        return _walk(self.properties, None)

    def find_property(self, property_id: str) -> PropertyNode | None:
        """Return the node with ``property_id``, or None if absent."""
        location = self._locate(property_id)
        return location.node if location else None

    def iter_properties(self) -> Iterator[PropertyNode]:
        """Yield every node in depth-first order."""
        for node in self.properties:
            yield from iter_subtree(node)

    def property_ids(self) -> list[str]:
        return [node.id for node in self.iter_properties()]

    # -----------------------------------------------------------------------
    # Structural mutations
    # -----------------------------------------------------------------------

    def add_property(
        self, parent_id: str | None = None, *, select: bool = True, **fields: Any
    ) -> PropertyNode | None:
        """Append a new property to the top level or to an object node.

        Args:
            parent_id: Target object node; top level when omitted.
            select: Make the new node the selected one.
            **fields: Initial field values (same names as ``update_property``).

        Returns:
            The new node, or None if ``parent_id`` is not in the tree.

        Raises:
            StructuralViolation: If the parent is not an object node or the
                initial fields are invalid.
        """
        parent = None
        if parent_id is not None:
            parent = self.find_property(parent_id)
            if parent is None:
                return None
            if parent.type != OBJECT:
                raise StructuralViolation(
                    f"Cannot add a property to {parent.type!r} node {parent_id!r}: "
                    "only object properties can have nested properties"
                )

        node = PropertyNode(type=STRING)
        _apply_fields(node, _validate_fields(fields))

        if parent is None:
            self.properties.append(node)
        else:
            parent.properties.append(node)
            self.expanded.add(parent.id)
        if select:
            self.selected_id = node.id
        self.revision += 1
        return node

    def set_array_items(
        self, property_id: str, item_type: str = STRING
    ) -> PropertyNode | None:
        """Give an array node a fresh items node, discarding any previous one."""
        node = self.find_property(property_id)
        if node is None:
            return None
        if node.type != ARRAY:
            raise StructuralViolation(
                f"Cannot set items on {node.type!r} node {property_id!r}"
            )
        _check_type(item_type)

        if node.items is not None:
            self._forget(node.items)
        node.items = PropertyNode(type=item_type)
        self.revision += 1
        return node.items

    def delete_property(self, property_id: str) -> bool:
        """Remove a node and its whole subtree.

        Returns:
            True if a node was removed, False if the id was not found.
        """
        location = self._locate(property_id)
        if location is None:
            return False

        if location.siblings is not None:
            location.siblings.remove(location.node)
        else:
            location.parent.items = None
        self._forget(location.node)
        self.revision += 1
        return True

    def move_property(self, property_id: str, direction: str) -> bool:
        """Swap a node with its previous ("up") or next ("down") sibling.

        Moves past either end of the sibling list, and moves of an array's
        items node, are no-ops.

        Returns:
            True if the order changed.
        """
        if direction not in DIRECTIONS:
            raise StructuralViolation(
                f"Invalid direction {direction!r}: expected one of {DIRECTIONS}"
            )
        location = self._locate(property_id)
        if location is None or location.siblings is None:
            return False

        siblings = location.siblings
        index = siblings.index(location.node)
        target = index - 1 if direction == "up" else index + 1
        if target < 0 or target >= len(siblings):
            return False

        siblings[index], siblings[target] = siblings[target], siblings[index]
        self.revision += 1
        return True

    def update_property(self, property_id: str, **changes: Any) -> PropertyNode | None:
        """Edit fields of an existing node.

        Changing ``type`` away from ``object`` or ``array`` discards the
        children that the new type cannot own.

        Returns:
            The updated node, or None if the id was not found.

        Raises:
            StructuralViolation: On unknown fields or an invalid type.
        """
        node = self.find_property(property_id)
        if node is None:
            return None
        validated = _validate_fields(changes)

        new_type = validated.get("type", node.type)
        if new_type != node.type:
            for child in node.children():
                self._forget(child)
        _apply_fields(node, validated)
        self.revision += 1
        return node

    # -----------------------------------------------------------------------
    # Editor bookkeeping
    # -----------------------------------------------------------------------

    def select_property(self, property_id: str | None) -> None:
        self.selected_id = property_id

    def toggle_expanded(self, property_id: str) -> None:
        if property_id in self.expanded:
            self.expanded.discard(property_id)
        else:
            self.expanded.add(property_id)

    def expand_all(self) -> None:
        """Expand every container node in the tree."""
        self.expanded = {
            node.id for node in self.iter_properties() if can_have_children(node)
        }

    def collapse_all(self) -> None:
        self.expanded = set()

    def _forget(self, node: PropertyNode) -> None:
        """Drop editor state that refers to ``node`` or its descendants."""
        for removed in iter_subtree(node):
            self.expanded.discard(removed.id)
            if self.selected_id == removed.id:
                self.selected_id = None

    # -----------------------------------------------------------------------
    # Metadata and lifecycle
    # -----------------------------------------------------------------------

    def update_metadata(self, **changes: Any) -> SchemaMetadata:
        """Edit schema metadata.

        When the title changes in JSON-LD context mode and no credential name
        is set yet, one is suggested from the title.
        """
        unknown = set(changes) - set(METADATA_FIELDS)
        if unknown:
            raise StructuralViolation(f"Unknown metadata fields: {sorted(unknown)}")
        if "mode" in changes and changes["mode"] not in SCHEMA_MODES:
            raise StructuralViolation(
                f"Invalid mode {changes['mode']!r}: expected one of {SCHEMA_MODES}"
            )

        for attr, value in changes.items():
            setattr(self.metadata, attr, value)

        if (
            "title" in changes
            and "credential_name" not in changes
            and self.metadata.mode == MODE_JSONLD_CONTEXT
            and not self.metadata.credential_name
        ):
            self.metadata.credential_name = (
                suggest_credential_name(self.metadata.title) or None
            )
        self.revision += 1
        return self.metadata

    def new_project(self, metadata: SchemaMetadata | None = None) -> None:
        """Discard the tree and editor state and start an empty project."""
        self.properties = []
        self.metadata = metadata or SchemaMetadata()
        self.selected_id = None
        self.expanded = set()
        self.revision += 1

    # -----------------------------------------------------------------------
    # Serialized form
    # -----------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "properties": [node.to_dict() for node in self.properties],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyTree:
        """Create a tree from a project document.

        Raises:
            StructuralViolation: If a node has an unknown type or two nodes
                share an id.
        """
        properties = [PropertyNode.from_dict(p) for p in data.get("properties") or []]
        return cls(properties, SchemaMetadata.from_dict(data.get("metadata")))

    @classmethod
    def from_json(cls, json_str: str) -> PropertyTree:
        return cls.from_dict(json.loads(json_str))


def load_project(path: Path | str) -> PropertyTree:
    """Load a project document from a JSON file."""
    return PropertyTree.from_json(Path(path).read_text(encoding="utf-8"))


def save_project(tree: PropertyTree, path: Path | str) -> Path:
    """Write a project document to a JSON file."""
    path = Path(path)
    path.write_text(tree.to_json() + "\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_type(node_type: str) -> None:
    if node_type not in PROPERTY_TYPES:
        raise StructuralViolation(
            f"Invalid property type {node_type!r}: expected one of {PROPERTY_TYPES}"
        )


def _check_nodes(properties: list[PropertyNode]) -> None:
    """Reject unknown types and ids shared by two nodes anywhere in the tree."""
    seen: set[str] = set()
    for node in properties:
        for descendant in iter_subtree(node):
            _check_type(descendant.type)
            if descendant.id in seen:
                raise StructuralViolation(f"Duplicate property id {descendant.id!r}")
            seen.add(descendant.id)


def _validate_fields(changes: dict[str, Any]) -> dict[str, Any]:
    """Check field names and values; return normalized values."""
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise StructuralViolation(f"Unknown property fields: {sorted(unknown)}")

    validated = dict(changes)
    if "type" in validated:
        _check_type(validated["type"])
    if "name" in validated and validated["name"] is None:
        validated["name"] = ""
    if "required" in validated:
        validated["required"] = bool(validated["required"])
    constraints = validated.get("constraints")
    if isinstance(constraints, dict):
        validated["constraints"] = PropertyConstraints.from_dict(constraints)
    elif constraints is not None and not isinstance(
        constraints, PropertyConstraints
    ):
        raise StructuralViolation(
            f"Invalid constraints: expected a mapping, got {type(constraints).__name__}"
        )
    return validated


def _apply_fields(node: PropertyNode, validated: dict[str, Any]) -> None:
    new_type = validated.get("type", node.type)
    if new_type != node.type:
        node.properties = [] if new_type == OBJECT else None
        node.items = None
    for attr, value in validated.items():
        setattr(node, attr, value)
