"""Import vocabulary properties from the data dictionary into a property tree.

A vocabulary property (``VocabProperty``) is a reusable attribute definition
kept in the console's data dictionary, grouped by vocabulary type. Importing
copies it into the tree as a new ``PropertyNode`` that remembers where it
came from through ``source_vocab_property_id``; the tree never holds a live
reference to the dictionary.

Value types are mapped through a fixed table (``VALUE_TYPE_MAP``). Properties
already present under the target (same vocabulary id, or same name for nodes
created by hand) are skipped rather than duplicated.

CLI Usage:
    python -m schema_builder.vocabulary --help
    python -m schema_builder.vocabulary types --vocab dictionary.json
    python -m schema_builder.vocabulary import project.json --vocab dictionary.json --type vocab-home
    python -m schema_builder.vocabulary import project.json --api --type vocab-home --parent prop_abc
"""

from __future__ import annotations

import argparse
import asyncio
import json
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from schema_builder.config import PublishingConfig
from schema_builder.model import (
    ARRAY,
    BOOLEAN,
    INTEGER,
    NUMBER,
    OBJECT,
    STRING,
    PropertyConstraints,
    PropertyNode,
)
from schema_builder.tree import (
    PropertyTree,
    StructuralViolation,
    load_project,
    save_project,
)

# ---------------------------------------------------------------------------
# Vocabulary properties
# ---------------------------------------------------------------------------


@dataclass
class VocabProperty:
    """A property definition from the data dictionary."""

    id: str
    name: str
    display_name: str = ""
    value_type: str = "string"
    description: str | None = None
    constraints: PropertyConstraints | None = None
    json_ld_term: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "valueType": self.value_type,
        }
        if self.description is not None:
            d["description"] = self.description
        if self.constraints is not None and not self.constraints.is_empty():
            d["constraints"] = self.constraints.to_dict()
        if self.json_ld_term is not None:
            d["jsonLdTerm"] = self.json_ld_term
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VocabProperty:
        constraints = None
        if data.get("constraints"):
            constraints = PropertyConstraints.from_dict(data["constraints"])
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            display_name=data.get("displayName") or "",
            value_type=data.get("valueType") or "string",
            description=data.get("description") or None,
            constraints=constraints,
            json_ld_term=data.get("jsonLdTerm") or None,
        )


# ---------------------------------------------------------------------------
# Value type mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeMapping:
    """Property type (and implied format) a vocabulary value type maps to."""

    type: str
    format: str | None = None
    items: TypeMapping | None = None


VALUE_TYPE_MAP = {
    "string": TypeMapping(STRING),
    "number": TypeMapping(NUMBER),
    "integer": TypeMapping(INTEGER),
    "boolean": TypeMapping(BOOLEAN),
    "date": TypeMapping(STRING, "date"),
    "datetime": TypeMapping(STRING, "date-time"),
    "date-time": TypeMapping(STRING, "date-time"),
    "currency": TypeMapping(NUMBER, "currency"),
    "url": TypeMapping(STRING, "uri"),
    "email": TypeMapping(STRING, "email"),
    "phone": TypeMapping(STRING),
    "object": TypeMapping(OBJECT),
    "array": TypeMapping(ARRAY, items=TypeMapping(STRING)),
}

_ARRAY_OF = re.compile(r"array(?:-of-(?P<dash>.+)|<(?P<angle>.+)>)")


def map_value_type(value_type: str | None) -> TypeMapping:
    """Map a dictionary value type to a property type.

    ``array-of-X`` and ``array<X>`` map to an array whose items are the
    mapping of ``X``. Unknown value types fall back to ``string``.
    """
    key = (value_type or "").strip().lower()
    match = _ARRAY_OF.fullmatch(key)
    if match:
        inner = match.group("dash") or match.group("angle")
        return TypeMapping(ARRAY, items=map_value_type(inner))
    return VALUE_TYPE_MAP.get(key, VALUE_TYPE_MAP["string"])


def _with_format(
    constraints: PropertyConstraints | None, fmt: str | None
) -> PropertyConstraints | None:
    """Copy constraints and apply the format implied by the value type.

    The implied format replaces the candidate's own: for currency values the
    dictionary keeps a currency code (``CAD``) in ``format``.
    """
    result = constraints.copy() if constraints is not None else None
    if fmt:
        if result is None:
            result = PropertyConstraints(format=fmt)
        else:
            result.format = fmt
    if result is not None and result.is_empty():
        return None
    return result


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


@dataclass
class ImportResult:
    """Outcome of one import: created nodes and skipped duplicates."""

    imported: list[PropertyNode] = field(default_factory=list)
    skipped: list[VocabProperty] = field(default_factory=list)
    target_found: bool = True

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


def import_vocab_properties(
    tree: PropertyTree,
    candidates: list[VocabProperty],
    parent_id: str | None = None,
) -> ImportResult:
    """Add vocabulary properties as children of ``parent_id`` (top level when None).

    Candidates matching an existing child are skipped: a child imported from
    the vocabulary matches on its source id, a hand-made child on its name.
    Duplicates within ``candidates`` collapse to the first one.

    Returns:
        ImportResult; ``target_found`` is False (and nothing is imported)
        when ``parent_id`` is not in the tree.

    Raises:
        StructuralViolation: If the target is not an object node. Nothing is
            imported in that case.
    """
    if parent_id is None:
        siblings = tree.properties
    else:
        parent = tree.find_property(parent_id)
        if parent is None:
            return ImportResult(target_found=False)
        if parent.type != OBJECT:
            raise StructuralViolation(
                f"Cannot import into {parent.type!r} node {parent_id!r}: "
                "only object properties can have nested properties"
            )
        siblings = parent.properties

    known_ids = {
        c.source_vocab_property_id for c in siblings if c.source_vocab_property_id
    }
    known_names = {
        c.name for c in siblings if not c.source_vocab_property_id and c.name
    }

    result = ImportResult()
    accepted: list[VocabProperty] = []
    for candidate in candidates:
        if (candidate.id and candidate.id in known_ids) or (
            candidate.name and candidate.name in known_names
        ):
            result.skipped.append(candidate)
            continue
        accepted.append(candidate)
        if candidate.id:
            known_ids.add(candidate.id)
        else:
            known_names.add(candidate.name)

    for candidate in accepted:
        result.imported.append(_add_candidate(tree, candidate, parent_id))
    return result


def _add_candidate(
    tree: PropertyTree, candidate: VocabProperty, parent_id: str | None
) -> PropertyNode:
    mapping = map_value_type(candidate.value_type)
    fields: dict[str, Any] = {
        "name": candidate.name,
        "display_name": candidate.display_name or None,
        "description": candidate.description,
        "type": mapping.type,
        "source_vocab_property_id": candidate.id or None,
        "json_ld_term": candidate.json_ld_term,
    }
    if mapping.type != ARRAY:
        fields["constraints"] = _with_format(candidate.constraints, mapping.format)

    node = tree.add_property(parent_id, select=False, **fields)

    # Constraints of array-valued properties describe their elements
    items_mapping = mapping.items
    owner = node
    while items_mapping is not None:
        items = tree.set_array_items(owner.id, items_mapping.type)
        if items_mapping.items is None:
            constraints = _with_format(candidate.constraints, items_mapping.format)
            if constraints is not None:
                tree.update_property(items.id, constraints=constraints)
        owner, items_mapping = items, items_mapping.items
    return node


# ---------------------------------------------------------------------------
# Async importer
# ---------------------------------------------------------------------------

Fetch = Callable[[str], Awaitable[list[VocabProperty]]]


class VocabularyImporter:
    """Fetches vocabulary candidates and applies the latest fetch only.

    Each ``import_from`` call supersedes the ones still in flight. A fetch
    result is dropped (``None`` is returned) when a newer import started,
    when the importer was cancelled or closed, or when the tree changed
    while the fetch was pending.

    Usage:
        importer = VocabularyImporter(tree, client.fetch_vocab_properties)
        result = await importer.import_from("vocab-home", parent_id)
    """

    def __init__(self, tree: PropertyTree, fetch: Fetch):
        self.tree = tree
        self.fetch = fetch
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def import_from(
        self, classification: str, parent_id: str | None = None
    ) -> ImportResult | None:
        if self._closed:
            return None
        self._generation += 1
        generation = self._generation
        revision = self.tree.revision

        candidates = await self.fetch(classification)

        if self._closed or generation != self._generation:
            return None
        if self.tree.revision != revision:
            return None
        return import_vocab_properties(self.tree, candidates, parent_id)

    def cancel(self) -> None:
        """Abandon every import still in flight."""
        self._generation += 1

    def close(self) -> None:
        self._closed = True
        self.cancel()


# ---------------------------------------------------------------------------
# Dictionary exports
# ---------------------------------------------------------------------------


def load_vocab_types(path: Path | str) -> list[dict[str, Any]]:
    """Read the vocabulary types of a data dictionary export."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("vocabTypes"), list):
        return data["vocabTypes"]
    if isinstance(data, dict) and "properties" in data:
        return [data]
    if isinstance(data, list):
        return []
    raise ValueError(f"Unrecognized vocabulary document: {path}")


def load_vocab_properties(
    path: Path | str, vocab_type_id: str | None = None
) -> list[VocabProperty]:
    """Read vocabulary properties from a data dictionary export.

    Accepts ``{"vocabTypes": [...]}``, a single vocab type with
    ``properties``, or a bare list of properties. With ``vocab_type_id``
    only that type's properties are returned.

    Raises:
        ValueError: If the document is not recognized or the requested
            vocab type is missing.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        if vocab_type_id is not None:
            raise ValueError(
                f"{path} is a bare property list; "
                f"it has no vocab type {vocab_type_id!r}"
            )
        return [VocabProperty.from_dict(p) for p in data]

    vocab_types = load_vocab_types(path)
    if vocab_type_id is not None:
        vocab_types = [t for t in vocab_types if t.get("id") == vocab_type_id]
        if not vocab_types:
            raise ValueError(f"Vocab type {vocab_type_id!r} not found in {path}")

    return [
        VocabProperty.from_dict(p)
        for vocab_type in vocab_types
        for p in vocab_type.get("properties") or []
    ]


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


async def _fetch_from_api(
    config: PublishingConfig, vocab_type_id: str
) -> list[VocabProperty]:
    from schema_builder.dictionary_client import DictionaryClient

    async with DictionaryClient(config.dictionary_api_url) as client:
        return await client.fetch_vocab_properties(vocab_type_id)


async def _list_from_api(config: PublishingConfig) -> list[dict[str, Any]]:
    from schema_builder.dictionary_client import DictionaryClient

    async with DictionaryClient(config.dictionary_api_url) as client:
        return await client.list_vocab_types()


def _import_command(args: argparse.Namespace, config: PublishingConfig) -> None:
    tree = load_project(args.project)
    if args.api:
        candidates = asyncio.run(_fetch_from_api(config, args.type))
    else:
        candidates = load_vocab_properties(args.vocab, args.type)

    result = import_vocab_properties(tree, candidates, args.parent)
    if not result.target_found:
        raise ValueError(f"Parent property {args.parent!r} not found")

    out_path = save_project(tree, args.output or args.project)
    print(
        f"Imported {result.imported_count} properties "
        f"({result.skipped_count} already present) -> {out_path}"
    )
    for candidate in result.skipped:
        print(f"  skipped {candidate.name} ({candidate.id})", file=sys.stderr)


def _types_command(args: argparse.Namespace, config: PublishingConfig) -> None:
    if args.api:
        vocab_types = asyncio.run(_list_from_api(config))
    else:
        vocab_types = load_vocab_types(args.vocab)

    print("Vocabulary types:")
    for vocab_type in vocab_types:
        count = len(vocab_type.get("properties") or [])
        name = vocab_type.get("name", "")
        print(f"  {vocab_type.get('id')}  {name} ({count} properties)")


def main() -> None:
    """CLI entry point for vocabulary import."""
    parser = argparse.ArgumentParser(
        prog="schema_builder.vocabulary",
        description="Import data dictionary properties into a credential project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m schema_builder.vocabulary types --vocab dictionary.json
  python -m schema_builder.vocabulary types --api
  python -m schema_builder.vocabulary import project.json --vocab dictionary.json --type vocab-home
  python -m schema_builder.vocabulary import project.json --api --type vocab-home --parent prop_abc
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_source(sub: argparse.ArgumentParser) -> None:
        source = sub.add_mutually_exclusive_group(required=True)
        source.add_argument("--vocab", help="Data dictionary export (JSON)")
        source.add_argument(
            "--api",
            action="store_true",
            help="Read from the dictionary API (DICTIONARY_API_URL)",
        )

    import_parser = subparsers.add_parser(
        "import",
        help="Import vocabulary properties into a project",
        description="Add the properties of a vocabulary type to a saved project.",
    )
    import_parser.add_argument("project", help="Project JSON file")
    add_source(import_parser)
    import_parser.add_argument("--type", "-t", help="Vocabulary type id")
    import_parser.add_argument(
        "--parent",
        "-p",
        default=None,
        help="Target object property id (default: top level)",
    )
    import_parser.add_argument(
        "--output", "-o", help="Output project file (default: overwrite input)"
    )

    types_parser = subparsers.add_parser(
        "types",
        help="List vocabulary types",
        description="Show the vocabulary types of a dictionary export or the API.",
    )
    add_source(types_parser)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "import" and args.api and not args.type:
        parser.error("--type is required with --api")

    config = PublishingConfig.from_env()
    commands = {"import": _import_command, "types": _types_command}
    try:
        commands[args.command](args, config)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
