"""Compile property-tree projects into publishable artifacts.

The tree's mode selects the output: ``json-schema`` projects compile into a
JSON Schema (2020-12) validation document, ``jsonld-context`` projects into a
JSON-LD context. Both passes are total; problems are reported as warnings
alongside the document.

CLI Usage:
    python -m schema_builder.compiler --help
    python -m schema_builder.compiler compile project.json
    python -m schema_builder.compiler compile project.json --output-dir artifacts/
    python -m schema_builder.compiler context-url project.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from schema_builder.config import PublishingConfig
from schema_builder.context_url import (
    context_filename,
    derive_context_url,
    path_segment,
    slugify,
)
from schema_builder.diagnostics import CompileResult
from schema_builder.json_schema import JSON_SCHEMA_DIALECT, compile_json_schema
from schema_builder.jsonld_context import compile_jsonld_context
from schema_builder.model import MODE_JSONLD_CONTEXT, SchemaMetadata
from schema_builder.tree import PropertyTree, StructuralViolation, load_project

SCHEMA_SUFFIX = ".json"

_verbose = False


def debug(msg: str) -> None:
    if _verbose:
        print(f"[DEBUG] {msg}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def compile_tree(
    tree: PropertyTree, config: PublishingConfig | None = None
) -> CompileResult:
    """Compile a tree with the pass its metadata mode selects.

    Args:
        tree: The property tree to compile.
        config: Publishing configuration (defaults when omitted).

    Returns:
        CompileResult with either the validation schema or the context.
    """
    config = config or PublishingConfig()
    if tree.metadata.mode == MODE_JSONLD_CONTEXT:
        return compile_jsonld_context(
            tree.properties,
            tree.metadata,
            base_url=config.context_base_url,
            vocab_namespace=config.vocab_namespace,
        )
    return compile_json_schema(tree.properties, tree.metadata)


def artifact_filename(metadata: SchemaMetadata) -> str:
    """Filename the compiled artifact is published under."""
    if metadata.mode == MODE_JSONLD_CONTEXT:
        name = (metadata.credential_name or "").strip() or slugify(metadata.title)
        return context_filename(name)
    return f"{slugify(metadata.title) or 'schema'}{SCHEMA_SUFFIX}"


def artifact_url(
    metadata: SchemaMetadata, config: PublishingConfig | None = None
) -> str:
    """Absolute URL the compiled artifact is published at."""
    config = config or PublishingConfig()
    if metadata.mode == MODE_JSONLD_CONTEXT:
        return derive_context_url(
            metadata.title,
            metadata.category,
            metadata.credential_name,
            base_url=config.context_base_url,
        )
    segments = [config.schema_base_url]
    category = path_segment(metadata.category)
    if category:
        segments.append(category)
    segments.append(artifact_filename(metadata))
    return "/".join(segments)


def build_schema_document(
    result: CompileResult,
    tree: PropertyTree,
    config: PublishingConfig | None = None,
) -> dict[str, Any]:
    """Wrap a compiled validation schema with its publishing header.

    Adds ``$schema``, ``$id``, ``title`` and ``description`` in front of the
    compiled root object schema. Context documents already carry their own
    ``@id`` and are returned unchanged.
    """
    if tree.metadata.mode == MODE_JSONLD_CONTEXT:
        return result.document

    document: dict[str, Any] = {
        "$schema": JSON_SCHEMA_DIALECT,
        "$id": artifact_url(tree.metadata, config),
    }
    if tree.metadata.title:
        document["title"] = tree.metadata.title
    if tree.metadata.description:
        document["description"] = tree.metadata.description
    document.update(result.document)
    return document


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _compile_command(args: argparse.Namespace, config: PublishingConfig) -> int:
    tree = load_project(args.project)
    debug(f"loaded {len(tree.property_ids())} properties, mode={tree.metadata.mode}")

    result = compile_tree(tree, config)
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    document = build_schema_document(result, tree, config)
    output = json.dumps(document, indent=2, ensure_ascii=False)

    if args.output_dir:
        out_dir = Path(args.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / artifact_filename(tree.metadata)
        out_path.write_text(output + "\n", encoding="utf-8")
        print(f"Artifact written to {out_path}", file=sys.stderr)
    else:
        print(output)

    if args.strict and result.warnings:
        return 1
    return 0


def _context_url_command(args: argparse.Namespace, config: PublishingConfig) -> int:
    tree = load_project(args.project)
    print(
        derive_context_url(
            tree.metadata.title,
            tree.metadata.category,
            tree.metadata.credential_name,
            base_url=config.context_base_url,
        )
    )
    return 0


def main() -> None:
    """CLI entry point for artifact compilation."""
    global _verbose

    parser = argparse.ArgumentParser(
        prog="schema_builder.compiler",
        description="Compile credential property trees into JSON Schema "
        "or JSON-LD context",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m schema_builder.compiler compile project.json
  python -m schema_builder.compiler compile project.json --output-dir artifacts/
  python -m schema_builder.compiler compile project.json --strict
  python -m schema_builder.compiler context-url project.json
        """,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Print debug output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile a project document",
        description="Compile a saved project into the artifact its mode selects.",
    )
    compile_parser.add_argument("project", help="Project JSON file")
    compile_parser.add_argument(
        "--output-dir", "-o", help="Write the artifact here (default: stdout)"
    )
    compile_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when the compiler reports warnings",
    )

    url_parser = subparsers.add_parser(
        "context-url",
        help="Print the context URL of a project",
        description="Derive the publication URL of a project's JSON-LD context.",
    )
    url_parser.add_argument("project", help="Project JSON file")

    args = parser.parse_args()
    _verbose = args.verbose

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = PublishingConfig.from_env()
    debug(f"config: {config}")

    commands = {
        "compile": _compile_command,
        "context-url": _context_url_command,
    }
    try:
        status = commands[args.command](args, config)
    except (OSError, json.JSONDecodeError, StructuralViolation) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
