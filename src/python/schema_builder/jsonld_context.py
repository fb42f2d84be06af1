"""Compile a property tree into a flat JSON-LD context document.

A context describes terms, not shapes: every leaf property anywhere in the
tree becomes one ``name -> IRI`` entry in a single flat term table, and
container properties (objects, arrays) contribute no entry of their own. The
computed context URL is stitched in as the document's ``@id``.

Term IRIs are chosen in this order:

1. the property's ``json_ld_term`` copied from the vocabulary (compact IRIs
   such as ``schema:name`` get their prefix declared; bare local names are
   placed in the context's own namespace),
2. the vocabulary namespace + ``source_vocab_property_id``,
3. ``<context url>#<name>``.

An unnamed ``items`` node of an array takes the array's name, since each
element of the array is a value of that term.
"""

from __future__ import annotations

from typing import Any, Iterator

from schema_builder.config import PublishingConfig
from schema_builder.context_url import DEFAULT_CONTEXT_BASE_URL, derive_context_url
from schema_builder.diagnostics import (
    CONFLICTING_TERM,
    EMPTY_NAME,
    UNKNOWN_PREFIX,
    CompileResult,
    CompilerWarning,
    child_path,
)
from schema_builder.model import ARRAY, OBJECT, PropertyNode, SchemaMetadata

DEFAULT_VOCAB_NAMESPACE = PublishingConfig().vocab_namespace

# Prefixes that may appear in vocabulary terms; "vocab" maps to the configured
# vocabulary namespace
KNOWN_PREFIXES = {
    "schema": "https://schema.org/",
    "cred": "https://www.w3.org/2018/credentials#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "vocab": None,
}

# Schemes that make a "prefix:suffix" value an absolute IRI
_ABSOLUTE_SCHEMES = {"http", "https", "urn", "did"}

# Terms the context header already defines
_RESERVED_TERMS = {"id", "type"}


def context_header() -> dict[str, Any]:
    return {
        "@version": 1.1,
        "@protected": True,
        "id": "@id",
        "type": "@type",
    }


def compile_jsonld_context(
    properties: list[PropertyNode],
    metadata: SchemaMetadata,
    *,
    base_url: str = DEFAULT_CONTEXT_BASE_URL,
    vocab_namespace: str = DEFAULT_VOCAB_NAMESPACE,
) -> CompileResult:
    """Flatten the tree into a JSON-LD context document.

    Args:
        properties: Top-level property nodes.
        metadata: Schema metadata (title, category and credential name
            determine the context URL).
        base_url: Namespace contexts are published under.
        vocab_namespace: Namespace vocabulary property ids are appended to.

    Returns:
        CompileResult whose document is ``{"@context": {...}, "@id": url}``.
    """
    warnings: list[CompilerWarning] = []
    context_url = derive_context_url(
        metadata.title,
        metadata.category,
        metadata.credential_name,
        base_url=base_url,
    )

    terms: dict[str, str] = {}
    prefixes: dict[str, str] = {}

    for leaf, name, owner, path in _leaves(properties, ""):
        if not name:
            warnings.append(
                CompilerWarning(
                    EMPTY_NAME,
                    "Property has no name; compiled under an empty term",
                    leaf.id,
                    path,
                )
            )
        if name in _RESERVED_TERMS or name.startswith("@"):
            warnings.append(
                CompilerWarning(
                    CONFLICTING_TERM,
                    f"Term {name!r} is reserved by the context; skipped",
                    leaf.id,
                    path,
                )
            )
            continue

        iri = _term_iri(leaf, owner, name, context_url, vocab_namespace)
        existing = terms.get(name)
        if existing is not None:
            if existing != iri:
                warnings.append(
                    CompilerWarning(
                        CONFLICTING_TERM,
                        f"Term {name!r} already maps to {existing!r}; "
                        f"{iri!r} is ignored",
                        leaf.id,
                        path,
                    )
                )
            continue

        prefix = _compact_prefix(iri)
        if prefix is not None:
            if prefix not in KNOWN_PREFIXES:
                warnings.append(
                    CompilerWarning(
                        UNKNOWN_PREFIX,
                        f"Prefix {prefix!r} in {iri!r} is not declared",
                        leaf.id,
                        path,
                    )
                )
            else:
                prefixes[prefix] = KNOWN_PREFIXES[prefix] or vocab_namespace
        terms[name] = iri

    context = context_header()
    for prefix in sorted(prefixes):
        context[prefix] = prefixes[prefix]
    for name, iri in terms.items():
        if name in prefixes:
            warnings.append(
                CompilerWarning(
                    CONFLICTING_TERM,
                    f"Term {name!r} collides with a prefix declaration; skipped",
                    None,
                    name,
                )
            )
            continue
        context[name] = iri

    return CompileResult({"@context": context, "@id": context_url}, warnings)


def _leaves(
    nodes: list[PropertyNode], path: str
) -> Iterator[tuple[PropertyNode, str, PropertyNode, str]]:
    """Yield ``(leaf, term name, owner, path)`` for every leaf in the tree.

    ``owner`` is the node whose name the term carries: the leaf itself, or
    the enclosing array for an unnamed items node.
    """
    for node in nodes:
        here = child_path(path, node.name)
        yield from _node_leaves(node, node.name or "", node, here)


def _node_leaves(
    node: PropertyNode, name: str, owner: PropertyNode, path: str
) -> Iterator[tuple[PropertyNode, str, PropertyNode, str]]:
    if node.type == OBJECT:
        yield from _leaves(node.properties or [], path)
    elif node.type == ARRAY:
        items = node.items
        if items is None:
            return
        if items.name:
            here = child_path(path, items.name)
            yield from _node_leaves(items, items.name, items, here)
        else:
            yield from _node_leaves(items, name, node, f"{path}[]")
    else:
        yield node, name, owner, path


def _term_iri(
    leaf: PropertyNode,
    owner: PropertyNode,
    name: str,
    context_url: str,
    vocab_namespace: str,
) -> str:
    for source in (leaf, owner):
        if source.json_ld_term:
            term = source.json_ld_term.strip()
            if ":" in term:
                return term
            return f"{context_url}#{term}"
        if source.source_vocab_property_id:
            return f"{vocab_namespace}{source.source_vocab_property_id}"
    return f"{context_url}#{name}"


def _compact_prefix(iri: str) -> str | None:
    """Return the prefix of a compact IRI, or None for absolute IRIs."""
    if "://" in iri:
        return None
    prefix, sep, _ = iri.partition(":")
    if not sep or prefix in _ABSOLUTE_SCHEMES:
        return None
    return prefix
