"""Derive canonical publication URLs for JSON-LD context documents.

The URL of a context is a pure function of the schema title, its category and
its credential name::

    derive_context_url("Home Credential", "property", "home-credential")
    -> https://openpropertyassociation.ca/credentials/contexts/property/home-credential.context.jsonld

CLI Usage:
    python -m schema_builder.context_url --help
    python -m schema_builder.context_url "Home Credential" --category property
    python -m schema_builder.context_url "Home Credential" --credential-name home-credential
"""

from __future__ import annotations

import argparse
import re
from urllib.parse import quote

from schema_builder.config import PublishingConfig

DEFAULT_CONTEXT_BASE_URL = PublishingConfig().context_base_url

CONTEXT_SUFFIX = ".context.jsonld"
DEFAULT_CONTEXT_FILENAME = "context.jsonld"

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_NON_NAME = re.compile(r"[^a-z0-9\s-]")


def slugify(text: str | None) -> str:
    """Lower-case ``text`` and collapse whitespace/punctuation runs to hyphens."""
    if not text:
        return ""
    return _NON_SLUG.sub("-", text.lower()).strip("-")


def suggest_credential_name(title: str | None) -> str:
    """Suggest a kebab-case credential name for a schema title.

    Punctuation is dropped rather than turned into a separator, so
    "Owner's Credential" becomes "owners-credential".
    """
    if not title:
        return ""
    name = _NON_NAME.sub("", title.lower())
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name)
    return name.strip("-")


def path_segment(text: str | None) -> str:
    """Percent-encode ``text`` as a single URL path segment.

    Slashes are encoded too, so a segment never splits or empties the path.
    Blank input gives an empty segment.
    """
    text = (text or "").strip()
    return quote(text, safe="") if text else ""


def context_filename(credential_name: str | None) -> str:
    """Filename a context is published under (``<name>.context.jsonld``)."""
    name = path_segment(credential_name)
    return f"{name}{CONTEXT_SUFFIX}" if name else DEFAULT_CONTEXT_FILENAME


def derive_context_url(
    title: str | None,
    category: str | None,
    credential_name: str | None,
    *,
    base_url: str = DEFAULT_CONTEXT_BASE_URL,
) -> str:
    """Compute the canonical URL of a schema's JSON-LD context.

    The credential name is used as the leaf when set; otherwise the
    slugified title is. The category becomes a path segment. Category and
    credential name keep their case and are only percent-encoded, so
    distinct values give distinct URLs. Empty or missing segments are
    omitted.

    Args:
        title: Schema title.
        category: Schema category (one path segment).
        credential_name: Credential name slug.
        base_url: Namespace under which contexts are published.

    Returns:
        An absolute URL with no empty path segments.
    """
    leaf = (credential_name or "").strip() or slugify(title)
    segments = [base_url.rstrip("/")]
    category_segment = path_segment(category)
    if category_segment:
        segments.append(category_segment)
    segments.append(context_filename(leaf))
    return "/".join(segments)


def main() -> None:
    """CLI entry point for context URL derivation."""
    parser = argparse.ArgumentParser(
        prog="schema_builder.context_url",
        description="Derive the publication URL of a JSON-LD context",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m schema_builder.context_url "Home Credential" --category property
  python -m schema_builder.context_url "Home Credential" --credential-name home-credential
        """,
    )
    parser.add_argument("title", help="Schema title")
    parser.add_argument("--category", "-c", default=None, help="Schema category")
    parser.add_argument(
        "--credential-name",
        "-n",
        default=None,
        help="Credential name slug (default: suggested from the title)",
    )
    args = parser.parse_args()

    config = PublishingConfig.from_env()
    print(
        derive_context_url(
            args.title,
            args.category,
            args.credential_name,
            base_url=config.context_base_url,
        )
    )


if __name__ == "__main__":
    main()
