"""Schema Builder - property-tree models and compilers for credential schemas.

This package provides the core of the credential schema console:
- Property tree data model (nodes, constraints, schema metadata)
- Tree mutation engine (add, delete, move, update, editor state)
- Vocabulary import from the data dictionary
- JSON Schema compilation for credential validation
- JSON-LD context compilation and context URL derivation

Usage:
    from schema_builder import PropertyTree, compile_tree
    from schema_builder.vocabulary import import_vocab_properties
    from schema_builder.context_url import derive_context_url
"""


# Use lazy imports to avoid RuntimeWarning when running modules directly
def __getattr__(name):
    """Lazy import to avoid import cycle when running modules directly."""
    if name in (
        "PropertyNode",
        "PropertyConstraints",
        "SchemaMetadata",
        "can_have_children",
        "new_property_id",
    ):
        from schema_builder import model

        return getattr(model, name)
    elif name in (
        "PropertyTree",
        "StructuralViolation",
        "load_project",
        "save_project",
    ):
        from schema_builder import tree

        return getattr(tree, name)
    elif name in (
        "VocabProperty",
        "VocabularyImporter",
        "ImportResult",
        "import_vocab_properties",
    ):
        from schema_builder import vocabulary

        return getattr(vocabulary, name)
    elif name in ("DictionaryClient", "DictionaryError"):
        from schema_builder import dictionary_client

        return getattr(dictionary_client, name)
    elif name in ("derive_context_url", "suggest_credential_name"):
        from schema_builder import context_url

        return getattr(context_url, name)
    elif name in ("CompileResult", "CompilerWarning"):
        from schema_builder import diagnostics

        return getattr(diagnostics, name)
    elif name == "compile_json_schema":
        from schema_builder import json_schema

        return json_schema.compile_json_schema
    elif name == "compile_jsonld_context":
        from schema_builder import jsonld_context

        return jsonld_context.compile_jsonld_context
    elif name in ("compile_tree", "build_schema_document"):
        from schema_builder import compiler

        return getattr(compiler, name)
    elif name == "PublishingConfig":
        from schema_builder import config

        return config.PublishingConfig
    raise AttributeError(f"module 'schema_builder' has no attribute {name!r}")


__all__ = [
    # Model
    "PropertyNode",
    "PropertyConstraints",
    "SchemaMetadata",
    "can_have_children",
    "new_property_id",
    # Tree
    "PropertyTree",
    "StructuralViolation",
    "load_project",
    "save_project",
    # Vocabulary
    "VocabProperty",
    "VocabularyImporter",
    "ImportResult",
    "import_vocab_properties",
    "DictionaryClient",
    "DictionaryError",
    # Context URL
    "derive_context_url",
    "suggest_credential_name",
    # Compiler
    "CompileResult",
    "CompilerWarning",
    "compile_json_schema",
    "compile_jsonld_context",
    "compile_tree",
    "build_schema_document",
    # Config
    "PublishingConfig",
]
