"""Pytest fixtures for schema_builder tests."""

import json

import pytest
from schema_builder.config import PublishingConfig
from schema_builder.model import MODE_JSONLD_CONTEXT, SchemaMetadata
from schema_builder.tree import PropertyTree
from schema_builder.vocabulary import VocabProperty

# ---------------------------------------------------------------------------
# Trees
# ---------------------------------------------------------------------------


@pytest.fixture
def tree():
    """An empty property tree."""
    return PropertyTree()


@pytest.fixture
def home_tree():
    """A small home credential tree.

    full_name (string, required)
    address (object, required)
        street (string, required)
        city (string)
    rooms (array of objects)
        [] (object)
            label (string, required)
    """
    t = PropertyTree(metadata=SchemaMetadata(title="Home Credential"))
    t.add_property(name="full_name", required=True)
    address = t.add_property(name="address", type="object", required=True)
    t.add_property(address.id, name="street", required=True)
    t.add_property(address.id, name="city")
    rooms = t.add_property(name="rooms", type="array")
    room = t.set_array_items(rooms.id, "object")
    t.add_property(room.id, name="label", required=True)
    return t


@pytest.fixture
def context_tree():
    """A tree in JSON-LD context mode with a category and credential name."""
    t = PropertyTree(
        metadata=SchemaMetadata(
            title="Home Credential",
            mode=MODE_JSONLD_CONTEXT,
            category="property",
            credential_name="home-credential",
        )
    )
    t.add_property(name="full_name")
    address = t.add_property(name="address", type="object")
    t.add_property(address.id, name="city")
    return t


@pytest.fixture
def config():
    """Publishing configuration pointing at a test namespace."""
    return PublishingConfig(base_url="https://example.org")


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


VOCAB_TYPES = [
    {
        "id": "vocab-home",
        "name": "Home",
        "properties": [
            {
                "id": "prop-price",
                "name": "price",
                "displayName": "Price",
                "valueType": "currency",
                "jsonLdTerm": "schema:price",
            },
            {
                "id": "prop-built",
                "name": "built_on",
                "displayName": "Built On",
                "valueType": "date",
            },
            {
                "id": "prop-owner",
                "name": "owner_email",
                "displayName": "Owner Email",
                "valueType": "email",
                "constraints": {"maxLength": 254},
            },
        ],
    },
    {
        "id": "vocab-person",
        "name": "Person",
        "properties": [
            {
                "id": "prop-given",
                "name": "given_name",
                "displayName": "Given Name",
                "valueType": "string",
            },
        ],
    },
]


@pytest.fixture
def vocab_types():
    return json.loads(json.dumps(VOCAB_TYPES))


@pytest.fixture
def home_candidates(vocab_types):
    return [VocabProperty.from_dict(p) for p in vocab_types[0]["properties"]]


@pytest.fixture
def dictionary_export(tmp_path, vocab_types):
    """A data dictionary export file with two vocab types."""
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps({"vocabTypes": vocab_types}))
    return path
