"""Tests for schema_builder.model module."""

from schema_builder.model import (
    ARRAY,
    CONTAINER_TYPES,
    OBJECT,
    PROPERTY_TYPE_LABELS,
    PROPERTY_TYPES,
    PropertyConstraints,
    PropertyNode,
    SchemaMetadata,
    can_have_children,
    iter_subtree,
    new_property_id,
)


class TestPropertyIds:
    """Tests for property id generation."""

    def test_prefix(self):
        assert new_property_id().startswith("prop_")

    def test_unique(self):
        ids = {new_property_id() for _ in range(500)}
        assert len(ids) == 500

    def test_nodes_get_fresh_ids(self):
        assert PropertyNode().id != PropertyNode().id


class TestPropertyNode:
    """Tests for the PropertyNode contract."""

    def test_defaults(self):
        node = PropertyNode()
        assert node.type == "string"
        assert node.name == ""
        assert node.required is False
        assert node.properties is None
        assert node.items is None

    def test_object_starts_with_empty_properties(self):
        node = PropertyNode(type=OBJECT)
        assert node.properties == []

    def test_can_have_children(self):
        for node_type in PROPERTY_TYPES:
            node = PropertyNode(type=node_type)
            assert can_have_children(node) == (node_type in CONTAINER_TYPES)

    def test_every_type_has_a_label(self):
        assert set(PROPERTY_TYPE_LABELS) == set(PROPERTY_TYPES)
        assert PROPERTY_TYPE_LABELS["array"] == "List"

    def test_iter_subtree_order(self):
        """Properties come in order, then items."""
        a = PropertyNode(name="a")
        b = PropertyNode(name="b", type=ARRAY, items=PropertyNode(name="b_item"))
        root = PropertyNode(name="root", type=OBJECT, properties=[a, b])

        assert [n.name for n in iter_subtree(root)] == ["root", "a", "b", "b_item"]


class TestSerializedForm:
    """Tests for the camelCase serialized form."""

    def test_to_dict_omits_unset_fields(self):
        node = PropertyNode(id="prop_1", name="full_name")
        assert node.to_dict() == {
            "id": "prop_1",
            "name": "full_name",
            "type": "string",
            "required": False,
        }

    def test_to_dict_uses_camel_case(self):
        node = PropertyNode(
            id="prop_1",
            name="price",
            type="number",
            display_name="Price",
            constraints=PropertyConstraints(format="currency", max_length=None),
            source_vocab_property_id="prop-price",
            json_ld_term="schema:price",
        )
        d = node.to_dict()
        assert d["displayName"] == "Price"
        assert d["constraints"] == {"format": "currency"}
        assert d["sourceVocabPropertyId"] == "prop-price"
        assert d["jsonLdTerm"] == "schema:price"

    def test_nested_round_trip(self):
        node = PropertyNode(
            name="rooms",
            type=ARRAY,
            items=PropertyNode(
                type=OBJECT, properties=[PropertyNode(name="label", required=True)]
            ),
        )
        restored = PropertyNode.from_dict(node.to_dict())
        assert restored == node

    def test_from_dict_drops_children_the_type_cannot_own(self):
        data = {
            "id": "prop_1",
            "name": "city",
            "type": "string",
            "properties": [{"id": "prop_2", "name": "stray"}],
            "items": {"id": "prop_3"},
        }
        node = PropertyNode.from_dict(data)
        assert node.properties is None
        assert node.items is None

    def test_from_dict_generates_missing_id(self):
        node = PropertyNode.from_dict({"name": "city"})
        assert node.id.startswith("prop_")


class TestPropertyConstraints:
    """Tests for PropertyConstraints."""

    def test_present_skips_empty_values(self):
        constraints = PropertyConstraints(max_length=10, pattern="", enum=[])
        assert constraints.present() == {"max_length": 10}

    def test_from_dict_accepts_both_key_styles(self):
        camel = PropertyConstraints.from_dict({"maxLength": 5, "minLength": 1})
        snake = PropertyConstraints.from_dict({"max_length": 5, "min_length": 1})
        assert camel == snake

    def test_copy_is_independent(self):
        original = PropertyConstraints(enum=["a", "b"])
        copied = original.copy()
        copied.enum.append("c")
        assert original.enum == ["a", "b"]

    def test_is_empty(self):
        assert PropertyConstraints().is_empty()
        assert not PropertyConstraints(minimum=0).is_empty()


class TestSchemaMetadata:
    """Tests for SchemaMetadata."""

    def test_defaults_to_strict_json_schema(self):
        metadata = SchemaMetadata()
        assert metadata.mode == "json-schema"
        assert metadata.additional_properties is False

    def test_serialized_keys(self):
        metadata = SchemaMetadata(
            title="Home", credential_name="home", additional_properties=True
        )
        d = metadata.to_dict()
        assert d["credentialName"] == "home"
        assert d["additionalProperties"] is True
        assert "category" not in d
        assert SchemaMetadata.from_dict(d) == metadata
