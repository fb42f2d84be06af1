"""Tests for schema_builder.tree module.

Tests cover:
- Adding properties at top level and under objects
- Rejected structural mutations leave the tree unchanged
- Deleting whole subtrees and clearing editor state
- Sibling moves, including idempotent boundary moves
- Type changes discarding children
- Metadata edits and credential name suggestion
- Project documents
"""

import json

import pytest
from schema_builder.model import (
    MODE_JSONLD_CONTEXT,
    PropertyConstraints,
    PropertyNode,
    iter_subtree,
)
from schema_builder.tree import (
    PropertyTree,
    StructuralViolation,
    load_project,
    save_project,
)


def names(nodes):
    return [n.name for n in nodes]


# =============================================================================
# Adding
# =============================================================================


class TestAddProperty:
    """Tests for PropertyTree.add_property."""

    def test_add_top_level_default(self, tree):
        node = tree.add_property()
        assert tree.properties == [node]
        assert node.type == "string"
        assert node.name == ""

    def test_add_selects_new_node(self, tree):
        node = tree.add_property(name="a")
        assert tree.selected_id == node.id

    def test_add_without_select(self, tree):
        tree.add_property(name="a", select=False)
        assert tree.selected_id is None

    def test_add_under_object_appends_and_expands(self, tree):
        parent = tree.add_property(name="address", type="object")
        first = tree.add_property(parent.id, name="street")
        second = tree.add_property(parent.id, name="city")

        assert parent.properties == [first, second]
        assert parent.id in tree.expanded

    def test_add_with_initial_fields(self, tree):
        node = tree.add_property(
            name="age", type="integer", required=True, constraints={"minimum": 0}
        )
        assert node.type == "integer"
        assert node.required is True
        assert node.constraints == PropertyConstraints(minimum=0)

    def test_unknown_parent_is_benign(self, tree):
        tree.add_property(name="a")
        revision = tree.revision

        assert tree.add_property("prop_missing", name="b") is None
        assert names(tree.properties) == ["a"]
        assert tree.revision == revision

    def test_add_under_scalar_is_rejected(self, tree):
        scalar = tree.add_property(name="city")
        before = tree.to_dict()

        with pytest.raises(StructuralViolation):
            tree.add_property(scalar.id, name="nested")
        assert tree.to_dict() == before

    def test_add_under_array_is_rejected(self, tree):
        array = tree.add_property(name="tags", type="array")
        with pytest.raises(StructuralViolation):
            tree.add_property(array.id, name="tag")
        assert array.items is None

    def test_invalid_initial_fields_are_rejected(self, tree):
        with pytest.raises(StructuralViolation):
            tree.add_property(type="date")
        with pytest.raises(StructuralViolation):
            tree.add_property(colour="blue")
        assert tree.properties == []

    def test_ids_are_unique(self, home_tree):
        ids = home_tree.property_ids()
        assert len(ids) == len(set(ids))


class TestSetArrayItems:
    """Tests for PropertyTree.set_array_items."""

    def test_creates_items(self, tree):
        array = tree.add_property(name="tags", type="array")
        items = tree.set_array_items(array.id)
        assert array.items is items
        assert items.type == "string"

    def test_replaces_items(self, tree):
        array = tree.add_property(name="tags", type="array")
        old = tree.set_array_items(array.id, "object")
        new = tree.set_array_items(array.id, "integer")
        assert array.items is new
        assert tree.find_property(old.id) is None

    def test_non_array_is_rejected(self, tree):
        node = tree.add_property(name="city")
        with pytest.raises(StructuralViolation):
            tree.set_array_items(node.id)

    def test_missing_id(self, tree):
        assert tree.set_array_items("prop_missing") is None


# =============================================================================
# Lookup
# =============================================================================


class TestFindProperty:
    """Tests for depth-first lookup."""

    def test_finds_nested_nodes(self, home_tree):
        for node in home_tree.iter_properties():
            assert home_tree.find_property(node.id) is node

    def test_finds_array_items_and_their_children(self, home_tree):
        rooms = home_tree.properties[2]
        label = rooms.items.properties[0]
        assert home_tree.find_property(rooms.items.id) is rooms.items
        assert home_tree.find_property(label.id) is label

    def test_missing(self, home_tree):
        assert home_tree.find_property("prop_missing") is None


# =============================================================================
# Deleting
# =============================================================================


class TestDeleteProperty:
    """Tests for PropertyTree.delete_property."""

    def test_removes_whole_subtree(self, home_tree):
        address = home_tree.properties[1]
        removed = [n.id for n in iter_subtree(address)]

        assert home_tree.delete_property(address.id) is True

        remaining = set(home_tree.property_ids())
        assert not remaining & set(removed)
        assert names(home_tree.properties) == ["full_name", "rooms"]

    def test_every_node_can_be_deleted(self, home_tree):
        for node_id in home_tree.property_ids():
            tree = PropertyTree.from_dict(home_tree.to_dict())
            node = tree.find_property(node_id)
            removed = {n.id for n in iter_subtree(node)}

            assert tree.delete_property(node_id)
            assert not set(tree.property_ids()) & removed

    def test_deleting_items_clears_array(self, home_tree):
        rooms = home_tree.properties[2]
        assert home_tree.delete_property(rooms.items.id)
        assert rooms.items is None

    def test_clears_selection_and_expansion(self, home_tree):
        rooms = home_tree.properties[2]
        label = rooms.items.properties[0]
        home_tree.select_property(label.id)
        home_tree.expand_all()

        home_tree.delete_property(rooms.id)

        assert home_tree.selected_id is None
        assert rooms.id not in home_tree.expanded
        assert rooms.items.id not in home_tree.expanded

    def test_keeps_unrelated_selection(self, home_tree):
        first = home_tree.properties[0]
        home_tree.select_property(first.id)
        home_tree.delete_property(home_tree.properties[1].id)
        assert home_tree.selected_id == first.id

    def test_missing_id_is_noop(self, home_tree):
        before = home_tree.to_dict()
        assert home_tree.delete_property("prop_missing") is False
        assert home_tree.to_dict() == before


# =============================================================================
# Moving
# =============================================================================


class TestMoveProperty:
    """Tests for PropertyTree.move_property."""

    def test_move_down_then_boundary(self, tree):
        a = tree.add_property(name="A")
        b = tree.add_property(name="B")

        assert tree.move_property(a.id, "down") is True
        assert names(tree.properties) == ["B", "A"]

        assert tree.move_property(b.id, "up") is False
        assert tree.move_property(a.id, "down") is False
        assert names(tree.properties) == ["B", "A"]

    def test_boundary_moves_are_idempotent(self, home_tree):
        before = json.dumps(home_tree.to_dict())
        first = home_tree.properties[0]
        last = home_tree.properties[-1]

        for _ in range(3):
            assert home_tree.move_property(first.id, "up") is False
            assert home_tree.move_property(last.id, "down") is False

        assert json.dumps(home_tree.to_dict()) == before

    def test_move_within_nested_object(self, home_tree):
        address = home_tree.properties[1]
        city = address.properties[1]

        assert home_tree.move_property(city.id, "up")
        assert names(address.properties) == ["city", "street"]
        assert names(home_tree.properties) == ["full_name", "address", "rooms"]

    def test_items_node_has_no_siblings(self, home_tree):
        rooms = home_tree.properties[2]
        assert home_tree.move_property(rooms.items.id, "up") is False

    def test_invalid_direction(self, home_tree):
        with pytest.raises(StructuralViolation):
            home_tree.move_property(home_tree.properties[0].id, "left")

    def test_missing_id(self, home_tree):
        assert home_tree.move_property("prop_missing", "up") is False


# =============================================================================
# Updating
# =============================================================================


class TestUpdateProperty:
    """Tests for PropertyTree.update_property."""

    def test_update_fields(self, home_tree):
        node = home_tree.properties[0]
        home_tree.update_property(node.id, display_name="Full Name", required=False)
        assert node.display_name == "Full Name"
        assert node.required is False

    def test_object_to_scalar_discards_children(self, home_tree):
        address = home_tree.properties[1]
        street = address.properties[0]
        home_tree.select_property(street.id)

        home_tree.update_property(address.id, type="string")

        assert address.properties is None
        assert home_tree.find_property(street.id) is None
        assert home_tree.selected_id is None

    def test_array_to_scalar_discards_items(self, home_tree):
        rooms = home_tree.properties[2]
        home_tree.update_property(rooms.id, type="boolean")
        assert rooms.items is None

    def test_scalar_to_object_starts_empty(self, home_tree):
        node = home_tree.properties[0]
        home_tree.update_property(node.id, type="object")
        assert node.properties == []

    def test_same_type_keeps_children(self, home_tree):
        address = home_tree.properties[1]
        home_tree.update_property(address.id, type="object", name="home_address")
        assert names(address.properties) == ["street", "city"]

    def test_invalid_changes_leave_node_untouched(self, home_tree):
        node = home_tree.properties[0]
        before = node.to_dict()
        with pytest.raises(StructuralViolation):
            home_tree.update_property(node.id, name="x", type="money")
        assert node.to_dict() == before

    def test_missing_id(self, home_tree):
        assert home_tree.update_property("prop_missing", name="x") is None


# =============================================================================
# Editor state and metadata
# =============================================================================


class TestEditorState:
    """Tests for selection and expansion bookkeeping."""

    def test_toggle_expanded(self, tree):
        tree.toggle_expanded("prop_x")
        assert "prop_x" in tree.expanded
        tree.toggle_expanded("prop_x")
        assert "prop_x" not in tree.expanded

    def test_expand_all_expands_containers_only(self, home_tree):
        home_tree.collapse_all()
        home_tree.expand_all()

        address = home_tree.properties[1]
        rooms = home_tree.properties[2]
        assert home_tree.expanded == {address.id, rooms.id, rooms.items.id}

    def test_bookkeeping_does_not_bump_revision(self, home_tree):
        revision = home_tree.revision
        home_tree.select_property(home_tree.properties[0].id)
        home_tree.expand_all()
        home_tree.collapse_all()
        assert home_tree.revision == revision


class TestMetadata:
    """Tests for metadata edits."""

    def test_title_suggests_credential_name_in_context_mode(self, tree):
        tree.update_metadata(mode=MODE_JSONLD_CONTEXT)
        tree.update_metadata(title="Owner's Home Credential")
        assert tree.metadata.credential_name == "owners-home-credential"

    def test_existing_credential_name_is_kept(self, tree):
        tree.update_metadata(mode=MODE_JSONLD_CONTEXT, credential_name="custom")
        tree.update_metadata(title="Home Credential")
        assert tree.metadata.credential_name == "custom"

    def test_no_suggestion_in_json_schema_mode(self, tree):
        tree.update_metadata(title="Home Credential")
        assert tree.metadata.credential_name is None

    def test_invalid_mode(self, tree):
        with pytest.raises(StructuralViolation):
            tree.update_metadata(mode="xml")

    def test_new_project_resets(self, home_tree):
        home_tree.select_property(home_tree.properties[0].id)
        home_tree.new_project()
        assert home_tree.properties == []
        assert home_tree.selected_id is None
        assert home_tree.metadata.title == ""


# =============================================================================
# Project documents
# =============================================================================


class TestProjectDocument:
    """Tests for the persisted project form."""

    def test_save_and_load(self, home_tree, tmp_path):
        path = save_project(home_tree, tmp_path / "project.json")
        loaded = load_project(path)

        assert loaded.to_dict() == home_tree.to_dict()
        assert path.read_text().endswith("\n")

    def test_document_shape(self, home_tree):
        d = home_tree.to_dict()
        assert set(d) == {"metadata", "properties"}
        assert d["metadata"]["title"] == "Home Credential"
        assert d["properties"][1]["properties"][0]["name"] == "street"

    def test_duplicate_ids_are_rejected(self):
        doc = {
            "properties": [
                {"id": "prop_1", "name": "a"},
                {"id": "prop_1", "name": "b"},
            ]
        }
        with pytest.raises(StructuralViolation):
            PropertyTree.from_dict(doc)

    def test_unknown_type_is_rejected(self):
        with pytest.raises(StructuralViolation):
            PropertyTree.from_dict({"properties": [{"id": "prop_1", "type": "money"}]})

    def test_constructor_rejects_unknown_type(self):
        with pytest.raises(StructuralViolation):
            PropertyTree([PropertyNode(type="money")])

    def test_constructor_rejects_unknown_nested_type(self):
        address = PropertyNode(
            name="address", type="object", properties=[PropertyNode(type="money")]
        )
        with pytest.raises(StructuralViolation):
            PropertyTree([address])
