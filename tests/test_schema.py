"""
tests/test_schema.py
Unit tests for layergen.schema and the soft checks in layergen.validators.

Tests cover:
- Injected field order (identifier, scope, user, audit, hierarchy, translations)
- Collection options switching injected fields on and off
- Collisions with injected names
- Unknown types, empty maps and malformed definitions
- Reference and repeater parsing
- Loading field maps from YAML and JSON files
- Schema warnings (translatable + required, stray maxLength)
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict, List

import pytest

from layergen.errors import NamingCollisionError, SchemaError, UnknownFieldTypeError
from layergen.models import CollectionOptions, FieldOrigin
from layergen.schema import (
    AUDIT_FIELDS,
    SCOPE_FIELDS,
    load_fields_file,
    parse_schema,
    reserved_names,
)
from layergen.typemap import TypeTable
from layergen.validators import validate_schema


def _names(fields) -> List[str]:
    return [f.name for f in fields]


# ===========================================================================
# Injection order
# ===========================================================================


class TestInjection:
    """Implicit fields are injected around the user fields in a fixed order."""

    def test_default_order(self, posts_fields: Dict[str, Any]) -> None:
        schema = parse_schema(posts_fields, collection="posts")
        assert _names(schema.fields) == [
            "id", *SCOPE_FIELDS, "title", *AUDIT_FIELDS,
        ]

    def test_user_fields_keep_declaration_order(self, events_fields: Dict[str, Any]) -> None:
        schema = parse_schema(events_fields, collection="events")
        assert _names(schema.user_fields) == list(events_fields)

    def test_hierarchy_fields(self, posts_fields: Dict[str, Any]) -> None:
        schema = parse_schema(posts_fields, CollectionOptions(hierarchy=True), collection="posts")
        assert _names(schema.fields)[-4:] == ["parentId", "path", "depth", "order"]
        assert schema.field("parentId").nullable
        assert schema.field("path").read_only

    def test_sortable_adds_only_order(self, posts_fields: Dict[str, Any]) -> None:
        schema = parse_schema(posts_fields, CollectionOptions(sortable=True), collection="posts")
        assert _names(schema.by_origin(FieldOrigin.HIERARCHY)) == ["order"]

    def test_translatable_field_adds_translations_last(self, events_fields: Dict[str, Any]) -> None:
        schema = parse_schema(events_fields, collection="events")
        assert schema.fields[-1].name == "translations"
        assert schema.fields[-1].origin == FieldOrigin.TRANSLATION
        assert _names(schema.translatable_fields) == ["summary"]

    def test_collection_translatable_adds_shadow_column(self, posts_fields: Dict[str, Any]) -> None:
        schema = parse_schema(posts_fields, CollectionOptions(translatable=True), collection="posts")
        assert schema.has_translations
        assert schema.translatable_fields == []

    def test_no_translations_disables_translation(self, events_fields: Dict[str, Any]) -> None:
        schema = parse_schema(events_fields, CollectionOptions(no_translations=True), collection="events")
        assert not schema.has_translations
        assert not schema.field("summary").is_translatable

    def test_identifier_type_from_schema(self, posts_fields: Dict[str, Any]) -> None:
        schema = parse_schema(posts_fields, collection="posts")
        assert schema.fields[0].canonical_type == "uuid"
        assert schema.fields[0].is_primary_key

    def test_identifier_defaults_to_string(self) -> None:
        schema = parse_schema({"name": {"type": "string"}}, collection="tags")
        assert schema.fields[0].canonical_type == "string"

    def test_reserved_names_follow_options(self) -> None:
        plain = reserved_names(CollectionOptions())
        tree = reserved_names(CollectionOptions(hierarchy=True))
        assert "parentId" not in plain
        assert tree["parentId"] == FieldOrigin.HIERARCHY
        assert plain["createdAt"] == FieldOrigin.AUDIT


# ===========================================================================
# Failures
# ===========================================================================


class TestSchemaErrors:
    """Hard failures raised while parsing."""

    def test_empty_map(self) -> None:
        with pytest.raises(SchemaError, match="empty"):
            parse_schema({}, collection="posts")

    def test_unknown_type(self) -> None:
        with pytest.raises(UnknownFieldTypeError) as info:
            parse_schema({"cover": {"type": "image"}}, collection="posts")
        assert info.value.type_name == "image"
        assert info.value.field == "cover"

    def test_feature_manifest_adds_types(self) -> None:
        types, missing = TypeTable.from_features(["assets"])
        schema = parse_schema({"cover": {"type": "image"}}, collection="posts", types=types)
        assert missing == []
        assert schema.field("cover").canonical_type == "image"

    def test_unknown_repeater_property_type(self) -> None:
        fields = {"slots": {"type": "repeater", "meta": {"properties": {"x": {"type": "bogus"}}}}}
        with pytest.raises(UnknownFieldTypeError) as info:
            parse_schema(fields, collection="events")
        assert info.value.field == "slots.x"

    @pytest.mark.parametrize("name", ["createdAt", "teamId", "owner", "updatedBy"])
    def test_collision_with_injected_field(self, name: str) -> None:
        with pytest.raises(NamingCollisionError):
            parse_schema({name: {"type": "string"}}, collection="posts")

    def test_collision_with_hierarchy_only_when_enabled(self) -> None:
        fields = {"order": {"type": "number"}}
        assert parse_schema(fields, collection="posts").field("order") is not None
        with pytest.raises(NamingCollisionError):
            parse_schema(fields, CollectionOptions(sortable=True), collection="posts")

    def test_allow_reserved_fields_drops_user_field(self) -> None:
        schema = parse_schema(
            {"createdAt": {"type": "string"}, "title": {"type": "string"}},
            CollectionOptions(allow_reserved_fields=True),
            collection="posts",
        )
        assert schema.field("createdAt").origin == FieldOrigin.AUDIT
        assert _names(schema.user_fields) == ["title"]

    def test_primary_key_other_than_id(self) -> None:
        with pytest.raises(SchemaError, match="primaryKey"):
            parse_schema({"slug": {"type": "string", "meta": {"primaryKey": True}}}, collection="posts")

    def test_definition_must_be_mapping(self) -> None:
        with pytest.raises(SchemaError):
            parse_schema({"title": "string"}, collection="posts")

    def test_missing_type(self) -> None:
        with pytest.raises(SchemaError):
            parse_schema({"title": {"meta": {"required": True}}}, collection="posts")


# ===========================================================================
# References & repeaters
# ===========================================================================


class TestFieldShapes:
    """References, repeaters and meta handling."""

    def test_ref_target_makes_reference(self, events_fields: Dict[str, Any]) -> None:
        category = parse_schema(events_fields, collection="events").field("category")
        assert category.canonical_type == "reference"
        assert category.reference_target == "categories"

    def test_repeater_flat_properties(self, events_fields: Dict[str, Any]) -> None:
        slots = parse_schema(events_fields, collection="events").field("slots")
        assert slots.has_item_schema
        assert _names(slots.repeater_item_schema) == ["label", "startsAt"]
        assert slots.repeater_item_schema[0].required
        assert slots.translatable_properties == ("label",)

    def test_repeater_meta_properties(self) -> None:
        fields = {"links": {"type": "repeater", "meta": {"properties": {
            "url": {"type": "string", "meta": {"required": True, "label": "URL"}},
        }}}}
        links = parse_schema(fields, collection="pages").field("links")
        assert links.repeater_item_schema[0].label == "URL"
        assert links.repeater_item_schema[0].required

    def test_labels(self, events_fields: Dict[str, Any]) -> None:
        schema = parse_schema(events_fields, collection="events")
        assert schema.field("startsAt").label == "Starts"
        assert schema.field("capacity").label == "Capacity"
        assert schema.field("createdAt").label == "Created At"

    def test_type_names_are_normalised(self) -> None:
        schema = parse_schema({"title": {"type": " String "}}, collection="posts")
        assert schema.field("title").canonical_type == "string"

    def test_dependent_field(self) -> None:
        fields = {
            "location": {"type": "string", "refTarget": "locations"},
            "slot": {"type": "array", "meta": {
                "dependsOn": "location",
                "dependsOnCollection": "locations",
                "dependsOnField": "slots",
                "displayAs": "slotButtonGroup",
            }},
        }
        slot = parse_schema(fields, collection="bookings").field("slot")
        assert slot.is_dependent
        assert slot.dependent_on.field == "slots"

    def test_descriptors_are_frozen(self, posts_fields: Dict[str, Any]) -> None:
        title = parse_schema(posts_fields, collection="posts").field("title")
        with pytest.raises(Exception):
            title.required = False


# ===========================================================================
# Files
# ===========================================================================


class TestLoadFieldsFile:
    """Field maps load from YAML and JSON alike."""

    def test_yaml_and_json_agree(self, posts_yaml_path: pathlib.Path,
                                 posts_json_path: pathlib.Path) -> None:
        assert load_fields_file(posts_yaml_path) == load_fields_file(posts_json_path)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SchemaError, match="not found"):
            load_fields_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("title: [unclosed\n", encoding="utf-8")
        with pytest.raises(SchemaError):
            load_fields_file(path)

    def test_top_level_list_rejected(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(SchemaError):
            load_fields_file(path)


# ===========================================================================
# Soft checks
# ===========================================================================


class TestSchemaWarnings:
    """validate_schema reports survivable problems as warnings."""

    def test_clean_schema_has_no_warnings(self, posts_fields: Dict[str, Any]) -> None:
        result = validate_schema(parse_schema(posts_fields, collection="posts"))
        assert result.is_valid
        assert result.warnings == []

    def test_translatable_required_warns(self) -> None:
        fields = {"title": {"type": "string", "meta": {"required": True, "translatable": True}}}
        result = validate_schema(parse_schema(fields, collection="posts"))
        assert "TRANSLATABLE_REQUIRED" in result.codes()
        assert result.is_valid

    def test_max_length_on_number_warns(self) -> None:
        fields = {"count": {"type": "number", "meta": {"maxLength": 5}}}
        result = validate_schema(parse_schema(fields, collection="posts"))
        assert "MAX_LENGTH_IGNORED" in result.codes()

    def test_unknown_translatable_property_warns(self) -> None:
        fields = {"slots": {"type": "repeater", "meta": {
            "properties": {"label": {"type": "string"}},
            "translatableProperties": ["title"],
        }}}
        result = validate_schema(parse_schema(fields, collection="events"))
        assert "UNKNOWN_TRANSLATABLE_PROPERTY" in result.codes()

    def test_unknown_depends_on_warns(self) -> None:
        fields = {"slot": {"type": "array", "meta": {"dependsOn": "location",
                                                      "dependsOnCollection": "locations"}}}
        result = validate_schema(parse_schema(fields, collection="bookings"))
        assert "UNKNOWN_DEPENDS_ON" in result.codes()
