"""
tests/test_naming.py
Unit tests for layergen.naming.

Tests cover:
- Word splitting across casing styles
- Singular/plural inflection of the last word only
- Every NamingSet variant for single- and multi-word layers
- Field-scoped names (sub-component folders, registered component names)
- Determinism and rejection of unusable names
"""

from __future__ import annotations

import pytest

from layergen.errors import SchemaError
from layergen.naming import (
    derive,
    label_of,
    pluralize_word,
    singular_pascal_of,
    singularize_word,
    split_words,
)


# ===========================================================================
# Word splitting & inflection
# ===========================================================================


class TestSplitWords:
    """Identifiers in any casing style split into the same lowercase words."""

    @pytest.mark.parametrize("name", ["knowledgeBase", "knowledge-base", "knowledge_base",
                                      "KnowledgeBase", "knowledge base"])
    def test_casing_styles_agree(self, name: str) -> None:
        assert split_words(name) == ("knowledge", "base")

    def test_acronym_run(self) -> None:
        assert split_words("HTTPRoutes") == ("http", "routes")

    def test_digits_are_words(self) -> None:
        assert split_words("level2Items") == ("level", "2", "items")

    def test_no_words(self) -> None:
        assert split_words("--") == ()


class TestInflection:
    """Singular/plural forms of single words."""

    @pytest.mark.parametrize("plural, singular", [
        ("posts", "post"),
        ("categories", "category"),
        ("boxes", "box"),
        ("people", "person"),
        ("statuses", "status"),
        ("news", "news"),
    ])
    def test_singularize(self, plural: str, singular: str) -> None:
        assert singularize_word(plural) == singular

    @pytest.mark.parametrize("singular, plural", [
        ("post", "posts"),
        ("category", "categories"),
        ("day", "days"),
        ("box", "boxes"),
        ("person", "people"),
    ])
    def test_pluralize(self, singular: str, plural: str) -> None:
        assert pluralize_word(singular) == plural

    def test_singular_pascal_of_field_names(self) -> None:
        assert singular_pascal_of("slots") == "Slot"
        assert singular_pascal_of("categories") == "Category"
        assert singular_pascal_of("timeSlots") == "TimeSlot"

    def test_label_of(self) -> None:
        assert label_of("createdAt") == "Created At"
        assert label_of("title") == "Title"


# ===========================================================================
# NamingSet
# ===========================================================================


class TestDerive:
    """Tests for derive() and the NamingSet it returns."""

    def test_single_word_layer(self) -> None:
        n = derive("blog", "posts")
        assert n.singular_camel == "post"
        assert n.plural_pascal == "Posts"
        assert n.prefixed_singular_pascal == "BlogPost"
        assert n.prefixed_plural_pascal == "BlogPosts"
        assert n.collection_key == "blogPosts"
        assert n.table_name == "blog_posts"
        assert n.api_path_segment == "blog-posts"
        assert n.id_param == "postId"
        assert n.config_export_name == "blogPostsConfig"
        assert n.composable_name == "useBlogPosts"
        assert n.seed_function_name == "seedBlogPosts"

    def test_multi_word_layer(self) -> None:
        n = derive("knowledgeBase", "articles")
        assert n.layer_kebab == "knowledge-base"
        assert n.layer_pascal == "KnowledgeBase"
        assert n.prefixed_plural_pascal == "KnowledgeBaseArticles"
        assert n.collection_key == "knowledgeBaseArticles"
        assert n.api_path_segment == "knowledge-base-articles"
        assert n.table_name == "knowledge_base_articles"

    def test_singular_collection_name_is_pluralised(self) -> None:
        n = derive("shop", "category")
        assert n.plural_camel == "categories"
        assert n.singular_pascal == "Category"
        assert n.collection_key == "shopCategories"

    def test_multi_word_collection_inflects_last_word(self) -> None:
        n = derive("bookings", "timeSlots")
        assert n.singular_words == ("time", "slot")
        assert n.plural_kebab == "time-slots"
        assert n.id_param == "timeSlotId"

    def test_deterministic(self) -> None:
        first = derive("knowledgeBase", "articles").as_dict()
        derive.cache_clear()
        second = derive("knowledgeBase", "articles").as_dict()
        assert first == second

    def test_equivalent_spellings_give_same_keys(self) -> None:
        assert derive("knowledge-base", "articles").collection_key == \
            derive("knowledgeBase", "articles").collection_key

    def test_as_dict_holds_only_strings(self) -> None:
        data = derive("blog", "posts").as_dict()
        assert data["collection_key"] == "blogPosts"
        assert all(isinstance(v, str) for v in data.values())

    @pytest.mark.parametrize("layer, collection", [("", "posts"), ("blog", "__"), ("!!", "x")])
    def test_unusable_names_raise(self, layer: str, collection: str) -> None:
        with pytest.raises(SchemaError):
            derive(layer, collection)


class TestFieldScopedNames:
    """Names built from a field name share the collection's word-list rules."""

    def test_sub_component_dir(self) -> None:
        n = derive("bookings", "locations")
        assert n.sub_component_dir("slots") == "Slot"

    def test_sub_component_name_of_own_collection(self) -> None:
        n = derive("bookings", "locations")
        assert n.sub_component_name("slots", "Input") == "BookingsLocationsSlotInput"

    def test_sub_component_name_of_sibling_collection(self) -> None:
        n = derive("bookings", "bookings")
        assert n.sub_component_name("slots", "Select", "locations") == "BookingsLocationsSlotSelect"

    def test_sibling_name_matches_owner_name(self) -> None:
        owner = derive("bookings", "locations")
        other = derive("bookings", "bookings")
        assert other.sub_component_name("slots", "Select", "location") == \
            owner.sub_component_name("slots", "Select")

    def test_repeater_item_names(self) -> None:
        n = derive("events", "events")
        assert n.item_schema_name("slots") == "eventsEventsSlotsItemSchema"
        assert n.item_type_name("slots") == "EventsEventSlot"

    def test_reference_key(self) -> None:
        assert derive("shop", "products").reference_key("category") == "shopCategories"
