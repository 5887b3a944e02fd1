# File: layergen/naming.py
"""
LayerGen - Naming Deriver
===========================

Turns a ``(layer, collection)`` pair into every case and number variant
used anywhere in the generated artifacts.

Every identifier is split into lowercase *words* exactly once
(``split_words``); singular/plural inflection touches only the last word
of a word list, and every output variant is a join of a word list.  Two
call sites that need "layer + collection, Pascal-cased" therefore read the
same ``NamingSet`` attribute and can never disagree:

    >>> n = derive("knowledgeBase", "articles")
    >>> n.prefixed_plural_pascal
    'KnowledgeBaseArticles'
    >>> n.collection_key
    'knowledgeBaseArticles'
    >>> n.api_path_segment
    'knowledge-base-articles'

All functions are pure and cached with ``functools.lru_cache``.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from layergen.errors import SchemaError

logger: logging.Logger = logging.getLogger("layergen.naming")

Words = Tuple[str, ...]

# ---------------------------------------------------------------------------
# Word splitting
# ---------------------------------------------------------------------------

_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)


@functools.lru_cache(maxsize=None)
def split_words(name: str) -> Words:
    """
    Split an identifier in any casing style into lowercase words.

        >>> split_words("knowledgeBase")
        ('knowledge', 'base')
        >>> split_words("knowledge-base")
        ('knowledge', 'base')
        >>> split_words("HTTPRoutes")
        ('http', 'routes')
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    return tuple(w.lower() for w in _SPLIT_WORDS_RE.findall(cleaned) if w)


# ---------------------------------------------------------------------------
# Inflection (last word only)
# ---------------------------------------------------------------------------

_UNCOUNTABLE: FrozenSet[str] = frozenset({
    "data", "metadata", "media", "news", "series", "species", "feedback",
    "information", "equipment", "staff", "software", "content",
})

_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "analysis": "analyses",
    "crisis": "crises",
    "leaf": "leaves",
    "half": "halves",
    "shelf": "shelves",
    "wolf": "wolves",
    "knife": "knives",
    "life": "lives",
    "wife": "wives",
    "hero": "heroes",
    "potato": "potatoes",
    "tomato": "tomatoes",
    "echo": "echoes",
    "quiz": "quizzes",
    "movie": "movies",
    "cookie": "cookies",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}


@functools.lru_cache(maxsize=None)
def singularize_word(word: str) -> str:
    """Singular form of one lowercase word."""
    if word in _UNCOUNTABLE or word in _IRREGULAR_PLURALS:
        return word
    if word in _IRREGULAR_SINGULARS:
        return _IRREGULAR_SINGULARS[word]
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("sses", "shes", "ches", "xes", "zzes")):
        return word[:-2]
    if word.endswith("uses") and len(word) > 4 and word[-5] not in "aeiou":
        return word[:-2]
    if word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


@functools.lru_cache(maxsize=None)
def pluralize_word(word: str) -> str:
    """Plural form of one lowercase singular word."""
    if word in _UNCOUNTABLE or word in _IRREGULAR_SINGULARS:
        return word
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def singular_words(words: Words) -> Words:
    if not words:
        return words
    return words[:-1] + (singularize_word(words[-1]),)


def plural_words(words: Words) -> Words:
    if not words:
        return words
    return words[:-1] + (pluralize_word(singularize_word(words[-1])),)


# ---------------------------------------------------------------------------
# Case joiners (word list -> identifier)
# ---------------------------------------------------------------------------


def _cap(word: str) -> str:
    return word[:1].upper() + word[1:]


def camel(words: Words) -> str:
    if not words:
        return ""
    return words[0] + "".join(_cap(w) for w in words[1:])


def pascal(words: Words) -> str:
    return "".join(_cap(w) for w in words)


def kebab(words: Words) -> str:
    return "-".join(words)


def snake(words: Words) -> str:
    return "_".join(words)


def title(words: Words) -> str:
    return " ".join(_cap(w) for w in words)


# ---------------------------------------------------------------------------
# Field-level helpers
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def singular_pascal_of(name: str) -> str:
    """
    Singular PascalCase form of a (usually plural) field name.

        >>> singular_pascal_of("slots")
        'Slot'
        >>> singular_pascal_of("categories")
        'Category'
        >>> singular_pascal_of("timeSlots")
        'TimeSlot'
    """
    return pascal(singular_words(split_words(name)))


@functools.lru_cache(maxsize=None)
def pascal_of(name: str) -> str:
    return pascal(split_words(name))


@functools.lru_cache(maxsize=None)
def label_of(name: str) -> str:
    """Human label for a field name (``createdAt`` -> ``Created At``)."""
    return title(split_words(name))


# ---------------------------------------------------------------------------
# NamingSet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NamingSet:
    """Every name variant for one target. Built by ``derive`` only."""

    layer: str
    collection: str

    layer_words: Words
    singular_words: Words
    plural_words: Words

    layer_camel: str
    layer_pascal: str
    layer_kebab: str

    singular_camel: str
    singular_pascal: str
    singular_kebab: str
    singular_title: str
    plural_camel: str
    plural_pascal: str
    plural_kebab: str
    plural_title: str

    prefixed_singular_camel: str
    prefixed_singular_pascal: str
    prefixed_plural_camel: str
    prefixed_plural_pascal: str

    table_name: str
    api_path_segment: str
    id_param: str
    collection_key: str
    config_export_name: str
    composable_name: str
    seed_function_name: str

    # -- field-scoped names (same word-list algorithm) ----------------------

    def item_schema_name(self, field_name: str) -> str:
        """Validation schema name for the items of a repeater field."""
        return f"{self.prefixed_plural_camel}{pascal_of(field_name)}ItemSchema"

    def item_type_name(self, field_name: str) -> str:
        return f"{self.prefixed_singular_pascal}{singular_pascal_of(field_name)}"

    def sub_component_dir(self, field_name: str) -> str:
        """Component folder for the item sub-components of an array field."""
        return singular_pascal_of(field_name)

    def component_prefix(self, collection_name: Optional[str] = None) -> str:
        """Prefix under which a collection's components are registered."""
        if collection_name is None:
            return self.prefixed_plural_pascal
        return f"{self.layer_pascal}{pascal(plural_words(split_words(collection_name)))}"

    def sub_component_name(
        self,
        field_name: str,
        part: str = "Select",
        collection_name: Optional[str] = None,
    ) -> str:
        """
        Registered name of an item sub-component of ``field_name``, owned by
        ``collection_name`` (a same-layer collection) or by this collection.

            >>> derive("bookings", "bookings").sub_component_name("slots", "Select", "locations")
            'BookingsLocationsSlotSelect'
        """
        return f"{self.component_prefix(collection_name)}{singular_pascal_of(field_name)}{part}"

    def reference_key(self, collection_name: str) -> str:
        """Collection key of a same-layer collection."""
        return f"{self.layer_camel}{pascal(plural_words(split_words(collection_name)))}"

    def as_dict(self) -> Dict[str, str]:
        return {
            key: value
            for key, value in self.__dict__.items()
            if isinstance(value, str)
        }


@functools.lru_cache(maxsize=None)
def derive(layer: str, collection: str) -> NamingSet:
    """
    Derive the full ``NamingSet`` for a target.

    Raises:
        SchemaError: if either name contains no letters or digits.
    """
    layer_ws: Words = split_words(layer)
    if not layer_ws:
        raise SchemaError(f"layer name {layer!r} has no usable words", collection=collection)
    coll_ws: Words = split_words(collection)
    if not coll_ws:
        raise SchemaError(f"collection name {collection!r} has no usable words")

    single: Words = singular_words(coll_ws)
    multi: Words = plural_words(coll_ws)

    layer_camel: str = camel(layer_ws)
    prefixed_plural_camel: str = camel(layer_ws + multi)
    prefixed_plural_pascal: str = pascal(layer_ws + multi)

    naming: NamingSet = NamingSet(
        layer=layer,
        collection=collection,
        layer_words=layer_ws,
        singular_words=single,
        plural_words=multi,
        layer_camel=layer_camel,
        layer_pascal=pascal(layer_ws),
        layer_kebab=kebab(layer_ws),
        singular_camel=camel(single),
        singular_pascal=pascal(single),
        singular_kebab=kebab(single),
        singular_title=title(single),
        plural_camel=camel(multi),
        plural_pascal=pascal(multi),
        plural_kebab=kebab(multi),
        plural_title=title(multi),
        prefixed_singular_camel=camel(layer_ws + single),
        prefixed_singular_pascal=pascal(layer_ws + single),
        prefixed_plural_camel=prefixed_plural_camel,
        prefixed_plural_pascal=prefixed_plural_pascal,
        table_name=snake(layer_ws + multi),
        api_path_segment=kebab(layer_ws + multi),
        id_param=f"{camel(single)}Id",
        collection_key=prefixed_plural_camel,
        config_export_name=f"{prefixed_plural_camel}Config",
        composable_name=f"use{prefixed_plural_pascal}",
        seed_function_name=f"seed{prefixed_plural_pascal}",
    )
    logger.debug("Derived names for %s/%s: %s", layer, collection, naming.collection_key)
    return naming


__all__: List[str] = [
    "NamingSet",
    "derive",
    "split_words",
    "singularize_word",
    "pluralize_word",
    "singular_words",
    "plural_words",
    "camel",
    "pascal",
    "kebab",
    "snake",
    "title",
    "singular_pascal_of",
    "pascal_of",
    "label_of",
]
