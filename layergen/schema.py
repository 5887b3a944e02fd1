# File: layergen/schema.py
"""
LayerGen - Schema Field Model
===============================

Parses a raw field map (``name -> {type, refTarget?, meta?}``) into an
ordered ``CollectionSchema`` and injects the implicit fields every
collection carries.

Injection order (generators render fields in this order)::

    identifier     id
    scope          teamId, owner
    user fields    in declaration order
    audit          createdAt, updatedAt, createdBy, updatedBy
    hierarchy      parentId, path, depth, order   (order alone when only sortable)
    translation    translations                   (shadow column)

Hard failures raise ``SchemaError`` (or one of its subclasses); soft
problems are reported separately by ``layergen.validators``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from layergen.config import load_document
from layergen.errors import (
    ConfigError,
    NamingCollisionError,
    SchemaError,
    UnknownFieldTypeError,
)
from layergen.models import (
    CollectionOptions,
    CollectionSchema,
    DependentRef,
    FieldDescriptor,
    FieldMeta,
    FieldOrigin,
    RawField,
)
from layergen.naming import label_of
from layergen.typemap import TypeTable, check_types, default_type_table

logger: logging.Logger = logging.getLogger("layergen.schema")

# ---------------------------------------------------------------------------
# Implicit fields
# ---------------------------------------------------------------------------

SCOPE_FIELDS: Tuple[str, ...] = ("teamId", "owner")
AUDIT_FIELDS: Tuple[str, ...] = ("createdAt", "updatedAt", "createdBy", "updatedBy")
HIERARCHY_FIELDS: Tuple[str, ...] = ("parentId", "path", "depth", "order")
TRANSLATIONS_FIELD: str = "translations"


def _identifier(canonical_type: str = "string", label: str = "ID") -> FieldDescriptor:
    return FieldDescriptor(
        name="id",
        canonical_type=canonical_type,
        origin=FieldOrigin.IDENTIFIER,
        required=True,
        is_primary_key=True,
        label=label,
    )


def _scope_fields() -> List[FieldDescriptor]:
    return [
        FieldDescriptor(name=name, canonical_type="string", origin=FieldOrigin.SCOPE,
                        required=True, label=label_of(name))
        for name in SCOPE_FIELDS
    ]


def _audit_fields() -> List[FieldDescriptor]:
    types: Dict[str, str] = {
        "createdAt": "date",
        "updatedAt": "date",
        "createdBy": "string",
        "updatedBy": "string",
    }
    return [
        FieldDescriptor(name=name, canonical_type=types[name], origin=FieldOrigin.AUDIT,
                        required=True, label=label_of(name))
        for name in AUDIT_FIELDS
    ]


def _hierarchy_fields(hierarchy: bool, sortable: bool) -> List[FieldDescriptor]:
    specs: Dict[str, str] = {
        "parentId": "string",
        "path": "string",
        "depth": "number",
        "order": "number",
    }
    if hierarchy:
        names: Tuple[str, ...] = HIERARCHY_FIELDS
    elif sortable:
        names = ("order",)
    else:
        return []
    return [
        FieldDescriptor(
            name=name,
            canonical_type=specs[name],
            origin=FieldOrigin.HIERARCHY,
            nullable=name == "parentId",
            read_only=name in ("path", "depth"),
            label=label_of(name),
        )
        for name in names
    ]


def _translations_field() -> FieldDescriptor:
    return FieldDescriptor(
        name=TRANSLATIONS_FIELD,
        canonical_type="json",
        origin=FieldOrigin.TRANSLATION,
        nullable=True,
        label="Translations",
    )


def reserved_names(options: CollectionOptions) -> Dict[str, FieldOrigin]:
    """Names injected for ``options`` mapped to their origin."""
    reserved: Dict[str, FieldOrigin] = {"id": FieldOrigin.IDENTIFIER}
    reserved.update({n: FieldOrigin.SCOPE for n in SCOPE_FIELDS})
    reserved.update({n: FieldOrigin.AUDIT for n in AUDIT_FIELDS})
    reserved.update({f.name: FieldOrigin.HIERARCHY
                     for f in _hierarchy_fields(options.hierarchy, options.sortable)})
    if options.translations_enabled:
        reserved[TRANSLATIONS_FIELD] = FieldOrigin.TRANSLATION
    return reserved


# ---------------------------------------------------------------------------
# Raw field parsing
# ---------------------------------------------------------------------------


def _property_to_raw(name: str, definition: Any, collection: str) -> RawField:
    """
    Repeater item properties accept both the flat form
    ``{type, required, label}`` and the field form ``{type, meta: {...}}``.
    """
    if not isinstance(definition, Mapping):
        raise SchemaError(
            f"property definition must be a mapping, got {type(definition).__name__}",
            field=name,
            collection=collection,
        )
    data: Dict[str, Any] = dict(definition)
    if "meta" not in data:
        meta: Dict[str, Any] = {k: v for k, v in data.items() if k not in ("type", "refTarget")}
        data = {k: v for k, v in data.items() if k in ("type", "refTarget")}
        data["meta"] = meta
    try:
        return RawField.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"invalid property definition: {exc}", field=name,
                          collection=collection) from exc


def _build_descriptor(
    name: str,
    raw: RawField,
    *,
    collection: str,
    translations: bool,
    types: TypeTable,
    path: str = "",
) -> FieldDescriptor:
    meta: FieldMeta = raw.meta
    qualified: str = f"{path}{name}"
    canonical: str = raw.type
    if raw.ref_target and canonical in ("string", "uuid", "reference"):
        canonical = "reference"
    if canonical not in types:
        raise UnknownFieldTypeError(raw.type, field=qualified, collection=collection)

    item_schema: Optional[Tuple[FieldDescriptor, ...]] = None
    if meta.properties:
        if canonical != "repeater":
            logger.warning(
                "Field '%s' in '%s' declares properties but is of type '%s'; ignoring them.",
                qualified, collection, canonical,
            )
        else:
            item_schema = tuple(
                _build_descriptor(
                    prop_name,
                    _property_to_raw(prop_name, prop_def, collection),
                    collection=collection,
                    translations=False,
                    types=types,
                    path=f"{qualified}.",
                )
                for prop_name, prop_def in meta.properties.items()
            )

    dependent: Optional[DependentRef] = None
    if meta.depends_on or meta.depends_on_collection or meta.display_as:
        dependent = DependentRef(
            depends_on=meta.depends_on,
            collection=meta.depends_on_collection,
            field=meta.depends_on_field,
            display_as=meta.display_as,
        )

    return FieldDescriptor(
        name=name,
        canonical_type=canonical,
        origin=FieldOrigin.USER,
        required=meta.required,
        nullable=meta.nullable,
        max_length=meta.max_length,
        precision=meta.precision,
        scale=meta.scale,
        default_value=meta.default,
        label=meta.label or label_of(name),
        is_translatable=translations and meta.translatable,
        is_primary_key=meta.primary_key,
        read_only=meta.read_only,
        area=meta.area,
        component=meta.component,
        reference_target=raw.ref_target,
        dependent_on=dependent,
        repeater_item_schema=item_schema,
        translatable_properties=tuple(meta.translatable_properties) if item_schema else (),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_schema(
    raw_fields: Mapping[str, Any],
    options: Optional[CollectionOptions] = None,
    *,
    collection: str = "collection",
    types: Optional[TypeTable] = None,
) -> CollectionSchema:
    """
    Build the ordered ``CollectionSchema`` for one collection.

    Raises:
        SchemaError: empty field map, malformed entries, a non-``id``
            primary key.
        UnknownFieldTypeError: a field or repeater property with an
            unmapped type.
        NamingCollisionError: a user field reuses an injected name and
            ``allowReservedFields`` is off.
    """
    opts: CollectionOptions = options or CollectionOptions()
    table: TypeTable = types or default_type_table()

    if not isinstance(raw_fields, Mapping) or not raw_fields:
        raise SchemaError("field map is empty", collection=collection)

    reserved: Dict[str, FieldOrigin] = reserved_names(opts)
    identifier: FieldDescriptor = _identifier()
    user_fields: List[FieldDescriptor] = []

    for name, definition in raw_fields.items():
        if not isinstance(name, str) or not name.strip():
            raise SchemaError("field names must be non-empty strings", collection=collection)
        if not isinstance(definition, Mapping):
            raise SchemaError(
                f"definition must be a mapping with a 'type', got {type(definition).__name__}",
                field=name,
                collection=collection,
            )
        try:
            raw: RawField = RawField.model_validate(dict(definition))
        except ValidationError as exc:
            raise SchemaError(f"invalid definition: {exc}", field=name, collection=collection) from exc

        if name == "id" and raw.meta.primary_key:
            if raw.type not in table:
                raise UnknownFieldTypeError(raw.type, field=name, collection=collection)
            identifier = _identifier(raw.type, raw.meta.label or "ID")
            continue
        if raw.meta.primary_key:
            raise SchemaError("only 'id' may be marked primaryKey", field=name, collection=collection)

        if name in reserved:
            if not opts.allow_reserved_fields:
                raise NamingCollisionError(
                    f"collides with the injected {reserved[name].value} field",
                    field=name,
                    collection=collection,
                )
            logger.warning(
                "Dropping user field '%s' in '%s': replaced by the injected %s field.",
                name, collection, reserved[name].value,
            )
            continue

        user_fields.append(
            _build_descriptor(
                name,
                raw,
                collection=collection,
                translations=opts.translations_enabled,
                types=table,
            )
        )

    fields: List[FieldDescriptor] = [identifier]
    fields.extend(_scope_fields())
    fields.extend(user_fields)
    fields.extend(_audit_fields())
    fields.extend(_hierarchy_fields(opts.hierarchy, opts.sortable))
    wants_translations: bool = opts.translatable or any(f.is_translatable for f in user_fields)
    if opts.translations_enabled and wants_translations:
        fields.append(_translations_field())

    check_types(fields, table, collection)
    schema: CollectionSchema = CollectionSchema(
        collection=collection,
        fields=tuple(fields),
        options=opts,
    )
    logger.info(
        "Parsed schema for '%s': %d user field(s), %d total.",
        collection, len(user_fields), len(fields),
    )
    return schema


def load_fields_file(path: Path) -> Dict[str, Any]:
    """Load a field map from a JSON or YAML file."""
    try:
        return load_document(path)
    except ConfigError as exc:
        raise SchemaError(str(exc)) from exc


__all__: List[str] = [
    "SCOPE_FIELDS",
    "AUDIT_FIELDS",
    "HIERARCHY_FIELDS",
    "TRANSLATIONS_FIELD",
    "reserved_names",
    "parse_schema",
    "load_fields_file",
]
