# File: layergen/typemap.py
"""
LayerGen - Field Type Mapper
==============================

Table-driven mapping from a canonical field type to every representation
the generators emit:

    canonical type ──▶ validation expression   (zod)
                   ──▶ storage column type     (drizzle, per dialect)
                   ──▶ input control kind      (UI control component)
                   ──▶ default literal         (TS)
                   ──▶ TS type / display hint

Rows come from *type manifests*.  Manifests are looked up in an explicit
``{id: loader}`` registry (``MANIFEST_LOADERS``); ``resolve_manifest``
returns ``None`` for an unknown id instead of raising, and a ``TypeTable``
is built once per run from the ids a configuration enables.

Storage rendering (``storage_column``) lives here too so the persistence
schema and the query module read a field's storage type from the same
function and cannot disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from layergen.errors import SchemaError, UnknownFieldTypeError
from layergen.models import Dialect, FieldDescriptor, FieldOrigin
from layergen.naming import NamingSet
from layergen.utils import ts_string, ts_value

logger: logging.Logger = logging.getLogger("layergen.typemap")

# ---------------------------------------------------------------------------
# Rows & manifests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeRow:
    """One canonical type as contributed by a manifest."""

    canonical_type: str
    validation_expr: str
    ts_type: str
    control_kind: str
    default_literal: str
    display_hint: str
    sqlite_storage: str
    pg_storage: str
    is_json: bool = False


@dataclass(frozen=True)
class TypeMapping:
    """A row resolved for one dialect."""

    canonical_type: str
    validation_expr: str
    storage_type: str
    control_kind: str
    default_literal: str
    ts_type: str
    display_hint: str
    is_json: bool


@dataclass(frozen=True)
class TypeManifest:
    id: str
    rows: Tuple[TypeRow, ...]
    description: str = ""


ManifestLoader = Callable[[], TypeManifest]


def _core_manifest() -> TypeManifest:
    rows: Tuple[TypeRow, ...] = (
        TypeRow("string", "z.string()", "string", "UInput", "''", "text", "text", "text"),
        TypeRow("text", "z.string()", "string", "UTextarea", "''", "text", "text", "text"),
        TypeRow("number", "z.number()", "number", "UInputNumber", "0", "number", "integer", "integer"),
        TypeRow("decimal", "z.number()", "number", "UInputNumber", "0", "number", "real", "numeric"),
        TypeRow("boolean", "z.boolean()", "boolean", "UCheckbox", "false", "boolean", "integer", "boolean"),
        TypeRow("date", "z.date()", "Date | null", "CroutonCalendar", "null", "date", "integer", "timestamp"),
        TypeRow(
            "json", "z.record(z.string(), z.any())", "Record<string, any>",
            "UTextarea", "{}", "json", "jsonColumn", "jsonb", is_json=True,
        ),
        TypeRow(
            "repeater", "z.array(z.any())", "any[]", "CroutonFormRepeater",
            "[]", "list", "jsonColumn", "jsonb", is_json=True,
        ),
        TypeRow(
            "array", "z.array(z.string())", "string[]", "UTextarea",
            "[]", "list", "jsonColumn", "jsonb", is_json=True,
        ),
        TypeRow(
            "reference", "z.string()", "string", "CroutonFormReferenceSelect",
            "''", "reference", "text", "text",
        ),
        TypeRow("uuid", "z.string().uuid()", "string", "UInput", "''", "text", "text", "uuid"),
    )
    return TypeManifest(id="core", rows=rows, description="Built-in field types")


def _assets_manifest() -> TypeManifest:
    rows: Tuple[TypeRow, ...] = (
        TypeRow("image", "z.string()", "string", "CroutonAssetsPicker", "''", "image", "text", "text"),
        TypeRow("file", "z.string()", "string", "CroutonAssetsPicker", "''", "file", "text", "text"),
    )
    return TypeManifest(id="assets", rows=rows, description="Media library field types")


MANIFEST_LOADERS: Dict[str, ManifestLoader] = {
    "core": _core_manifest,
    "assets": _assets_manifest,
}


def resolve_manifest(manifest_id: str) -> Optional[TypeManifest]:
    """Load a manifest by id, or ``None`` when no loader is registered."""
    loader: Optional[ManifestLoader] = MANIFEST_LOADERS.get(manifest_id)
    if loader is None:
        return None
    return loader()


# ---------------------------------------------------------------------------
# Type table
# ---------------------------------------------------------------------------


class TypeTable:
    """
    The set of canonical types available to one run.

    ``core`` is always loaded; additional manifests are layered on top in
    the order given, later rows replacing earlier ones.
    """

    def __init__(self, manifests: Sequence[TypeManifest]) -> None:
        self._rows: Dict[str, TypeRow] = {}
        self.manifest_ids: Tuple[str, ...] = tuple(m.id for m in manifests)
        for manifest in manifests:
            for row in manifest.rows:
                self._rows[row.canonical_type] = row

    @classmethod
    def from_features(cls, features: Sequence[str] = ()) -> Tuple["TypeTable", List[str]]:
        """Build a table from feature ids; returns it with the unresolved ids."""
        manifests: List[TypeManifest] = []
        missing: List[str] = []
        for manifest_id in ["core", *[f for f in features if f != "core"]]:
            manifest: Optional[TypeManifest] = resolve_manifest(manifest_id)
            if manifest is None:
                missing.append(manifest_id)
                logger.warning("No field-type manifest registered for '%s'.", manifest_id)
                continue
            manifests.append(manifest)
        return cls(manifests), missing

    @property
    def known_types(self) -> FrozenSet[str]:
        return frozenset(self._rows)

    def __contains__(self, canonical_type: object) -> bool:
        return canonical_type in self._rows

    def row(self, canonical_type: str) -> TypeRow:
        try:
            return self._rows[canonical_type]
        except KeyError:
            raise UnknownFieldTypeError(canonical_type) from None

    def map_type(self, canonical_type: str, dialect: Dialect = Dialect.SQLITE) -> TypeMapping:
        """Resolve ``canonical_type`` for ``dialect``."""
        row: TypeRow = self.row(canonical_type)
        storage: str = row.pg_storage if dialect == Dialect.PG else row.sqlite_storage
        return TypeMapping(
            canonical_type=row.canonical_type,
            validation_expr=row.validation_expr,
            storage_type=storage,
            control_kind=row.control_kind,
            default_literal=row.default_literal,
            ts_type=row.ts_type,
            display_hint=row.display_hint,
            is_json=row.is_json,
        )

    def __repr__(self) -> str:
        return f"<TypeTable {','.join(self.manifest_ids)}: {len(self._rows)} types>"


def default_type_table() -> TypeTable:
    table, _ = TypeTable.from_features()
    return table


# ---------------------------------------------------------------------------
# Field-level validation expressions
# ---------------------------------------------------------------------------

_STRINGISH: FrozenSet[str] = frozenset({"string", "text", "reference", "uuid", "image", "file"})


def base_validation(field_: FieldDescriptor, naming: NamingSet, types: TypeTable) -> str:
    """Validation expression before required/optional modifiers."""
    if field_.is_dependent:
        return "z.array(z.string())"
    if field_.has_item_schema:
        return f"z.array({naming.item_schema_name(field_.name)})"
    expr: str = types.row(field_.canonical_type).validation_expr
    if field_.max_length and field_.canonical_type in ("string", "text"):
        expr += f".max({field_.max_length})"
    return expr


def field_validation(
    field_: FieldDescriptor,
    naming: NamingSet,
    types: TypeTable,
    *,
    translations: bool = True,
) -> str:
    """
    Full validation expression for one field.

    Translatable fields stay optional at the top level when translations
    are enabled; their values are validated per language instead.
    """
    base: str = base_validation(field_, naming, types)
    required: bool = field_.required and not (translations and field_.is_translatable)
    message: str = ts_string(f"{field_.name} is required")

    if required:
        if field_.canonical_type == "date" and not field_.is_dependent:
            return f"z.date({{ required_error: {message} }})"
        if field_.is_dependent or field_.canonical_type in _STRINGISH:
            return f"{base}.min(1, {message})"
        return base

    nullish: bool = (
        field_.nullable
        or field_.is_dependent
        or field_.canonical_type == "date"
    )
    return f"{base}.nullish()" if nullish else f"{base}.optional()"


def item_schema_declarations(
    field_: FieldDescriptor,
    naming: NamingSet,
    types: TypeTable,
) -> List[str]:
    """
    ``const <name>ItemSchema = z.object({...})`` declarations for a repeater
    field, nested repeaters first so every name is declared before use.
    """
    if not field_.repeater_item_schema:
        return []
    lines: List[str] = []
    for prop in field_.repeater_item_schema:
        lines.extend(item_schema_declarations(prop, naming, types))

    lines.append(f"export const {naming.item_schema_name(field_.name)} = z.object({{")
    lines.append("  id: z.string(),")
    for prop in field_.repeater_item_schema:
        lines.append(f"  {prop.name}: {field_validation(prop, naming, types, translations=False)},")
    if field_.translatable_properties:
        lines.append("  translations: z.record(z.string(), z.record(z.string(), z.string())).optional(),")
    lines.append("})")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# TS types & defaults
# ---------------------------------------------------------------------------


def field_ts_type(field_: FieldDescriptor, naming: NamingSet, types: TypeTable) -> str:
    if field_.is_dependent:
        return "string[] | null"
    if field_.has_item_schema:
        return f"{naming.item_type_name(field_.name)}[]"
    return types.row(field_.canonical_type).ts_type


def item_interfaces(field_: FieldDescriptor, naming: NamingSet, types: TypeTable) -> List[str]:
    """Interfaces for repeater items, nested ones first."""
    if not field_.repeater_item_schema:
        return []
    lines: List[str] = []
    for prop in field_.repeater_item_schema:
        lines.extend(item_interfaces(prop, naming, types))
    lines.append(f"export interface {naming.item_type_name(field_.name)} {{")
    lines.append("  id: string")
    for prop in field_.repeater_item_schema:
        optional: str = "" if prop.required else "?"
        lines.append(f"  {prop.name}{optional}: {field_ts_type(prop, naming, types)}")
    if field_.translatable_properties:
        lines.append("  translations?: Record<string, Record<string, string>>")
    lines.append("}")
    lines.append("")
    return lines


def field_default(field_: FieldDescriptor, types: TypeTable) -> str:
    """Default literal for new records (an explicit ``meta.default`` wins)."""
    if field_.default_value is not None:
        if field_.canonical_type == "date":
            return f"new Date({ts_value(field_.default_value)})"
        return ts_value(field_.default_value)
    if field_.is_dependent:
        return "null"
    return types.row(field_.canonical_type).default_literal


# ---------------------------------------------------------------------------
# Storage columns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageColumn:
    """How one field is stored; ``storage_type`` is the drizzle builder name."""

    name: str
    storage_type: str
    expression: str
    builders: FrozenSet[str] = field(default_factory=frozenset)


def _json_default(canonical: str) -> str:
    return "[]" if canonical in ("repeater", "array") else "{}"


def storage_column(field_: FieldDescriptor, dialect: Dialect, types: TypeTable) -> StorageColumn:
    """Render the persistence column for ``field_``."""
    name: str = field_.name
    quoted: str = ts_string(name)
    pg: bool = dialect == Dialect.PG

    if field_.origin == FieldOrigin.IDENTIFIER:
        if pg:
            return StorageColumn(name, "uuid", f"uuid({quoted}).primaryKey().defaultRandom()",
                                 frozenset({"uuid"}))
        generator: str = "crypto.randomUUID()" if field_.canonical_type == "uuid" else "nanoid()"
        return StorageColumn(name, "text", f"text({quoted}).primaryKey().$default(() => {generator})",
                             frozenset({"text"}))

    if field_.origin == FieldOrigin.AUDIT and field_.canonical_type == "date":
        if pg:
            expr: str = f"timestamp({quoted}, {{ withTimezone: true }}).notNull().defaultNow()"
            if name == "updatedAt":
                expr += ".$onUpdate(() => new Date())"
            return StorageColumn(name, "timestamp", expr, frozenset({"timestamp"}))
        expr = f"integer({quoted}, {{ mode: 'timestamp' }}).notNull().$default(() => new Date())"
        if name == "updatedAt":
            expr += ".$onUpdate(() => new Date())"
        return StorageColumn(name, "integer", expr, frozenset({"integer"}))

    if field_.is_dependent:
        storage: str = "jsonb" if pg else "jsonColumn"
        return StorageColumn(name, storage, f"{storage}({quoted}).$type<string[] | null>()",
                             frozenset({storage}))

    mapping: TypeMapping = types.map_type(field_.canonical_type, dialect)
    storage = mapping.storage_type
    if pg and field_.canonical_type == "string" and field_.max_length:
        storage = "varchar"

    if storage == "varchar":
        call: str = f"varchar({quoted}, {{ length: {field_.max_length} }})"
    elif storage == "numeric":
        opts: List[str] = []
        if field_.precision:
            opts.append(f"precision: {field_.precision}")
        if field_.scale is not None:
            opts.append(f"scale: {field_.scale}")
        call = f"numeric({quoted}, {{ {', '.join(opts)} }})" if opts else f"numeric({quoted})"
    elif storage == "timestamp":
        call = f"timestamp({quoted}, {{ withTimezone: true }})"
    elif storage == "integer" and field_.canonical_type == "boolean":
        call = f"integer({quoted}, {{ mode: 'boolean' }})"
    elif storage == "integer" and field_.canonical_type == "date":
        call = f"integer({quoted}, {{ mode: 'timestamp' }})"
    elif storage in ("jsonColumn", "jsonb"):
        call = f"{storage}({quoted}).$type<{field_ts_json_type(field_, mapping)}>()"
    else:
        call = f"{storage}({quoted})"

    if field_.required and not field_.is_translatable and field_.origin != FieldOrigin.TRANSLATION:
        call += ".notNull()"
    if field_.default_value is not None:
        call += f".$default(() => {field_default(field_, types)})"
    elif mapping.is_json and field_.origin == FieldOrigin.USER:
        call += f".$default(() => ({_json_default(field_.canonical_type)}))"
    elif field_.origin == FieldOrigin.HIERARCHY and name != "parentId":
        call += ".notNull()" + (".$default(() => '/')" if name == "path" else ".$default(() => 0)")
    elif field_.canonical_type == "boolean" and field_.origin == FieldOrigin.USER:
        call += ".$default(() => false)"

    return StorageColumn(name, storage, call, frozenset({storage}))


def field_ts_json_type(field_: FieldDescriptor, mapping: TypeMapping) -> str:
    if field_.origin == FieldOrigin.TRANSLATION:
        return "Record<string, Record<string, string>>"
    if field_.has_item_schema:
        return "Array<Record<string, any>>"
    return mapping.ts_type


def json_column_names(
    fields: Sequence[FieldDescriptor], dialect: Dialect, types: TypeTable
) -> List[str]:
    return [
        f.name for f in fields
        if storage_column(f, dialect, types).storage_type in ("jsonColumn", "jsonb")
    ]


def check_types(fields: Sequence[FieldDescriptor], types: TypeTable, collection: str) -> None:
    """Raise ``UnknownFieldTypeError`` naming the first unmapped field."""
    for item in fields:
        if item.canonical_type not in types:
            raise UnknownFieldTypeError(item.canonical_type, field=item.name, collection=collection)
        if item.repeater_item_schema:
            check_types(item.repeater_item_schema, types, collection)
        if item.reference_target is not None and not item.reference_target.strip(":"):
            raise SchemaError("empty refTarget", field=item.name, collection=collection)


def used_builders(columns: Sequence[StorageColumn]) -> List[str]:
    names: Set[str] = set()
    for col in columns:
        names |= col.builders
    return sorted(names)


__all__: List[str] = [
    "TypeRow",
    "TypeMapping",
    "TypeManifest",
    "MANIFEST_LOADERS",
    "resolve_manifest",
    "TypeTable",
    "default_type_table",
    "base_validation",
    "field_validation",
    "item_schema_declarations",
    "field_ts_type",
    "item_interfaces",
    "field_default",
    "StorageColumn",
    "storage_column",
    "json_column_names",
    "check_types",
    "used_builders",
]
