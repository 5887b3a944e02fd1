# File: layergen/templates.py
"""
LayerGen - Template Engine
============================
Fans one ``CollectionSchema`` out to every artifact generator of a target.

``TemplateGenerator.generate_target`` calls the generators in a fixed
order and returns their artifacts in that order, so two runs over the same
input produce the same plan byte for byte:

    1. input surface        app/components/_Form.vue
    2. listing surface      app/components/List.vue
    3. sub-components       app/components/<Item>/{Input,Select,CardMini}.vue
    4. composable           app/composables/use<PrefixedPlural>.ts
    5. request handlers     server/api/teams/[id]/<api-path>/...
    6. persistence schema   server/database/schema.ts
    7. query module         server/database/queries.ts
    8. type declarations    types.ts
    9. seed data            server/database/seed.ts   (when seeding is on)
   10. collection config    nuxt.config.ts

**Performance contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Generators are pure functions of a ``RenderContext``; nothing here
      touches the filesystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Set

from layergen.errors import LayergenError
from layergen.handlers import generate_handlers
from layergen.layout import ArtifactLayout, layout_for
from layergen.models import (
    ArtifactKind,
    CollectionOptions,
    CollectionSchema,
    Dialect,
    FieldDescriptor,
    FieldOrigin,
    GeneratedArtifact,
)
from layergen.naming import NamingSet
from layergen.persistence import generate_query_module, generate_schema_module, generate_seed
from layergen.surfaces import (
    generate_input_surface,
    generate_listing_surface,
    generate_sub_components,
    listing_columns,
)
from layergen.typemap import (
    StorageColumn,
    TypeTable,
    field_default,
    field_ts_type,
    field_validation,
    item_interfaces,
    item_schema_declarations,
    storage_column,
)
from layergen.utils import indent_lines, relative_import, ts_key, ts_string

logger: logging.Logger = logging.getLogger("layergen.templates")

Generator = Callable[["RenderContext"], List[GeneratedArtifact]]

# ---------------------------------------------------------------------------
# Render context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenderContext:
    """Everything a generator reads for one target."""

    naming: NamingSet
    schema: CollectionSchema
    dialect: Dialect
    types: TypeTable

    @property
    def layout(self) -> ArtifactLayout:
        return layout_for(self.naming)

    @property
    def options(self) -> CollectionOptions:
        return self.schema.options

    @property
    def translations(self) -> bool:
        return self.schema.has_translations

    def reference_key(self, field_: FieldDescriptor) -> str:
        """Collection key a reference field points at (``:name`` is external)."""
        target: str = field_.reference_target or ""
        if target.startswith(":"):
            return target.lstrip(":")
        return self.naming.reference_key(target)

    def columns(self) -> List[StorageColumn]:
        """Storage columns in schema order; the single source for schema.ts and queries.ts."""
        return [storage_column(f, self.dialect, self.types) for f in self.schema.fields]


def _header(ctx: RenderContext, what: str) -> str:
    return f"// Generated by layergen for {ctx.naming.layer}/{ctx.naming.collection}: {what}."


# ---------------------------------------------------------------------------
# Type declarations
# ---------------------------------------------------------------------------


def _entity_ts_type(field_: FieldDescriptor, ctx: RenderContext) -> str:
    if field_.origin == FieldOrigin.TRANSLATION:
        return "Record<string, Record<string, string>>"
    if field_.origin == FieldOrigin.AUDIT and field_.canonical_type == "date":
        return "Date"
    if field_.name == "parentId" and field_.origin == FieldOrigin.HIERARCHY:
        return "string | null"
    return field_ts_type(field_, ctx.naming, ctx.types)


def generate_type_declarations(ctx: RenderContext) -> List[GeneratedArtifact]:
    naming = ctx.naming
    layout = ctx.layout
    entity: str = naming.prefixed_singular_pascal
    schema_const: str = f"{naming.prefixed_singular_camel}Schema"

    lines: List[str] = [
        _header(ctx, "type declarations"),
        "import type { z } from 'zod'",
        f"import type {{ {schema_const} }} from "
        f"{ts_string(relative_import(layout.types, layout.composable))}",
        "",
    ]
    for item in ctx.schema.repeater_fields:
        lines.extend(item_interfaces(item, naming, ctx.types))

    lines.append(f"export interface {entity} {{")
    for item in ctx.schema.fields:
        optional: str = "" if item.required or item.origin != FieldOrigin.USER else "?"
        if item.origin == FieldOrigin.TRANSLATION or item.name == "parentId":
            optional = "?"
        lines.append(f"  {ts_key(item.name)}{optional}: {_entity_ts_type(item, ctx)}")
    lines.append("}")
    lines.append("")

    lines.append(f"export type New{entity} = Omit<{entity}, 'id' | 'createdAt' | 'updatedAt'>")
    lines.append("")
    lines.append(f"export type {entity}FormData = z.infer<typeof {schema_const}>")
    lines.append("")
    lines.extend([
        f"export interface {entity}FormProps {{",
        "  items?: string[]",
        f"  activeItem?: Partial<{entity}>",
        "  collection?: string",
        "  loading?: string",
        "  action: 'create' | 'update' | 'delete'",
        "}",
        "",
    ])
    return [GeneratedArtifact(
        relative_path=layout.types,
        content="\n".join(lines),
        kind=ArtifactKind.TYPE_DECLARATIONS,
    )]


# ---------------------------------------------------------------------------
# Composable
# ---------------------------------------------------------------------------


def _validation_lines(ctx: RenderContext) -> List[str]:
    naming = ctx.naming
    lines: List[str] = []
    for item in ctx.schema.editable_fields:
        expr: str = field_validation(item, naming, ctx.types, translations=ctx.translations)
        lines.append(f"  {ts_key(item.name)}: {expr},")
    if ctx.options.hierarchy:
        lines.append("  parentId: z.string().nullable().optional(),")
    if ctx.translations:
        lines.append("  translations: z.record(z.string(), z.record(z.string(), z.string())).optional(),")
    return lines


def _dependent_components(ctx: RenderContext) -> Dict[str, str]:
    naming = ctx.naming
    components: Dict[str, str] = {}
    for item in ctx.schema.user_fields:
        dep = item.dependent_on
        if item.is_dependent and dep is not None:
            components[item.name] = naming.sub_component_name(
                dep.field or item.name, "Select", dep.collection
            )
    return components


def generate_composable(ctx: RenderContext) -> List[GeneratedArtifact]:
    naming = ctx.naming
    key: str = naming.collection_key
    schema_const: str = f"{naming.prefixed_singular_camel}Schema"
    columns_const: str = f"{naming.prefixed_plural_camel}Columns"
    config_const: str = naming.config_export_name
    component: str = ctx.options.form_component or f"{naming.component_prefix()}Form"

    lines: List[str] = [_header(ctx, "collection composable"), "import { z } from 'zod'", ""]
    for item in ctx.schema.repeater_fields:
        lines.extend(item_schema_declarations(item, naming, ctx.types))

    lines.append(f"export const {schema_const} = z.object({{")
    lines.extend(_validation_lines(ctx))
    lines.append("})")
    lines.append("")

    lines.append(f"export const {columns_const} = [")
    for accessor, header in listing_columns(ctx):
        lines.append(f"  {{ accessorKey: {ts_string(accessor)}, header: {ts_string(header)} }},")
    lines.append("]")
    lines.append("")

    config: List[str] = [
        f"name: {ts_string(key)},",
        f"layer: {ts_string(naming.layer)},",
        f"apiPath: {ts_string(naming.api_path_segment)},",
        f"componentName: {ts_string(component)},",
        "defaultValues: {",
    ]
    config.extend(
        f"  {ts_key(item.name)}: {field_default(item, ctx.types)},"
        for item in ctx.schema.editable_fields
    )
    if ctx.options.hierarchy:
        config.append("  parentId: null,")
    config.append("},")
    config.append(f"columns: {columns_const},")
    if ctx.options.hierarchy:
        config.extend([
            "hierarchy: {",
            "  enabled: true,",
            "  parentField: 'parentId',",
            "  pathField: 'path',",
            "  depthField: 'depth',",
            "  orderField: 'order'",
            "},",
        ])
    if ctx.options.sortable or ctx.options.hierarchy:
        config.extend(["sortable: {", "  enabled: true,", "  orderField: 'order'", "},"])
    dependents: Dict[str, str] = _dependent_components(ctx)
    if dependents:
        config.append("dependentFieldComponents: {")
        config.extend(f"  {ts_key(name)}: {ts_string(comp)}," for name, comp in dependents.items())
        config.append("},")

    lines.append(f"const _{config_const} = {{")
    lines.extend(indent_lines(config))
    lines.append("}")
    lines.append("")
    lines.extend([
        "// Kept off enumeration so the config serialises without the schema",
        f"Object.defineProperty(_{config_const}, 'schema', {{",
        f"  value: {schema_const},",
        "  enumerable: false,",
        "  configurable: false,",
        "  writable: false",
        "})",
        "",
        f"export const {config_const} = _{config_const} as typeof _{config_const} & "
        f"{{ schema: typeof {schema_const} }}",
        "",
        "export default function () {",
        "  return {",
        f"    defaultValue: _{config_const}.defaultValues,",
        f"    schema: {schema_const},",
        f"    columns: {columns_const},",
        f"    collection: _{config_const}.name,",
        f"    config: {config_const}",
        "  }",
        "}",
        "",
    ])
    return [GeneratedArtifact(
        relative_path=ctx.layout.composable,
        content="\n".join(lines),
        kind=ArtifactKind.COMPOSABLE,
    )]


# ---------------------------------------------------------------------------
# Collection layer config
# ---------------------------------------------------------------------------


def generate_collection_config(ctx: RenderContext) -> List[GeneratedArtifact]:
    lines: List[str] = [
        _header(ctx, "collection layer"),
        "export default defineNuxtConfig({",
        "  components: {",
        "    dirs: [",
        "      {",
        "        path: './app/components',",
        f"        prefix: {ts_string(ctx.naming.component_prefix())},",
        "        global: true",
        "      }",
        "    ]",
        "  }",
        "})",
        "",
    ]
    return [GeneratedArtifact(
        relative_path=ctx.layout.collection_config,
        content="\n".join(lines),
        kind=ArtifactKind.LAYER_CONFIG,
    )]


# ---------------------------------------------------------------------------
# TemplateGenerator facade
# ---------------------------------------------------------------------------

GENERATOR_ORDER: List[Generator] = [
    generate_input_surface,
    generate_listing_surface,
    generate_sub_components,
    generate_composable,
    generate_handlers,
    generate_schema_module,
    generate_query_module,
    generate_type_declarations,
    generate_seed,
    generate_collection_config,
]


class TemplateGenerator:
    """
    Stateless artifact planner.

    Holds the run's ``TypeTable``; ``generate_target`` is a pure function of
    its arguments.
    """

    def __init__(self, types: TypeTable) -> None:
        self._types: TypeTable = types
        logger.debug("TemplateGenerator initialised (%r).", types)

    @property
    def types(self) -> TypeTable:
        return self._types

    def context(self, naming: NamingSet, schema: CollectionSchema, dialect: Dialect) -> RenderContext:
        return RenderContext(naming=naming, schema=schema, dialect=Dialect(dialect), types=self._types)

    def generate_target(
        self,
        naming: NamingSet,
        schema: CollectionSchema,
        dialect: Dialect = Dialect.SQLITE,
    ) -> List[GeneratedArtifact]:
        """
        Every artifact of one target, in generator order.

        Raises:
            LayergenError: two generators claimed the same path.
        """
        ctx: RenderContext = self.context(naming, schema, dialect)
        artifacts: List[GeneratedArtifact] = []
        seen: Set[str] = set()
        for generate in GENERATOR_ORDER:
            for artifact in generate(ctx):
                if artifact.relative_path in seen:
                    raise LayergenError(
                        f"{naming.layer}/{naming.collection}: "
                        f"{artifact.relative_path} planned twice"
                    )
                seen.add(artifact.relative_path)
                artifacts.append(artifact)
        logger.debug(
            "Planned %d artifact(s) for %s/%s.",
            len(artifacts), naming.layer, naming.collection,
        )
        return artifacts


__all__: List[str] = [
    "RenderContext",
    "GENERATOR_ORDER",
    "TemplateGenerator",
    "generate_type_declarations",
    "generate_composable",
    "generate_collection_config",
]
