# File: layergen/persistence.py
"""
LayerGen - Persistence Generators
===================================
Generates the three database-side modules of a collection:

    server/database/schema.ts    drizzle table definition
    server/database/queries.ts   team-scoped query functions
    server/database/seed.ts      drizzle-seed script (only when seeding is on)

The schema module and the query module both read their column list from
``RenderContext.columns()``, i.e. from ``layergen.typemap.storage_column``.
The query module records the storage type it assumes for every column in
an exported ``<collectionKey>ColumnTypes`` map, so a mismatch between the
two would be visible in the generated code itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from layergen.layout import layout_for
from layergen.models import ArtifactKind, Dialect, FieldDescriptor, GeneratedArtifact
from layergen.naming import NamingSet, derive
from layergen.schema import AUDIT_FIELDS
from layergen.typemap import StorageColumn, used_builders
from layergen.utils import relative_import, ts_key, ts_string

if TYPE_CHECKING:
    from layergen.templates import RenderContext

logger: logging.Logger = logging.getLogger("layergen.persistence")

# Application-level schema exporting the auth tables.
APP_SCHEMA_MODULE: str = "~~/server/db/schema"
USER_TABLE: str = "user"

_JSON_COLUMN_DEFINITION: List[str] = [
    "// JSON stored as text; NULL (e.g. from a LEFT JOIN) reads back as null",
    "const jsonColumn = customType<{ data: any; driverData: string }>({",
    "  dataType() {",
    "    return 'text'",
    "  },",
    "  fromDriver(value: unknown): any {",
    "    if (value === null || value === undefined || value === '') {",
    "      return null",
    "    }",
    "    return JSON.parse(value as string)",
    "  },",
    "  toDriver(value: any): string {",
    "    return JSON.stringify(value)",
    "  }",
    "})",
]


# ---------------------------------------------------------------------------
# Query function names
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryNames:
    """Exported query function names, shared by queries.ts and the handlers."""

    get_all: str
    get_by_ids: str
    create: str
    update: str
    delete: str
    tree_data: str
    update_position: str
    reorder: str


def query_names(naming: NamingSet) -> QueryNames:
    plural: str = naming.prefixed_plural_pascal
    single: str = naming.prefixed_singular_pascal
    return QueryNames(
        get_all=f"getAll{plural}",
        get_by_ids=f"get{plural}ByIds",
        create=f"create{single}",
        update=f"update{single}",
        delete=f"delete{single}",
        tree_data=f"getTreeData{plural}",
        update_position=f"updatePosition{single}",
        reorder=f"reorderSiblings{plural}",
    )


def _header(ctx: "RenderContext", what: str) -> str:
    return f"// Generated by layergen for {ctx.naming.layer}/{ctx.naming.collection}: {what}."


def _core_module(dialect: str) -> str:
    return "drizzle-orm/pg-core" if dialect == Dialect.PG else "drizzle-orm/sqlite-core"


# ---------------------------------------------------------------------------
# Persistence schema
# ---------------------------------------------------------------------------


def generate_schema_module(ctx: "RenderContext") -> List[GeneratedArtifact]:
    naming = ctx.naming
    columns: List[StorageColumn] = ctx.columns()
    builders: List[str] = used_builders(columns)
    pg: bool = ctx.dialect == Dialect.PG

    lines: List[str] = [_header(ctx, "table definition")]
    if pg:
        names: List[str] = ["pgTable", *builders]
        lines.append(f"import {{ {', '.join(names)} }} from {ts_string(_core_module(ctx.dialect))}")
    else:
        if any("nanoid()" in col.expression for col in columns):
            lines.append("import { nanoid } from 'nanoid'")
        names = ["sqliteTable", *[b for b in builders if b != "jsonColumn"]]
        if "jsonColumn" in builders:
            names.append("customType")
        lines.append(f"import {{ {', '.join(names)} }} from {ts_string(_core_module(ctx.dialect))}")
        if "jsonColumn" in builders:
            lines.append("")
            lines.extend(_JSON_COLUMN_DEFINITION)

    table_fn: str = "pgTable" if pg else "sqliteTable"
    lines.append("")
    lines.append(f"export const {naming.collection_key} = {table_fn}({ts_string(naming.table_name)}, {{")
    lines.append(",\n".join(f"  {ts_key(col.name)}: {col.expression}" for col in columns))
    lines.append("})")
    lines.append("")

    logger.debug("Schema module for %s: %d column(s).", naming.collection_key, len(columns))
    return [GeneratedArtifact(
        relative_path=ctx.layout.schema,
        content="\n".join(lines),
        kind=ArtifactKind.PERSISTENCE_SCHEMA,
    )]


# ---------------------------------------------------------------------------
# Query module
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Join:
    """One LEFT JOIN of the listing queries."""

    field: str
    select_key: str
    select_value: str
    table: str
    alias_of: Optional[str] = None


def _joins(ctx: "RenderContext") -> Tuple[List[_Join], List[str]]:
    """Joins in field order, plus the extra import lines they need."""
    naming = ctx.naming
    layout = ctx.layout
    imports: Dict[str, str] = {}
    joins: List[_Join] = []

    def user_join(field_name: str) -> None:
        alias_name: str = f"{field_name}User"
        imports[USER_TABLE] = f"import {{ {USER_TABLE} }} from {ts_string(APP_SCHEMA_MODULE)}"
        joins.append(_Join(
            field=field_name,
            select_key=alias_name,
            select_value=(
                f"{{ id: {alias_name}.id, name: {alias_name}.name, "
                f"email: {alias_name}.email, image: {alias_name}.image }}"
            ),
            table=alias_name,
            alias_of=USER_TABLE,
        ))

    for item in ctx.schema.user_fields:
        if item.canonical_type != "reference" or not item.reference_target:
            continue
        target: str = item.reference_target
        if target.startswith(":"):
            external: str = target.lstrip(":")
            if external == "users":
                user_join(item.name)
                continue
            imports[external] = f"import {{ {external} }} from {ts_string(APP_SCHEMA_MODULE)}"
            joins.append(_Join(item.name, f"{item.name}Data", external, external))
            continue
        other: NamingSet = derive(naming.layer, target)
        namespace: str = f"{other.collection_key}Schema"
        source: str = relative_import(layout.queries, layout_for(other).schema)
        if other.collection_key == naming.collection_key:
            # Self reference: the joined copy needs its own alias
            own: str = f"{item.name}Ref"
            joins.append(_Join(item.name, f"{item.name}Data", own, own,
                               alias_of=f"tables.{naming.collection_key}"))
            continue
        imports[namespace] = f"import * as {namespace} from {ts_string(source)}"
        table: str = f"{namespace}.{other.collection_key}"
        joins.append(_Join(item.name, f"{item.name}Data", table, table))

    for name in ("owner", "createdBy", "updatedBy"):
        if ctx.schema.field(name) is not None:
            user_join(name)
    return joins, list(imports.values())


def _column_types(ctx: "RenderContext") -> List[str]:
    lines: List[str] = [
        "// Storage type of every column, as declared in ./schema",
        f"export const {ctx.naming.collection_key}ColumnTypes = {{",
    ]
    for col in ctx.columns():
        lines.append(f"  {ts_key(col.name)}: {ts_string(col.storage_type)},")
    lines.append("} as const")
    return lines


def _select(ctx: "RenderContext", joins: List[_Join]) -> Tuple[List[str], str, List[str]]:
    """Alias declarations, the select object and the join chain."""
    table: str = f"tables.{ctx.naming.collection_key}"
    aliases: List[str] = []
    seen: Set[str] = set()
    for join in joins:
        if join.alias_of and join.table not in seen:
            seen.add(join.table)
            aliases.append(f"  const {join.table} = alias({join.alias_of} as any, {ts_string(join.table)})")
    if not joins:
        return aliases, "", []

    fields: List[str] = [f"      ...getTableColumns({table})"]
    fields.extend(f"      {j.select_key}: {j.select_value}" for j in joins)
    select: str = "{\n" + ",\n".join(fields) + "\n    } as any"
    chain: List[str] = [
        f"    .leftJoin({j.table}, eq({table}.{j.field}, {j.table}.id))" for j in joins
    ]
    return aliases, select, chain


def _order_by(ctx: "RenderContext") -> str:
    table: str = f"tables.{ctx.naming.collection_key}"
    if ctx.options.sortable or ctx.options.hierarchy:
        return f"asc({table}.order), desc({table}.createdAt)"
    return f"desc({table}.createdAt)"


def _read_queries(ctx: "RenderContext", q: QueryNames, joins: List[_Join]) -> List[str]:
    naming = ctx.naming
    table: str = f"tables.{naming.collection_key}"
    rows: str = naming.plural_camel
    ids: str = f"{naming.singular_camel}Ids"
    aliases, select, chain = _select(ctx, joins)
    select_call: str = f".select({select})" if select else ".select()"

    def body(where: List[str]) -> List[str]:
        out: List[str] = ["  const db = useDB()"]
        if aliases:
            out.append("")
            out.extend(aliases)
        out.append("")
        out.append(f"  const {rows} = await (db as any)")
        out.append(f"    {select_call}")
        out.append(f"    .from({table})")
        out.extend(chain)
        out.extend(where)
        out.append(f"    .orderBy({_order_by(ctx)})")
        out.append("")
        out.append(f"  return {rows}")
        return out

    lines: List[str] = [f"export async function {q.get_all}(teamId: string) {{"]
    lines.extend(body([f"    .where(eq({table}.teamId, teamId))"]))
    lines.extend(["}", ""])
    lines.append(f"export async function {q.get_by_ids}(teamId: string, {ids}: string[]) {{")
    lines.extend(body([
        "    .where(",
        "      and(",
        f"        eq({table}.teamId, teamId),",
        f"        inArray({table}.id, {ids})",
        "      )",
        "    )",
    ]))
    lines.extend(["}", ""])
    return lines


def _write_queries(ctx: "RenderContext", q: QueryNames) -> List[str]:
    naming = ctx.naming
    table: str = f"tables.{naming.collection_key}"
    entity: str = naming.prefixed_singular_pascal
    row: str = naming.singular_camel
    not_found: str = ts_string(f"{entity} not found or unauthorized")
    scoped: List[str] = [
        "    .where(",
        "      and(",
        f"        eq({table}.id, recordId),",
        f"        eq({table}.teamId, teamId),",
        f"        eq({table}.owner, ownerId)",
        "      )",
        "    )",
    ]
    lines: List[str] = [
        f"export async function {q.create}(data: New{entity}) {{",
        "  const db = useDB()",
        "",
        f"  const [{row}] = await (db as any)",
        f"    .insert({table})",
        "    .values(data)",
        "    .returning()",
        "",
        f"  return {row}",
        "}",
        "",
        f"export async function {q.update}(",
        "  recordId: string,",
        "  teamId: string,",
        "  ownerId: string,",
        f"  updates: Partial<{entity}>",
        ") {",
        "  const db = useDB()",
        "",
        f"  const [{row}] = await (db as any)",
        f"    .update({table})",
        "    .set({ ...updates, updatedBy: ownerId })",
        *scoped,
        "    .returning()",
        "",
        f"  if (!{row}) {{",
        f"    throw createError({{ status: 404, statusText: {not_found} }})",
        "  }",
        "",
        f"  return {row}",
        "}",
        "",
        f"export async function {q.delete}(",
        "  recordId: string,",
        "  teamId: string,",
        "  ownerId: string",
        ") {",
        "  const db = useDB()",
        "",
        "  const [deleted] = await (db as any)",
        f"    .delete({table})",
        *scoped,
        "    .returning()",
        "",
        "  if (!deleted) {",
        f"    throw createError({{ status: 404, statusText: {not_found} }})",
        "  }",
        "",
        "  return { success: true }",
        "}",
        "",
    ]
    return lines


def _tree_queries(ctx: "RenderContext", q: QueryNames) -> List[str]:
    naming = ctx.naming
    table: str = f"tables.{naming.collection_key}"
    entity: str = naming.prefixed_singular_pascal
    by_id: List[str] = [
        "    .where(",
        "      and(",
        f"        eq({table}.id, id),",
        f"        eq({table}.teamId, teamId)",
        "      )",
        "    )",
    ]
    return [
        "interface TreeItem {",
        "  id: string",
        "  path: string",
        "  depth: number",
        "  order: number",
        "  [key: string]: any",
        "}",
        "",
        f"export async function {q.tree_data}(teamId: string) {{",
        "  const db = useDB()",
        "",
        "  const rows = await (db as any)",
        "    .select()",
        f"    .from({table})",
        f"    .where(eq({table}.teamId, teamId))",
        f"    .orderBy({table}.path, {table}.order)",
        "",
        "  return rows as TreeItem[]",
        "}",
        "",
        f"export async function {q.update_position}(",
        "  teamId: string,",
        "  id: string,",
        "  newParentId: string | null,",
        "  newOrder: number",
        ") {",
        "  const db = useDB()",
        "",
        "  const [current] = await (db as any)",
        "    .select()",
        f"    .from({table})",
        *by_id[:-1],
        "    ) as TreeItem[]",
        "",
        "  if (!current) {",
        f"    throw createError({{ status: 404, statusText: {ts_string(entity + ' not found')} }})",
        "  }",
        "",
        "  let newPath = `/${id}/`",
        "  let newDepth = 0",
        "",
        "  if (newParentId) {",
        "    const [parent] = await (db as any)",
        "      .select()",
        f"      .from({table})",
        f"      .where(and(eq({table}.id, newParentId), eq({table}.teamId, teamId))) as TreeItem[]",
        "",
        "    if (!parent) {",
        f"      throw createError({{ status: 400, statusText: {ts_string('Parent ' + entity + ' not found')} }})",
        "    }",
        "    if (parent.path.startsWith(current.path)) {",
        "      throw createError({ status: 400, statusText: 'Cannot move an item into its own descendant' })",
        "    }",
        "",
        "    newPath = `${parent.path}${id}/`",
        "    newDepth = parent.depth + 1",
        "  }",
        "",
        "  const oldPath = current.path",
        "",
        "  const [updated] = await (db as any)",
        f"    .update({table})",
        "    .set({ parentId: newParentId, path: newPath, depth: newDepth, order: newOrder })",
        *by_id,
        "    .returning()",
        "",
        "  if (oldPath !== newPath) {",
        "    const descendants = await (db as any)",
        "      .select()",
        f"      .from({table})",
        "      .where(",
        "        and(",
        f"          eq({table}.teamId, teamId),",
        f"          sql`${{{table}.path}} LIKE ${{oldPath + '%'}} AND ${{{table}.id}} != ${{id}}`",
        "        )",
        "      ) as TreeItem[]",
        "",
        "    const depthDiff = newDepth - current.depth",
        "    for (const descendant of descendants) {",
        "      await (db as any)",
        f"        .update({table})",
        "        .set({",
        "          path: descendant.path.replace(oldPath, newPath),",
        "          depth: descendant.depth + depthDiff",
        "        })",
        f"        .where(eq({table}.id, descendant.id))",
        "    }",
        "  }",
        "",
        "  return updated",
        "}",
        "",
    ]


def _reorder_query(ctx: "RenderContext", q: QueryNames) -> List[str]:
    table: str = f"tables.{ctx.naming.collection_key}"
    return [
        f"export async function {q.reorder}(",
        "  teamId: string,",
        "  updates: { id: string; order: number }[]",
        ") {",
        "  const db = useDB()",
        "",
        "  const results = await Promise.all(",
        "    updates.map(({ id, order }) =>",
        "      (db as any)",
        f"        .update({table})",
        "        .set({ order })",
        f"        .where(and(eq({table}.id, id), eq({table}.teamId, teamId)))",
        "        .returning()",
        "    )",
        "  )",
        "",
        "  return { success: true, updated: results.flat().length }",
        "}",
        "",
    ]


def generate_query_module(ctx: "RenderContext") -> List[GeneratedArtifact]:
    naming = ctx.naming
    layout = ctx.layout
    q: QueryNames = query_names(naming)
    hierarchy: bool = ctx.options.hierarchy
    ordered: bool = hierarchy or ctx.options.sortable
    entity: str = naming.prefixed_singular_pascal
    joins, join_imports = _joins(ctx)

    operators: List[str] = ["eq", "and", "desc", "inArray"]
    if ordered:
        operators.append("asc")
    if hierarchy:
        operators.append("sql")
    if joins:
        operators.append("getTableColumns")

    lines: List[str] = [
        _header(ctx, "team-scoped queries"),
        f"import {{ {', '.join(operators)} }} from 'drizzle-orm'",
    ]
    if any(j.alias_of for j in joins):
        lines.append(f"import {{ alias }} from {ts_string(_core_module(ctx.dialect))}")
    lines.append("import * as tables from './schema'")
    lines.append(
        f"import type {{ {entity}, New{entity} }} from "
        f"{ts_string(relative_import(layout.queries, layout.types))}"
    )
    lines.extend(join_imports)
    lines.append("")
    lines.extend(_column_types(ctx))
    lines.append("")
    lines.extend(_read_queries(ctx, q, joins))
    lines.extend(_write_queries(ctx, q))
    if hierarchy:
        lines.extend(_tree_queries(ctx, q))
    if ordered:
        lines.extend(_reorder_query(ctx, q))

    return [GeneratedArtifact(
        relative_path=layout.queries,
        content="\n".join(lines),
        kind=ArtifactKind.QUERY_MODULE,
    )]


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

_LOREM_SHORT: str = "f.loremIpsum({ sentencesCount: 1 })"
_LOREM_LONG: str = "f.loremIpsum({ sentencesCount: 3 })"
_PRICE: str = "f.number({ minValue: 1, maxValue: 1000, precision: 100 })"
_QUANTITY: str = "f.int({ minValue: 0, maxValue: 100 })"

# (match, needle, generator); match is "eq" or "in". First hit wins.
_NAME_GENERATORS: Tuple[Tuple[str, str, str], ...] = (
    ("in", "email", "f.email()"),
    ("eq", "name", "f.fullName()"),
    ("eq", "fullname", "f.fullName()"),
    ("eq", "full_name", "f.fullName()"),
    ("eq", "firstname", "f.firstName()"),
    ("eq", "first_name", "f.firstName()"),
    ("eq", "lastname", "f.lastName()"),
    ("eq", "last_name", "f.lastName()"),
    ("eq", "title", _LOREM_SHORT),
    ("eq", "description", _LOREM_LONG),
    ("eq", "bio", _LOREM_LONG),
    ("eq", "content", _LOREM_LONG),
    ("eq", "summary", _LOREM_LONG),
    ("in", "phone", "f.phoneNumber()"),
    ("in", "url", 'f.valuesFromArray({ values: ["https://example.com"] })'),
    ("in", "website", 'f.valuesFromArray({ values: ["https://example.com"] })'),
    ("in", "link", 'f.valuesFromArray({ values: ["https://example.com"] })'),
    ("eq", "slug", _LOREM_SHORT),
    ("in", "price", _PRICE),
    ("in", "amount", _PRICE),
    ("in", "cost", _PRICE),
    ("in", "total", _PRICE),
    ("in", "quantity", _QUANTITY),
    ("in", "count", _QUANTITY),
    ("in", "stock", _QUANTITY),
    ("in", "address", "f.streetAddress()"),
    ("eq", "city", "f.city()"),
    ("eq", "country", "f.country()"),
    ("eq", "state", "f.state()"),
    ("eq", "province", "f.state()"),
    ("in", "zip", "f.postcode()"),
    ("in", "postal", "f.postcode()"),
    ("eq", "status", 'f.valuesFromArray({ values: ["active", "inactive", "pending"] })'),
    ("eq", "type", 'f.valuesFromArray({ values: ["type_a", "type_b", "type_c"] })'),
    ("eq", "category", 'f.valuesFromArray({ values: ["type_a", "type_b", "type_c"] })'),
)

_TYPE_GENERATORS: Dict[str, str] = {
    "string": _LOREM_SHORT,
    "text": _LOREM_LONG,
    "number": _QUANTITY,
    "decimal": "f.number({ minValue: 0, maxValue: 1000, precision: 100 })",
    "boolean": "f.weightedRandom([{ value: true, weight: 0.5 }, { value: false, weight: 0.5 }])",
    "date": 'f.date({ minDate: "2020-01-01", maxDate: "2025-12-31" })',
    "json": "f.valuesFromArray({ values: [{}] })",
    "repeater": "f.valuesFromArray({ values: [[]] })",
    "array": "f.valuesFromArray({ values: [[]] })",
}


def seed_generator(field_: FieldDescriptor) -> str:
    """
    drizzle-seed generator expression for one field.

        >>> seed_generator(FieldDescriptor(name="userEmail", canonical_type="string"))
        'f.email()'
    """
    if field_.is_dependent:
        return _TYPE_GENERATORS["array"]
    lowered: str = field_.name.lower()
    for match, needle, generator in _NAME_GENERATORS:
        if (match == "eq" and lowered == needle) or (match == "in" and needle in lowered):
            return generator
    return _TYPE_GENERATORS.get(field_.canonical_type, _LOREM_SHORT)


def _seed_columns(ctx: "RenderContext") -> List[str]:
    lines: List[str] = []
    for item in ctx.schema.user_fields:
        if item.canonical_type == "reference" and item.reference_target:
            target: str = item.reference_target.lstrip(":")
            lines.append(
                f"        // NOTE: {item.name} references '{target}'; seed {target} first, then update this"
            )
            lines.append(
                f"        {item.name}: f.valuesFromArray({{ values: [{ts_string('placeholder-' + target + '-id')}] }}),"
            )
            continue
        lines.append(f"        {item.name}: {seed_generator(item)},")
    return lines


def _seed_connection(dialect: str) -> List[str]:
    if dialect == Dialect.PG:
        return [
            "import { drizzle } from 'drizzle-orm/postgres-js'",
            "import postgres from 'postgres'",
        ]
    return [
        "import { drizzle } from 'drizzle-orm/libsql'",
        "import { createClient } from '@libsql/client'",
    ]


def _seed_client(dialect: str) -> str:
    if dialect == Dialect.PG:
        return "  return drizzle(postgres(url))"
    return "  return drizzle(createClient({ url }))"


def generate_seed(ctx: "RenderContext") -> List[GeneratedArtifact]:
    """``seed.ts``; nothing unless the collection enables seeding."""
    seed_opts = ctx.options.seed
    if seed_opts is None:
        return []
    naming = ctx.naming
    key: str = naming.collection_key
    fn: str = naming.seed_function_name
    plural: str = naming.plural_camel
    team: str = ts_string(seed_opts.team_id)

    lines: List[str] = [
        _header(ctx, "seed data"),
        "//",
        "// Usage from a Nuxt server context:",
        f"//   import {{ {fn} }} from '~/{ctx.layout.seed[:-3]}'",
        f"//   await {fn}({{ count: 50, teamId: 'your-team-id' }})",
        "//",
        "// Standalone (requires DATABASE_URL): npx tsx seed.ts",
    ]
    if ctx.options.hierarchy:
        lines.extend([
            "//",
            "// NOTE: Hierarchy fields (parentId, path, depth, order) are handled automatically.",
            "// All seeded records are root items (parentId: null).",
        ])
    lines.extend([
        "",
        "import { seed, reset } from 'drizzle-seed'",
        *_seed_connection(ctx.dialect),
        f"import {{ {key} }} from './schema'",
        "",
        "export interface SeedOptions {",
        f"  /** Number of records to seed (default: {seed_opts.count}) */",
        "  count?: number",
        f"  /** Team ID for seeded records (default: {team}) */",
        "  teamId?: string",
        "  /** Delete all rows before seeding */",
        "  reset?: boolean",
        "  /** Existing db instance (inside a Nuxt server context) */",
        "  db?: ReturnType<typeof drizzle>",
        "}",
        "",
        "function createDb() {",
        "  const url = process.env.DATABASE_URL",
        "  if (!url) {",
        "    throw new Error('DATABASE_URL environment variable is required for standalone seeding')",
        "  }",
        _seed_client(ctx.dialect),
        "}",
        "",
        f"export async function {fn}(options: SeedOptions = {{}}) {{",
        "  const db = options.db ?? createDb()",
        f"  const count = options.count ?? {seed_opts.count}",
        f"  const teamId = options.teamId ?? {team}",
        "",
        f"  console.log(`Seeding ${{count}} {plural}...`)",
        "",
        "  if (options.reset) {",
        f"    await reset(db, {{ {key} }})",
        "  }",
        "",
        f"  await seed(db, {{ {key} }}).refine((f) => ({{",
        f"    {key}: {{",
        "      count,",
        "      columns: {",
        "        teamId: f.valuesFromArray({ values: [teamId] }),",
        "        owner: f.valuesFromArray({ values: ['seed-script'] }),",
    ])
    for name in AUDIT_FIELDS:
        if name.endswith("By"):
            lines.append(f"        {name}: f.valuesFromArray({{ values: ['seed-script'] }}),")
    lines.extend(_seed_columns(ctx))
    lines.extend([
        "      }",
        "    }",
        "  }))",
        "",
        f"  console.log(`Seeded ${{count}} {plural}`)",
        "}",
        "",
    ])
    return [GeneratedArtifact(
        relative_path=ctx.layout.seed,
        content="\n".join(lines),
        kind=ArtifactKind.SEED_DATA,
    )]


__all__: List[str] = [
    "APP_SCHEMA_MODULE",
    "QueryNames",
    "query_names",
    "generate_schema_module",
    "generate_query_module",
    "seed_generator",
    "generate_seed",
]
