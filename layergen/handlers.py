# File: layergen/handlers.py
"""
LayerGen - Request Handler Generator
======================================
One Nitro event handler per CRUD verb, plus ``move`` (hierarchy) and
``reorder`` (hierarchy or sortable).

Every handler starts with a call to the externally supplied ownership
resolver::

    const { team, user } = await resolveTeamAndCheckMembership(event)

and passes ``team.id`` (and ``user.id`` where records are written) down to
the query module.  Access rules live entirely behind the resolver.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, List, Tuple

from layergen.models import ArtifactKind, FieldDescriptor, GeneratedArtifact
from layergen.persistence import QueryNames, query_names
from layergen.utils import relative_import, ts_string

if TYPE_CHECKING:
    from layergen.templates import RenderContext

logger: logging.Logger = logging.getLogger("layergen.handlers")

OWNERSHIP_RESOLVER: str = "resolveTeamAndCheckMembership"
OWNERSHIP_MODULE: str = "@fyit/crouton-auth/server/utils/team"

_PREAMBLE: List[str] = [
    "// Team-scoped endpoint: ownership is resolved by @fyit/crouton-auth.",
]


def _imports(ctx: "RenderContext", path: str, names: List[str]) -> List[str]:
    queries: str = relative_import(path, ctx.layout.queries)
    lines: List[str] = list(_PREAMBLE)
    lines.append(f"import {{ {', '.join(names)} }} from {ts_string(queries)}")
    lines.append(f"import {{ {OWNERSHIP_RESOLVER} }} from {ts_string(OWNERSHIP_MODULE)}")
    return lines


def _id_guard(ctx: "RenderContext") -> List[str]:
    id_param: str = ctx.naming.id_param
    return [
        f"  const {{ {id_param} }} = getRouterParams(event)",
        f"  if (!{id_param}) {{",
        f"    throw createError({{ status: 400, statusText: "
        f"{ts_string('Missing ' + ctx.naming.singular_title.lower() + ' ID')} }})",
        "  }",
    ]


def _writable_dates(ctx: "RenderContext") -> List[FieldDescriptor]:
    return [f for f in ctx.schema.date_fields if f.is_editable and not f.is_dependent]


# ---------------------------------------------------------------------------
# CRUD verbs
# ---------------------------------------------------------------------------


def _get_handler(ctx: "RenderContext", q: QueryNames) -> str:
    path: str = ctx.layout.handler_get
    lines: List[str] = _imports(ctx, path, [q.get_all, q.get_by_ids])
    lines.extend([
        "",
        "export default defineEventHandler(async (event) => {",
        f"  const {{ team }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        "  const query = getQuery(event)",
        "  if (query.ids) {",
        "    const ids = String(query.ids).split(',')",
        f"    return await {q.get_by_ids}(team.id, ids)",
        "  }",
        "",
        f"  return await {q.get_all}(team.id)",
        "})",
        "",
    ])
    return "\n".join(lines)


def _post_handler(ctx: "RenderContext", q: QueryNames) -> str:
    path: str = ctx.layout.handler_post
    hierarchy: bool = ctx.options.hierarchy
    names: List[str] = [q.create, q.get_by_ids] if hierarchy else [q.create]
    lines: List[str] = _imports(ctx, path, names)
    if hierarchy:
        lines.append("import { nanoid } from 'nanoid'")
    lines.extend([
        "",
        "export default defineEventHandler(async (event) => {",
        f"  const {{ team, user }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        "  const body = await readBody(event)",
        "  const { id, ...dataWithoutId } = body",
    ])

    for item in _writable_dates(ctx):
        lines.extend([
            "",
            f"  if (dataWithoutId.{item.name}) {{",
            f"    dataWithoutId.{item.name} = new Date(dataWithoutId.{item.name})",
            "  }",
        ])

    if hierarchy:
        lines.extend([
            "",
            "  // The id is generated here so the materialised path can include it",
            "  const recordId = nanoid()",
            "  let path = `/${recordId}/`",
            "  let depth = 0",
            "",
            "  if (dataWithoutId.parentId) {",
            f"    const [parent] = await {q.get_by_ids}(team.id, [dataWithoutId.parentId])",
            "    if (parent) {",
            "      path = `${parent.path}${recordId}/`",
            "      depth = (parent.depth || 0) + 1",
            "    }",
            "  }",
        ])

    lines.append("")
    lines.append(f"  return await {q.create}({{")
    lines.append("    ...dataWithoutId,")
    if hierarchy:
        lines.extend(["    id: recordId,", "    path,", "    depth,"])
    lines.extend([
        "    teamId: team.id,",
        "    owner: user.id,",
        "    createdBy: user.id,",
        "    updatedBy: user.id",
        "  })",
        "})",
        "",
    ])
    return "\n".join(lines)


def _patch_handler(ctx: "RenderContext", q: QueryNames) -> str:
    naming = ctx.naming
    path: str = ctx.layout.handler_patch
    translations: bool = ctx.translations
    entity: str = naming.prefixed_singular_pascal
    names: List[str] = [q.update, q.get_by_ids] if translations else [q.update]
    lines: List[str] = _imports(ctx, path, names)
    lines.append(f"import type {{ {entity} }} from {ts_string(relative_import(path, ctx.layout.types))}")
    lines.extend(["", "export default defineEventHandler(async (event) => {"])
    lines.extend(_id_guard(ctx))
    lines.extend([
        f"  const {{ team, user }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        f"  const body = await readBody<Partial<{entity}> & {{ locale?: string }}>(event)",
    ])

    if translations:
        lines.extend([
            "",
            "  // Merge the edited locale into the stored translations",
            "  if (body.translations && body.locale) {",
            f"    const [existing] = await {q.get_by_ids}(team.id, [{naming.id_param}]) as any[]",
            "    if (existing) {",
            "      body.translations = {",
            "        ...existing.translations,",
            "        [body.locale]: {",
            "          ...existing.translations?.[body.locale],",
            "          ...body.translations[body.locale]",
            "        }",
            "      }",
            "    }",
            "  }",
        ])

    selection: List[str] = []
    for item in ctx.schema.editable_fields:
        if item.canonical_type == "date" and not item.is_dependent:
            selection.append(
                f"    {item.name}: body.{item.name} ? new Date(body.{item.name}) : body.{item.name}"
            )
        else:
            selection.append(f"    {item.name}: body.{item.name}")
    if ctx.options.hierarchy:
        selection.append("    parentId: body.parentId")
    if translations:
        selection.append("    translations: body.translations")

    lines.append("")
    lines.append(f"  return await {q.update}({naming.id_param}, team.id, user.id, {{")
    lines.append(",\n".join(selection))
    lines.extend(["  })", "})", ""])
    return "\n".join(lines)


def _delete_handler(ctx: "RenderContext", q: QueryNames) -> str:
    path: str = ctx.layout.handler_delete
    lines: List[str] = _imports(ctx, path, [q.delete])
    lines.extend(["", "export default defineEventHandler(async (event) => {"])
    lines.extend(_id_guard(ctx))
    lines.extend([
        f"  const {{ team, user }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        f"  return await {q.delete}({ctx.naming.id_param}, team.id, user.id)",
        "})",
        "",
    ])
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Hierarchy / ordering
# ---------------------------------------------------------------------------


def _move_handler(ctx: "RenderContext", q: QueryNames) -> str:
    path: str = ctx.layout.handler_move
    lines: List[str] = _imports(ctx, path, [q.update_position])
    lines.extend(["", "export default defineEventHandler(async (event) => {"])
    lines.extend(_id_guard(ctx))
    lines.extend([
        f"  const {{ team }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        "  const body = await readBody(event)",
        "  if (typeof body.order !== 'number') {",
        "    throw createError({ status: 400, statusText: 'order is required and must be a number' })",
        "  }",
        "",
        "  const parentId = body.parentId ?? null",
        f"  return await {q.update_position}(team.id, {ctx.naming.id_param}, parentId, body.order)",
        "})",
        "",
    ])
    return "\n".join(lines)


def _reorder_handler(ctx: "RenderContext", q: QueryNames) -> str:
    path: str = ctx.layout.handler_reorder
    lines: List[str] = _imports(ctx, path, [q.reorder])
    lines.extend([
        "",
        "export default defineEventHandler(async (event) => {",
        f"  const {{ team }} = await {OWNERSHIP_RESOLVER}(event)",
        "",
        "  const body = await readBody(event)",
        "  if (!Array.isArray(body.updates)) {",
        "    throw createError({ status: 400, statusText: 'updates must be an array' })",
        "  }",
        "  for (const update of body.updates) {",
        "    if (!update.id || typeof update.order !== 'number') {",
        "      throw createError({ status: 400, statusText: 'Each update needs an id and a numeric order' })",
        "    }",
        "  }",
        "",
        f"  return await {q.reorder}(team.id, body.updates)",
        "})",
        "",
    ])
    return "\n".join(lines)


def generate_handlers(ctx: "RenderContext") -> List[GeneratedArtifact]:
    """Handlers in fixed order: get, post, patch, delete, move, reorder."""
    q: QueryNames = query_names(ctx.naming)
    layout = ctx.layout
    plan: List[Tuple[str, Callable[["RenderContext", QueryNames], str]]] = [
        (layout.handler_get, _get_handler),
        (layout.handler_post, _post_handler),
        (layout.handler_patch, _patch_handler),
        (layout.handler_delete, _delete_handler),
    ]
    if ctx.options.hierarchy:
        plan.append((layout.handler_move, _move_handler))
    if ctx.options.hierarchy or ctx.options.sortable:
        plan.append((layout.handler_reorder, _reorder_handler))

    artifacts: List[GeneratedArtifact] = [
        GeneratedArtifact(relative_path=path, content=render(ctx, q), kind=ArtifactKind.HANDLER)
        for path, render in plan
    ]
    logger.debug("Planned %d handler(s) for %s.", len(artifacts), ctx.naming.collection_key)
    return artifacts


__all__: List[str] = [
    "OWNERSHIP_RESOLVER",
    "OWNERSHIP_MODULE",
    "generate_handlers",
]
