# File: layergen/surfaces.py
"""
LayerGen - UI Surface Generators
==================================
Input surface (``_Form.vue``), listing surface (``List.vue``) and the
item sub-components of repeater fields (``<Item>/Input.vue``,
``Select.vue``, ``CardMini.vue``).

Rules:
    - one control per editable user field, in schema order; the
      identifier, scope and audit fields are never editable.
    - translatable fields leave the primary list and are edited in a
      single ``CroutonI18nInput`` block.
    - date fields are converted string -> ``Date`` when an item is loaded
      for editing and ``Date`` -> ISO string when the form is submitted.
    - the listing carries the audit columns unless the collection sets
      ``suppressAuditColumns``.

All markup is assembled with ``List[str]`` + ``"\\n".join()``; component
and file names come from ``NamingSet`` only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from layergen.models import ArtifactKind, FieldDescriptor, GeneratedArtifact
from layergen.naming import label_of, singular_pascal_of, split_words, singular_words, title
from layergen.schema import AUDIT_FIELDS
from layergen.utils import indent_lines, relative_import, ts_string

if TYPE_CHECKING:
    from layergen.templates import RenderContext

logger: logging.Logger = logging.getLogger("layergen.surfaces")

_AUDIT_DATE_FIELDS: Tuple[str, ...] = ("createdAt", "updatedAt")
_AUDIT_USER_FIELDS: Tuple[str, ...] = ("createdBy", "updatedBy")
_NON_COLUMN_TYPES: Tuple[str, ...] = ("json", "repeater", "text")

# ---------------------------------------------------------------------------
# Controls
# ---------------------------------------------------------------------------


def _attr(value: str) -> str:
    """Escape a string for a double-quoted HTML attribute."""
    return value.replace("&", "&amp;").replace('"', "&quot;")


def control_lines(
    field_: FieldDescriptor,
    ctx: "RenderContext",
    model: str = "state",
    *,
    sub_components: bool = True,
) -> List[str]:
    """Markup of the input control for one field, bound to ``<model>.<name>``."""
    naming = ctx.naming
    bind: str = f"{model}.{field_.name}"
    kind: str = field_.canonical_type

    if field_.component:
        return [f'<{field_.component} v-model="{bind}" />']

    if field_.is_dependent:
        dep = field_.dependent_on
        source_field: str = (dep.field if dep and dep.field else field_.name)
        source_collection: Optional[str] = dep.collection if dep else None
        lines: List[str] = [
            "<CroutonFormDependentFieldLoader",
            f'  v-model="{bind}"',
        ]
        if dep and dep.depends_on:
            lines.append(f'  :dependent-value="{model}.{dep.depends_on}"')
            lines.append(f'  dependent-label="{_attr(label_of(dep.depends_on))}"')
        if source_collection:
            lines.append(f'  dependent-collection="{naming.reference_key(source_collection)}"')
        lines.append(f'  dependent-field="{source_field}"')
        lines.append(
            f'  component="{naming.sub_component_name(source_field, "Select", source_collection)}"'
        )
        lines.append("/>")
        return lines

    if kind == "reference":
        return [
            "<CroutonFormReferenceSelect",
            f'  v-model="{bind}"',
            f'  collection="{ctx.reference_key(field_)}"',
            f'  label="{_attr(field_.label)}"',
            "/>",
        ]
    if kind == "text":
        return [f'<UTextarea v-model="{bind}" class="w-full" size="xl" />']
    if kind == "boolean":
        return [f'<UCheckbox v-model="{bind}" />']
    if kind == "number":
        return [f'<UInputNumber v-model="{bind}" class="w-full" />']
    if kind == "decimal":
        return [f'<UInputNumber v-model="{bind}" :step="0.01" class="w-full" />']
    if kind == "date":
        return [f'<CroutonCalendar v-model:date="{bind}" />']
    if kind == "json":
        return [
            "<UTextarea",
            f'  :model-value="JSON.stringify({bind} ?? {{}}, null, 2)"',
            f'  @update:model-value="(value) => {{ try {{ {bind} = JSON.parse(value) }} catch {{}} }}"',
            '  class="w-full font-mono"',
            '  :rows="6"',
            "/>",
        ]
    if kind == "array":
        return [
            "<UTextarea",
            f"  :model-value=\"({bind} || []).join('\\n')\"",
            f"  @update:model-value=\"(value) => {bind} = String(value).split('\\n').filter(Boolean)\"",
            '  placeholder="Enter one value per line"',
            '  class="w-full"',
            "/>",
        ]
    if kind == "repeater":
        lines = ["<CroutonFormRepeater", f'  v-model="{bind}"']
        if sub_components and field_.has_item_schema:
            lines.append(f'  component-name="{naming.sub_component_name(field_.name, "Input")}"')
        lines.append(
            f'  add-label="Add {_attr(title(singular_words(split_words(field_.name))))}"'
        )
        lines.append('  :sortable="true"')
        lines.append("/>")
        return lines
    if kind in ("image", "file"):
        return [f'<CroutonAssetsPicker v-model="{bind}" type="{kind}" />']

    attrs: str = f' :maxlength="{field_.max_length}"' if field_.max_length else ""
    return [f'<UInput v-model="{bind}"{attrs} class="w-full" size="xl" />']


def _form_field(field_: FieldDescriptor, ctx: "RenderContext", model: str = "state",
                *, sub_components: bool = True) -> List[str]:
    required: str = " required" if field_.required else ""
    lines: List[str] = [
        f'<UFormField label="{_attr(field_.label)}" name="{field_.name}"{required}>'
    ]
    lines.extend(indent_lines(control_lines(field_, ctx, model, sub_components=sub_components)))
    lines.append("</UFormField>")
    return lines


# ---------------------------------------------------------------------------
# Input surface
# ---------------------------------------------------------------------------


def _area_fields(ctx: "RenderContext", area: str) -> List[FieldDescriptor]:
    primary: List[FieldDescriptor] = [
        f for f in ctx.schema.editable_fields
        if not (ctx.translations and f.is_translatable)
    ]
    if area == "main":
        return [f for f in primary if f.area in (None, "main")]
    return [f for f in primary if f.area == area]


def _i18n_block(ctx: "RenderContext") -> List[str]:
    fields: List[FieldDescriptor] = ctx.schema.translatable_fields
    names: str = ", ".join(ts_string(f.name) for f in fields)
    lines: List[str] = [
        "<CroutonI18nInput",
        '  v-model="state.translations"',
        f'  :fields="[{names}]"',
        '  :default-values="{',
    ]
    for position, item in enumerate(fields):
        comma: str = "," if position < len(fields) - 1 else ""
        lines.append(f"    {item.name}: state.{item.name} || ''{comma}")
    lines.append('  }"')
    lines.append('  label="Translations"')
    lines.append("/>")
    return lines


def _form_template(ctx: "RenderContext") -> List[str]:
    main: List[str] = []
    for item in _area_fields(ctx, "main"):
        main.extend(_form_field(item, ctx))
    if ctx.translations and ctx.schema.translatable_fields:
        main.extend(_i18n_block(ctx))

    sidebar: List[str] = []
    if ctx.options.hierarchy:
        sidebar.extend([
            '<UFormField label="Parent" name="parentId">',
            "  <CroutonFormParentSelect",
            '    v-model="state.parentId"',
            f'    collection="{ctx.naming.collection_key}"',
            '    :current-id="state.id"',
            "  />",
            "</UFormField>",
        ])
    for item in _area_fields(ctx, "sidebar"):
        sidebar.extend(_form_field(item, ctx))

    meta: List[str] = []
    for item in _area_fields(ctx, "meta"):
        meta.extend(_form_field(item, ctx))

    lines: List[str] = [
        "<template>",
        "  <CroutonFormActionButton",
        "    v-if=\"action === 'delete'\"",
        '    :action="action"',
        '    :collection="collection"',
        '    :items="items"',
        '    :loading="loading"',
        '    @click="handleSubmit"',
        "  />",
        "",
        "  <UForm",
        "    v-else",
        '    :schema="schema"',
        '    :state="state"',
        '    @submit="handleSubmit"',
        "  >",
        "    <CroutonFormLayout>",
        "      <template #main>",
        '        <div class="flex flex-col gap-4 p-1">',
    ]
    lines.extend(indent_lines(main, 5))
    lines.append("        </div>")
    lines.append("      </template>")
    if sidebar:
        lines.append("")
        lines.append("      <template #sidebar>")
        lines.append('        <div class="flex flex-col gap-4 p-1">')
        lines.extend(indent_lines(sidebar, 5))
        lines.append("        </div>")
        lines.append("      </template>")
    if meta:
        lines.append("")
        lines.append("      <template #meta>")
        lines.append('        <div class="flex flex-col gap-4 p-1">')
        lines.extend(indent_lines(meta, 5))
        lines.append("        </div>")
        lines.append("      </template>")
    lines.extend([
        "",
        "      <template #footer>",
        "        <CroutonFormActionButton",
        '          :action="action"',
        '          :collection="collection"',
        '          :items="items"',
        '          :loading="loading"',
        "        />",
        "      </template>",
        "    </CroutonFormLayout>",
        "  </UForm>",
        "</template>",
    ])
    return lines


def _form_script(ctx: "RenderContext") -> List[str]:
    naming = ctx.naming
    layout = ctx.layout
    entity: str = naming.prefixed_singular_pascal
    dates: List[FieldDescriptor] = [
        f for f in ctx.schema.date_fields
        if f.is_editable and not f.is_dependent
    ]

    lines: List[str] = [
        '<script setup lang="ts">',
        f"import type {{ {entity}FormProps, {entity}FormData }} from "
        f"{ts_string(relative_import(layout.form, layout.types))}",
        f"import {naming.composable_name} from "
        f"{ts_string(relative_import(layout.form, layout.composable))}",
        "",
        f"const props = defineProps<{entity}FormProps>()",
        f"const {{ defaultValue, schema, collection }} = {naming.composable_name}()",
        "",
        "const { create, update, deleteItems } = useCollectionMutation(collection)",
        "const { close } = useCrouton()",
        "",
        "const initialValues = props.action === 'update' && props.activeItem?.id",
        "  ? { ...defaultValue, ...props.activeItem }",
        "  : { ...defaultValue }",
    ]

    if dates:
        lines.append("")
        lines.append("// Dates arrive as strings from the API")
        lines.append("if (props.action === 'update' && props.activeItem?.id) {")
        for item in dates:
            lines.append(f"  if (initialValues.{item.name}) {{")
            lines.append(f"    initialValues.{item.name} = new Date(initialValues.{item.name})")
            lines.append("  }")
        lines.append("}")

    lines.append("")
    lines.append(f"const state = ref<{entity}FormData & {{ id?: string | null }}>(initialValues)")

    if dates:
        lines.append("")
        lines.append(f"const toPayload = (data: {entity}FormData & {{ id?: string | null }}) => ({{")
        lines.append("  ...data,")
        for item in dates:
            lines.append(
                f"  {item.name}: data.{item.name} ? new Date(data.{item.name}).toISOString() : null,"
            )
        lines.append("})")
        payload: str = "toPayload(state.value)"
    else:
        payload = "state.value"

    lines.extend([
        "",
        "const handleSubmit = async () => {",
        "  try {",
        "    if (props.action === 'create') {",
        f"      await create({payload})",
        "    } else if (props.action === 'update' && state.value.id) {",
        f"      await update(state.value.id, {payload})",
        "    } else if (props.action === 'delete') {",
        "      await deleteItems(props.items)",
        "    }",
        "    close()",
        "  } catch (error) {",
        f"    console.error('[{entity} Form] submit failed:', error)",
        "  }",
        "}",
        "</script>",
    ])
    return lines


def generate_input_surface(ctx: "RenderContext") -> List[GeneratedArtifact]:
    """``_Form.vue``; nothing when the collection names a custom form component."""
    if ctx.options.form_component:
        logger.info(
            "Skipping input surface for %s: formComponent=%s.",
            ctx.naming.collection_key, ctx.options.form_component,
        )
        return []
    lines: List[str] = [_vue_header(ctx)]
    lines.extend(_form_template(ctx))
    lines.append("")
    lines.extend(_form_script(ctx))
    lines.append("")
    return [GeneratedArtifact(
        relative_path=ctx.layout.form,
        content="\n".join(lines),
        kind=ArtifactKind.INPUT_SURFACE,
    )]


# ---------------------------------------------------------------------------
# Listing surface
# ---------------------------------------------------------------------------


def listing_columns(ctx: "RenderContext") -> List[Tuple[str, str]]:
    """``(accessorKey, header)`` pairs in display order."""
    columns: List[Tuple[str, str]] = []
    for item in ctx.schema.user_fields:
        if item.canonical_type in _NON_COLUMN_TYPES and not item.has_item_schema:
            continue
        columns.append((item.name, item.label))
    if not ctx.options.suppress_audit_columns:
        for name in AUDIT_FIELDS:
            audit: Optional[FieldDescriptor] = ctx.schema.field(name)
            if audit is not None:
                columns.append((audit.name, audit.label))
    return columns


def _cell(name: str, body: List[str]) -> List[str]:
    lines: List[str] = [f'<template #{name}-cell="{{ row }}">']
    lines.extend(indent_lines(body))
    lines.append("</template>")
    return lines


def generate_listing_surface(ctx: "RenderContext") -> List[GeneratedArtifact]:
    naming = ctx.naming
    layout = ctx.layout
    key: str = naming.collection_key
    default_layout: str = "tree" if ctx.options.hierarchy else "table"
    shown: List[str] = [name for name, _ in listing_columns(ctx)]

    cells: List[str] = []
    for item in ctx.schema.user_fields:
        if item.name not in shown:
            continue
        value: str = f"row.original.{item.name}"
        if item.canonical_type == "date":
            cells.extend(_cell(item.name, [f'<CroutonDate :date="{value}" />']))
        elif item.canonical_type == "reference":
            cells.extend(_cell(item.name, [
                f'<CroutonItemCardMini v-if="{value}" :id="{value}" '
                f'collection="{ctx.reference_key(item)}" />'
            ]))
        elif item.canonical_type == "boolean":
            cells.extend(_cell(item.name, [
                f'<UIcon :name="{value} ? \'i-lucide-check\' : \'i-lucide-minus\'" />'
            ]))
        elif item.has_item_schema:
            cells.extend(_cell(item.name, [
                f'<{naming.sub_component_name(item.name, "CardMini")} :value="{value}" />'
            ]))
    if not ctx.options.suppress_audit_columns:
        for name in _AUDIT_DATE_FIELDS:
            cells.extend(_cell(name, [f'<CroutonDate :date="row.original.{name}" />']))
        for name in _AUDIT_USER_FIELDS:
            cells.extend(_cell(name, [
                f'<CroutonUserCardMini v-if="row.original.{name}User" '
                f':user="row.original.{name}User" />'
            ]))

    lines: List[str] = [
        _vue_header(ctx),
        "<template>",
        "  <CroutonCollection",
        '    :layout="layout"',
        f'    collection="{key}"',
        '    :columns="columns"',
        '    :rows="items || []"',
        '    :loading="pending"',
        "  >",
        "    <template #header>",
        "      <CroutonTableHeader",
        f'        title="{_attr(naming.plural_title)}"',
        f'        collection="{key}"',
        "        create-button",
        "      />",
        "    </template>",
    ]
    lines.extend(indent_lines(cells, 2))
    lines.extend([
        "  </CroutonCollection>",
        "</template>",
        "",
        '<script setup lang="ts">',
        f"import {naming.composable_name} from "
        f"{ts_string(relative_import(layout.listing, layout.composable))}",
        "",
        "withDefaults(defineProps<{",
        "  layout?: 'table' | 'list' | 'grid' | 'tree'",
        "}>(), {",
        f"  layout: '{default_layout}'",
        "})",
        "",
        f"const {{ columns }} = {naming.composable_name}()",
        f"const {{ items, pending }} = await useCollectionQuery({ts_string(key)})",
        "</script>",
        "",
    ])
    return [GeneratedArtifact(
        relative_path=layout.listing,
        content="\n".join(lines),
        kind=ArtifactKind.LISTING_SURFACE,
    )]


# ---------------------------------------------------------------------------
# Repeater item sub-components
# ---------------------------------------------------------------------------


def _label_key(field_: FieldDescriptor) -> str:
    for prop in field_.repeater_item_schema or ():
        if prop.canonical_type in ("string", "text"):
            return prop.name
    return "id"


def _item_input(field_: FieldDescriptor, ctx: "RenderContext") -> str:
    layout = ctx.layout
    path: str = layout.sub_component(field_.name, "Input")
    item_type: str = ctx.naming.item_type_name(field_.name)
    props: Tuple[FieldDescriptor, ...] = field_.repeater_item_schema or ()
    translated: List[FieldDescriptor] = [
        p for p in props if p.name in field_.translatable_properties
    ]

    lines: List[str] = [
        '<script setup lang="ts">',
        "import { nanoid } from 'nanoid'",
        f"import type {{ {item_type} }} from {ts_string(relative_import(path, layout.types))}",
        "",
        f"const model = defineModel<{item_type}>({{ required: true }})",
        "",
        "if (!model.value.id) {",
        "  model.value = { ...model.value, id: nanoid() }",
        "}",
    ]
    if translated:
        lines.extend([
            "",
            "const { locales } = useI18n()",
            "const localeTabs = computed(() => locales.value.map((locale) => {",
            "  const code = typeof locale === 'string' ? locale : locale.code",
            "  return { label: code.toUpperCase(), value: code }",
            "}))",
            "",
            "const translationOf = (locale: string, key: string) =>",
            "  model.value.translations?.[locale]?.[key] ?? ''",
            "",
            "const setTranslation = (locale: string, key: string, value: string) => {",
            "  model.value = {",
            "    ...model.value,",
            "    translations: {",
            "      ...model.value.translations,",
            "      [locale]: { ...model.value.translations?.[locale], [key]: value }",
            "    }",
            "  }",
            "}",
        ])
    lines.extend([
        "</script>",
        "",
        "<template>",
        '  <div class="flex flex-col gap-3">',
    ])
    for prop in props:
        lines.extend(indent_lines(_form_field(prop, ctx, "model", sub_components=False), 2))
    if translated:
        lines.append('    <UTabs :items="localeTabs" class="w-full">')
        lines.append('      <template #content="{ item }">')
        for prop in translated:
            lines.extend([
                f'        <UFormField label="{_attr(prop.label)}" '
                f':name="`translations.${{item.value}}.{prop.name}`">',
                "          <UInput",
                f"            :model-value=\"translationOf(item.value, '{prop.name}')\"",
                f"            @update:model-value=\"(value) => setTranslation(item.value, "
                f"'{prop.name}', String(value))\"",
                '            class="w-full"',
                "          />",
                "        </UFormField>",
            ])
        lines.append("      </template>")
        lines.append("    </UTabs>")
    lines.extend(["  </div>", "</template>", ""])
    return "\n".join(lines)


def _item_select(field_: FieldDescriptor) -> str:
    label: str = _label_key(field_)
    lines: List[str] = [
        "<template>",
        "  <div>",
        '    <div v-if="pending" class="flex items-center gap-2 text-sm text-muted">',
        '      <UIcon name="i-lucide-loader" class="animate-spin" />',
        "      Loading options...",
        "    </div>",
        '    <div v-else-if="error" class="text-sm text-error">',
        "      Failed to load options",
        "    </div>",
        '    <div v-else-if="!dependentValue" class="text-sm text-muted">',
        "      {{ dependentLabel }} required",
        "    </div>",
        '    <div v-else-if="!options.length" class="text-sm text-muted">',
        "      No options available",
        "    </div>",
        '    <div v-else class="flex flex-wrap gap-2">',
        "      <UButton",
        '        v-for="option in options"',
        '        :key="option.id"',
        "        :variant=\"isSelected(option.id) ? 'solid' : 'outline'\"",
        '        @click="toggle(option.id)"',
        "      >",
        f"        {{{{ option.{label} }}}}",
        "      </UButton>",
        "    </div>",
        "  </div>",
        "</template>",
        "",
        '<script setup lang="ts">',
        "interface Option {",
        "  id: string",
        "  [key: string]: any",
        "}",
        "",
        "const props = withDefaults(defineProps<{",
        "  modelValue?: string[] | null",
        "  options?: Option[]",
        "  pending?: boolean",
        "  error?: any",
        "  dependentValue?: string | null",
        "  dependentLabel?: string",
        "}>(), {",
        "  modelValue: null,",
        "  options: () => [],",
        "  pending: false,",
        "  error: null,",
        "  dependentValue: null,",
        f"  dependentLabel: {ts_string(label_of(field_.name))}",
        "})",
        "",
        "const emit = defineEmits<{",
        "  'update:modelValue': [value: string[]]",
        "}>()",
        "",
        "const isSelected = (id: string) => (props.modelValue || []).includes(id)",
        "",
        "const toggle = (id: string) => {",
        "  const current = props.modelValue || []",
        "  emit('update:modelValue', isSelected(id)",
        "    ? current.filter(value => value !== id)",
        "    : [...current, id])",
        "}",
        "</script>",
        "",
    ]
    return "\n".join(lines)


def _item_card_mini(field_: FieldDescriptor) -> str:
    label: str = _label_key(field_)
    lines: List[str] = [
        "<template>",
        '  <div class="text-sm">',
        '    <div v-if="Array.isArray(value) && value.length" class="flex flex-wrap gap-1">',
        "      <UBadge",
        '        v-for="item in value.slice(0, 3)"',
        '        :key="item.id"',
        '        color="neutral"',
        '        variant="subtle"',
        "      >",
        f"        {{{{ item.{label} || item.id }}}}",
        "      </UBadge>",
        '      <UBadge v-if="value.length > 3" color="neutral" variant="subtle">',
        "        +{{ value.length - 3 }}",
        "      </UBadge>",
        "    </div>",
        '    <span v-else class="text-muted">-</span>',
        "  </div>",
        "</template>",
        "",
        '<script setup lang="ts">',
        "defineProps<{",
        "  value?: Array<Record<string, any>> | null",
        "}>()",
        "</script>",
        "",
    ]
    return "\n".join(lines)


def generate_sub_components(ctx: "RenderContext") -> List[GeneratedArtifact]:
    """
    ``Input``/``Select``/``CardMini`` for every repeater field with an item
    schema.  The folder is the singular of the field name (``slots`` ->
    ``Slot``) so a dependent field in another collection resolves
    ``<Layer><Collection>SlotSelect`` by the same word-list rule.
    """
    artifacts: List[GeneratedArtifact] = []
    for item in ctx.schema.repeater_fields:
        logger.debug(
            "Sub-components for %s.%s in %s/", ctx.naming.collection_key, item.name,
            singular_pascal_of(item.name),
        )
        for part, content in (
            ("Input", _item_input(item, ctx)),
            ("Select", _item_select(item)),
            ("CardMini", _item_card_mini(item)),
        ):
            artifacts.append(GeneratedArtifact(
                relative_path=ctx.layout.sub_component(item.name, part),
                content=content,
                kind=ArtifactKind.SUB_COMPONENT,
            ))
    return artifacts


def _vue_header(ctx: "RenderContext") -> str:
    return f"<!-- Generated by layergen for {ctx.naming.layer}/{ctx.naming.collection}. -->"


__all__: List[str] = [
    "control_lines",
    "listing_columns",
    "generate_input_surface",
    "generate_listing_surface",
    "generate_sub_components",
]
