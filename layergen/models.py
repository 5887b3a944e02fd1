# File: layergen/models.py
"""
LayerGen - Core Data Models
=============================
Pydantic V2 models for everything that flows through the pipeline:

    schema file  → FieldMeta (raw)  → FieldDescriptor → CollectionSchema
    config file  → RunConfig        → Target
    generators   → GeneratedArtifact
    registries   → RegistryEntry

Input-facing models accept the camelCase keys used in schema and config
documents (``maxLength``, ``fieldsFile``...) through aliases.  Models that
the pipeline produces (``FieldDescriptor``, ``CollectionSchema``,
``GeneratedArtifact``) are frozen: generators only ever read them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from layergen.utils import count_lines, sha256_hex

logger: logging.Logger = logging.getLogger("layergen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Dialect(str, Enum):
    """Persistence dialects the schema and query generators target."""

    SQLITE = "sqlite"
    PG = "pg"


class FieldOrigin(str, Enum):
    """Where a field in a ``CollectionSchema`` came from, in render order."""

    IDENTIFIER = "identifier"
    SCOPE = "scope"
    USER = "user"
    AUDIT = "audit"
    HIERARCHY = "hierarchy"
    TRANSLATION = "translation"


class ArtifactKind(str, Enum):
    INPUT_SURFACE = "input_surface"
    LISTING_SURFACE = "listing_surface"
    COMPOSABLE = "composable"
    HANDLER = "handler"
    PERSISTENCE_SCHEMA = "persistence_schema"
    QUERY_MODULE = "query_module"
    TYPE_DECLARATIONS = "type_declarations"
    SEED_DATA = "seed_data"
    SUB_COMPONENT = "sub_component"
    LAYER_CONFIG = "layer_config"
    MANIFEST = "manifest"


class RegistryKind(str, Enum):
    EXTENSION_LIST = "extension_list"
    SCHEMA_INDEX = "schema_index"
    UI_REGISTRY = "ui_registry"


class TargetState(str, Enum):
    """Orchestrator states for a single target."""

    VALIDATING = "validating"
    PLANNING = "planning"
    WRITING = "writing"
    REGISTRY_UPDATING = "registry_updating"
    DONE = "done"
    ABORTED = "aborted"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

# Unknown meta keys are ignored so older tooling can read newer schemas.
_INPUT_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    extra="ignore",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Raw schema input
# ---------------------------------------------------------------------------


class FieldMeta(BaseModel):
    """The ``meta`` block of a field in a schema file."""

    model_config = _INPUT_CONFIG

    required: bool = False
    max_length: Optional[int] = Field(default=None, alias="maxLength", ge=1)
    label: Optional[str] = None
    translatable: bool = False
    default: Any = None
    primary_key: bool = Field(default=False, alias="primaryKey")
    nullable: bool = False
    unique: bool = False
    precision: Optional[int] = Field(default=None, ge=1)
    scale: Optional[int] = Field(default=None, ge=0)
    area: Optional[str] = None
    group: Optional[str] = None
    component: Optional[str] = None
    read_only: bool = Field(default=False, alias="readOnly")
    display_as: Optional[str] = Field(default=None, alias="displayAs")
    depends_on: Optional[str] = Field(default=None, alias="dependsOn")
    depends_on_collection: Optional[str] = Field(default=None, alias="dependsOnCollection")
    depends_on_field: Optional[str] = Field(default=None, alias="dependsOnField")
    properties: Optional[Dict[str, Any]] = None
    translatable_properties: List[str] = Field(
        default_factory=list, alias="translatableProperties"
    )
    add_label: Optional[str] = Field(default=None, alias="addLabel")


class RawField(BaseModel):
    """One ``name: {type, meta}`` entry of a schema file."""

    model_config = _INPUT_CONFIG

    type: str = Field(..., min_length=1)
    ref_target: Optional[str] = Field(default=None, alias="refTarget")
    meta: FieldMeta = Field(default_factory=FieldMeta)

    @field_validator("type")
    @classmethod
    def _normalise_type(cls, v: str) -> str:
        return v.strip().lower()


# ---------------------------------------------------------------------------
# Canonical field model
# ---------------------------------------------------------------------------


class DependentRef(BaseModel):
    """Links a dependent field to the array-valued field it selects from."""

    model_config = _FROZEN_CONFIG

    depends_on: Optional[str] = None
    collection: Optional[str] = None
    field: Optional[str] = None
    display_as: Optional[str] = None


class FieldDescriptor(BaseModel):
    """
    Canonical, immutable description of one field.

    Produced by ``layergen.schema.parse_schema``; generators read it and
    never modify it.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    canonical_type: str = Field(..., description="Type tag known to a loaded manifest.")
    origin: FieldOrigin = FieldOrigin.USER
    required: bool = False
    nullable: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Any = None
    label: str = ""
    is_translatable: bool = False
    is_primary_key: bool = False
    read_only: bool = False
    area: Optional[str] = None
    component: Optional[str] = None
    reference_target: Optional[str] = None
    dependent_on: Optional[DependentRef] = None
    repeater_item_schema: Optional[Tuple[FieldDescriptor, ...]] = None
    translatable_properties: Tuple[str, ...] = ()

    @computed_field  # type: ignore[misc]
    @property
    def is_dependent(self) -> bool:
        """Stored as a list of selected item ids rather than its own type."""
        if self.dependent_on is None:
            return False
        return bool(
            (self.dependent_on.depends_on and self.dependent_on.collection)
            or self.dependent_on.display_as == "slotButtonGroup"
        )

    @computed_field  # type: ignore[misc]
    @property
    def is_editable(self) -> bool:
        return (
            self.origin in (FieldOrigin.USER, FieldOrigin.HIERARCHY)
            and not self.is_primary_key
            and not self.read_only
        )

    @property
    def has_item_schema(self) -> bool:
        return bool(self.repeater_item_schema)

    def __repr__(self) -> str:
        flags: str = "".join([
            " PK" if self.is_primary_key else "",
            " REQ" if self.required else "",
            " I18N" if self.is_translatable else "",
        ])
        return f"<Field {self.name}: {self.canonical_type} ({self.origin}){flags}>"


FieldDescriptor.model_rebuild()


# ---------------------------------------------------------------------------
# Collection-level options & schema
# ---------------------------------------------------------------------------


class SeedOptions(BaseModel):
    model_config = _SHARED_CONFIG

    count: int = Field(default=25, ge=1)
    team_id: str = Field(default="seed-team", alias="teamId")


class CollectionOptions(BaseModel):
    """Collection-level switches that change injected fields and artifacts."""

    model_config = _SHARED_CONFIG

    hierarchy: bool = False
    sortable: bool = False
    translatable: bool = False
    no_translations: bool = Field(default=False, alias="noTranslations")
    seed: Optional[SeedOptions] = None
    form_component: Optional[str] = Field(default=None, alias="formComponent")
    suppress_audit_columns: bool = Field(default=False, alias="suppressAuditColumns")
    allow_reserved_fields: bool = Field(default=False, alias="allowReservedFields")

    @property
    def translations_enabled(self) -> bool:
        return not self.no_translations


class CollectionSchema(BaseModel):
    """Ordered, fully injected field list of one collection."""

    model_config = _FROZEN_CONFIG

    collection: str
    fields: Tuple[FieldDescriptor, ...]
    options: CollectionOptions = Field(default_factory=CollectionOptions)

    def field(self, name: str) -> Optional[FieldDescriptor]:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def by_origin(self, *origins: FieldOrigin) -> List[FieldDescriptor]:
        return [f for f in self.fields if f.origin in origins]

    @property
    def user_fields(self) -> List[FieldDescriptor]:
        return self.by_origin(FieldOrigin.USER)

    @property
    def editable_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.fields if f.is_editable and f.origin == FieldOrigin.USER]

    @property
    def translatable_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.user_fields if f.is_translatable]

    @property
    def has_translations(self) -> bool:
        return self.field("translations") is not None

    @property
    def repeater_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.user_fields if f.has_item_schema]

    @property
    def date_fields(self) -> List[FieldDescriptor]:
        return [f for f in self.user_fields if f.canonical_type == "date"]

    def __repr__(self) -> str:
        return f"<CollectionSchema {self.collection}: {len(self.fields)} fields>"


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class GenerationFlags(BaseModel):
    model_config = _SHARED_CONFIG

    force: bool = False
    dry_run: bool = Field(default=False, alias="dryRun")
    no_translations: bool = Field(default=False, alias="noTranslations")


class Target(BaseModel):
    """One ``(layer, collection)`` pair; the unit of generation and rollback."""

    model_config = _SHARED_CONFIG

    layer: str = Field(..., min_length=1)
    collection: str = Field(..., min_length=1)
    dialect: Dialect = Dialect.SQLITE
    flags: GenerationFlags = Field(default_factory=GenerationFlags)
    options: CollectionOptions = Field(default_factory=CollectionOptions)
    fields_file: Optional[str] = None
    raw_fields: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _one_schema_source(self) -> "Target":
        if self.fields_file is not None and self.raw_fields is not None:
            raise ValueError("Target takes either fields_file or raw_fields, not both.")
        return self

    @property
    def label(self) -> str:
        return f"{self.layer}/{self.collection}"

    def __repr__(self) -> str:
        return f"<Target {self.label} ({self.dialect})>"


# ---------------------------------------------------------------------------
# Generator output & registry entries
# ---------------------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """One file a generator wants written, path relative to the app root."""

    model_config = _FROZEN_CONFIG

    relative_path: str = Field(..., min_length=1)
    content: str
    kind: ArtifactKind

    @property
    def line_count(self) -> int:
        return count_lines(self.content)

    @property
    def sha256(self) -> str:
        return sha256_hex(self.content)

    def __repr__(self) -> str:
        return f"<Artifact {self.kind}: {self.relative_path}>"


class RegistryEntry(BaseModel):
    """
    An idempotent registry insertion.

    ``insertion_key`` identifies the entry; ``value`` is what the key points
    at (import source, config export name, or the key itself for lists).
    """

    model_config = _FROZEN_CONFIG

    registry_file: str
    kind: RegistryKind
    insertion_key: str
    rendered_line: str
    value: str
    import_source: Optional[str] = None


# ---------------------------------------------------------------------------
# Multi-collection configuration
# ---------------------------------------------------------------------------


class CollectionConfig(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    fields_file: str = Field(..., alias="fieldsFile", min_length=1)
    hierarchy: bool = False
    sortable: bool = False
    translatable: bool = False
    seed: Union[bool, SeedOptions] = False
    form_component: Optional[str] = Field(default=None, alias="formComponent")


class TargetConfig(BaseModel):
    model_config = _SHARED_CONFIG

    layer: str = Field(..., min_length=1)
    collections: List[str] = Field(default_factory=list)


class SeedDefaults(BaseModel):
    model_config = _SHARED_CONFIG

    default_count: int = Field(default=25, alias="defaultCount", ge=1)
    default_team_id: str = Field(default="seed-team", alias="defaultTeamId")


class RunConfig(BaseModel):
    """Parsed multi-collection configuration file."""

    model_config = _SHARED_CONFIG

    dialect: str = "sqlite"
    collections: List[CollectionConfig] = Field(default_factory=list)
    targets: List[TargetConfig] = Field(default_factory=list)
    flags: GenerationFlags = Field(default_factory=GenerationFlags)
    seed: SeedDefaults = Field(default_factory=SeedDefaults)
    features: List[str] = Field(default_factory=list)
    base_dir: Optional[str] = Field(default=None, exclude=True)

    def collection(self, name: str) -> Optional[CollectionConfig]:
        for item in self.collections:
            if item.name == name:
                return item
        return None

    @computed_field  # type: ignore[misc]
    @property
    def target_count(self) -> int:
        return sum(len(t.collections) for t in self.targets)


__all__: List[str] = [
    "Dialect",
    "FieldOrigin",
    "ArtifactKind",
    "RegistryKind",
    "TargetState",
    "FieldMeta",
    "RawField",
    "DependentRef",
    "FieldDescriptor",
    "SeedOptions",
    "CollectionOptions",
    "CollectionSchema",
    "GenerationFlags",
    "Target",
    "GeneratedArtifact",
    "RegistryEntry",
    "CollectionConfig",
    "TargetConfig",
    "SeedDefaults",
    "RunConfig",
]

logger.debug("layergen.models loaded, %d public symbols.", len(__all__))
