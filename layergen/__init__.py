# File: layergen/__init__.py
"""
LayerGen - Collection Scaffolding for Layered Nuxt Applications
=================================================================

Turns a declarative field schema (JSON/YAML) into the complete artifact set
of one collection inside a layer: input and listing surfaces, API handlers,
database schema, query module, type declarations, composable and seed data.
Every generated collection is registered in three shared index files, and a
rollback removes exactly what generation added.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│  Orchestrator  │────▶│ TemplateGenerator│
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
                    ┌────────────┼────────────┐
                    ▼            ▼            ▼
             ┌──────────┐ ┌───────────┐ ┌───────────┐
             │  schema  │ │ exporters │ │ registry  │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

Usage::

    # As a library
    from layergen import Orchestrator, Target
    report = Orchestrator(Path(".")).run([
        Target(layer="blog", collection="posts", fields_file="posts.yaml"),
    ])
    print(report.summary())

    # From the command line
    layergen generate blog posts --fields-file posts.yaml
"""

from __future__ import annotations

__version__: str = "0.4.0"

from layergen.errors import (
    ArtifactExistsError,
    ConfigError,
    LayergenError,
    NamingCollisionError,
    PartialRunError,
    RegistryConflictError,
    RegistryParseError,
    SchemaError,
    UnknownFieldTypeError,
)
from layergen.models import (
    CollectionOptions,
    CollectionSchema,
    Dialect,
    FieldDescriptor,
    GeneratedArtifact,
    GenerationFlags,
    RegistryEntry,
    RunConfig,
    Target,
    TargetState,
)
from layergen.naming import NamingSet, derive
from layergen.schema import parse_schema
from layergen.typemap import TypeTable, default_type_table
from layergen.templates import TemplateGenerator
from layergen.registry import Registry, RegistrySet, registry_entries
from layergen.generator import Orchestrator, RunReport, TargetReport, generate
from layergen.rollback import RemovedArtifact, RollbackEngine, rollback

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    # Orchestration
    "Orchestrator",
    "RunReport",
    "TargetReport",
    "generate",
    "RollbackEngine",
    "RemovedArtifact",
    "rollback",
    # Models
    "CollectionOptions",
    "CollectionSchema",
    "Dialect",
    "FieldDescriptor",
    "GeneratedArtifact",
    "GenerationFlags",
    "RegistryEntry",
    "RunConfig",
    "Target",
    "TargetState",
    # Naming, schema, types
    "NamingSet",
    "derive",
    "parse_schema",
    "TypeTable",
    "default_type_table",
    "TemplateGenerator",
    # Registries
    "Registry",
    "RegistrySet",
    "registry_entries",
    # Errors
    "LayergenError",
    "SchemaError",
    "UnknownFieldTypeError",
    "NamingCollisionError",
    "ArtifactExistsError",
    "RegistryParseError",
    "RegistryConflictError",
    "ConfigError",
    "PartialRunError",
]
