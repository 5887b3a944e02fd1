# File: layergen/config.py
"""
LayerGen - Configuration Loading
==================================

Loads schema and multi-collection configuration documents (JSON or YAML)
and expands a ``RunConfig`` into the ordered list of ``Target``s a run
processes.

Config shape::

    dialect: sqlite            # or pg
    collections:
      - name: posts
        fieldsFile: ./schemas/posts.yaml   # relative to the config file
        hierarchy: false
        sortable: false
        seed: {count: 50}                  # or true
        translatable: false
        formComponent: null
    targets:
      - layer: blog
        collections: [posts]
    flags: {force: false, dryRun: false, noTranslations: false}
    seed: {defaultCount: 25, defaultTeamId: seed-team}
    features: [assets]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import ValidationError

from layergen.errors import ConfigError
from layergen.models import (
    CollectionConfig,
    CollectionOptions,
    Dialect,
    GenerationFlags,
    RunConfig,
    SeedOptions,
    Target,
)

logger: logging.Logger = logging.getLogger("layergen.config")

DEFAULT_CONFIG_NAMES: Sequence[str] = (
    "layergen.config.yaml",
    "layergen.config.yml",
    "layergen.config.json",
)

# ---------------------------------------------------------------------------
# Document loaders
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object at top level of {path}, got {type(data).__name__}.")
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping at top level of {path}, got {type(data).__name__}.")
    return data


def load_document(path: Path) -> Dict[str, Any]:
    """
    Load a JSON or YAML mapping, dispatching on the file extension.

    Unknown extensions are tried as JSON first, then YAML.

    Raises:
        ConfigError: missing file, unreadable content, non-mapping top level.
    """
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    if not path.is_file():
        raise ConfigError(f"Not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except ConfigError:
        return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# RunConfig
# ---------------------------------------------------------------------------


def find_default_config(directory: Path) -> Optional[Path]:
    for name in DEFAULT_CONFIG_NAMES:
        candidate: Path = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_run_config(path: Path) -> RunConfig:
    """Parse a multi-collection configuration file."""
    raw: Dict[str, Any] = load_document(path)
    try:
        config: RunConfig = RunConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
    config.base_dir = str(path.resolve().parent)
    logger.info(
        "Loaded config %s: %d collection(s), %d target(s).",
        path, len(config.collections), config.target_count,
    )
    return config


def resolve_dialect(value: str) -> Dialect:
    """Map a config dialect string to ``Dialect``; unknown values fall back to sqlite."""
    try:
        return Dialect(value.strip().lower())
    except ValueError:
        logger.warning("Unknown dialect '%s', falling back to sqlite.", value)
        return Dialect.SQLITE


def _collection_options(
    entry: CollectionConfig,
    config: RunConfig,
    flags: GenerationFlags,
) -> CollectionOptions:
    seed: Optional[SeedOptions] = None
    if isinstance(entry.seed, SeedOptions):
        seed = entry.seed
    elif entry.seed:
        seed = SeedOptions(count=config.seed.default_count, team_id=config.seed.default_team_id)
    return CollectionOptions(
        hierarchy=entry.hierarchy,
        sortable=entry.sortable,
        translatable=entry.translatable,
        no_translations=flags.no_translations,
        seed=seed,
        form_component=entry.form_component,
    )


def merge_flags(base: GenerationFlags, **overrides: Optional[bool]) -> GenerationFlags:
    """CLI overrides win over config flags; ``None`` means "not given"."""
    data: Dict[str, bool] = base.model_dump()
    for key, value in overrides.items():
        if value:
            data[key] = True
    return GenerationFlags(**data)


def build_targets(
    config: RunConfig,
    *,
    only: Optional[str] = None,
    flags: Optional[GenerationFlags] = None,
) -> List[Target]:
    """
    Expand ``config`` into targets in declaration order.

    Raises:
        ConfigError: a target references an undefined collection, or
            ``only`` matches nothing.
    """
    effective: GenerationFlags = flags or config.flags
    dialect: Dialect = resolve_dialect(config.dialect)
    base_dir: Path = Path(config.base_dir or ".")
    targets: List[Target] = []

    for target_cfg in config.targets:
        for name in target_cfg.collections:
            if only is not None and name != only:
                continue
            entry: Optional[CollectionConfig] = config.collection(name)
            if entry is None:
                raise ConfigError(
                    f"Target layer '{target_cfg.layer}' references undefined collection '{name}'."
                )
            targets.append(
                Target(
                    layer=target_cfg.layer,
                    collection=entry.name,
                    dialect=dialect,
                    flags=effective,
                    options=_collection_options(entry, config, effective),
                    fields_file=str((base_dir / entry.fields_file).resolve()),
                )
            )

    if only is not None and not targets:
        raise ConfigError(f"--only '{only}' matches no collection in any target.")
    return targets


__all__: List[str] = [
    "DEFAULT_CONFIG_NAMES",
    "load_document",
    "find_default_config",
    "load_run_config",
    "resolve_dialect",
    "merge_flags",
    "build_targets",
]
