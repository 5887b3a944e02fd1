# File: layergen/rollback.py
"""
LayerGen - Rollback Engine
============================

Undoes a generation run for one ``(layer, collection)`` pair using names
only: the ``NamingSet`` gives every fixed artifact path and every registry
insertion key, the collection's ``.layergen.json`` manifest (when present)
adds the schema-dependent sub-component paths.

Order of operations:
    1. Delete every artifact that exists (missing files are fine), then the
       manifest.
    2. Remove the UI registry, schema index and layer extension entries.
    3. Remove ``./layers/<layer>`` from the application extension list once
       the layer's own list names no collection any more.
    4. Prune directories left empty, never above the application root.

Safe on partially generated targets and idempotent: a second rollback
removes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from layergen.errors import ConfigError
from layergen.exporters import ExportManifest, load_manifest
from layergen.layout import APP_CONFIG_FILE, ArtifactLayout, layout_for
from layergen.models import RegistryEntry, RegistryKind
from layergen.naming import NamingSet, derive
from layergen.registry import RegistryChange, RegistrySet, registry_entries
from layergen.utils import prune_empty_dirs

logger: logging.Logger = logging.getLogger("layergen.rollback")


@dataclass(frozen=True, slots=True)
class RemovedArtifact:
    """One thing rollback removed: a file, or a registry entry."""

    relative_path: str
    kind: str  # "file" | "registry"
    key: Optional[str] = None

    def __str__(self) -> str:
        if self.key is None:
            return f"deleted  {self.relative_path}"
        return f"removed  {self.key} ({self.relative_path})"


class RollbackEngine:
    """Removes generated targets from one application root."""

    def __init__(self, root: Path, *, registries: Optional[RegistrySet] = None) -> None:
        self._root: Path = root
        self._registries: RegistrySet = registries or RegistrySet(root)

    # -- paths ---------------------------------------------------------------

    def _manifest_paths(self, layout: ArtifactLayout) -> List[str]:
        try:
            manifest: Optional[ExportManifest] = load_manifest(self._root / layout.manifest)
        except ConfigError as exc:
            logger.warning("Ignoring unreadable manifest %s: %s", layout.manifest, exc)
            return []
        if manifest is None:
            return []
        inside: str = f"{layout.collection_root}/"
        paths: List[str] = []
        for path in manifest.paths:
            if not path.startswith(inside):
                logger.warning("Manifest %s lists %s outside the collection, ignored.",
                               layout.manifest, path)
                continue
            paths.append(path)
        return paths

    def artifact_paths(self, naming: NamingSet) -> List[str]:
        """Every path generation may have written for ``naming``, manifest last."""
        layout: ArtifactLayout = layout_for(naming)
        seen: Set[str] = set()
        paths: List[str] = []
        for path in [*layout.fixed_paths(), *self._manifest_paths(layout), layout.manifest]:
            if path not in seen:
                seen.add(path)
                paths.append(path)
        return paths

    # -- steps ---------------------------------------------------------------

    def _delete_files(self, naming: NamingSet) -> List[RemovedArtifact]:
        removed: List[RemovedArtifact] = []
        for relative_path in self.artifact_paths(naming):
            path: Path = self._root / relative_path
            if not path.is_file():
                continue
            path.unlink()
            logger.debug("Deleted %s.", relative_path)
            removed.append(RemovedArtifact(relative_path, "file"))
        return removed

    def _remove_entry(self, entry: RegistryEntry) -> Optional[RemovedArtifact]:
        change: Optional[RegistryChange] = self._registries.for_entry(entry).remove(entry.insertion_key)
        if change is None:
            return None
        return RemovedArtifact(entry.registry_file, "registry", entry.insertion_key)

    def _remove_registry_entries(self, naming: NamingSet) -> List[RemovedArtifact]:
        layout: ArtifactLayout = layout_for(naming)
        entries: List[RegistryEntry] = registry_entries(naming)
        app_entries: List[RegistryEntry] = [e for e in entries if e.registry_file == APP_CONFIG_FILE]
        removed: List[RemovedArtifact] = []

        for entry in reversed(entries):
            if entry.registry_file == APP_CONFIG_FILE:
                continue
            item: Optional[RemovedArtifact] = self._remove_entry(entry)
            if item is not None:
                removed.append(item)

        remaining: List[str] = self._registries.get(
            layout.layer_config, RegistryKind.EXTENSION_LIST,
        ).list()
        if remaining:
            logger.info(
                "Layer '%s' still extends %d collection(s); keeping it in %s.",
                naming.layer, len(remaining), APP_CONFIG_FILE,
            )
            return removed

        for entry in app_entries:
            item = self._remove_entry(entry)
            if item is not None:
                removed.append(item)
        return removed

    def _prune(self, removed: List[RemovedArtifact]) -> None:
        for item in removed:
            parent: Path = (self._root / item.relative_path).parent
            if not (self._root / item.relative_path).exists():
                for directory in prune_empty_dirs(parent, self._root):
                    logger.debug("Removed empty directory %s.", directory)

    # -- public ----------------------------------------------------------------

    def rollback(self, layer: str, collection: str) -> List[RemovedArtifact]:
        """
        Remove everything generation added for ``(layer, collection)``.

        Raises:
            SchemaError: the names have no usable words.
            RegistryParseError: a registry file cannot be read structurally;
                artifact files are already gone at that point.
        """
        naming: NamingSet = derive(layer, collection)
        removed: List[RemovedArtifact] = self._delete_files(naming)
        removed.extend(self._remove_registry_entries(naming))
        self._prune(removed)
        logger.info(
            "Rolled back %s/%s: %d file(s), %d registry entry(s).",
            layer, collection,
            sum(1 for r in removed if r.kind == "file"),
            sum(1 for r in removed if r.kind == "registry"),
        )
        return removed


def rollback(
    root: Path,
    layer: str,
    collection: str,
    *,
    registries: Optional[RegistrySet] = None,
) -> List[RemovedArtifact]:
    """Module-level shortcut for ``RollbackEngine(root).rollback(...)``."""
    return RollbackEngine(root, registries=registries).rollback(layer, collection)


__all__: List[str] = [
    "RemovedArtifact",
    "RollbackEngine",
    "rollback",
]
