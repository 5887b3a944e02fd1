# File: layergen/exporters.py
"""
LayerGen - Artifact Writer & Generation Manifest
==================================================

Responsible for:
    1. Writing planned artifacts under the application root, one atomic
       write per file (``layergen.utils.write_file``).
    2. Applying the overwrite policy: an existing file is skipped with a
       warning unless ``force`` is set.  Skips are recorded, never raised.
    3. Maintaining ``.layergen.json`` in each collection directory, a
       manifest of every artifact ever generated there, so rollback can find
       files that are not derivable from names alone.

The manifest carries no timestamp: regenerating an unchanged target leaves
it byte-identical.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from layergen.errors import ArtifactExistsError, ConfigError
from layergen.models import ArtifactKind, GeneratedArtifact
from layergen.utils import count_lines, read_file, sha256_hex, write_file

logger: logging.Logger = logging.getLogger("layergen.exporters")

MANIFEST_FORMAT: int = 1


# ---------------------------------------------------------------------------
# Manifest records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single generated file."""

    relative_path: str
    sha256: str
    line_count: int
    kind: str

    @classmethod
    def of(cls, artifact: GeneratedArtifact) -> "FileRecord":
        return cls(
            relative_path=artifact.relative_path,
            sha256=artifact.sha256,
            line_count=artifact.line_count,
            kind=ArtifactKind(artifact.kind).value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.relative_path,
            "sha256": self.sha256,
            "lines": self.line_count,
            "kind": self.kind,
        }


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """
    Every artifact generated for one target.

    Serialisable to JSON; ``from_dict`` accepts what ``to_dict`` produces.
    """

    layer: str = ""
    collection: str = ""
    generator_version: str = ""
    files: List[FileRecord] = field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        return [record.relative_path for record in self.files]

    @property
    def total_lines(self) -> int:
        return sum(record.line_count for record in self.files)

    def merge(self, previous: Optional["ExportManifest"]) -> None:
        """Carry over records of earlier runs that this run did not plan."""
        if previous is None:
            return
        current: Set[str] = set(self.paths)
        for record in previous.files:
            if record.relative_path not in current:
                self.files.append(record)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "format": MANIFEST_FORMAT,
            "layer": self.layer,
            "collection": self.collection,
            "generator_version": self.generator_version,
            "total_files": len(self.files),
            "total_lines": self.total_lines,
            "files": [record.to_dict() for record in self.files],
        }

    def to_json(self, indent_size: int = 2) -> str:
        """Serialise manifest to pretty-printed JSON with a trailing newline."""
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportManifest":
        try:
            files: List[FileRecord] = [
                FileRecord(
                    relative_path=str(item["path"]),
                    sha256=str(item.get("sha256", "")),
                    line_count=int(item.get("lines", 0)),
                    kind=str(item.get("kind", "")),
                )
                for item in data.get("files", [])
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Malformed generation manifest: {exc}") from exc
        return cls(
            layer=str(data.get("layer", "")),
            collection=str(data.get("collection", "")),
            generator_version=str(data.get("generator_version", "")),
            files=files,
        )


def build_manifest(
    layer: str,
    collection: str,
    artifacts: Sequence[GeneratedArtifact],
) -> ExportManifest:
    """Build the manifest of a planned artifact list."""
    import layergen

    return ExportManifest(
        layer=layer,
        collection=collection,
        generator_version=layergen.__version__,
        files=[FileRecord.of(a) for a in artifacts],
    )


def load_manifest(path: Path) -> Optional[ExportManifest]:
    """
    Read a manifest file; ``None`` when it does not exist.

    Raises:
        ConfigError: the file exists but is not a manifest.
    """
    if not path.is_file():
        return None
    try:
        data: Any = json.loads(read_file(path))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in manifest {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest {path} must be a JSON object.")
    return ExportManifest.from_dict(data)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class ArtifactWriter:
    """
    Writes artifacts under ``root`` applying the overwrite policy.

    One writer per target; ``written`` and ``skipped`` accumulate the
    relative paths in write order.
    """

    def __init__(self, root: Path, *, force: bool = False) -> None:
        self._root: Path = root
        self._force: bool = force
        self.written: List[str] = []
        self.skipped: List[ArtifactExistsError] = []

    def _check(self, relative_path: str) -> Path:
        path: Path = self._root / relative_path
        if path.exists() and not self._force:
            raise ArtifactExistsError(relative_path)
        return path

    def write(self, artifact: GeneratedArtifact) -> bool:
        """
        Write one artifact. Returns ``False`` when it was skipped.

        Raises:
            OSError: the file could not be written.
        """
        try:
            path: Path = self._check(artifact.relative_path)
        except ArtifactExistsError as exc:
            self.skipped.append(exc)
            logger.warning("Skipped %s: %s", artifact.relative_path, exc)
            return False

        size: int = write_file(path, artifact.content)
        self.written.append(artifact.relative_path)
        logger.debug(
            "Wrote %s (%d bytes, %d lines).",
            artifact.relative_path, size, count_lines(artifact.content),
        )
        return True

    def write_all(self, artifacts: Sequence[GeneratedArtifact]) -> List[str]:
        """Write every artifact in order; returns the written paths."""
        for artifact in artifacts:
            self.write(artifact)
        return list(self.written)

    def write_manifest(self, relative_path: str, manifest: ExportManifest) -> bool:
        """
        Write ``manifest`` merged with the one already on disk.

        The manifest is bookkeeping, so it is rewritten regardless of
        ``force``; an unchanged manifest is left untouched.  Returns whether
        the file changed.
        """
        path: Path = self._root / relative_path
        manifest.merge(load_manifest(path))
        content: str = manifest.to_json()
        if path.is_file() and sha256_hex(read_file(path)) == sha256_hex(content):
            logger.debug("Manifest %s unchanged.", relative_path)
            return False
        write_file(path, content)
        logger.debug("Wrote manifest %s (%d file(s)).", relative_path, len(manifest.files))
        return True

    @property
    def skipped_paths(self) -> List[str]:
        return [exc.path for exc in self.skipped]

    def __repr__(self) -> str:
        return (
            f"<ArtifactWriter {self._root} force={self._force} "
            f"written={len(self.written)} skipped={len(self.skipped)}>"
        )


__all__: List[str] = [
    "MANIFEST_FORMAT",
    "FileRecord",
    "ExportManifest",
    "build_manifest",
    "load_manifest",
    "ArtifactWriter",
]

logger.debug("layergen.exporters loaded.")
