# File: layergen/errors.py
"""
LayerGen - Exception Taxonomy
===============================

Every failure the engine can raise derives from ``LayergenError`` so the
CLI can map them to exit codes in one place.

Stage ownership::

    SchemaError            Validating / Planning   fatal for the target
    UnknownFieldTypeError  Validating / Planning   fatal for the target
    NamingCollisionError   Validating / Planning   fatal for the target
    ArtifactExistsError    Writing                 per-file skip, never fatal
    RegistryParseError     RegistryUpdating        fatal for that stage only
    RegistryConflictError  RegistryUpdating        fatal for that stage only
    ConfigError            before any target       fatal for the run
    PartialRunError        end of run              aggregate of failures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger: logging.Logger = logging.getLogger("layergen.errors")


class LayergenError(Exception):
    """Root of every error raised by layergen."""


# ---------------------------------------------------------------------------
# Schema-stage errors
# ---------------------------------------------------------------------------


class SchemaError(LayergenError):
    """Malformed or ambiguous input schema."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> None:
        self.field: Optional[str] = field
        self.collection: Optional[str] = collection
        location: List[str] = []
        if collection:
            location.append(f"collection '{collection}'")
        if field:
            location.append(f"field '{field}'")
        prefix: str = f"{', '.join(location)}: " if location else ""
        super().__init__(f"{prefix}{message}")


class UnknownFieldTypeError(SchemaError):
    """A field declares a type no loaded manifest knows about."""

    def __init__(
        self,
        type_name: str,
        *,
        field: Optional[str] = None,
        collection: Optional[str] = None,
    ) -> None:
        self.type_name: str = type_name
        super().__init__(
            f"unknown field type '{type_name}'",
            field=field,
            collection=collection,
        )


class NamingCollisionError(SchemaError):
    """A user field reuses the name of an auto-injected field."""


# ---------------------------------------------------------------------------
# Writing / registry errors
# ---------------------------------------------------------------------------


class ArtifactExistsError(LayergenError, FileExistsError):
    """Target path already exists and ``force`` is off."""

    def __init__(self, path: str) -> None:
        self.path: str = path
        super().__init__(f"{path} already exists (use --force to overwrite)")


class RegistryParseError(LayergenError):
    """The structural reader could not make sense of a registry file."""

    def __init__(self, path: str, message: str, position: Optional[int] = None) -> None:
        self.path: str = path
        self.position: Optional[int] = position
        where: str = f" at offset {position}" if position is not None else ""
        super().__init__(f"{path}{where}: {message}")


class RegistryConflictError(LayergenError):
    """An insertion key is already bound to a different value."""

    def __init__(self, path: str, key: str, existing: str, wanted: str) -> None:
        self.path: str = path
        self.key: str = key
        super().__init__(
            f"{path}: '{key}' already points to {existing!r}, "
            f"refusing to replace it with {wanted!r} without --force"
        )


class ConfigError(LayergenError):
    """Unreadable or malformed multi-collection configuration."""


# ---------------------------------------------------------------------------
# Run aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TargetFailure:
    """One failed target inside a multi-collection run."""

    target: str
    stage: str
    message: str

    def __str__(self) -> str:
        return f"{self.target} [{self.stage}]: {self.message}"


class PartialRunError(LayergenError):
    """Raised after a run finished with one or more failed targets."""

    def __init__(self, failures: Sequence[TargetFailure]) -> None:
        self.failures: List[TargetFailure] = list(failures)
        lines: List[str] = [f"{len(self.failures)} target(s) failed:"]
        lines.extend(f"  - {failure}" for failure in self.failures)
        super().__init__("\n".join(lines))


__all__: List[str] = [
    "LayergenError",
    "SchemaError",
    "UnknownFieldTypeError",
    "NamingCollisionError",
    "ArtifactExistsError",
    "RegistryParseError",
    "RegistryConflictError",
    "ConfigError",
    "TargetFailure",
    "PartialRunError",
]
