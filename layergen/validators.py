# File: layergen/validators.py
"""
LayerGen - Schema & Configuration Validators
==============================================
Soft, cross-entity checks that run after parsing succeeded.

``layergen.schema.parse_schema`` raises for anything that makes a schema
unusable.  What remains here are problems a run can survive: they are
collected into a ``ValidationResult`` and surfaced as warnings (or, for
configuration references, as errors the caller decides how to treat).

Usage:
    from layergen.validators import validate_schema
    result = validate_schema(schema)
    for issue in result.warnings:
        logger.warning("%s", issue)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from layergen.models import CollectionSchema, Dialect, RunConfig

logger: logging.Logger = logging.getLogger("layergen.validators")

# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [item.code for item in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are no errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {"error": "✗", "warning": "⚠", "info": "ℹ"}.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema checks
# ---------------------------------------------------------------------------


def validate_translatable_required(schema: CollectionSchema) -> ValidationResult:
    """
    ``translatable`` + ``required`` is accepted but flagged: the value lives
    in the per-language block, so the top-level column stays optional.
    """
    result: ValidationResult = ValidationResult()
    for item in schema.translatable_fields:
        if item.required:
            result.add_warning(
                "TRANSLATABLE_REQUIRED",
                f"Field '{item.name}' is translatable and required; it is enforced "
                f"for the default language only.",
                {"collection": schema.collection, "field": item.name},
            )
    return result


def validate_field_meta(schema: CollectionSchema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for item in schema.user_fields:
        ctx: Dict[str, Any] = {"collection": schema.collection, "field": item.name}
        if item.max_length and item.canonical_type not in ("string", "text"):
            result.add_warning(
                "MAX_LENGTH_IGNORED",
                f"maxLength on '{item.name}' has no effect for type '{item.canonical_type}'.",
                ctx,
            )
        if item.repeater_item_schema:
            names: Set[str] = {p.name for p in item.repeater_item_schema}
            for prop in item.translatable_properties:
                if prop not in names:
                    result.add_warning(
                        "UNKNOWN_TRANSLATABLE_PROPERTY",
                        f"translatableProperties of '{item.name}' lists '{prop}', "
                        f"which is not one of its properties.",
                        ctx,
                    )
    return result


def validate_dependencies(schema: CollectionSchema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    names: Set[str] = {f.name for f in schema.fields}
    for item in schema.user_fields:
        dep = item.dependent_on
        if dep is None:
            continue
        ctx: Dict[str, Any] = {"collection": schema.collection, "field": item.name}
        if dep.depends_on and dep.depends_on not in names:
            result.add_warning(
                "UNKNOWN_DEPENDS_ON",
                f"'{item.name}' depends on '{dep.depends_on}', which is not a field of "
                f"'{schema.collection}'.",
                ctx,
            )
        if dep.depends_on and dep.collection and not dep.field:
            result.add_info(
                "DEPENDS_ON_FIELD_DEFAULTED",
                f"'{item.name}' has no dependsOnField; using '{item.name}'.",
                ctx,
            )
    return result


def validate_schema(schema: CollectionSchema) -> ValidationResult:
    """Run every soft schema check."""
    result: ValidationResult = ValidationResult()
    for check in (validate_translatable_required, validate_field_meta, validate_dependencies):
        result.merge(check(schema))
    logger.debug("Schema '%s': %s", schema.collection, result.summary())
    return result


# ---------------------------------------------------------------------------
# Run configuration checks
# ---------------------------------------------------------------------------


def validate_run_config(config: RunConfig) -> ValidationResult:
    """
    Check a multi-collection configuration:

    - at least one target
    - a known dialect (unknown falls back to sqlite, warning)
    - every target collection defined (error)
    - every defined collection used by some target (warning)
    - no collection name defined twice (error)
    """
    result: ValidationResult = ValidationResult()

    if not config.targets:
        result.add_error("NO_TARGETS", "Configuration defines no targets.")

    if config.dialect.strip().lower() not in {d.value for d in Dialect}:
        result.add_warning(
            "UNKNOWN_DIALECT",
            f"Dialect '{config.dialect}' is not one of pg/sqlite; using sqlite.",
            {"dialect": config.dialect},
        )

    defined: Dict[str, int] = {}
    for entry in config.collections:
        defined[entry.name] = defined.get(entry.name, 0) + 1
    for name, count in defined.items():
        if count > 1:
            result.add_error(
                "DUPLICATE_COLLECTION",
                f"Collection '{name}' is defined {count} times.",
                {"collection": name},
            )

    used: Set[str] = set()
    for target in config.targets:
        if not target.collections:
            result.add_warning(
                "EMPTY_TARGET",
                f"Target layer '{target.layer}' lists no collections.",
                {"layer": target.layer},
            )
        for name in target.collections:
            used.add(name)
            if name not in defined:
                result.add_error(
                    "UNDEFINED_COLLECTION",
                    f"Target layer '{target.layer}' references undefined collection '{name}'.",
                    {"layer": target.layer, "collection": name},
                )

    for name in defined:
        if name not in used:
            result.add_warning(
                "UNUSED_COLLECTION",
                f"Collection '{name}' is defined but not used by any target.",
                {"collection": name},
            )

    return result


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_translatable_required",
    "validate_field_meta",
    "validate_dependencies",
    "validate_schema",
    "validate_run_config",
]
