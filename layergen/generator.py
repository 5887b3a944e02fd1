# File: layergen/generator.py
"""
LayerGen - Target Orchestrator
================================

Drives one or more ``Target`` values through the generation state machine::

    VALIDATING → PLANNING → WRITING → REGISTRY_UPDATING → DONE
         └──────────┴──────────┴──────────────┴──────────→ ABORTED

Workflow per target::

    1. Validating: derive the ``NamingSet``, load and parse the field map,
       collect soft diagnostics.
    2. Planning: run every artifact generator and compute the registry
       entries.  Nothing touches the filesystem before this step is over.
    3. Writing: write artifacts through ``ArtifactWriter`` (existing files
       are skipped with a warning unless ``force``), then the manifest.
    4. RegistryUpdating: upsert the four registry entries.  Only reached
       when every write of the target succeeded.

Dry-run stops after Planning: the writing and registry steps are simply not
called, and the report lists the complete plan plus the registry entries
that a real run would add.

Error handling strategy:
    - A failure aborts its own target only; the next target still runs.
    - Files written before a Writing or RegistryUpdating failure stay on
      disk.  ``layergen.rollback`` removes them on request.
    - ``RunReport.raise_for_failures()`` turns failed targets into one
      ``PartialRunError``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from layergen.errors import LayergenError, PartialRunError, SchemaError, TargetFailure
from layergen.exporters import ArtifactWriter, build_manifest
from layergen.layout import ArtifactLayout, layout_for
from layergen.models import (
    CollectionOptions,
    CollectionSchema,
    GeneratedArtifact,
    RegistryEntry,
    Target,
    TargetState,
)
from layergen.naming import NamingSet, derive
from layergen.registry import RegistryChange, RegistrySet, registry_entries
from layergen.schema import load_fields_file, parse_schema
from layergen.templates import TemplateGenerator
from layergen.typemap import TypeTable, default_type_table
from layergen.utils import Timer
from layergen.validators import ValidationResult, validate_schema

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("layergen.generator")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class StepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class TargetReport:
    """Everything that happened to one target."""

    target: str
    dry_run: bool = False
    state: str = TargetState.VALIDATING.value
    planned: List[GeneratedArtifact] = field(default_factory=list)
    existing: List[str] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    pending_registry: List[RegistryEntry] = field(default_factory=list)
    registry_changes: List[RegistryChange] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    steps: List[StepMetric] = field(default_factory=list)
    failure: Optional[TargetFailure] = None

    def transition(self, state: TargetState) -> None:
        previous: str = self.state
        self.state = state.value
        logger.info("%s: %s → %s", self.target, previous, self.state)

    def fail(self, stage: TargetState, exc: BaseException) -> None:
        self.failure = TargetFailure(self.target, stage.value, str(exc))
        logger.error("%s failed while %s: %s", self.target, stage.value, exc)
        self.transition(TargetState.ABORTED)

    @property
    def succeeded(self) -> bool:
        return self.state == TargetState.DONE.value

    @property
    def planned_paths(self) -> List[str]:
        return [a.relative_path for a in self.planned]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "state": self.state,
            "dry_run": self.dry_run,
            "planned": self.planned_paths,
            "written": list(self.written),
            "skipped": list(self.skipped),
            "pending_registry": [e.insertion_key for e in self.pending_registry],
            "registry_changes": [str(c) for c in self.registry_changes],
            "warnings": list(self.warnings),
            "failure": str(self.failure) if self.failure else None,
        }


@dataclass(frozen=False, slots=True)
class RunReport:
    """Aggregate of every target of one run."""

    dry_run: bool = False
    targets: List[TargetReport] = field(default_factory=list)
    total_elapsed_seconds: float = 0.0

    @property
    def failures(self) -> List[TargetFailure]:
        return [t.failure for t in self.targets if t.failure is not None]

    @property
    def success(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialRunError(self.failures)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        mode: str = " (dry run)" if self.dry_run else ""
        lines.append(f"{'='*60}")
        lines.append(f"  LayerGen - Generation Report{mode}")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Targets:          {len(self.targets)}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")

        for report in self.targets:
            lines.append(f"{'─'*60}")
            lines.append(f"  {report.target}  [{report.state}]")
            for step in report.steps:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<20s} "
                    f"{step.elapsed_seconds:>7.3f}s  {step.detail}"
                )
            if report.dry_run:
                for path in report.planned_paths:
                    marker: str = "skip" if path in report.existing else "new "
                    lines.append(f"    {marker} {path}")
                for entry in report.pending_registry:
                    lines.append(f"    +reg {entry.insertion_key} ({entry.registry_file})")
            else:
                for path in report.written:
                    lines.append(f"    wrote {path}")
                for path in report.skipped:
                    lines.append(f"    ⊘ skipped {path} (exists)")
                for change in report.registry_changes:
                    lines.append(f"    {change}")
            for warning in report.warnings:
                lines.append(f"    ⚠ {warning}")
            if report.failure is not None:
                lines.append(f"    ✗ {report.failure}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """
    Runs targets against one application root.

    Usage::

        orchestrator = Orchestrator(Path("."))
        report = orchestrator.run([target])
        print(report.summary())

    Targets run strictly in the given order; the ``RegistrySet`` is shared
    by all of them.
    """

    def __init__(
        self,
        root: Path,
        *,
        types: Optional[TypeTable] = None,
        registries: Optional[RegistrySet] = None,
    ) -> None:
        self._root: Path = root
        self._templates: TemplateGenerator = TemplateGenerator(types or default_type_table())
        self._registries: RegistrySet = registries or RegistrySet(root)
        logger.debug("Orchestrator initialised for %s.", root)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def registries(self) -> RegistrySet:
        return self._registries

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def run(self, targets: Sequence[Target]) -> RunReport:
        run: RunReport = RunReport(dry_run=any(t.flags.dry_run for t in targets))
        started: float = time.perf_counter()
        for target in targets:
            run.targets.append(self.run_target(target))
        run.total_elapsed_seconds = time.perf_counter() - started
        logger.info(
            "Run finished: %d target(s), %d failed.",
            len(run.targets), len(run.failures),
        )
        return run

    def run_target(self, target: Target) -> TargetReport:
        report: TargetReport = TargetReport(target=target.label, dry_run=target.flags.dry_run)
        logger.info("%s: %s", report.target, report.state)

        validated: Optional[Tuple[NamingSet, CollectionSchema]] = self._step_validate(target, report)
        if validated is None:
            return report
        naming, schema = validated

        report.transition(TargetState.PLANNING)
        entries: Optional[List[RegistryEntry]] = self._step_plan(naming, schema, target, report)
        if entries is None:
            return report

        if target.flags.dry_run:
            report.transition(TargetState.DONE)
            return report

        report.transition(TargetState.WRITING)
        if not self._step_write(naming, target, report):
            return report

        report.transition(TargetState.REGISTRY_UPDATING)
        if not self._step_registry(entries, target, report):
            return report

        report.transition(TargetState.DONE)
        return report

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _options(self, target: Target) -> CollectionOptions:
        if target.flags.no_translations and not target.options.no_translations:
            return target.options.model_copy(update={"no_translations": True})
        return target.options

    def _step_validate(
        self,
        target: Target,
        report: TargetReport,
    ) -> Optional[Tuple[NamingSet, CollectionSchema]]:
        error: Optional[LayergenError] = None
        with Timer(f"validate {target.label}") as t:
            try:
                naming: NamingSet = derive(target.layer, target.collection)
                if target.raw_fields is not None:
                    raw: Dict[str, Any] = dict(target.raw_fields)
                elif target.fields_file is not None:
                    raw = load_fields_file(Path(target.fields_file))
                else:
                    raise SchemaError("no field map given", collection=target.collection)
                schema: CollectionSchema = parse_schema(
                    raw,
                    self._options(target),
                    collection=target.collection,
                    types=self._templates.types,
                )
                diagnostics: ValidationResult = validate_schema(schema)
            except LayergenError as exc:
                error = exc

        if error is not None:
            report.steps.append(StepMetric("Validate", False, t.elapsed, str(error)))
            report.fail(TargetState.VALIDATING, error)
            return None

        for issue in diagnostics.warnings:
            report.warnings.append(issue.message)
            logger.warning("%s: %s", target.label, issue.message)
        report.steps.append(StepMetric(
            "Validate", True, t.elapsed,
            f"{len(schema.user_fields)} user field(s), {len(diagnostics.warnings)} warning(s)",
        ))
        return naming, schema

    # -----------------------------------------------------------------
    # Pipeline step: Planning
    # -----------------------------------------------------------------

    def _step_plan(
        self,
        naming: NamingSet,
        schema: CollectionSchema,
        target: Target,
        report: TargetReport,
    ) -> Optional[List[RegistryEntry]]:
        error: Optional[LayergenError] = None
        artifacts: List[GeneratedArtifact] = []
        with Timer(f"plan {target.label}") as t:
            try:
                artifacts = self._templates.generate_target(naming, schema, target.dialect)
            except LayergenError as exc:
                error = exc
            entries: List[RegistryEntry] = registry_entries(naming)

        if error is not None:
            report.steps.append(StepMetric("Plan", False, t.elapsed, str(error)))
            report.fail(TargetState.PLANNING, error)
            return None

        report.planned = artifacts
        report.existing = [
            a.relative_path for a in artifacts if (self._root / a.relative_path).exists()
        ]
        if target.flags.dry_run:
            try:
                report.pending_registry = self._registries.pending(entries)
            except LayergenError as exc:
                report.warnings.append(f"registry preview unavailable: {exc}")
                logger.warning("%s: registry preview unavailable: %s", target.label, exc)

        report.steps.append(StepMetric(
            "Plan", True, t.elapsed,
            f"{len(artifacts)} artifact(s), {len(report.existing)} already present",
        ))
        return entries

    # -----------------------------------------------------------------
    # Pipeline step: Writing
    # -----------------------------------------------------------------

    def _step_write(self, naming: NamingSet, target: Target, report: TargetReport) -> bool:
        layout: ArtifactLayout = layout_for(naming)
        writer: ArtifactWriter = ArtifactWriter(self._root, force=target.flags.force)
        error: Optional[Exception] = None
        with Timer(f"write {target.label}") as t:
            try:
                for artifact in report.planned:
                    writer.write(artifact)
                writer.write_manifest(
                    layout.manifest,
                    build_manifest(naming.layer, naming.collection, report.planned),
                )
            except (OSError, LayergenError) as exc:
                error = exc

        report.written = list(writer.written)
        report.skipped = writer.skipped_paths
        for path in report.skipped:
            report.warnings.append(f"{path} exists, skipped (use --force to overwrite)")
        if error is not None:
            report.steps.append(StepMetric("Write", False, t.elapsed, str(error)))
            report.fail(TargetState.WRITING, error)
            return False

        report.steps.append(StepMetric(
            "Write", True, t.elapsed,
            f"{len(report.written)} written, {len(report.skipped)} skipped",
        ))
        return True

    # -----------------------------------------------------------------
    # Pipeline step: Registry update
    # -----------------------------------------------------------------

    def _step_registry(
        self,
        entries: Sequence[RegistryEntry],
        target: Target,
        report: TargetReport,
    ) -> bool:
        error: Optional[Exception] = None
        with Timer(f"registry {target.label}") as t:
            for entry in entries:
                try:
                    change: Optional[RegistryChange] = self._registries.for_entry(entry).upsert(
                        entry, force=target.flags.force,
                    )
                except (OSError, LayergenError) as exc:
                    error = exc
                    break
                if change is not None:
                    report.registry_changes.append(change)

        if error is not None:
            report.steps.append(StepMetric("Registry", False, t.elapsed, str(error)))
            report.fail(TargetState.REGISTRY_UPDATING, error)
            return False

        report.steps.append(StepMetric(
            "Registry", True, t.elapsed, f"{len(report.registry_changes)} change(s)",
        ))
        return True


def generate(
    root: Path,
    targets: Sequence[Target],
    *,
    types: Optional[TypeTable] = None,
) -> RunReport:
    """One-call helper: run ``targets`` under ``root`` with a fresh orchestrator."""
    return Orchestrator(root, types=types).run(targets)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "StepMetric",
    "TargetReport",
    "RunReport",
    "Orchestrator",
    "generate",
]

logger.debug("layergen.generator loaded.")
