"""
tests/test_orchestrator.py
Integration tests for layergen.generator.Orchestrator.

Tests cover:
- Dry-run touching nothing and reporting the full plan
- A real run writing artifacts, the manifest and registry entries
- Re-running an unchanged target as a complete no-op
- --force overwriting, per-file skips without it
- Failure isolation between sibling targets
- Registry failures leaving written files in place
- RunReport aggregation and summary rendering
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable, Dict

import pytest

from layergen.errors import PartialRunError
from layergen.generator import Orchestrator, RunReport, TargetReport, generate
from layergen.layout import UI_REGISTRY_FILE, layout_for
from layergen.models import Target, TargetState
from layergen.naming import derive

MANIFEST: str = layout_for(derive("blog", "posts")).manifest


def _run_one(root: pathlib.Path, target: Target) -> TargetReport:
    return Orchestrator(root).run([target]).targets[0]


# ===========================================================================
# Dry run
# ===========================================================================


class TestDryRun:
    """Dry-run stops after planning."""

    def test_no_filesystem_changes(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                                   make_target: Callable[..., Target], snapshot) -> None:
        before = snapshot(empty_root)
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields, dry_run=True))
        assert snapshot(empty_root) == before
        assert report.state == TargetState.DONE.value
        assert report.written == []
        assert report.planned

    def test_reports_pending_registry_entries(self, empty_root: pathlib.Path,
                                              posts_fields: Dict[str, Any],
                                              make_target: Callable[..., Target]) -> None:
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields, dry_run=True))
        assert [e.insertion_key for e in report.pending_registry] == [
            "./layers/blog", "./collections/posts", "blogPosts", "blogPosts",
        ]

    def test_marks_existing_files(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                                  make_target: Callable[..., Target]) -> None:
        _run_one(empty_root, make_target("blog", "posts", posts_fields))
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields, dry_run=True))
        assert report.existing == report.planned_paths
        assert report.pending_registry == []

    def test_unreadable_registry_is_a_warning(self, app_root: pathlib.Path,
                                              posts_fields: Dict[str, Any],
                                              make_target: Callable[..., Target],
                                              snapshot) -> None:
        (app_root / UI_REGISTRY_FILE).write_text("export default {}\n", encoding="utf-8")
        before = snapshot(app_root)
        report = _run_one(app_root, make_target("blog", "posts", posts_fields, dry_run=True))
        assert snapshot(app_root) == before
        assert report.succeeded
        assert report.written == []
        assert any("registry preview unavailable" in w for w in report.warnings)

    @pytest.mark.parametrize("fields", [
        {"cover": {"type": "hologram"}},
        {},
        {"createdAt": {"type": "date"}},
    ], ids=["unknown-type", "empty-map", "injected-name"])
    def test_invalid_schema_touches_nothing(self, app_root: pathlib.Path,
                                            make_target: Callable[..., Target], snapshot,
                                            fields: Dict[str, Any]) -> None:
        before = snapshot(app_root)
        report = _run_one(app_root, make_target("blog", "posts", fields, dry_run=True))
        assert snapshot(app_root) == before
        assert report.state == TargetState.ABORTED.value
        assert report.failure.stage == TargetState.VALIDATING.value
        assert report.planned == []
        assert report.pending_registry == []


# ===========================================================================
# Real runs
# ===========================================================================


class TestGeneration:
    """Writing, manifest and registry steps."""

    def test_writes_every_planned_artifact(self, empty_root: pathlib.Path,
                                           posts_fields: Dict[str, Any],
                                           make_target: Callable[..., Target]) -> None:
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        assert report.succeeded
        assert report.written == report.planned_paths
        for artifact in report.planned:
            assert (empty_root / artifact.relative_path).read_text(encoding="utf-8") == artifact.content

    def test_manifest_lists_planned_paths(self, empty_root: pathlib.Path,
                                          posts_fields: Dict[str, Any],
                                          make_target: Callable[..., Target]) -> None:
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        data = json.loads((empty_root / MANIFEST).read_text(encoding="utf-8"))
        assert [item["path"] for item in data["files"]] == report.planned_paths
        assert data["layer"] == "blog" and data["collection"] == "posts"

    def test_registry_entries_applied(self, empty_root: pathlib.Path,
                                      posts_fields: Dict[str, Any],
                                      make_target: Callable[..., Target]) -> None:
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        assert [c.action for c in report.registry_changes] == ["created"] * 4
        assert "'./collections/posts'" in \
            (empty_root / "layers/blog/nuxt.config.ts").read_text(encoding="utf-8")

    def test_fields_file_target(self, empty_root: pathlib.Path,
                                posts_yaml_path: pathlib.Path) -> None:
        target = Target(layer="blog", collection="posts", fields_file=str(posts_yaml_path))
        report = _run_one(empty_root, target)
        assert report.succeeded
        assert (empty_root / MANIFEST).is_file()

    def test_rerun_is_noop(self, app_root: pathlib.Path, posts_fields: Dict[str, Any],
                           make_target: Callable[..., Target], snapshot) -> None:
        _run_one(app_root, make_target("blog", "posts", posts_fields))
        before = snapshot(app_root)
        report = _run_one(app_root, make_target("blog", "posts", posts_fields))
        assert report.succeeded
        assert report.written == []
        assert report.skipped == report.planned_paths
        assert report.registry_changes == []
        assert snapshot(app_root) == before

    def test_existing_file_is_skipped_without_force(self, empty_root: pathlib.Path,
                                                    posts_fields: Dict[str, Any],
                                                    make_target: Callable[..., Target]) -> None:
        form = layout_for(derive("blog", "posts")).form
        path = empty_root / form
        path.parent.mkdir(parents=True)
        path.write_text("<template>mine</template>\n", encoding="utf-8")
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        assert report.succeeded
        assert report.skipped == [form]
        assert form not in report.written
        assert path.read_text(encoding="utf-8") == "<template>mine</template>\n"
        assert any(form in w for w in report.warnings)

    def test_force_overwrites(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                              make_target: Callable[..., Target]) -> None:
        first = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        form = layout_for(derive("blog", "posts")).form
        (empty_root / form).write_text("edited\n", encoding="utf-8")
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields, force=True))
        assert report.written == first.planned_paths
        assert report.skipped == []
        assert (empty_root / form).read_text(encoding="utf-8") != "edited\n"

    def test_manifest_keeps_earlier_records(self, empty_root: pathlib.Path,
                                            posts_fields: Dict[str, Any],
                                            make_target: Callable[..., Target]) -> None:
        seeded = _run_one(empty_root, make_target("blog", "posts", posts_fields, seed={"count": 5}))
        seed_path = layout_for(derive("blog", "posts")).seed
        assert seed_path in seeded.planned_paths
        _run_one(empty_root, make_target("blog", "posts", posts_fields, force=True))
        data = json.loads((empty_root / MANIFEST).read_text(encoding="utf-8"))
        assert seed_path in [item["path"] for item in data["files"]]


# ===========================================================================
# Failures
# ===========================================================================


class TestFailures:
    """A failing target never takes its siblings down."""

    def test_sibling_isolation(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                               make_target: Callable[..., Target]) -> None:
        bad = make_target("blog", "photos", {"cover": {"type": "hologram"}})
        good = make_target("blog", "posts", posts_fields)
        run = Orchestrator(empty_root).run([bad, good])
        assert run.targets[0].state == TargetState.ABORTED.value
        assert run.targets[0].failure.stage == TargetState.VALIDATING.value
        assert "hologram" in run.targets[0].failure.message
        assert run.targets[1].succeeded
        assert not (empty_root / "layers/blog/collections/photos").exists()

    def test_missing_field_map(self, empty_root: pathlib.Path) -> None:
        report = _run_one(empty_root, Target(layer="blog", collection="posts"))
        assert report.failure.stage == TargetState.VALIDATING.value
        assert report.planned == []

    def test_registry_failure_keeps_written_files(self, app_root: pathlib.Path,
                                                  posts_fields: Dict[str, Any],
                                                  make_target: Callable[..., Target]) -> None:
        (app_root / UI_REGISTRY_FILE).write_text("export default {}\n", encoding="utf-8")
        report = _run_one(app_root, make_target("blog", "posts", posts_fields))
        assert report.state == TargetState.ABORTED.value
        assert report.failure.stage == TargetState.REGISTRY_UPDATING.value
        assert report.written == report.planned_paths
        assert all((app_root / p).is_file() for p in report.written)
        assert len(report.registry_changes) == 3

    def test_raise_for_failures(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                                make_target: Callable[..., Target]) -> None:
        run = generate(empty_root, [
            make_target("blog", "photos", {"cover": {"type": "hologram"}}),
            make_target("blog", "posts", posts_fields),
        ])
        assert not run.success
        with pytest.raises(PartialRunError) as info:
            run.raise_for_failures()
        assert len(info.value.failures) == 1
        assert "blog/photos [validating]" in str(info.value)

    def test_success_does_not_raise(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                                    make_target: Callable[..., Target]) -> None:
        generate(empty_root, [make_target("blog", "posts", posts_fields)]).raise_for_failures()


# ===========================================================================
# Reports
# ===========================================================================


class TestReports:
    """RunReport aggregation and rendering."""

    def test_summary_dry_run(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                             make_target: Callable[..., Target]) -> None:
        run = generate(empty_root, [make_target("blog", "posts", posts_fields, dry_run=True)])
        text = run.summary()
        assert "(dry run)" in text
        assert "SUCCESS" in text
        assert "blog/posts  [done]" in text
        assert "+reg ./layers/blog (nuxt.config.ts)" in text

    def test_summary_failure(self, empty_root: pathlib.Path,
                             make_target: Callable[..., Target]) -> None:
        run = generate(empty_root, [make_target("blog", "photos", {"cover": {"type": "hologram"}})])
        text = run.summary()
        assert "FAILED" in text
        assert "blog/photos  [aborted]" in text

    def test_step_metrics(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                          make_target: Callable[..., Target]) -> None:
        report = _run_one(empty_root, make_target("blog", "posts", posts_fields))
        assert [s.step_name for s in report.steps] == ["Validate", "Plan", "Write", "Registry"]
        assert all(s.success for s in report.steps)

    def test_to_dict(self, empty_root: pathlib.Path, posts_fields: Dict[str, Any],
                     make_target: Callable[..., Target]) -> None:
        data = _run_one(empty_root, make_target("blog", "posts", posts_fields)).to_dict()
        assert data["state"] == "done"
        assert data["failure"] is None
        assert len(data["registry_changes"]) == 4

    def test_empty_report_is_success(self) -> None:
        assert RunReport().success
