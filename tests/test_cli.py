"""
tests/test_cli.py
End-to-end tests for layergen.cli.run.

Tests cover:
- generate <layer> <collection> with a fields file, dry-run and force
- generate config [path] with --only
- rollback <layer> <collection>
- Exit codes for input, validation and registry failures
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict

import pytest
import yaml

from layergen.cli import (
    EXIT_INPUT_ERROR,
    EXIT_REGISTRY_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    run,
)
from layergen.layout import UI_REGISTRY_FILE, layout_for
from layergen.naming import derive

POSTS_MANIFEST: str = layout_for(derive("blog", "posts")).manifest


@pytest.fixture()
def config_file(tmp_path: pathlib.Path, posts_fields: Dict[str, Any]) -> pathlib.Path:
    project = tmp_path / "project"
    (project / "schemas").mkdir(parents=True)
    (project / "schemas/posts.yaml").write_text(yaml.safe_dump(posts_fields), encoding="utf-8")
    (project / "schemas/tags.yaml").write_text(
        yaml.safe_dump({"label": {"type": "string", "meta": {"required": True}}}),
        encoding="utf-8",
    )
    path = project / "layergen.config.yaml"
    path.write_text(yaml.safe_dump({
        "collections": [
            {"name": "posts", "fieldsFile": "schemas/posts.yaml"},
            {"name": "tags", "fieldsFile": "schemas/tags.yaml"},
        ],
        "targets": [{"layer": "blog", "collections": ["posts", "tags"]}],
    }), encoding="utf-8")
    return path


# ===========================================================================
# generate <layer> <collection>
# ===========================================================================


class TestGenerateSingle:
    """One collection from a schema file."""

    def test_success(self, empty_root: pathlib.Path, posts_yaml_path: pathlib.Path,
                     capsys: pytest.CaptureFixture) -> None:
        code = run(["generate", "blog", "posts", "--fields-file", str(posts_yaml_path),
                    "--root", str(empty_root)])
        assert code == EXIT_SUCCESS
        assert (empty_root / POSTS_MANIFEST).is_file()
        assert "blog/posts  [done]" in capsys.readouterr().out

    def test_dry_run_writes_nothing(self, empty_root: pathlib.Path,
                                    posts_json_path: pathlib.Path, snapshot,
                                    capsys: pytest.CaptureFixture) -> None:
        code = run(["generate", "blog", "posts", "-f", str(posts_json_path),
                    "--root", str(empty_root), "--dry-run"])
        assert code == EXIT_SUCCESS
        assert snapshot(empty_root) == ({}, [])
        assert "(dry run)" in capsys.readouterr().out

    def test_options_reach_the_plan(self, empty_root: pathlib.Path,
                                    posts_yaml_path: pathlib.Path) -> None:
        code = run(["generate", "blog", "posts", "-f", str(posts_yaml_path),
                    "--root", str(empty_root), "--hierarchy", "--seed", "--dialect", "pg"])
        assert code == EXIT_SUCCESS
        layout = layout_for(derive("blog", "posts"))
        assert (empty_root / layout.handler_move).is_file()
        assert (empty_root / layout.seed).is_file()
        assert "pgTable" in (empty_root / layout.schema).read_text(encoding="utf-8")

    def test_missing_collection(self, empty_root: pathlib.Path) -> None:
        assert run(["generate", "blog", "--root", str(empty_root)]) == EXIT_INPUT_ERROR

    def test_missing_fields_flag(self, empty_root: pathlib.Path) -> None:
        assert run(["generate", "blog", "posts", "--root", str(empty_root)]) == EXIT_INPUT_ERROR

    def test_only_requires_config(self, empty_root: pathlib.Path,
                                  posts_yaml_path: pathlib.Path) -> None:
        code = run(["generate", "blog", "posts", "-f", str(posts_yaml_path),
                    "--root", str(empty_root), "--only", "posts"])
        assert code == EXIT_INPUT_ERROR

    def test_missing_fields_file_fails_validation(self, empty_root: pathlib.Path,
                                                  tmp_path: pathlib.Path) -> None:
        code = run(["generate", "blog", "posts", "-f", str(tmp_path / "nope.yaml"),
                    "--root", str(empty_root)])
        assert code == EXIT_VALIDATION_ERROR
        assert not (empty_root / "layers").exists()

    def test_unknown_type(self, empty_root: pathlib.Path,
                          write_fields_file: Callable[..., pathlib.Path]) -> None:
        path = write_fields_file({"cover": {"type": "hologram"}}, "bad.yaml")
        code = run(["generate", "blog", "posts", "-f", str(path), "--root", str(empty_root)])
        assert code == EXIT_VALIDATION_ERROR

    def test_feature_enables_types(self, empty_root: pathlib.Path,
                                   write_fields_file: Callable[..., pathlib.Path]) -> None:
        path = write_fields_file({"cover": {"type": "image"}}, "media.yaml")
        base = ["generate", "blog", "media", "-f", str(path), "--root", str(empty_root), "--dry-run"]
        assert run(base) == EXIT_VALIDATION_ERROR
        assert run([*base, "--feature", "assets"]) == EXIT_SUCCESS

    def test_registry_failure_exit_code(self, app_root: pathlib.Path,
                                        posts_yaml_path: pathlib.Path) -> None:
        (app_root / UI_REGISTRY_FILE).write_text("export default {}\n", encoding="utf-8")
        code = run(["generate", "blog", "posts", "-f", str(posts_yaml_path),
                    "--root", str(app_root)])
        assert code == EXIT_REGISTRY_ERROR

    def test_requires_a_command(self) -> None:
        with pytest.raises(SystemExit):
            run([])


# ===========================================================================
# generate config
# ===========================================================================


class TestGenerateConfig:
    """Multi-collection runs."""

    def test_all_targets(self, empty_root: pathlib.Path, config_file: pathlib.Path) -> None:
        code = run(["generate", "config", str(config_file), "--root", str(empty_root)])
        assert code == EXIT_SUCCESS
        assert (empty_root / POSTS_MANIFEST).is_file()
        assert (empty_root / layout_for(derive("blog", "tags")).manifest).is_file()

    def test_only(self, empty_root: pathlib.Path, config_file: pathlib.Path) -> None:
        code = run(["generate", "config", str(config_file), "--only", "tags",
                    "--root", str(empty_root)])
        assert code == EXIT_SUCCESS
        assert not (empty_root / POSTS_MANIFEST).exists()
        assert (empty_root / layout_for(derive("blog", "tags")).manifest).is_file()

    def test_only_without_match(self, empty_root: pathlib.Path, config_file: pathlib.Path) -> None:
        code = run(["generate", "config", str(config_file), "--only", "nope",
                    "--root", str(empty_root)])
        assert code == EXIT_INPUT_ERROR

    def test_default_config_in_root(self, config_file: pathlib.Path) -> None:
        root = config_file.parent
        assert run(["generate", "config", "--root", str(root), "--dry-run"]) == EXIT_SUCCESS

    def test_missing_config(self, tmp_path: pathlib.Path) -> None:
        code = run(["generate", "config", str(tmp_path / "none.yaml"), "--root", str(tmp_path)])
        assert code == EXIT_INPUT_ERROR

    def test_invalid_config(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "layergen.config.yaml"
        path.write_text(yaml.safe_dump({"collections": []}), encoding="utf-8")
        assert run(["generate", "config", str(path), "--root", str(tmp_path)]) == EXIT_INPUT_ERROR


# ===========================================================================
# rollback
# ===========================================================================


class TestRollbackCommand:
    """rollback <layer> <collection>."""

    def test_round_trip(self, app_root: pathlib.Path, posts_yaml_path: pathlib.Path,
                        snapshot, capsys: pytest.CaptureFixture) -> None:
        before = snapshot(app_root)
        assert run(["generate", "blog", "posts", "-f", str(posts_yaml_path),
                    "--root", str(app_root)]) == EXIT_SUCCESS
        assert run(["rollback", "blog", "posts", "--root", str(app_root)]) == EXIT_SUCCESS
        assert snapshot(app_root) == before
        capsys.readouterr()

        assert run(["rollback", "blog", "posts", "--root", str(app_root)]) == EXIT_SUCCESS
        assert "Nothing to remove." in capsys.readouterr().out

    def test_unusable_names(self, empty_root: pathlib.Path) -> None:
        assert run(["rollback", "!!!", "posts", "--root", str(empty_root)]) == EXIT_INPUT_ERROR

    def test_unreadable_registry(self, app_root: pathlib.Path,
                                 posts_yaml_path: pathlib.Path) -> None:
        run(["generate", "blog", "posts", "-f", str(posts_yaml_path), "--root", str(app_root)])
        (app_root / UI_REGISTRY_FILE).write_text("export default {}\n", encoding="utf-8")
        assert run(["rollback", "blog", "posts", "--root", str(app_root)]) == EXIT_REGISTRY_ERROR
