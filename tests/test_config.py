"""
tests/test_config.py
Unit tests for layergen.config and validate_run_config.

Tests cover:
- Loading JSON/YAML documents and their error cases
- Expanding a RunConfig into targets (order, --only, seed defaults)
- Dialect fallback and CLI flag merging
- Structural checks of multi-collection configs
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from layergen.config import (
    build_targets,
    find_default_config,
    load_document,
    load_run_config,
    merge_flags,
    resolve_dialect,
)
from layergen.errors import ConfigError
from layergen.models import Dialect, GenerationFlags, RunConfig
from layergen.validators import validate_run_config

CONFIG: Dict[str, Any] = {
    "dialect": "pg",
    "collections": [
        {"name": "posts", "fieldsFile": "schemas/posts.yaml", "seed": True},
        {"name": "comments", "fieldsFile": "schemas/comments.yaml", "sortable": True,
         "seed": {"count": 5}},
        {"name": "pages", "fieldsFile": "schemas/pages.yaml", "hierarchy": True},
    ],
    "targets": [
        {"layer": "blog", "collections": ["posts", "comments"]},
        {"layer": "site", "collections": ["pages"]},
    ],
    "flags": {"dryRun": True},
    "seed": {"defaultCount": 40},
}


@pytest.fixture()
def config_path(tmp_path: pathlib.Path) -> pathlib.Path:
    root = tmp_path / "project"
    root.mkdir()
    path = root / "layergen.config.yaml"
    path.write_text(yaml.safe_dump(CONFIG, sort_keys=False), encoding="utf-8")
    return path


# ===========================================================================
# Documents
# ===========================================================================


class TestLoadDocument:
    """Extension dispatch and error reporting."""

    def test_yaml(self, config_path: pathlib.Path) -> None:
        assert load_document(config_path)["dialect"] == "pg"

    def test_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"a": 1}), encoding="utf-8")
        assert load_document(path) == {"a": 1}

    def test_unknown_extension_falls_back_to_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.conf"
        path.write_text("a: 1\n", encoding="utf-8")
        assert load_document(path) == {"a": 1}

    def test_missing(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_document(tmp_path / "missing.yaml")

    def test_directory(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError, match="Not a file"):
            load_document(tmp_path)

    def test_non_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_document(path)

    def test_bad_json(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_document(path)


# ===========================================================================
# RunConfig
# ===========================================================================


class TestRunConfig:
    """Parsing and expansion into targets."""

    def test_load(self, config_path: pathlib.Path) -> None:
        config = load_run_config(config_path)
        assert config.target_count == 3
        assert config.base_dir == str(config_path.parent.resolve())
        assert config.flags.dry_run

    def test_invalid_shape(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("collections:\n  - name: posts\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_run_config(path)

    def test_targets_in_declaration_order(self, config_path: pathlib.Path) -> None:
        targets = build_targets(load_run_config(config_path))
        assert [t.label for t in targets] == ["blog/posts", "blog/comments", "site/pages"]
        assert all(t.dialect == Dialect.PG.value for t in targets)

    def test_fields_file_relative_to_config(self, config_path: pathlib.Path) -> None:
        target = build_targets(load_run_config(config_path))[0]
        expected = (config_path.parent / "schemas/posts.yaml").resolve()
        assert target.fields_file == str(expected)

    def test_options(self, config_path: pathlib.Path) -> None:
        posts, comments, pages = build_targets(load_run_config(config_path))
        assert posts.options.seed.count == 40
        assert comments.options.seed.count == 5
        assert comments.options.sortable
        assert pages.options.hierarchy
        assert pages.options.seed is None

    def test_only(self, config_path: pathlib.Path) -> None:
        targets = build_targets(load_run_config(config_path), only="pages")
        assert [t.label for t in targets] == ["site/pages"]

    def test_only_without_match(self, config_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError, match="matches no collection"):
            build_targets(load_run_config(config_path), only="nope")

    def test_undefined_collection(self) -> None:
        config = RunConfig.model_validate({"targets": [{"layer": "blog", "collections": ["ghost"]}]})
        with pytest.raises(ConfigError, match="undefined collection 'ghost'"):
            build_targets(config)

    def test_flags_override(self, config_path: pathlib.Path) -> None:
        flags = GenerationFlags(force=True)
        targets = build_targets(load_run_config(config_path), flags=flags)
        assert all(t.flags.force and not t.flags.dry_run for t in targets)

    def test_find_default_config(self, config_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        assert find_default_config(config_path.parent) == config_path
        assert find_default_config(tmp_path) is None


# ===========================================================================
# Flags & dialects
# ===========================================================================


class TestFlagsAndDialects:
    """Small helpers used by the CLI."""

    @pytest.mark.parametrize("value, expected", [
        ("pg", Dialect.PG),
        (" SQLite ", Dialect.SQLITE),
        ("mysql", Dialect.SQLITE),
    ])
    def test_resolve_dialect(self, value: str, expected: Dialect) -> None:
        assert resolve_dialect(value) == expected

    def test_merge_flags_only_turns_on(self) -> None:
        base = GenerationFlags(dry_run=True)
        merged = merge_flags(base, force=True, dry_run=False, no_translations=None)
        assert merged.force
        assert merged.dry_run
        assert not merged.no_translations
        assert not base.force


# ===========================================================================
# Structural checks
# ===========================================================================


class TestValidateRunConfig:
    """validate_run_config errors and warnings."""

    def test_clean(self, config_path: pathlib.Path) -> None:
        result = validate_run_config(load_run_config(config_path))
        assert result.is_valid
        assert result.warnings == []

    def test_no_targets(self) -> None:
        assert "NO_TARGETS" in validate_run_config(RunConfig()).codes()

    def test_unknown_dialect_warns(self) -> None:
        config = RunConfig.model_validate({
            "dialect": "oracle",
            "collections": [{"name": "a", "fieldsFile": "a.yaml"}],
            "targets": [{"layer": "x", "collections": ["a"]}],
        })
        result = validate_run_config(config)
        assert result.is_valid
        assert result.codes() == ["UNKNOWN_DIALECT"]

    def test_duplicate_and_undefined(self) -> None:
        config = RunConfig.model_validate({
            "collections": [
                {"name": "a", "fieldsFile": "a.yaml"},
                {"name": "a", "fieldsFile": "b.yaml"},
            ],
            "targets": [{"layer": "x", "collections": ["a", "b"]}],
        })
        result = validate_run_config(config)
        assert not result.is_valid
        assert {"DUPLICATE_COLLECTION", "UNDEFINED_COLLECTION"} <= set(result.codes())

    def test_unused_and_empty_target_warn(self) -> None:
        config = RunConfig.model_validate({
            "collections": [{"name": "a", "fieldsFile": "a.yaml"}],
            "targets": [{"layer": "x", "collections": []}],
        })
        codes = validate_run_config(config).codes()
        assert "EMPTY_TARGET" in codes and "UNUSED_COLLECTION" in codes
