"""
tests/test_exporters.py
Unit tests for layergen.exporters and the file helpers in layergen.utils.

Tests cover:
- Manifest serialisation, merging and loading
- ArtifactWriter skip/force policy and manifest rewrite rules
- Atomic writes, empty-directory pruning and TS literal helpers
"""

from __future__ import annotations

import json
import pathlib

import pytest

from layergen.errors import ConfigError
from layergen.exporters import (
    MANIFEST_FORMAT,
    ArtifactWriter,
    ExportManifest,
    FileRecord,
    build_manifest,
    load_manifest,
)
from layergen.models import ArtifactKind, GeneratedArtifact
from layergen.utils import (
    count_lines,
    prune_empty_dirs,
    relative_import,
    ts_key,
    ts_value,
    write_file,
)


def _artifact(path: str, content: str = "x\n") -> GeneratedArtifact:
    return GeneratedArtifact(relative_path=path, content=content, kind=ArtifactKind.TYPE_DECLARATIONS)


# ===========================================================================
# Manifest
# ===========================================================================


class TestManifest:
    """Serialisable record of generated files."""

    def test_build_and_serialise(self) -> None:
        manifest = build_manifest("blog", "posts", [_artifact("a.ts", "one\ntwo\n")])
        data = json.loads(manifest.to_json())
        assert data["format"] == MANIFEST_FORMAT
        assert data["total_files"] == 1
        assert data["total_lines"] == 2
        assert data["files"][0]["path"] == "a.ts"
        assert data["files"][0]["kind"] == "type_declarations"
        assert manifest.to_json().endswith("}\n")

    def test_round_trip(self) -> None:
        manifest = build_manifest("blog", "posts", [_artifact("a.ts"), _artifact("b.ts")])
        again = ExportManifest.from_dict(json.loads(manifest.to_json()))
        assert again.paths == ["a.ts", "b.ts"]
        assert again.to_json() == manifest.to_json()

    def test_merge_keeps_unplanned_records(self) -> None:
        previous = build_manifest("blog", "posts", [_artifact("a.ts"), _artifact("old.ts")])
        current = build_manifest("blog", "posts", [_artifact("a.ts", "new\n")])
        current.merge(previous)
        assert current.paths == ["a.ts", "old.ts"]
        assert current.files[0].sha256 == FileRecord.of(_artifact("a.ts", "new\n")).sha256

    def test_malformed_records(self) -> None:
        with pytest.raises(ConfigError):
            ExportManifest.from_dict({"files": [{"lines": 3}]})

    def test_load(self, tmp_path: pathlib.Path) -> None:
        assert load_manifest(tmp_path / "missing.json") is None
        path = tmp_path / "m.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_manifest(path)


# ===========================================================================
# Writer
# ===========================================================================


class TestArtifactWriter:
    """Overwrite policy and manifest bookkeeping."""

    def test_writes_and_skips(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "a.ts").write_text("mine\n", encoding="utf-8")
        writer = ArtifactWriter(tmp_path)
        assert writer.write_all([_artifact("a.ts"), _artifact("sub/b.ts")]) == ["sub/b.ts"]
        assert writer.skipped_paths == ["a.ts"]
        assert (tmp_path / "a.ts").read_text(encoding="utf-8") == "mine\n"
        assert (tmp_path / "sub/b.ts").read_text(encoding="utf-8") == "x\n"

    def test_force_overwrites(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "a.ts").write_text("mine\n", encoding="utf-8")
        writer = ArtifactWriter(tmp_path, force=True)
        assert writer.write(_artifact("a.ts"))
        assert (tmp_path / "a.ts").read_text(encoding="utf-8") == "x\n"
        assert writer.skipped == []

    def test_manifest_written_once(self, tmp_path: pathlib.Path) -> None:
        manifest = build_manifest("blog", "posts", [_artifact("a.ts")])
        writer = ArtifactWriter(tmp_path)
        assert writer.write_manifest("m/.layergen.json", manifest)
        again = build_manifest("blog", "posts", [_artifact("a.ts")])
        assert not writer.write_manifest("m/.layergen.json", again)

    def test_manifest_ignores_force_flag(self, tmp_path: pathlib.Path) -> None:
        ArtifactWriter(tmp_path).write_manifest(
            "m.json", build_manifest("blog", "posts", [_artifact("a.ts")]),
        )
        writer = ArtifactWriter(tmp_path)
        assert writer.write_manifest(
            "m.json", build_manifest("blog", "posts", [_artifact("b.ts")]),
        )
        assert load_manifest(tmp_path / "m.json").paths == ["b.ts", "a.ts"]


# ===========================================================================
# File helpers
# ===========================================================================


class TestFileHelpers:
    """Atomic writes and directory pruning."""

    def test_write_file_leaves_no_temp_files(self, tmp_path: pathlib.Path) -> None:
        size = write_file(tmp_path / "deep/dir/f.ts", "héllo\n")
        assert size == len("héllo\n".encode("utf-8"))
        assert [p.name for p in (tmp_path / "deep/dir").iterdir()] == ["f.ts"]

    def test_prune_stops_at_non_empty(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "a/b/c").mkdir(parents=True)
        (tmp_path / "a/keep.txt").write_text("", encoding="utf-8")
        removed = prune_empty_dirs(tmp_path / "a/b/c", tmp_path)
        assert [p.name for p in removed] == ["c", "b"]
        assert (tmp_path / "a").is_dir()

    def test_prune_never_removes_stop(self, tmp_path: pathlib.Path) -> None:
        root = tmp_path / "root"
        (root / "x").mkdir(parents=True)
        prune_empty_dirs(root / "x", root)
        assert root.is_dir() and not (root / "x").exists()

    def test_prune_from_missing_directory(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "a").mkdir()
        removed = prune_empty_dirs(tmp_path / "a/gone/deeper", tmp_path)
        assert [p.name for p in removed] == ["a"]

    @pytest.mark.parametrize("content, expected", [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2)])
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected


class TestTsHelpers:
    """TypeScript literal rendering."""

    def test_ts_value(self) -> None:
        assert ts_value({"a": [1, True, None], "b-c": "it's"}) == "{ a: [1, true, null], 'b-c': 'it\\'s' }"

    def test_ts_value_rejects_objects(self) -> None:
        with pytest.raises(TypeError):
            ts_value(object())

    def test_ts_key(self) -> None:
        assert ts_key("plain") == "plain"
        assert ts_key("with space") == "'with space'"

    def test_relative_import(self) -> None:
        assert relative_import(
            "server/db/schema.ts", "layers/blog/collections/posts/server/database/schema.ts",
        ) == "../../layers/blog/collections/posts/server/database/schema"
        assert relative_import("a/queries.ts", "a/schema.ts") == "./schema"
