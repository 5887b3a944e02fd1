"""
tests/conftest.py
Shared fixtures for the layergen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
Registry files in the application-root fixtures are written in the
formatting a hand-maintained Nuxt project would use, so round-trip tests
compare against realistic bytes.
"""

from __future__ import annotations

import copy
import json
import logging
import pathlib
from typing import Any, Callable, Dict, Iterator, List, Tuple

import pytest
import yaml

from layergen.models import CollectionOptions, GenerationFlags, Target


# ---------------------------------------------------------------------------
# Raw field maps
# ---------------------------------------------------------------------------

POSTS_FIELDS: Dict[str, Any] = {
    "id": {"type": "uuid", "meta": {"primaryKey": True}},
    "title": {"type": "string", "meta": {"required": True, "maxLength": 200}},
}

EVENTS_FIELDS: Dict[str, Any] = {
    "title": {"type": "string", "meta": {"required": True, "maxLength": 120}},
    "summary": {"type": "text", "meta": {"translatable": True}},
    "published": {"type": "boolean"},
    "startsAt": {"type": "date", "meta": {"label": "Starts"}},
    "capacity": {"type": "number"},
    "price": {"type": "decimal", "meta": {"precision": 10, "scale": 2}},
    "category": {"type": "string", "refTarget": "categories"},
    "owner_notes": {"type": "json"},
    "slots": {
        "type": "repeater",
        "meta": {
            "properties": {
                "label": {"type": "string", "required": True},
                "startsAt": {"type": "date"},
            },
            "translatableProperties": ["label"],
        },
    },
}


@pytest.fixture()
def posts_fields() -> Dict[str, Any]:
    """Two-field blog post schema: a uuid primary key and a required title."""
    return copy.deepcopy(POSTS_FIELDS)


@pytest.fixture()
def events_fields() -> Dict[str, Any]:
    """A schema touching most core field types, a reference and a repeater."""
    return copy.deepcopy(EVENTS_FIELDS)


# ---------------------------------------------------------------------------
# Schema files
# ---------------------------------------------------------------------------


@pytest.fixture()
def write_fields_file(tmp_path: pathlib.Path) -> Callable[..., pathlib.Path]:
    """Return a factory writing a field map as YAML (default) or JSON."""

    def _write(fields: Dict[str, Any], name: str = "fields.yaml") -> pathlib.Path:
        path = tmp_path / "schemas" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            if path.suffix == ".json":
                json.dump(fields, fh, indent=2)
            else:
                yaml.safe_dump(fields, fh, default_flow_style=False, sort_keys=False)
        return path

    return _write


@pytest.fixture()
def posts_yaml_path(write_fields_file: Callable[..., pathlib.Path],
                    posts_fields: Dict[str, Any]) -> pathlib.Path:
    return write_fields_file(posts_fields, "posts.yaml")


@pytest.fixture()
def posts_json_path(write_fields_file: Callable[..., pathlib.Path],
                    posts_fields: Dict[str, Any]) -> pathlib.Path:
    return write_fields_file(posts_fields, "posts.json")


# ---------------------------------------------------------------------------
# Application roots
# ---------------------------------------------------------------------------

APP_NUXT_CONFIG: str = (
    "export default defineNuxtConfig({\n"
    "  modules: ['@nuxt/ui'],\n"
    "  extends: [\n"
    "    './layers/core'\n"
    "  ]\n"
    "})\n"
)

APP_SCHEMA_INDEX: str = (
    "// Database schema index\n"
    "export { user } from './auth'\n"
    "export { coreThings } from '../../layers/core/collections/things/server/database/schema'\n"
)

APP_UI_CONFIG: str = (
    "import { coreThingsConfig } from '../layers/core/collections/things/app/composables/useCoreThings'\n"
    "\n"
    "export default defineAppConfig({\n"
    "  ui: {\n"
    "    colors: { primary: 'green' }\n"
    "  },\n"
    "  croutonCollections: {\n"
    "    coreThings: coreThingsConfig\n"
    "  }\n"
    "})\n"
)


@pytest.fixture()
def empty_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """An application root with no registry files at all."""
    root = tmp_path / "empty-app"
    root.mkdir()
    return root


@pytest.fixture()
def app_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """An application root with hand-authored registry files."""
    root = tmp_path / "app"
    files: Dict[str, str] = {
        "nuxt.config.ts": APP_NUXT_CONFIG,
        "server/db/schema.ts": APP_SCHEMA_INDEX,
        "app/app.config.ts": APP_UI_CONFIG,
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def _snapshot(root: pathlib.Path) -> Tuple[Dict[str, bytes], List[str]]:
    files: Dict[str, bytes] = {}
    dirs: List[str] = []
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        if path.is_dir():
            dirs.append(relative)
        else:
            files[relative] = path.read_bytes()
    return files, dirs


@pytest.fixture()
def snapshot() -> Callable[[pathlib.Path], Tuple[Dict[str, bytes], List[str]]]:
    """Return a callable capturing ``(files -> bytes, directories)`` under a root."""
    return _snapshot


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_target() -> Callable[..., Target]:
    """Factory for in-memory targets (``raw_fields``, no schema file)."""

    def _make(
        layer: str,
        collection: str,
        fields: Dict[str, Any],
        *,
        dry_run: bool = False,
        force: bool = False,
        **options: Any,
    ) -> Target:
        return Target(
            layer=layer,
            collection=collection,
            raw_fields=copy.deepcopy(fields),
            flags=GenerationFlags(dry_run=dry_run, force=force),
            options=CollectionOptions(**options),
        )

    return _make


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_layergen_logger() -> Iterator[None]:
    """The CLI reconfigures the ``layergen`` logger; restore it after each test."""
    logger = logging.getLogger("layergen")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
