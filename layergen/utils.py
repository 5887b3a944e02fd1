# File: layergen/utils.py
"""
LayerGen - Utility Functions & Helpers
========================================
File I/O, checksum and code-formatting helpers shared by the generators,
the exporter, the registry mutator and the rollback engine.

- File writes are atomic (temporary file in the target directory, then
  ``os.replace``) so an interrupted run never leaves half a file behind.
- TypeScript literal helpers render Python values (defaults, labels,
  option lists) as TS source text.
- Case conversion lives in ``layergen.naming``; nothing here re-cases names.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import posixpath
import re
import tempfile
import time
from pathlib import Path
from typing import Any, List, Optional, Sequence

logger: logging.Logger = logging.getLogger("layergen.utils")

_TS_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


# ---------------------------------------------------------------------------
# Indentation helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: Sequence[str], level: int = 1, size: int = 2) -> List[str]:
    """Indent a list of lines, returning a new list. Blank lines stay blank."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else line for line in lines]


def indent(text: str, level: int = 1, size: int = 2) -> str:
    return "\n".join(indent_lines(text.split("\n"), level, size))


# ---------------------------------------------------------------------------
# TypeScript literal helpers
# ---------------------------------------------------------------------------


def ts_string(value: str) -> str:
    """Single-quoted TS string literal."""
    escaped: str = (
        value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    )
    return f"'{escaped}'"


def ts_key(name: str) -> str:
    """Object key, quoted only when it is not a plain identifier."""
    return name if _TS_IDENTIFIER_RE.match(name) else ts_string(name)


def ts_value(value: Any) -> str:
    """
    Render a JSON-compatible Python value as a TS literal.

        >>> ts_value({"a": [1, True, None]})
        '{ a: [1, true, null] }'
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, str):
        return ts_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(ts_value(v) for v in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        inner: str = ", ".join(f"{ts_key(str(k))}: {ts_value(v)}" for k, v in value.items())
        return "{ " + inner + " }"
    raise TypeError(f"Cannot render {type(value).__name__} as a TS literal")


def relative_import(from_file: str, to_module: str) -> str:
    """
    Relative import specifier from one POSIX path to another (no extension).

        >>> relative_import("server/db/schema.ts", "layers/blog/collections/posts/server/database/schema.ts")
        '../../layers/blog/collections/posts/server/database/schema'
    """
    target: str = to_module[:-3] if to_module.endswith(".ts") else to_module
    rel: str = posixpath.relpath(target, posixpath.dirname(from_file) or ".")
    return rel if rel.startswith(".") else f"./{rel}"


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Atomically write *content* to *path*, creating parent directories.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)
    encoded: bytes = content.encode("utf-8")

    fd: int
    tmp_path: str
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(encoded)
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def prune_empty_dirs(start: Path, stop: Path) -> List[Path]:
    """
    Remove *start* and its ancestors while they are empty, never touching
    *stop* or anything above it. Returns the removed directories.
    """
    removed: List[Path] = []
    stop = stop.resolve()
    current: Path = start.resolve()
    while current != stop and stop in current.parents:
        if not current.exists():
            current = current.parent
            continue
        if not current.is_dir() or any(current.iterdir()):
            break
        current.rmdir()
        removed.append(current)
        current = current.parent
    return removed


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("plan blog/posts") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "indent_lines",
    "indent",
    "ts_string",
    "ts_key",
    "ts_value",
    "relative_import",
    "ensure_directory",
    "write_file",
    "read_file",
    "prune_empty_dirs",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("layergen.utils loaded, %d public symbols.", len(__all__))
