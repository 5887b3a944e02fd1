# File: layergen/registry.py
"""
LayerGen - Registry Mutator
=============================
Idempotent insertion into, and removal from, the shared index files every
generated collection must appear in:

    nuxt.config.ts                     extends: ['./layers/<layer>']
    layers/<layer>/nuxt.config.ts      extends: ['./collections/<plural>']
    server/db/schema.ts                export { <key> } from '...'
    app/app.config.ts                  import { <key>Config } from '...'
                                       croutonCollections: { <key>: <key>Config }

Each file is a ``Registry`` value with ``upsert``/``remove``/``list``.  A
registry reads the file, locates the relevant literal or statements through
``layergen.literals``, applies one span edit and writes the file back in a
single call, so every file is one critical section per operation.

- ``upsert`` of a present key is a no-op (returns ``None``).
- ``upsert`` of a key bound to a different value raises
  ``RegistryConflictError`` unless ``force`` is given.
- ``remove`` of an absent key (or of a missing file) is a no-op.
- A missing file is created from its scaffold on first upsert.  What upsert
  added beyond single entries (a whole file, an ``extends`` or
  ``croutonCollections`` property) is recorded in ``.layergen-registry.json``
  at the root.  Removal only drops a property, or deletes a file that is
  back to its scaffold, when that record says generation added it; a
  property the user wrote is emptied instead.
- A forced upsert does not remember the value it replaced: rollback removes
  the key.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from layergen.errors import RegistryConflictError, RegistryParseError
from layergen.layout import (
    APP_CONFIG_FILE,
    REGISTRY_STATE_FILE,
    SCHEMA_INDEX_FILE,
    UI_REGISTRY_FILE,
    layout_for,
)
from layergen.literals import (
    Container,
    Edit,
    Statement,
    Token,
    append_line_edit,
    entry_value,
    find_call_object,
    import_ends,
    module_statements,
    parse_container,
    property_container,
    statement_line_edit,
    tokenize,
)
from layergen.models import RegistryEntry, RegistryKind
from layergen.naming import NamingSet
from layergen.utils import read_file, relative_import, ts_string, write_file

logger: logging.Logger = logging.getLogger("layergen.registry")

# tokens, the config object, and the property literal inside it (if any)
_Located = Tuple[List[Token], Container, Optional[Container]]

EXTENDS_KEY: str = "extends"
UI_COLLECTIONS_KEY: str = "croutonCollections"


# ---------------------------------------------------------------------------
# Change records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryChange:
    """One effective registry mutation."""

    registry_file: str
    key: str
    action: str  # "added" | "replaced" | "removed" | "created" | "deleted"

    def __str__(self) -> str:
        return f"{self.action:<8} {self.key} ({self.registry_file})"


# ---------------------------------------------------------------------------
# Ownership record
# ---------------------------------------------------------------------------


class RegistryState:
    """
    Registry files generation created and properties it inserted, per
    application root.

    Read and written on every call, like the registry files themselves.
    The record file is deleted once it records nothing.  An unreadable
    record is treated as empty, so nothing is considered owned.
    """

    def __init__(self, root: Path) -> None:
        self.path: Path = root / REGISTRY_STATE_FILE

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.is_file():
            return {}
        try:
            data: Any = json.loads(read_file(self.path))
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable registry record %s: %s", self.path, exc)
            return {}
        files: Any = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict):
            logger.warning("Ignoring malformed registry record %s.", self.path)
            return {}
        return {str(k): v for k, v in files.items() if isinstance(v, dict)}

    def _save(self, files: Dict[str, Dict[str, Any]]) -> None:
        files = {k: v for k, v in files.items() if v.get("created") or v.get("properties")}
        if not files:
            if self.path.is_file():
                self.path.unlink()
                logger.debug("Registry record %s emptied, deleted.", REGISTRY_STATE_FILE)
            return
        content: str = json.dumps({"format": 1, "files": files}, indent=2, sort_keys=True) + "\n"
        write_file(self.path, content)

    def owns_file(self, relative_path: str) -> bool:
        return bool(self._load().get(relative_path, {}).get("created"))

    def owns_property(self, relative_path: str, name: str) -> bool:
        return name in self._load().get(relative_path, {}).get("properties", [])

    def record(self, relative_path: str, *, created: bool = False,
               property_name: Optional[str] = None) -> None:
        files: Dict[str, Dict[str, Any]] = self._load()
        item: Dict[str, Any] = files.setdefault(relative_path, {"created": False, "properties": []})
        item["created"] = bool(item.get("created")) or created
        properties: List[str] = list(item.get("properties", []))
        if property_name is not None and property_name not in properties:
            properties.append(property_name)
        item["properties"] = properties
        self._save(files)

    def forget_property(self, relative_path: str, name: str) -> None:
        files: Dict[str, Dict[str, Any]] = self._load()
        item: Optional[Dict[str, Any]] = files.get(relative_path)
        if item is None or name not in item.get("properties", []):
            return
        item["properties"] = [p for p in item["properties"] if p != name]
        self._save(files)

    def forget_file(self, relative_path: str) -> None:
        files: Dict[str, Dict[str, Any]] = self._load()
        if files.pop(relative_path, None) is not None:
            self._save(files)


# ---------------------------------------------------------------------------
# Base registry
# ---------------------------------------------------------------------------


class Registry:
    """A registry file under an application root."""

    kind: RegistryKind
    scaffold: str = ""
    # literal holding the entries, when the file keeps them in one
    property_name: Optional[str] = None

    def __init__(self, root: Path, relative_path: str,
                 state: Optional[RegistryState] = None) -> None:
        self.root: Path = root
        self.relative_path: str = relative_path
        self.state: RegistryState = state or RegistryState(root)

    @property
    def path(self) -> Path:
        return self.root / self.relative_path

    def read(self) -> Optional[str]:
        if not self.path.is_file():
            return None
        return read_file(self.path)

    def _tokens(self, text: str) -> List[Token]:
        return tokenize(text, self.relative_path)

    # -- public interface ----------------------------------------------------

    def list(self) -> List[str]:
        """Insertion keys currently present, in file order."""
        text: Optional[str] = self.read()
        if text is None:
            return []
        return self._keys(text)

    def contains(self, key: str) -> bool:
        return key in self.list()

    def upsert(self, entry: RegistryEntry, *, force: bool = False) -> Optional[RegistryChange]:
        """
        Insert ``entry`` unless its key is already present.

        Returns the change made, or ``None`` for a no-op.

        Raises:
            RegistryParseError: the file cannot be read structurally.
            RegistryConflictError: the key is bound to another value.
        """
        existing: Optional[str] = self.read()
        text: str = existing if existing is not None else self.scaffold
        replaced: bool = False
        if entry.insertion_key in self._keys(text):
            current: Optional[str] = self._value(text, entry.insertion_key)
            if current is None or current == entry.value:
                logger.debug("%s already lists '%s'.", self.relative_path, entry.insertion_key)
                return None
            if not force:
                raise RegistryConflictError(self.relative_path, entry.insertion_key, current, entry.value)
            text = self._remove_text(text, entry.insertion_key, drop_property=False)
            replaced = True
        property_added: bool = self.property_name is not None and not self._has_property(text)
        updated: str = self._upsert_text(text, entry)
        write_file(self.path, updated)
        if existing is None or property_added:
            self.state.record(
                self.relative_path,
                created=existing is None,
                property_name=self.property_name if property_added else None,
            )
        action: str = "replaced" if replaced else ("created" if existing is None else "added")
        logger.info("Registry %s: %s '%s'.", self.relative_path, action, entry.insertion_key)
        return RegistryChange(self.relative_path, entry.insertion_key, action)

    def remove(self, key: str) -> Optional[RegistryChange]:
        """
        Remove ``key``; ``None`` when there was nothing to remove.

        A property generation inserted goes with its last entry, and a file
        generation created is deleted once it is back to its scaffold.
        Anything the user wrote stays.
        """
        existing: Optional[str] = self.read()
        if existing is None or key not in self._keys(existing):
            return None
        owned_property: bool = (
            self.property_name is not None
            and self.state.owns_property(self.relative_path, self.property_name)
        )
        updated: str = self._remove_text(existing, key, drop_property=owned_property)
        if updated == self.scaffold and self.state.owns_file(self.relative_path):
            self.path.unlink()
            self.state.forget_file(self.relative_path)
            logger.info("Registry %s: removed '%s', file back to scaffold, deleted.",
                        self.relative_path, key)
            return RegistryChange(self.relative_path, key, "deleted")
        write_file(self.path, updated)
        if owned_property and not self._has_property(updated):
            self.state.forget_property(self.relative_path, self.property_name)
        logger.info("Registry %s: removed '%s'.", self.relative_path, key)
        return RegistryChange(self.relative_path, key, "removed")

    # -- per-format hooks ----------------------------------------------------

    def _keys(self, text: str) -> List[str]:
        raise NotImplementedError

    def _value(self, text: str, key: str) -> Optional[str]:
        return key

    def _has_property(self, text: str) -> bool:
        return False

    def _upsert_text(self, text: str, entry: RegistryEntry) -> str:
        raise NotImplementedError

    def _remove_text(self, text: str, key: str, *, drop_property: bool) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.relative_path}>"


# ---------------------------------------------------------------------------
# Config-object helpers
# ---------------------------------------------------------------------------


def _config_object(tokens: Sequence[Token], callee: str, path: str) -> Container:
    index: Optional[int] = find_call_object(tokens, callee, path)
    if index is None:
        raise RegistryParseError(path, f"no {callee}({{...}}) call found")
    return parse_container(tokens, index, path)


def _drop_property(text: str, obj: Container, key: str) -> str:
    index: Optional[int] = obj.find(key)
    if index is None:
        return text
    return obj.remove_edit(index).apply(text)


# ---------------------------------------------------------------------------
# Extension list
# ---------------------------------------------------------------------------


class ExtensionListRegistry(Registry):
    """The ``extends`` array of a ``defineNuxtConfig({...})`` file."""

    kind = RegistryKind.EXTENSION_LIST
    scaffold = "export default defineNuxtConfig({})\n"
    property_name = EXTENDS_KEY
    callee: str = "defineNuxtConfig"

    def _extends(self, text: str) -> _Located:
        tokens: List[Token] = self._tokens(text)
        obj: Container = _config_object(tokens, self.callee, self.relative_path)
        return tokens, obj, property_container(tokens, obj, EXTENDS_KEY, self.relative_path)

    def _keys(self, text: str) -> List[str]:
        _, _, ext = self._extends(text)
        if ext is None:
            return []
        return [e.key for e in ext.entries if e.key is not None]

    def _has_property(self, text: str) -> bool:
        return self._extends(text)[2] is not None

    def _upsert_text(self, text: str, entry: RegistryEntry) -> str:
        _, obj, ext = self._extends(text)
        if ext is None:
            return obj.append_edit(text, f"{EXTENDS_KEY}: [{entry.rendered_line}]").apply(text)
        return ext.append_edit(text, entry.rendered_line).apply(text)

    def _remove_text(self, text: str, key: str, *, drop_property: bool) -> str:
        _, obj, ext = self._extends(text)
        if ext is None:
            return text
        index: Optional[int] = ext.find(key)
        if index is None:
            return text
        if drop_property and len(ext.entries) == 1:
            return _drop_property(text, obj, EXTENDS_KEY)
        return ext.remove_edit(index).apply(text)


# ---------------------------------------------------------------------------
# Schema export index
# ---------------------------------------------------------------------------


class SchemaIndexRegistry(Registry):
    """``export { <key> } from '<source>'`` lines of the schema index."""

    kind = RegistryKind.SCHEMA_INDEX
    scaffold = "// Schema index: one export per generated collection.\n"

    def _exports(self, text: str) -> List[Statement]:
        return [s for s in module_statements(self._tokens(text), self.relative_path)
                if s.keyword == "export"]

    def _keys(self, text: str) -> List[str]:
        return [name for s in self._exports(text) for name in s.names]

    def _value(self, text: str, key: str) -> Optional[str]:
        for statement in self._exports(text):
            if key in statement.names:
                return statement.source
        return None

    def _upsert_text(self, text: str, entry: RegistryEntry) -> str:
        return append_line_edit(text, entry.rendered_line).apply(text)

    def _remove_text(self, text: str, key: str, *, drop_property: bool) -> str:
        for statement in self._exports(text):
            if key not in statement.names:
                continue
            if len(statement.names) == 1:
                return statement_line_edit(text, statement).apply(text)
            return statement.braces.remove_edit(statement.names.index(key)).apply(text)
        return text


# ---------------------------------------------------------------------------
# UI registry
# ---------------------------------------------------------------------------


class UIRegistry(Registry):
    """
    ``croutonCollections`` of ``defineAppConfig({...})`` plus the import of
    every config object it points at.
    """

    kind = RegistryKind.UI_REGISTRY
    scaffold = "export default defineAppConfig({})\n"
    property_name = UI_COLLECTIONS_KEY
    callee: str = "defineAppConfig"

    def _collections(self, text: str) -> _Located:
        tokens: List[Token] = self._tokens(text)
        obj: Container = _config_object(tokens, self.callee, self.relative_path)
        return tokens, obj, property_container(tokens, obj, UI_COLLECTIONS_KEY, self.relative_path)

    def _keys(self, text: str) -> List[str]:
        _, _, collections = self._collections(text)
        if collections is None:
            return []
        return [e.key for e in collections.entries if e.key is not None]

    def _has_property(self, text: str) -> bool:
        return self._collections(text)[2] is not None

    def _value(self, text: str, key: str) -> Optional[str]:
        tokens, _, collections = self._collections(text)
        if collections is None:
            return None
        index: Optional[int] = collections.find(key)
        if index is None:
            return None
        value: Optional[Token] = entry_value(tokens, collections, index)
        return value.text if value is not None else None

    def _upsert_text(self, text: str, entry: RegistryEntry) -> str:
        _, obj, collections = self._collections(text)
        if collections is None:
            indent: Optional[str] = obj.entry_indent(text)
            if indent is None:
                value: str = f"{{ {entry.rendered_line} }}"
            else:
                value = f"{{\n{indent}  {entry.rendered_line}\n{indent}}}"
            text = obj.append_edit(text, f"{UI_COLLECTIONS_KEY}: {value}").apply(text)
        else:
            text = collections.append_edit(text, entry.rendered_line).apply(text)
        return self._ensure_import(text, entry)

    def _ensure_import(self, text: str, entry: RegistryEntry) -> str:
        tokens: List[Token] = self._tokens(text)
        for statement in module_statements(tokens, self.relative_path):
            if statement.keyword == "import" and entry.value in statement.names:
                return text
        rendered: str = f"import {{ {entry.value} }} from {ts_string(entry.import_source or '')}"
        ends: List[int] = import_ends(tokens)
        if not ends:
            return Edit(0, 0, f"{rendered}\n\n").apply(text)
        newline: int = text.find("\n", ends[-1])
        position: int = len(text) if newline == -1 else newline + 1
        prefix: str = "\n" if newline == -1 else ""
        return Edit(position, position, f"{prefix}{rendered}\n").apply(text)

    def _remove_text(self, text: str, key: str, *, drop_property: bool) -> str:
        imported: str = self._value(text, key) or f"{key}Config"
        _, obj, collections = self._collections(text)
        if collections is not None:
            index: Optional[int] = collections.find(key)
            if index is not None:
                if drop_property and len(collections.entries) == 1:
                    text = _drop_property(text, obj, UI_COLLECTIONS_KEY)
                else:
                    text = collections.remove_edit(index).apply(text)
        return self._drop_import(text, imported)

    def _drop_import(self, text: str, name: str) -> str:
        if name in self._keys_referencing(text):
            return text
        for statement in module_statements(self._tokens(text), self.relative_path):
            if statement.keyword != "import" or name not in statement.names:
                continue
            if len(statement.names) > 1:
                return statement.braces.remove_edit(statement.names.index(name)).apply(text)
            edit: Edit = statement_line_edit(text, statement)
            text = edit.apply(text)
            # The blank line added after a sole import goes with it
            if edit.start == 0 and not import_ends(self._tokens(text)) and text.startswith("\n"):
                text = text[1:]
            return text
        return text

    def _keys_referencing(self, text: str) -> List[str]:
        tokens, _, collections = self._collections(text)
        if collections is None:
            return []
        values: List[str] = []
        for index in range(len(collections.entries)):
            value: Optional[Token] = entry_value(tokens, collections, index)
            if value is not None:
                values.append(value.text)
        return values


# ---------------------------------------------------------------------------
# Entries & registry set
# ---------------------------------------------------------------------------


def registry_entries(naming: NamingSet) -> List[RegistryEntry]:
    """
    The four insertions generation makes for one target, in the order they
    are applied: app extension list, layer extension list, schema index,
    UI registry.
    """
    layout = layout_for(naming)
    layer_key: str = f"./layers/{naming.layer_kebab}"
    collection_key: str = f"./collections/{naming.plural_kebab}"
    schema_source: str = relative_import(SCHEMA_INDEX_FILE, layout.schema)
    composable_source: str = relative_import(UI_REGISTRY_FILE, layout.composable)
    key: str = naming.collection_key
    config: str = naming.config_export_name
    return [
        RegistryEntry(
            registry_file=APP_CONFIG_FILE,
            kind=RegistryKind.EXTENSION_LIST,
            insertion_key=layer_key,
            rendered_line=ts_string(layer_key),
            value=layer_key,
        ),
        RegistryEntry(
            registry_file=layout.layer_config,
            kind=RegistryKind.EXTENSION_LIST,
            insertion_key=collection_key,
            rendered_line=ts_string(collection_key),
            value=collection_key,
        ),
        RegistryEntry(
            registry_file=SCHEMA_INDEX_FILE,
            kind=RegistryKind.SCHEMA_INDEX,
            insertion_key=key,
            rendered_line=f"export {{ {key} }} from {ts_string(schema_source)}",
            value=schema_source,
            import_source=schema_source,
        ),
        RegistryEntry(
            registry_file=UI_REGISTRY_FILE,
            kind=RegistryKind.UI_REGISTRY,
            insertion_key=key,
            rendered_line=f"{key}: {config}",
            value=config,
            import_source=composable_source,
        ),
    ]


_REGISTRY_TYPES: Dict[str, type] = {
    RegistryKind.EXTENSION_LIST.value: ExtensionListRegistry,
    RegistryKind.SCHEMA_INDEX.value: SchemaIndexRegistry,
    RegistryKind.UI_REGISTRY.value: UIRegistry,
}


class RegistrySet:
    """
    The registries of one application root.

    One ``Registry`` object per file for the lifetime of a run; passed by
    reference to the orchestrator and the rollback engine.
    """

    def __init__(self, root: Path) -> None:
        self.root: Path = root
        self.state: RegistryState = RegistryState(root)
        self._registries: Dict[str, Registry] = {}

    def get(self, relative_path: str, kind: RegistryKind) -> Registry:
        registry: Optional[Registry] = self._registries.get(relative_path)
        if registry is None:
            registry_type: type = _REGISTRY_TYPES[RegistryKind(kind).value]
            registry = registry_type(self.root, relative_path, self.state)
            self._registries[relative_path] = registry
        return registry

    def for_entry(self, entry: RegistryEntry) -> Registry:
        return self.get(entry.registry_file, entry.kind)

    def pending(self, entries: Sequence[RegistryEntry]) -> List[RegistryEntry]:
        """Entries not yet present (read-only)."""
        return [e for e in entries if not self.for_entry(e).contains(e.insertion_key)]

    def upsert_all(self, entries: Sequence[RegistryEntry], *, force: bool = False) -> List[RegistryChange]:
        changes: List[RegistryChange] = []
        for entry in entries:
            change: Optional[RegistryChange] = self.for_entry(entry).upsert(entry, force=force)
            if change is not None:
                changes.append(change)
        return changes

    def __repr__(self) -> str:
        return f"<RegistrySet {self.root}: {len(self._registries)} loaded>"


__all__: List[str] = [
    "EXTENDS_KEY",
    "UI_COLLECTIONS_KEY",
    "RegistryChange",
    "RegistryState",
    "Registry",
    "ExtensionListRegistry",
    "SchemaIndexRegistry",
    "UIRegistry",
    "registry_entries",
    "RegistrySet",
]
