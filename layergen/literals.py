# File: layergen/literals.py
"""
LayerGen - Structural Literal Reader
======================================
A small reader for the parts of JS/TS source the registry mutator edits:

- array and object literals (``extends: [...]``, ``croutonCollections: {...}``)
- top-level ``import { ... } from '...'`` / ``export { ... } from '...'``
  statements

Source is tokenized once (strings, template literals and comments are
recognised, so a ``,`` or ``]`` inside them is never mistaken for
structure), containers are parsed into entries with exact character spans,
and every mutation is expressed as an ``Edit`` computed from those spans.

Insertion and removal are inverses of each other:

    insert after the last entry      ``,`` + separator + entry
    remove an entry                  the same span, located structurally

so appending an entry and later removing it restores the original bytes.
Text outside the edited span is never rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from layergen.errors import RegistryParseError

logger: logging.Logger = logging.getLogger("layergen.literals")

_OPENERS: str = "([{"
_CLOSERS: str = ")]}"
_PAIRS: Dict[str, str] = {"(": ")", "[": "]", "{": "}"}

# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str  # "ident" | "string" | "template" | "number" | "punct"
    text: str
    start: int
    end: int

    @property
    def value(self) -> str:
        """Unquoted value of a string token; the raw text otherwise."""
        if self.kind != "string":
            return self.text
        body: str = self.text[1:-1]
        out: List[str] = []
        i: int = 0
        while i < len(body):
            ch: str = body[i]
            if ch == "\\" and i + 1 < len(body):
                nxt: str = body[i + 1]
                out.append({"n": "\n", "t": "\t", "r": "\r"}.get(nxt, nxt))
                i += 2
                continue
            out.append(ch)
            i += 1
        return "".join(out)

    def is_punct(self, char: str) -> bool:
        return self.kind == "punct" and self.text == char


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _skip_template(text: str, pos: int, path: str) -> int:
    """Return the offset just past the template literal opening at ``pos``."""
    i: int = pos + 1
    n: int = len(text)
    while i < n:
        ch: str = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1
        if ch == "$" and i + 1 < n and text[i + 1] == "{":
            depth: int = 1
            i += 2
            while i < n and depth:
                inner: str = text[i]
                if inner in "'\"":
                    i = _skip_string(text, i, path)
                    continue
                if inner == "`":
                    i = _skip_template(text, i, path)
                    continue
                if inner == "{":
                    depth += 1
                elif inner == "}":
                    depth -= 1
                i += 1
            continue
        i += 1
    raise RegistryParseError(path, "unterminated template literal", pos)


def _skip_string(text: str, pos: int, path: str) -> int:
    quote: str = text[pos]
    i: int = pos + 1
    while i < len(text):
        ch: str = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            break
        i += 1
    raise RegistryParseError(path, "unterminated string literal", pos)


def tokenize(text: str, path: str = "<source>") -> List[Token]:
    """
    Split ``text`` into tokens, dropping whitespace and comments.

    Raises:
        RegistryParseError: an unterminated string, template or comment.
    """
    tokens: List[Token] = []
    i: int = 0
    n: int = len(text)
    while i < n:
        ch: str = text[i]
        if ch.isspace():
            i += 1
            continue
        if text.startswith("//", i):
            newline: int = text.find("\n", i)
            i = n if newline == -1 else newline
            continue
        if text.startswith("/*", i):
            close: int = text.find("*/", i + 2)
            if close == -1:
                raise RegistryParseError(path, "unterminated block comment", i)
            i = close + 2
            continue
        if ch in "'\"":
            end: int = _skip_string(text, i, path)
            tokens.append(Token("string", text[i:end], i, end))
            i = end
            continue
        if ch == "`":
            end = _skip_template(text, i, path)
            tokens.append(Token("template", text[i:end], i, end))
            i = end
            continue
        if _is_ident_start(ch):
            end = i + 1
            while end < n and _is_ident_char(text[end]):
                end += 1
            tokens.append(Token("ident", text[i:end], i, end))
            i = end
            continue
        if ch.isdigit():
            end = i + 1
            while end < n and (text[end].isalnum() or text[end] in "._"):
                end += 1
            tokens.append(Token("number", text[i:end], i, end))
            i = end
            continue
        tokens.append(Token("punct", ch, i, i + 1))
        i += 1
    return tokens


def matching_index(tokens: Sequence[Token], open_index: int, path: str = "<source>") -> int:
    """Index of the bracket closing ``tokens[open_index]``."""
    stack: List[str] = []
    for index in range(open_index, len(tokens)):
        tok: Token = tokens[index]
        if tok.kind != "punct":
            continue
        if tok.text in _OPENERS:
            stack.append(_PAIRS[tok.text])
        elif tok.text in _CLOSERS:
            if not stack or stack[-1] != tok.text:
                raise RegistryParseError(path, f"unbalanced '{tok.text}'", tok.start)
            stack.pop()
            if not stack:
                return index
    raise RegistryParseError(path, f"unclosed '{tokens[open_index].text}'", tokens[open_index].start)


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Edit:
    """Replace ``text[start:end]`` with ``replacement``."""

    start: int
    end: int
    replacement: str = ""

    def apply(self, text: str) -> str:
        return text[:self.start] + self.replacement + text[self.end:]


def line_start(text: str, offset: int) -> int:
    return text.rfind("\n", 0, offset) + 1


def line_indent(text: str, offset: int) -> str:
    start: int = line_start(text, offset)
    end: int = start
    while end < len(text) and text[end] in " \t":
        end += 1
    return text[start:end]


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Entry:
    """One element of an array literal or one property of an object literal."""

    first: int  # token indices, inclusive
    last: int
    start: int  # character span
    end: int
    key: Optional[str] = None
    value_index: Optional[int] = None
    comma_end: Optional[int] = None  # end offset of the comma following the entry


@dataclass(frozen=True)
class Container:
    """A parsed ``[...]`` or ``{...}`` literal."""

    bracket: str
    open_index: int
    close_index: int
    open: int
    close: int
    entries: Tuple[Entry, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def find(self, key: str) -> Optional[int]:
        for index, entry in enumerate(self.entries):
            if entry.key == key:
                return index
        return None

    def _separator(self, text: str) -> str:
        last: Entry = self.entries[-1]
        if "\n" in text[self.open + 1:last.start]:
            return "\n" + line_indent(text, last.start)
        return " "

    def entry_indent(self, text: str) -> Optional[str]:
        """Indentation an appended entry gets; ``None`` for a one-line literal."""
        if self.is_empty:
            if self.bracket == "{":
                return line_indent(text, self.open) + "  "
            return None
        sep: str = self._separator(text)
        return sep[1:] if sep.startswith("\n") else None

    def append_edit(self, text: str, rendered: str) -> Edit:
        """Edit that adds ``rendered`` after the last entry."""
        if self.is_empty:
            if self.bracket == "{":
                outer: str = line_indent(text, self.open)
                return Edit(self.open + 1, self.close, f"\n{outer}  {rendered}\n{outer}")
            return Edit(self.open + 1, self.close, rendered)
        last: Entry = self.entries[-1]
        sep: str = self._separator(text)
        if last.comma_end is not None:
            return Edit(last.comma_end, last.comma_end, f"{sep}{rendered},")
        return Edit(last.end, last.end, f",{sep}{rendered}")

    def remove_edit(self, index: int) -> Edit:
        """Edit that deletes entry ``index``; the inverse of ``append_edit``."""
        entry: Entry = self.entries[index]
        if len(self.entries) == 1:
            return Edit(self.open + 1, self.close, "")
        if index == 0:
            return Edit(entry.start, self.entries[1].start, "")
        prev: Entry = self.entries[index - 1]
        if entry.comma_end is not None and prev.comma_end is not None:
            return Edit(prev.comma_end, entry.comma_end, "")
        return Edit(prev.end, entry.end, "")

    def replace_value_edit(self, tokens: Sequence[Token], index: int, rendered: str) -> Edit:
        entry: Entry = self.entries[index]
        start_tok: int = entry.value_index if entry.value_index is not None else entry.first
        return Edit(tokens[start_tok].start, entry.end, rendered)


def parse_container(tokens: Sequence[Token], open_index: int, path: str = "<source>") -> Container:
    """
    Parse the array/object literal opening at ``tokens[open_index]``.

    Raises:
        RegistryParseError: the token is not ``[``/``{`` or is unbalanced.
    """
    opener: Token = tokens[open_index]
    if opener.kind != "punct" or opener.text not in "[{":
        raise RegistryParseError(path, f"expected an array or object literal, found {opener.text!r}",
                                 opener.start)
    close_index: int = matching_index(tokens, open_index, path)
    entries: List[Entry] = []
    depth: int = 0
    first: Optional[int] = None

    def close_entry(begin: int, last: int, comma_end: Optional[int]) -> None:
        key, value_index = _entry_key(tokens, begin, last, opener.text)
        entries.append(Entry(
            first=begin,
            last=last,
            start=tokens[begin].start,
            end=tokens[last].end,
            key=key,
            value_index=value_index,
            comma_end=comma_end,
        ))

    for index in range(open_index + 1, close_index):
        tok: Token = tokens[index]
        if tok.kind == "punct" and tok.text in _OPENERS:
            depth += 1
        elif tok.kind == "punct" and tok.text in _CLOSERS:
            depth -= 1
        if depth == 0 and tok.is_punct(","):
            if first is None:
                raise RegistryParseError(path, "empty element in literal", tok.start)
            close_entry(first, index - 1, tok.end)
            first = None
            continue
        if first is None:
            first = index
    if first is not None:
        close_entry(first, close_index - 1, None)

    return Container(
        bracket=opener.text,
        open_index=open_index,
        close_index=close_index,
        open=opener.start,
        close=tokens[close_index].start,
        entries=tuple(entries),
    )


def _entry_key(
    tokens: Sequence[Token], first: int, last: int, bracket: str
) -> Tuple[Optional[str], Optional[int]]:
    head: Token = tokens[first]
    if bracket == "[":
        if first == last and head.kind == "string":
            return head.value, first
        return None, first
    if head.kind in ("ident", "string", "number"):
        if first + 1 <= last and tokens[first + 1].is_punct(":"):
            return head.value, first + 2
        if first == last and head.kind == "ident":
            return head.text, first
    return None, None


def entry_value(tokens: Sequence[Token], container: Container, index: int) -> Optional[Token]:
    """The single token an entry's value consists of, if it is one token."""
    entry: Entry = container.entries[index]
    if entry.value_index is None or entry.value_index != entry.last:
        return None
    return tokens[entry.value_index]


# ---------------------------------------------------------------------------
# Locating literals
# ---------------------------------------------------------------------------


def find_call_object(tokens: Sequence[Token], callee: str, path: str = "<source>") -> Optional[int]:
    """
    Index of the ``{`` that is the first argument of ``callee(...)``, or
    ``None`` when the call does not exist.
    """
    for index in range(len(tokens) - 2):
        tok: Token = tokens[index]
        if tok.kind == "ident" and tok.text == callee and tokens[index + 1].is_punct("("):
            arg: Token = tokens[index + 2]
            if not arg.is_punct("{"):
                raise RegistryParseError(path, f"{callee}() is not called with an object literal",
                                         arg.start)
            return index + 2
    return None


def property_container(
    tokens: Sequence[Token], obj: Container, key: str, path: str = "<source>"
) -> Optional[Container]:
    """The literal an object property points at, ``None`` when the key is absent."""
    index: Optional[int] = obj.find(key)
    if index is None:
        return None
    entry: Entry = obj.entries[index]
    if entry.value_index is None:
        raise RegistryParseError(path, f"'{key}' has no value", entry.start)
    value: Token = tokens[entry.value_index]
    if not (value.is_punct("[") or value.is_punct("{")):
        raise RegistryParseError(path, f"'{key}' is not a literal", value.start)
    container: Container = parse_container(tokens, entry.value_index, path)
    if container.close_index != entry.last:
        raise RegistryParseError(path, f"'{key}' is not a plain literal", value.start)
    return container


# ---------------------------------------------------------------------------
# Module statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Statement:
    """A top-level ``import { ... } from '...'`` or ``export { ... } from '...'``."""

    keyword: str
    names: Tuple[str, ...]
    source: str
    start: int
    end: int
    braces: Container


def module_statements(tokens: Sequence[Token], path: str = "<source>") -> List[Statement]:
    """Named import/export-from statements at nesting depth zero, in order."""
    statements: List[Statement] = []
    depth: int = 0
    index: int = 0
    while index < len(tokens):
        tok: Token = tokens[index]
        if tok.kind == "punct" and tok.text in _OPENERS:
            depth += 1
        elif tok.kind == "punct" and tok.text in _CLOSERS:
            depth -= 1
        elif (
            depth == 0
            and tok.kind == "ident"
            and tok.text in ("import", "export")
            and index + 1 < len(tokens)
        ):
            brace_index: int = index + 1
            if tokens[brace_index].kind == "ident" and tokens[brace_index].text == "type":
                brace_index += 1
            if brace_index < len(tokens) and tokens[brace_index].is_punct("{"):
                braces: Container = parse_container(tokens, brace_index, path)
                after: int = braces.close_index + 1
                if (
                    after + 1 < len(tokens)
                    and tokens[after].kind == "ident"
                    and tokens[after].text == "from"
                    and tokens[after + 1].kind == "string"
                ):
                    end_tok: Token = tokens[after + 1]
                    end: int = end_tok.end
                    if after + 2 < len(tokens) and tokens[after + 2].is_punct(";"):
                        end = tokens[after + 2].end
                    names: Tuple[str, ...] = tuple(
                        tokens[e.last].text for e in braces.entries
                    )
                    statements.append(Statement(
                        keyword=tok.text,
                        names=names,
                        source=end_tok.value,
                        start=tok.start,
                        end=end,
                        braces=braces,
                    ))
                    index = after + 2
                    continue
        index += 1
    return statements


def import_ends(tokens: Sequence[Token]) -> List[int]:
    """End offsets of every top-level ``import`` statement, whatever its shape."""
    ends: List[int] = []
    depth: int = 0
    for index, tok in enumerate(tokens):
        if tok.kind == "punct" and tok.text in _OPENERS:
            depth += 1
        elif tok.kind == "punct" and tok.text in _CLOSERS:
            depth -= 1
        if depth != 0 or tok.kind != "ident" or tok.text != "import":
            continue
        if index + 1 < len(tokens) and (tokens[index + 1].is_punct("(") or tokens[index + 1].is_punct(".")):
            continue
        for probe in range(index + 1, len(tokens)):
            candidate: Token = tokens[probe]
            if candidate.kind == "string" and (
                probe == index + 1 or tokens[probe - 1].text == "from"
            ):
                end: int = candidate.end
                if probe + 1 < len(tokens) and tokens[probe + 1].is_punct(";"):
                    end = tokens[probe + 1].end
                ends.append(end)
                break
    return ends


def statement_line_edit(text: str, statement: Statement) -> Edit:
    """
    Delete a statement together with its line when it is alone on it,
    otherwise delete just the statement.
    """
    start: int = line_start(text, statement.start)
    newline: int = text.find("\n", statement.end)
    line_end: int = len(text) if newline == -1 else newline + 1
    before: str = text[start:statement.start]
    after: str = text[statement.end:line_end]
    if not before.strip() and not after.strip():
        return Edit(start, line_end, "")
    return Edit(statement.start, statement.end, "")


def append_line_edit(text: str, rendered: str) -> Edit:
    """Append ``rendered`` as a new last line."""
    prefix: str = "" if not text or text.endswith("\n") else "\n"
    return Edit(len(text), len(text), f"{prefix}{rendered}\n")


__all__: List[str] = [
    "Token",
    "tokenize",
    "matching_index",
    "Edit",
    "line_start",
    "line_indent",
    "Entry",
    "Container",
    "parse_container",
    "entry_value",
    "find_call_object",
    "property_container",
    "Statement",
    "module_statements",
    "import_ends",
    "statement_line_edit",
    "append_line_edit",
]
