"""go.mod reader and writer.

Only the ``module`` statement and ``require`` directives are modelled.
Every other line (``go``, ``toolchain``, ``replace``, ``exclude``,
``retract``, comments, blank lines) is kept verbatim and written back in
place. Requirements may appear as single ``require`` lines or inside
``require ( ... )`` blocks; a trailing ``// indirect`` comment marks an
indirect requirement.
"""
from __future__ import annotations

import functools
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from ..common.fileio import atomic_write, read_text
from ..constants import Constants
from ..errors import ManifestParseError
from ..versioning import semver
from ..versioning.models import Requirement

INDIRECT = "indirect"


@dataclass
class RequireEntry:
    """A requirement plus the comment text that followed it on its line."""
    requirement: Requirement
    comment: str = ""

    def render(self) -> str:
        req = self.requirement
        text = f"{_quote(req.path)} {_quote(req.version)}"
        comment = self.comment
        if req.indirect:
            comment = f"{INDIRECT}; {comment}" if comment else INDIRECT
        if comment:
            text += f" // {comment}"
        return text


@dataclass
class RequireLine:
    """A single-line ``require path version`` statement."""
    entry: RequireEntry


@dataclass
class RequireBlock:
    """A ``require ( ... )`` block; items are entries or verbatim lines."""
    items: List[Union[RequireEntry, str]] = field(default_factory=list)
    opener: str = "require ("

    def entries(self) -> List[RequireEntry]:
        return [item for item in self.items if isinstance(item, RequireEntry)]


@dataclass
class ModuleLine:
    path: str
    comment: str = ""


Statement = Union[str, ModuleLine, RequireLine, RequireBlock]


def _quote(token: str) -> str:
    if token and "//" not in token and not any(ch in token for ch in ' \t"`\'()\\'):
        return token
    return '"' + token.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _tokenize(line: str, lineno: int) -> Tuple[List[str], str]:
    """Split a go.mod line into tokens and the trailing comment text."""
    tokens: List[str] = []
    i, n = 0, len(line)
    while i < n:
        ch = line[i]
        if ch in " \t\r":
            i += 1
        elif line.startswith("//", i):
            return tokens, line[i + 2:].strip()
        elif ch in "()":
            tokens.append(ch)
            i += 1
        elif ch == '"':
            j = i + 1
            buf = []
            while j < n and line[j] != '"':
                if line[j] == "\\" and j + 1 < n:
                    j += 1
                buf.append(line[j])
                j += 1
            if j >= n:
                raise ManifestParseError(f"{Constants.MOD_FILE}:{lineno}: unterminated quoted string")
            tokens.append("".join(buf))
            i = j + 1
        elif ch == "`":
            j = line.find("`", i + 1)
            if j < 0:
                raise ManifestParseError(f"{Constants.MOD_FILE}:{lineno}: unterminated raw string")
            tokens.append(line[i + 1:j])
            i = j + 1
        else:
            j = i
            while j < n and line[j] not in " \t\r()\"`" and not line.startswith("//", j):
                j += 1
            tokens.append(line[i:j])
            i = j
    return tokens, ""


def _split_indirect(comment: str) -> Tuple[bool, str]:
    if comment == INDIRECT:
        return True, ""
    if comment.startswith(INDIRECT + ";"):
        return True, comment[len(INDIRECT) + 1:].strip()
    return False, comment


def _entry(tokens: List[str], comment: str, lineno: int) -> RequireEntry:
    if len(tokens) != 2:
        raise ManifestParseError(
            f"{Constants.MOD_FILE}:{lineno}: usage: require module/path v1.2.3"
        )
    path, version = tokens
    if not semver.is_valid(version):
        raise ManifestParseError(
            f"{Constants.MOD_FILE}:{lineno}: invalid version {version!r} for {path}"
        )
    indirect, rest = _split_indirect(comment)
    return RequireEntry(Requirement(path, version, indirect), rest)


def _compare_entries(a: RequireEntry, b: RequireEntry) -> int:
    if a.requirement.path != b.requirement.path:
        return -1 if a.requirement.path < b.requirement.path else 1
    return semver.compare(a.requirement.version, b.requirement.version)


class ModFile:
    """In-memory, editable go.mod file."""

    def __init__(self, statements: List[Statement], newline: str = "\n"):
        self.statements = statements
        self.newline = newline

    @classmethod
    def parse(cls, text: str) -> "ModFile":
        """Parse go.mod content.

        Raises:
            ManifestParseError: on malformed require directives, unterminated
                blocks, or a missing module statement.
        """
        newline = "\r\n" if "\r\n" in text else "\n"
        lines = text.splitlines()
        statements: List[Statement] = []
        block: Optional[RequireBlock] = None
        raw_block = False

        for lineno, line in enumerate(lines, start=1):
            tokens, comment = _tokenize(line, lineno)

            if block is not None:
                if tokens == [")"]:
                    statements.append(block)
                    block = None
                elif not tokens:
                    block.items.append(line)
                else:
                    block.items.append(_entry(tokens, comment, lineno))
                continue

            if raw_block:
                statements.append(line)
                if tokens == [")"]:
                    raw_block = False
                continue

            if not tokens:
                statements.append(line)
            elif tokens[0] == "module":
                if len(tokens) != 2:
                    raise ManifestParseError(f"{Constants.MOD_FILE}:{lineno}: usage: module module/path")
                statements.append(ModuleLine(tokens[1], comment))
            elif tokens[0] == "require":
                if tokens[1:] == ["(", ")"]:
                    statements.append(RequireBlock(opener=line))
                elif tokens[1:] == ["("]:
                    block = RequireBlock(opener=line.rstrip())
                else:
                    statements.append(RequireLine(_entry(tokens[1:], comment, lineno)))
            else:
                statements.append(line)
                if tokens[-1] == "(" and len(tokens) == 2:
                    raw_block = True

        if block is not None or raw_block:
            raise ManifestParseError(f"{Constants.MOD_FILE}: unterminated block at end of file")

        modfile = cls(statements, newline)
        if modfile.module_path is None:
            raise ManifestParseError(f"{Constants.MOD_FILE}: no module statement")
        return modfile

    @property
    def module_path(self) -> Optional[str]:
        for stmt in self.statements:
            if isinstance(stmt, ModuleLine):
                return stmt.path
        return None

    def _entries(self) -> List[RequireEntry]:
        found: List[RequireEntry] = []
        for stmt in self.statements:
            if isinstance(stmt, RequireLine):
                found.append(stmt.entry)
            elif isinstance(stmt, RequireBlock):
                found.extend(stmt.entries())
        return found

    @property
    def requirements(self) -> List[Requirement]:
        """All requirements, in file order."""
        return [entry.requirement for entry in self._entries()]

    def get(self, path: str) -> Optional[Requirement]:
        for entry in self._entries():
            if entry.requirement.path == path:
                return entry.requirement
        return None

    def set_module(self, path: str) -> None:
        for stmt in self.statements:
            if isinstance(stmt, ModuleLine):
                stmt.path = path
                return
        self.statements.insert(0, ModuleLine(path))

    def drop_require(self, path: str) -> bool:
        """Remove every requirement on path. Returns True if one was removed."""
        dropped = False
        kept: List[Statement] = []
        for stmt in self.statements:
            if isinstance(stmt, RequireLine) and stmt.entry.requirement.path == path:
                dropped = True
                continue
            if isinstance(stmt, RequireBlock):
                before = len(stmt.items)
                stmt.items = [
                    item for item in stmt.items
                    if not (isinstance(item, RequireEntry) and item.requirement.path == path)
                ]
                dropped = dropped or len(stmt.items) != before
            kept.append(stmt)
        self.statements = kept
        return dropped

    def add_require(self, path: str, version: str, indirect: bool = False) -> None:
        """Require path at version, updating an existing requirement in place."""
        existing = self.get(path)
        if existing is not None:
            existing.version = version
            existing.indirect = indirect
            return

        entry = RequireEntry(Requirement(path, version, indirect))
        blocks = [stmt for stmt in self.statements if isinstance(stmt, RequireBlock)]
        if blocks:
            # Direct requirements go into the last block holding direct ones.
            target = blocks[-1]
            for block in reversed(blocks):
                entries = block.entries()
                if entries and any(e.requirement.indirect == indirect for e in entries):
                    target = block
                    break
            target.items.append(entry)
            return

        lines = [i for i, stmt in enumerate(self.statements) if isinstance(stmt, RequireLine)]
        if lines:
            self.statements.insert(lines[-1] + 1, RequireLine(entry))
            return

        last = self.statements[-1] if self.statements else ""
        if not (isinstance(last, str) and not last.strip()):
            self.statements.append("")
        self.statements.append(RequireLine(entry))

    def cleanup(self) -> None:
        """Sort require blocks, drop empty ones and squeeze blank lines."""
        cleaned: List[Statement] = []
        for stmt in self.statements:
            if isinstance(stmt, RequireBlock):
                if not stmt.entries():
                    continue
                stmt.items = _sorted_block_items(stmt.items)
            if isinstance(stmt, str) and not stmt.strip():
                if not cleaned or (isinstance(cleaned[-1], str) and not cleaned[-1].strip()):
                    continue
            cleaned.append(stmt)
        while cleaned and isinstance(cleaned[-1], str) and not cleaned[-1].strip():
            cleaned.pop()
        self.statements = cleaned

    def format(self) -> str:
        """Render the file, sorted and cleaned up."""
        self.cleanup()
        out: List[str] = []
        for stmt in self.statements:
            if isinstance(stmt, str):
                out.append(stmt)
            elif isinstance(stmt, ModuleLine):
                line = f"module {_quote(stmt.path)}"
                if stmt.comment:
                    line += f" // {stmt.comment}"
                out.append(line)
            elif isinstance(stmt, RequireLine):
                out.append(f"require {stmt.entry.render()}")
            else:
                out.append(stmt.opener)
                for item in stmt.items:
                    out.append(f"\t{item.render()}" if isinstance(item, RequireEntry) else item)
                out.append(")")
        return self.newline.join(out) + self.newline


def _sort_section(items: List[Union[RequireEntry, str]]) -> List[Union[RequireEntry, str]]:
    chunks: List[Tuple[RequireEntry, List[str]]] = []
    pending: List[str] = []
    for item in items:
        if isinstance(item, RequireEntry):
            chunks.append((item, pending))
            pending = []
        else:
            pending.append(item)
    chunks.sort(key=functools.cmp_to_key(lambda a, b: _compare_entries(a[0], b[0])))
    result: List[Union[RequireEntry, str]] = []
    for entry, comments in chunks:
        result.extend(comments)
        result.append(entry)
    result.extend(pending)
    return result


def _sorted_block_items(items: List[Union[RequireEntry, str]]) -> List[Union[RequireEntry, str]]:
    """Sort entries by path and version within each blank-line separated section.

    Comment lines travel with the entry below them. Sections emptied by
    edits disappear together with their separator.
    """
    sections: List[List[Union[RequireEntry, str]]] = [[]]
    for item in items:
        if isinstance(item, str) and not item.strip():
            sections.append([])
        else:
            sections[-1].append(item)

    result: List[Union[RequireEntry, str]] = []
    for section in sections:
        if not section:
            continue
        if result:
            result.append("")
        result.extend(_sort_section(section))
    return result


def read_mod_file(directory: str) -> ModFile:
    """Read and parse the go.mod file of the module rooted at directory."""
    return ModFile.parse(read_text(os.path.join(directory, Constants.MOD_FILE)))


def write_mod_file(directory: str, modfile: ModFile) -> None:
    """Format and re-write the go.mod file of the module rooted at directory."""
    atomic_write(os.path.join(directory, Constants.MOD_FILE), modfile.format())
