"""Locate the import paths of a Go source file.

The file is parsed with tree-sitter's Go grammar. Only the package clause and
the import declarations that follow it must be well formed; errors further
down the file are ignored. Each import is reported with the byte span of its
string literal, so a path can be replaced without reprinting (or
reformatting) anything else in the file.
"""
from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

import tree_sitter_go
from tree_sitter import Language, Node, Parser

GO_LANGUAGE = Language(tree_sitter_go.language())

_BOM = "\ufeff".encode("utf-8")


class GoSyntaxError(ValueError):
    """The package clause or import declarations could not be parsed."""


@dataclass(frozen=True)
class ImportSpec:
    """One import path literal."""
    path: str
    start: int  # byte offset of the opening quote
    end: int  # byte offset just past the closing quote
    raw: bool  # written with backquotes

    def literal(self, path: str) -> str:
        """Render path with the same quoting style as this import."""
        if self.raw:
            return f"`{path}`"
        return '"' + path.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _position(node: Node) -> str:
    row, column = node.start_point
    return f"line {row + 1}, column {column + 1}"


def _unquote(literal: str, node: Node) -> str:
    if literal.startswith("`"):
        return literal[1:-1]
    if "\\" not in literal:
        return literal[1:-1]
    try:
        return ast.literal_eval(literal)
    except (ValueError, SyntaxError) as exc:
        raise GoSyntaxError(f"invalid import path {literal} at {_position(node)}") from exc


def _import_specs(declaration: Node) -> Iterator[Node]:
    for child in declaration.named_children:
        if child.type == "import_spec":
            yield child
        elif child.type == "import_spec_list":
            yield from (c for c in child.named_children if c.type == "import_spec")


def _header(root: Node) -> Iterator[Node]:
    """Yield the package clause and the import declarations after it."""
    seen_package = False
    for node in root.named_children:
        if node.type == "comment":
            continue
        if seen_package and node.type not in ("import_declaration", "ERROR"):
            return
        if node.has_error:
            raise GoSyntaxError(f"syntax error at {_position(node)}")
        if not seen_package:
            if node.type != "package_clause":
                raise GoSyntaxError(f"expected 'package' clause at {_position(node)}")
            seen_package = True
        yield node
    if not seen_package:
        raise GoSyntaxError("expected 'package' clause")


def scan_imports(src: str) -> List[ImportSpec]:
    """Return the import specs of a Go source file, in source order.

    Raises:
        GoSyntaxError: the file does not start with a package clause, or an
            import declaration is malformed.
    """
    data = src.encode("utf-8")
    offset = len(_BOM) if data.startswith(_BOM) else 0
    tree = Parser(GO_LANGUAGE).parse(data[offset:])

    specs: List[ImportSpec] = []
    for declaration in _header(tree.root_node):
        for spec in _import_specs(declaration):
            node = spec.child_by_field_name("path")
            if node is None:
                raise GoSyntaxError(f"expected import path at {_position(spec)}")
            start, end = offset + node.start_byte, offset + node.end_byte
            literal = data[start:end].decode("utf-8")
            specs.append(ImportSpec(
                _unquote(literal, node), start, end, node.type == "raw_string_literal"
            ))
    return specs


def replace_imports(src: str, replacements: Sequence[Tuple[ImportSpec, str]]) -> str:
    """Return src with each import literal replaced by the given new path."""
    data = src.encode("utf-8")
    out = []
    last = 0
    for spec, new_path in sorted(replacements, key=lambda r: r[0].start):
        out.append(data[last:spec.start])
        out.append(spec.literal(new_path).encode("utf-8"))
        last = spec.end
    out.append(data[last:])
    return b"".join(out).decode("utf-8")
