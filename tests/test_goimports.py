"""Tests for the Go import scanner."""

import pytest

from modupgrade.rewrite.goimports import GoSyntaxError, replace_imports, scan_imports

SOURCE = '''\
// Package app does things.
package app

import "fmt"

import (
\t"net/http"

\tdep "example.com/dep/sub" // renamed
\t_ `example.com/side`
\t. "example.com/dot"
)

func main() {
\tfmt.Println("example.com/dep/sub")
}
'''


class TestScanImports:
    """Finding import literals."""

    def test_finds_every_import(self):
        specs = scan_imports(SOURCE)
        assert [s.path for s in specs] == [
            "fmt", "net/http", "example.com/dep/sub", "example.com/side", "example.com/dot",
        ]

    def test_spans_cover_the_literal(self):
        data = SOURCE.encode("utf-8")
        for spec in scan_imports(SOURCE):
            literal = data[spec.start:spec.end].decode("utf-8")
            assert literal in (f'"{spec.path}"', f"`{spec.path}`")

    def test_spans_are_byte_offsets(self):
        src = '// Größe\npackage x\n\nimport "example.com/a"\n'
        spec, = scan_imports(src)
        assert src.encode("utf-8")[spec.start:spec.end] == b'"example.com/a"'

    def test_cgo_preamble(self):
        src = 'package x\n\n// #include <stdio.h>\nimport "C"\n\nimport "example.com/a"\n'
        assert [s.path for s in scan_imports(src)] == ["C", "example.com/a"]

    def test_errors_below_the_imports_are_ignored(self):
        src = 'package x\n\nimport "example.com/a"\n\nfunc main() { this is not go }\n'
        assert [s.path for s in scan_imports(src)] == ["example.com/a"]

    def test_raw_strings_are_flagged(self):
        raw = [s.path for s in scan_imports(SOURCE) if s.raw]
        assert raw == ["example.com/side"]

    def test_strings_in_function_bodies_are_ignored(self):
        paths = [s.path for s in scan_imports(SOURCE)]
        assert paths.count("example.com/dep/sub") == 1

    def test_comments_and_build_constraints(self):
        src = '//go:build linux\n\n/* header\n */\npackage x /* c */ ; import "a.b/c"\n'
        assert [s.path for s in scan_imports(src)] == ["a.b/c"]

    def test_byte_order_mark(self):
        assert [s.path for s in scan_imports('\ufeffpackage x\nimport "fmt"\n')] == ["fmt"]

    def test_escaped_import_path(self):
        assert [s.path for s in scan_imports('package x\nimport "exa\\x6dple.com/a"\n')] == ["example.com/a"]

    def test_no_imports(self):
        assert scan_imports("package x\n\nvar y = 1\n") == []

    @pytest.mark.parametrize("src", [
        "",
        "func main() {}\n",
        "package\n",
        'package x\nimport (\n\t"fmt"\n',
        'package x\nimport "fmt\n',
        "package x\nimport 42\n",
        "/* unterminated\npackage x\n",
    ])
    def test_malformed(self, src):
        with pytest.raises(GoSyntaxError):
            scan_imports(src)


class TestReplaceImports:
    """Splicing new paths into the source."""

    def test_only_literals_change(self):
        specs = {s.path: s for s in scan_imports(SOURCE)}

        out = replace_imports(SOURCE, [
            (specs["example.com/side"], "example.com/side/v2"),
            (specs["example.com/dep/sub"], "example.com/dep/v2/sub"),
        ])

        assert out == SOURCE.replace(
            '\tdep "example.com/dep/sub"', '\tdep "example.com/dep/v2/sub"'
        ).replace("`example.com/side`", "`example.com/side/v2`")

    def test_non_ascii_before_the_literal(self):
        src = 'package x // π\n\nimport "example.com/dep"\n'
        spec, = scan_imports(src)

        out = replace_imports(src, [(spec, "example.com/dep/v2")])

        assert out == 'package x // π\n\nimport "example.com/dep/v2"\n'

    def test_no_replacements(self):
        assert replace_imports(SOURCE, []) == SOURCE
