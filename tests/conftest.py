"""Test helpers: an in-memory module index and scratch Go module trees."""

import os
import textwrap

from modupgrade.versioning import semver
from modupgrade.versioning.models import QueryErrorKind, QueryResult, split_spec


class FakeIndex:
    """Module index answering from a dict of path -> published versions.

    ``transient`` maps a spec to the number of times it should fail with a
    TRANSIENT error before answering normally.
    """

    def __init__(self, published=None, transient=None):
        self.published = {path: list(versions) for path, versions in (published or {}).items()}
        self.transient = dict(transient or {})
        self.calls = []

    def _answer(self, spec):
        if self.transient.get(spec, 0) > 0:
            self.transient[spec] -= 1
            return QueryResult(spec, split_spec(spec)[0], error_kind=QueryErrorKind.TRANSIENT,
                               error="503 Service Unavailable")
        path, query = split_spec(spec)
        versions = self.published.get(path)
        if not versions:
            return QueryResult(spec, path, error_kind=QueryErrorKind.NOT_FOUND,
                               error=f"module {path}: not found")
        if query and semver.is_full(query):
            found = query if query in versions else None
        else:
            found = semver.highest(versions, query)
        if found is None:
            return QueryResult(spec, path, error_kind=QueryErrorKind.NOT_FOUND,
                               error=f"no matching versions for query {query!r}")
        return QueryResult(spec, path, version=found)

    def query(self, specs):
        self.calls.append(list(specs))
        return [self._answer(spec) for spec in specs]


def write_tree(root, files):
    """Create files (relative path -> dedented content) under root."""
    for rel, content in files.items():
        path = os.path.join(str(root), rel)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(textwrap.dedent(content).lstrip("\n"))


def read_file(root, rel):
    with open(os.path.join(str(root), rel), encoding="utf-8", newline="") as fh:
        return fh.read()
