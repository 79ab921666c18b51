"""Collect the Go source files that belong to a module."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterator, List

from ..constants import Constants
from ..errors import PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceFile:
    """A Go file on disk, identified by its resolved real path."""
    path: str
    identity: str


def _skip_dir(root: str, name: str, module_root: str) -> bool:
    if name in Constants.SKIP_DIRS or name.startswith((".", "_")):
        return True
    # A nested go.mod starts a different module.
    candidate = os.path.join(root, name)
    return candidate != module_root and os.path.isfile(os.path.join(candidate, Constants.MOD_FILE))


def iter_source_files(module_root: str) -> Iterator[SourceFile]:
    """Yield every .go file of the module rooted at module_root, tests included.

    vendor and testdata directories, hidden or underscore-prefixed
    directories, and nested modules are skipped. Files reachable twice (for
    example through a symlink) are yielded once.
    """
    module_root = os.path.abspath(module_root)
    if not os.path.isdir(module_root):
        raise PersistenceFailure(f"module directory not found: {module_root}")

    seen = set()

    def _on_error(err: OSError) -> None:
        raise PersistenceFailure(f"error walking {module_root}: {err}")

    for root, dirs, files in os.walk(module_root, onerror=_on_error):
        dirs[:] = sorted(d for d in dirs if not _skip_dir(root, d, module_root))
        for name in sorted(files):
            if not name.endswith(Constants.SOURCE_SUFFIX) or name.startswith((".", "_")):
                continue
            path = os.path.join(root, name)
            identity = os.path.realpath(path)
            if identity in seen:
                logger.debug("Skipping already visited file %s", path)
                continue
            seen.add(identity)
            yield SourceFile(path, identity)


def load_source_files(module_root: str) -> List[SourceFile]:
    files = list(iter_source_files(module_root))
    logger.debug("Found %d Go files under %s", len(files), module_root)
    return files
