"""Rewrite import paths of upgraded modules across a source tree.

Rewriting happens in two phases. rewrite_tree() reads and scans every file
and computes its new content without touching the disk; commit() then
writes the files that changed. A failure while scanning therefore leaves
the tree untouched. The write phase is not atomic as a whole: if it fails
part way, files written before the failure keep their new imports.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

from ..common.fileio import atomic_write, read_text
from ..errors import InvalidImportAfterRewrite, InvalidModulePath, SourceParseError
from ..versioning.paths import check_import_path
from .goimports import GoSyntaxError, ImportSpec, replace_imports, scan_imports
from .loader import SourceFile
from .lookup import ModuleResolutionCache

logger = logging.getLogger(__name__)


@dataclass
class StagedFile:
    """The outcome of rewriting one file: its old and new content."""
    path: str
    original: str
    content: str
    changes: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


def rewrite_import_path(import_path: str, module_path: str, new_module_path: str) -> str:
    """Swap the module part of import_path, keeping the package sub-path.

    Raises:
        InvalidImportAfterRewrite: the result is not a valid import path.
    """
    new_import = new_module_path + import_path[len(module_path):]
    try:
        check_import_path(new_import)
    except InvalidModulePath as exc:
        raise InvalidImportAfterRewrite(f"invalid import path after upgrade: {new_import}") from exc
    return new_import


class ImportRewriter:
    """Rewrites imports whose owning module is a key of upgrades."""

    def __init__(
        self,
        upgrades: Mapping[str, str],
        cache: ModuleResolutionCache,
        verbose: bool = False,
    ):
        self.upgrades = dict(upgrades)
        self.cache = cache
        self._audit = logger.info if verbose else logger.debug

    def _scan(self, path: str, src: str) -> List[ImportSpec]:
        try:
            return scan_imports(src)
        except GoSyntaxError as exc:
            raise SourceParseError(f"error parsing imports of {path}: {exc}") from exc

    def rewrite_source(self, path: str, src: str) -> StagedFile:
        """Compute the rewritten content of one file. Does not write anything."""
        replacements: List[Tuple[ImportSpec, str]] = []
        changes: List[Tuple[str, str]] = []
        for spec in self._scan(path, src):
            module_path = self.cache.resolve_owning_module(spec.path)
            if module_path is None:
                logger.debug("%s: no module provides %s", path, spec.path)
                continue
            new_module_path = self.upgrades.get(module_path)
            if new_module_path is None:
                continue
            new_import = rewrite_import_path(spec.path, module_path, new_module_path)
            if new_import == spec.path:
                continue
            if not changes:
                self._audit("%s:", path)
            self._audit("\t%s -> %s", spec.path, new_import)
            replacements.append((spec, new_import))
            changes.append((spec.path, new_import))

        content = replace_imports(src, replacements) if replacements else src
        return StagedFile(path, src, content, changes)

    def rewrite_tree(self, files: Sequence[SourceFile]) -> List[StagedFile]:
        """Scan every file once and return the ones whose imports changed."""
        sources: Dict[str, Tuple[str, str]] = {}
        for source in files:
            if source.identity in sources:
                continue
            sources[source.identity] = (source.path, read_text(source.path))

        # Resolve every import up front so the lookup can batch its queries.
        imports = []
        for path, src in sources.values():
            imports.extend(spec.path for spec in self._scan(path, src))
        self.cache.prime(imports)

        staged = []
        for path, src in sources.values():
            result = self.rewrite_source(path, src)
            if result.changed:
                staged.append(result)
        logger.debug("%d of %d files need rewriting", len(staged), len(sources))
        return staged


def commit(staged: Sequence[StagedFile]) -> None:
    """Write every changed file."""
    for result in staged:
        if result.changed:
            atomic_write(result.path, result.content)
