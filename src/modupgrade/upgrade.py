"""Upgrade orchestration: pick a flow and sequence resolution, edits and rewrites.

Nothing is written until the target has been resolved, go.mod has been
edited in memory and every source file has been scanned. Source files are
written first and go.mod last.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .cli_config import UpgradeConfig
from .constants import Constants, LookupMode
from .errors import InvalidVersion, NotADependency
from .manifest.editor import (
    apply_bulk_upgrade,
    apply_dependency_upgrade,
    apply_module_self_upgrade,
    direct_requirements,
)
from .manifest.modfile import ModFile, read_mod_file, write_mod_file
from .registry.goproxy import GoProxyClient
from .rewrite.loader import load_source_files
from .rewrite.lookup import GoListLookup, ModuleResolutionCache, OwnerLookup, RequirementLookup
from .rewrite.rewriter import ImportRewriter, StagedFile, commit
from .versioning import semver
from .versioning.models import UpgradeRecord
from .versioning.paths import check_path, compute_upgrade_path
from .versioning.resolver import VersionIndex, VersionResolver

logger = logging.getLogger(__name__)


@dataclass
class UpgradeReport:
    """What an upgrade changed (or would change, on a dry run)."""
    records: List[UpgradeRecord] = field(default_factory=list)
    staged: List[StagedFile] = field(default_factory=list)
    written: bool = False

    @property
    def files(self) -> List[str]:
        return [f.path for f in self.staged]


class Upgrader:
    """Runs one of the three upgrade flows against a module directory."""

    def __init__(
        self,
        config: UpgradeConfig,
        index: Optional[VersionIndex] = None,
        lookup: Optional[OwnerLookup] = None,
    ):
        """Initialize the upgrader.

        Args:
            config: Effective configuration.
            index: Module index to query; defaults to a GoProxyClient built
                from config.
            lookup: Import owner lookup; defaults to the one config selects.
        """
        self.config = config
        self._owned_index: Optional[GoProxyClient] = None
        if index is None:
            index = GoProxyClient(config.proxy, timeout=config.timeout, verbose=config.verbose)
            self._owned_index = index
        self.index = index
        self.lookup = lookup
        self.resolver = VersionResolver(index, batch_size=config.batch_size)

    def run(self, module: str = "", version: str = "") -> UpgradeReport:
        """Upgrade module (its own path, a dependency, or "all") to version."""
        try:
            return self._run(module, version)
        finally:
            if self._owned_index is not None:
                self._owned_index.close()

    def _run(self, module: str, version: str) -> UpgradeReport:
        modfile = read_mod_file(self.config.directory)
        own_path = modfile.module_path
        # Owners are resolved against go.mod as it was before any edit.
        known_modules = [own_path] + [req.path for req in modfile.requirements]

        if module in ("", own_path):
            records = [self.upgrade_module(modfile, version)]
        elif module == Constants.ALL_TARGET:
            if version:
                raise InvalidVersion(f'a version cannot be given with "{Constants.ALL_TARGET}"')
            records = self.upgrade_all(modfile)
        else:
            records = [self.upgrade_dependency(modfile, module, version)]

        report = UpgradeReport(records=records)
        if not records:
            logger.info("Nothing to upgrade")
            return report

        upgrades = {r.old_path: r.new_path for r in records if r.old_path != r.new_path}
        if upgrades:
            report.staged = self.rewrite_imports(upgrades, known_modules)

        if self.config.dry_run:
            logger.info("Dry run: %d file(s) and %s left untouched",
                        len(report.staged), Constants.MOD_FILE)
            return report

        commit(report.staged)
        write_mod_file(self.config.directory, modfile)
        report.written = True
        return report

    def upgrade_module(self, modfile: ModFile, version: str = "") -> UpgradeRecord:
        """Change the module's own path to the next (or the given) major."""
        if version:
            if not semver.is_valid(version):
                raise InvalidVersion(f"invalid upgrade version: {version}")
            # Only the major component matters for the module's own path.
            version = semver.major(version)
        new_path = compute_upgrade_path(modfile.module_path, version)
        return apply_module_self_upgrade(modfile, new_path)

    def upgrade_dependency(self, modfile: ModFile, path: str, version: str = "") -> UpgradeRecord:
        """Move one requirement to the highest (or the given) version."""
        check_path(path)
        if version and not semver.is_valid(version):
            raise InvalidVersion(f"invalid upgrade version: {version}")
        if modfile.get(path) is None:
            raise NotADependency(f"module not a known dependency: {path}")

        if version:
            new_path, full_version = self.resolver.resolve_target(path, version)
        else:
            new_path, full_version = self.resolver.next_available_major(path)
        return apply_dependency_upgrade(modfile, path, new_path, full_version, version)

    def upgrade_all(self, modfile: ModFile) -> List[UpgradeRecord]:
        """Move every direct requirement to its highest available major."""
        paths = direct_requirements(modfile)
        logger.debug("Resolving %d direct requirements with %d workers",
                     len(paths), self.config.max_workers)
        resolved = self.resolver.next_available_majors(paths, self.config.max_workers)
        return apply_bulk_upgrade(modfile, resolved, verbose=self.config.verbose)

    def _owner_lookup(self, known_modules: List[str]) -> OwnerLookup:
        if self.lookup is not None:
            return self.lookup
        if self.config.lookup == LookupMode.GO.value:
            return GoListLookup(self.config.directory)
        return RequirementLookup(known_modules)

    def rewrite_imports(self, upgrades: Dict[str, str], known_modules: List[str]) -> List[StagedFile]:
        """Scan the module's Go files and stage the ones importing upgraded modules."""
        cache = ModuleResolutionCache(self._owner_lookup(known_modules))
        rewriter = ImportRewriter(upgrades, cache, verbose=self.config.verbose)
        return rewriter.rewrite_tree(load_source_files(self.config.directory))
