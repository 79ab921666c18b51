"""Apply upgrade decisions to an in-memory go.mod file."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..errors import ConflictingUpgradeTargets, NotADependency
from ..versioning import semver
from ..versioning.models import UpgradeRecord
from .modfile import ModFile

logger = logging.getLogger(__name__)


def apply_dependency_upgrade(
    modfile: ModFile,
    old_path: str,
    new_path: str,
    resolved_version: str,
    query: str = "",
) -> UpgradeRecord:
    """Replace the requirement on old_path with one on new_path.

    If new_path is already required and its version satisfies query, that
    requirement is kept as is; otherwise it is replaced by
    new_path@resolved_version.

    Raises:
        NotADependency: old_path is not required.
    """
    old = modfile.get(old_path)
    if old is None:
        raise NotADependency(f"module not a known dependency: {old_path}")
    old_version = old.version

    if new_path == old_path:
        # Same major, different minor/patch.
        modfile.add_require(new_path, resolved_version, old.indirect)
        return UpgradeRecord(old_path, new_path, old_version, resolved_version)

    existing = modfile.get(new_path)
    keep_existing = existing is not None and semver.matches_query(existing.version, query)
    new_version = existing.version if keep_existing else resolved_version

    modfile.drop_require(old_path)
    if existing is not None and not keep_existing:
        logger.debug("Replacing %s %s with %s", new_path, existing.version, resolved_version)
        modfile.drop_require(new_path)
    if not keep_existing:
        modfile.add_require(new_path, resolved_version)

    return UpgradeRecord(old_path, new_path, old_version, new_version)


def apply_module_self_upgrade(modfile: ModFile, new_path: str) -> UpgradeRecord:
    """Change the module's own path; the requirement list is left alone."""
    old_path = modfile.module_path or ""
    modfile.set_module(new_path)
    return UpgradeRecord(old_path, new_path)


def direct_requirements(modfile: ModFile) -> List[str]:
    """Paths of the non-indirect requirements, in file order."""
    return [req.path for req in modfile.requirements if not req.indirect]


def apply_bulk_upgrade(
    modfile: ModFile,
    resolved: Dict[str, Optional[Tuple[str, str]]],
    verbose: bool = False,
) -> List[UpgradeRecord]:
    """Apply per-requirement upgrades found by the bulk resolution.

    Args:
        modfile: The manifest to edit.
        resolved: Requirement path -> (new_path, version), or None when no
            upgrade is available. Iteration order is the order edits are
            applied in.
        verbose: Report skipped requirements at INFO instead of DEBUG.

    Raises:
        ConflictingUpgradeTargets: two requirements would end up on the same
            path, or on paths differing only in case. Nothing is edited in
            that case.
    """
    targets: Dict[str, Tuple[str, str]] = {}
    for old_path, outcome in resolved.items():
        if outcome is None:
            continue
        if modfile.get(old_path) is None:
            raise NotADependency(f"module not a known dependency: {old_path}")
        new_path = outcome[0]
        # Paths equal up to case collide in the module cache and in go.mod.
        key = new_path.casefold()
        if key in targets:
            other_old, other_new = targets[key]
            raise ConflictingUpgradeTargets(
                f"{other_old} and {old_path} would both be upgraded to {new_path}"
                if other_new == new_path else
                f"{other_old} -> {other_new} and {old_path} -> {new_path} differ only in case"
            )
        targets[key] = (old_path, new_path)

    audit = logger.info if verbose else logger.debug
    records: List[UpgradeRecord] = []
    for old_path, outcome in resolved.items():
        if outcome is None:
            audit("%s - no versions available for upgrade", old_path)
            continue
        new_path, version = outcome
        old_version = modfile.get(old_path).version
        modfile.drop_require(old_path)
        modfile.add_require(new_path, version)
        records.append(UpgradeRecord(old_path, new_path, old_version, version))
    return records
