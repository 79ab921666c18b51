"""Find which module owns an import path.

Deciding where a module path ends and a package path begins cannot be done
from the text alone: ``example.com/dep/v3/sub`` may be package ``v3/sub`` of
``example.com/dep`` or package ``sub`` of ``example.com/dep/v3``. Two
lookups are offered:

- RequirementLookup picks the longest known module path (the main module
  plus every requirement) that prefixes the import at an element boundary,
  which is how the go command selects a module for a package;
- GoListLookup asks ``go list`` directly.

ModuleResolutionCache memoizes whichever lookup is used for one run.
"""
from __future__ import annotations

import json
import logging
import subprocess
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from ..common.logging_utils import extra_context, is_debug_enabled, Timer
from ..constants import Constants
from ..errors import QueryFailure
from ..versioning.paths import is_standard_import

logger = logging.getLogger(__name__)


class OwnerLookup(Protocol):
    """Maps import paths to owning module paths (None when unknown)."""

    def owners(self, imports: Sequence[str]) -> Dict[str, Optional[str]]:
        ...


def _has_path_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


class RequirementLookup:
    """Resolve owners from the module paths listed in go.mod."""

    def __init__(self, module_paths: Iterable[str]):
        # Longest first so the most specific module wins.
        self.module_paths = sorted(set(module_paths), key=len, reverse=True)

    def owners(self, imports: Sequence[str]) -> Dict[str, Optional[str]]:
        found: Dict[str, Optional[str]] = {}
        for imp in imports:
            found[imp] = next(
                (mod for mod in self.module_paths if _has_path_prefix(imp, mod)), None
            )
        return found


def _decode_stream(text: str) -> List[dict]:
    """Decode a stream of concatenated JSON objects, as printed by go list -json."""
    decoder = json.JSONDecoder()
    objects = []
    pos, n = 0, len(text)
    while True:
        while pos < n and text[pos].isspace():
            pos += 1
        if pos >= n:
            return objects
        obj, pos = decoder.raw_decode(text, pos)
        objects.append(obj)


class GoListLookup:
    """Resolve owners by running ``go list -e -json`` in the module directory."""

    def __init__(self, directory: str, *, timeout: float = Constants.GO_LIST_TIMEOUT):
        self.directory = directory
        self.timeout = timeout

    def _run(self, args: List[str]) -> str:
        cmd = ["go", "list", "-e", "-json", "-mod=readonly"] + args
        with Timer() as t:
            try:
                result = subprocess.run(
                    cmd,
                    cwd=self.directory,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise QueryFailure("the go command is not installed or not on PATH") from exc
            except subprocess.TimeoutExpired as exc:
                raise QueryFailure(f"'go list' timed out after {self.timeout} seconds") from exc
        if is_debug_enabled(logger):
            logger.debug(
                "go list finished",
                extra=extra_context(
                    event="subprocess",
                    component="lookup",
                    action="go_list",
                    outcome=result.returncode,
                    duration_ms=t.duration_ms(),
                    count=len(args)
                )
            )
        if result.returncode != 0:
            detail = (result.stderr or "").strip().splitlines()
            raise QueryFailure(
                "error executing 'go list -e -json -mod=readonly': "
                + (detail[0] if detail else f"exit status {result.returncode}")
            )
        return result.stdout

    def owners(self, imports: Sequence[str]) -> Dict[str, Optional[str]]:
        if not imports:
            return {}
        out = self._run(list(imports))
        try:
            packages = _decode_stream(out)
        except json.JSONDecodeError as exc:
            raise QueryFailure(f"error parsing results of 'go list -e -json': {exc}") from exc

        found: Dict[str, Optional[str]] = {imp: None for imp in imports}
        for pkg in packages:
            import_path = pkg.get("ImportPath")
            if import_path not in found:
                continue
            if pkg.get("Standard"):
                found[import_path] = import_path
                continue
            module = pkg.get("Module") or {}
            if module.get("Path"):
                found[import_path] = module["Path"]
            elif pkg.get("Error"):
                logger.debug("go list: %s: %s", import_path, pkg["Error"].get("Err"))
        return found


class ModuleResolutionCache:
    """Per-run memo of import path -> owning module path."""

    def __init__(self, lookup: OwnerLookup):
        self.lookup = lookup
        self._owners: Dict[str, Optional[str]] = {}

    def prime(self, imports: Iterable[str]) -> None:
        """Resolve every not yet cached import with a single lookup call."""
        missing = []
        for imp in imports:
            if imp in self._owners or imp in missing:
                continue
            if is_standard_import(imp):
                # Standard library packages don't have a module.
                self._owners[imp] = imp
            else:
                missing.append(imp)
        if missing:
            found = self.lookup.owners(missing)
            for imp in missing:
                self._owners[imp] = found.get(imp)

    def resolve_owning_module(self, import_path: str) -> Optional[str]:
        if import_path not in self._owners:
            self.prime([import_path])
        return self._owners.get(import_path)

    def __len__(self) -> int:
        return len(self._owners)
