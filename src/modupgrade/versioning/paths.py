"""Module path algebra.

Pure functions for splitting a module path into its prefix and major-version
suffix, validating module and import paths, and computing the path a module
takes after a major-version upgrade. Nothing in here performs I/O.
"""

from typing import Optional, Tuple

from ..errors import InvalidModulePath, InvalidVersion
from . import semver

GOPKG_IN = "gopkg.in/"
_DIGITS = frozenset("0123456789")

_MOD_PATH_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._~"
)
_IMPORT_PATH_CHARS = _MOD_PATH_CHARS | {"+"}
_FIRST_ELEM_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-.")
_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)


def _split_gopkg_in(path: str) -> Tuple[str, str, bool]:
    i = len(path)
    while i > 0 and path[i - 1] in _DIGITS:
        i -= 1
    if i <= 1 or path[i - 1] != "v" or path[i - 2] != ".":
        return path, "", False
    prefix, path_major = path[:i - 2], path[i - 2:]
    if len(path_major) <= 2 or (path_major[2] == "0" and path_major != ".v0"):
        return path, "", False
    return prefix, path_major, True


def split_path_version(path: str) -> Tuple[str, str, bool]:
    """Split path into (prefix, path_major, ok).

    path_major is "" or a ``/vN`` suffix (N >= 2, no leading zero). For
    gopkg.in paths it is the mandatory ``.vN`` suffix. ok is False when the
    trailing element looks like a major suffix but is malformed.
    """
    if path.startswith(GOPKG_IN):
        return _split_gopkg_in(path)

    i = len(path)
    dot = False
    while i > 0 and (path[i - 1] in _DIGITS or path[i - 1] == "."):
        if path[i - 1] == ".":
            dot = True
        i -= 1
    if i <= 1 or i == len(path) or path[i - 1] != "v" or path[i - 2] != "/":
        return path, "", True
    prefix, path_major = path[:i - 2], path[i - 2:]
    if dot or len(path_major) <= 2 or path_major[2] == "0" or path_major == "/v1":
        return path, "", False
    return prefix, path_major, True


def path_major_number(path_major: str) -> Optional[int]:
    """Return N for a ``/vN`` or ``.vN`` suffix, None for an empty one."""
    if not path_major:
        return None
    return int(path_major[2:])


def major_path(prefix: str, major: int) -> str:
    """Join prefix with the suffix for major (bare prefix for v0/v1)."""
    if prefix.startswith(GOPKG_IN):
        return f"{prefix}.v{major}"
    if major <= 1:
        return prefix
    return f"{prefix}/v{major}"


def _check_elem(elem: str, module_path: bool) -> Optional[str]:
    if elem in ("", ".", ".."):
        return f"invalid path element {elem!r}"
    allowed = _MOD_PATH_CHARS if module_path else _IMPORT_PATH_CHARS
    for ch in elem:
        if ch not in allowed:
            return f"invalid char {ch!r}"
    if module_path and elem[0] == ".":
        return "leading dot in path element"
    if elem[-1] == ".":
        return "trailing dot in path element"
    short = elem.split(".", 1)[0]
    if short.upper() in _RESERVED_NAMES:
        return f"{short!r} disallowed as path element component on Windows"
    return None


def _check_path(path: str, module_path: bool) -> Optional[str]:
    if path == "":
        return "empty string"
    if path[0] == "-":
        return "leading dash"
    if "//" in path:
        return "double slash"
    if path.endswith("/"):
        return "trailing slash"
    for elem in path.split("/"):
        problem = _check_elem(elem, module_path)
        if problem:
            return problem
    return None


def check_path(path: str) -> None:
    """Validate a module path.

    Raises:
        InvalidModulePath: if path is malformed.
    """
    problem = _check_path(path, module_path=True)
    if problem is None:
        first = path.split("/", 1)[0]
        if "." not in first:
            problem = "missing dot in first path element"
        elif first[0] == "-":
            problem = "leading dash in first path element"
        else:
            for ch in first:
                if ch not in _FIRST_ELEM_CHARS:
                    problem = f"invalid char {ch!r} in first path element"
                    break
    if problem is None and not split_path_version(path)[2]:
        problem = "invalid version"
    if problem is not None:
        raise InvalidModulePath(f"malformed module path {path!r}: {problem}")


def check_import_path(path: str) -> None:
    """Validate an import path.

    Raises:
        InvalidModulePath: if path is malformed.
    """
    problem = _check_path(path, module_path=False)
    if problem is not None:
        raise InvalidModulePath(f"malformed import path {path!r}: {problem}")


def is_standard_import(path: str) -> bool:
    """Standard library (and cgo's "C") imports have no dot in their first element."""
    return "." not in path.split("/", 1)[0]


def compute_upgrade_path(path: str, version: str = "") -> str:
    """Compute the module path after upgrading path to version's major.

    With an empty version the next major is used (v2 for an unsuffixed path).
    Majors v0 and v1 strip the suffix entirely.

    Raises:
        InvalidModulePath: path is malformed or the result would be.
        InvalidVersion: version is given but is not a semantic version.
    """
    prefix, path_major, ok = split_path_version(path)
    if not ok:
        raise InvalidModulePath(f"invalid module path: {path}")

    if not version:
        current = path_major_number(path_major)
        version = "v2" if current is None else f"v{current + 1}"

    major = semver.major_number(version)
    if major is None:
        raise InvalidVersion(f"invalid version: {version}")

    new_path = major_path(prefix, major)
    try:
        check_path(new_path)
    except InvalidModulePath as exc:
        raise InvalidModulePath(f"invalid module path after upgrade - {new_path}: {exc}") from exc
    return new_path
