"""Go-flavoured semantic version helpers.

Module versions always carry a leading ``v`` and may be shortened to
``vMAJOR`` or ``vMAJOR.MINOR`` when used as a query. Ordering is delegated to
``semantic_version`` once a version has been canonicalized.
"""

import re
from typing import Iterable, List, Optional

import semantic_version

_IDENT = r"[0-9A-Za-z-]+"
_NUM = r"0|[1-9][0-9]*"
_SEMVER_RE = re.compile(
    rf"^v(?P<major>{_NUM})"
    rf"(?:\.(?P<minor>{_NUM})"
    rf"(?:\.(?P<patch>{_NUM})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?"
    r")?)?$"
)

INCOMPATIBLE = "+incompatible"


def _match(version: str) -> Optional["re.Match[str]"]:
    m = _SEMVER_RE.match(version or "")
    if m is None:
        return None
    pre = m.group("pre")
    if pre:
        # Numeric pre-release identifiers must not have leading zeros.
        for ident in pre.split("."):
            if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
                return None
    return m


def is_valid(version: str) -> bool:
    """Report whether version is a valid (possibly shortened) semantic version."""
    return _match(version) is not None


def major(version: str) -> str:
    """Return the ``vMAJOR`` prefix of version, or "" if it is invalid."""
    m = _match(version)
    if m is None:
        return ""
    return f"v{m.group('major')}"


def major_number(version: str) -> Optional[int]:
    """Return the major component of version as an int, or None if invalid."""
    m = _match(version)
    if m is None:
        return None
    return int(m.group("major"))


def canonical(version: str) -> str:
    """Return the full ``vX.Y.Z[-pre]`` form of version, dropping build metadata.

    Returns "" if version is invalid.
    """
    m = _match(version)
    if m is None:
        return ""
    out = "v{}.{}.{}".format(m.group("major"), m.group("minor") or "0", m.group("patch") or "0")
    if m.group("pre"):
        out += "-" + m.group("pre")
    return out


def is_full(version: str) -> bool:
    """Report whether version spells out major, minor and patch."""
    m = _match(version)
    return m is not None and m.group("patch") is not None


def is_prerelease(version: str) -> bool:
    m = _match(version)
    return m is not None and m.group("pre") is not None


def has_build(version: str) -> bool:
    m = _match(version)
    return m is not None and m.group("build") is not None


def _key(version: str) -> semantic_version.Version:
    return semantic_version.Version(canonical(version)[1:])


def compare(a: str, b: str) -> int:
    """Compare two versions. Invalid versions sort below valid ones."""
    a_ok, b_ok = is_valid(a), is_valid(b)
    if not (a_ok and b_ok):
        return (a_ok > b_ok) - (a_ok < b_ok)
    ka, kb = _key(a), _key(b)
    return (ka > kb) - (ka < kb)


def matches_query(version: str, query: str) -> bool:
    """Report whether a full version satisfies a (possibly shortened) query.

    An empty query matches everything. Otherwise the version must equal the
    query or extend it at a component boundary, so ``v2.1`` matches
    ``v2.1.4`` but not ``v2.10.0``.
    """
    if not query:
        return True
    if version == query:
        return True
    return version.startswith(query) and version[len(query)] in ".-+"


def highest(versions: Iterable[str], query: str = "", prefer_release: bool = True) -> Optional[str]:
    """Pick the highest valid version matching query.

    Releases win over pre-releases when prefer_release is set and at least
    one matching release exists.
    """
    candidates: List[str] = [v for v in versions if is_full(v) and matches_query(v, query)]
    if not candidates:
        return None
    if prefer_release:
        releases = [v for v in candidates if not is_prerelease(v)]
        if releases:
            candidates = releases
    best = candidates[0]
    for v in candidates[1:]:
        if compare(v, best) > 0:
            best = v
    return best
