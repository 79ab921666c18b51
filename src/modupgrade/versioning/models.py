"""Data models for version queries and upgrade decisions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class QueryErrorKind(Enum):
    """Classification of a failed module index query."""
    NOT_FOUND = "not_found"  # no such module or version published
    TRANSIENT = "transient"  # network, timeout, server-side failure
    INVALID = "invalid"  # malformed query or undecodable answer


@dataclass
class Requirement:
    """A require directive of the manifest."""
    path: str
    version: str
    indirect: bool = False


@dataclass(frozen=True)
class QueryResult:
    """One answer from the module index for one ``path[@query]`` spec."""
    spec: str
    path: str
    version: Optional[str] = None
    error_kind: Optional[QueryErrorKind] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None and bool(self.version)

    @property
    def not_found(self) -> bool:
        return self.error_kind == QueryErrorKind.NOT_FOUND


@dataclass(frozen=True)
class UpgradeRecord:
    """A module path change: what it was, what it becomes."""
    old_path: str
    new_path: str
    old_version: str = ""
    new_version: str = ""

    def describe(self) -> str:
        """Render the one-line report for this upgrade."""
        if not self.old_version and not self.new_version:
            return f"{self.old_path} -> {self.new_path}"
        return f"{self.old_path} {self.old_version} -> {self.new_path} {self.new_version}"


def split_spec(spec: str) -> Tuple[str, str]:
    """Split ``path@query`` into (path, query); query is "" when absent."""
    path, _, query = spec.partition("@")
    return path, query
