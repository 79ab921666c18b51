"""Resolve upgrade targets against the module index.

Two modes:
- next-available-major: probe ``prefix/vN@vN`` for consecutive majors in
  batches until the index reports one as not found, and keep the last major
  that exists;
- resolve-to-target: find the canonical version for a user-supplied
  (possibly shortened) version, trying the suffixed path first and the
  legacy ``+incompatible`` path second.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..constants import Constants
from ..errors import (
    InvalidModulePath,
    InvalidVersion,
    NoUpgradeAvailable,
    QueryFailure,
    VersionNotFound,
)
from . import semver
from .models import QueryResult
from .paths import GOPKG_IN, compute_upgrade_path, major_path, path_major_number, split_path_version

logger = logging.getLogger(__name__)


class VersionIndex(Protocol):
    """Anything that answers batched ``path[@query]`` lookups."""

    def query(self, specs: Sequence[str]) -> List[QueryResult]:
        ...


class MajorCandidates:
    """Lazy, restartable sequence of consecutive major versions of a module."""

    def __init__(self, prefix: str, start: int):
        self.prefix = prefix
        self.next_major = start

    def batches(self, size: int) -> Iterator[List[int]]:
        """Yield runs of ``size`` consecutive majors, starting at next_major.

        Calling rewind() between two batches restarts the run from there.
        """
        while True:
            batch = list(range(self.next_major, self.next_major + size))
            self.next_major += size
            yield batch

    def rewind(self, major: int) -> None:
        self.next_major = major

    def spec(self, major: int) -> str:
        return f"{major_path(self.prefix, major)}@v{major}"


class VersionResolver:
    """Drive a VersionIndex to find upgrade targets."""

    def __init__(
        self,
        index: VersionIndex,
        *,
        batch_size: int = Constants.BATCH_SIZE,
        retry_max: int = Constants.QUERY_RETRY_MAX,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.index = index
        self.batch_size = batch_size
        self.retry_max = max(1, retry_max)

    def _query_one(self, spec: str) -> QueryResult:
        results = self.index.query([spec])
        if len(results) != 1:
            raise QueryFailure(f"module index returned {len(results)} results for {spec}")
        return results[0]

    def _search_start(self, path: str, path_major: str) -> int:
        current = path_major_number(path_major)
        if current is not None:
            return current + 1

        # Unsuffixed path: skip past any +incompatible releases, since those
        # majors can never be published under a /vN path.
        result = self._query_one(path)
        if result.not_found:
            logger.debug("No published versions of %s; starting search at v2", path)
            return 2
        if not result.ok:
            raise QueryFailure(f"error getting update version for {path}: {result.error}")
        major = semver.major_number(result.version or "")
        if major is None:
            raise QueryFailure(f"invalid update version for {path}: {result.version}")
        return max(2, major + 1)

    def next_available_major(self, path: str) -> Tuple[str, str]:
        """Find the highest major of path reachable without a gap.

        Returns:
            (new_path, full_version) of that major.

        Raises:
            InvalidModulePath: path cannot be split.
            NoUpgradeAvailable: not even the first candidate major exists.
            QueryFailure: the index failed on the first probe, or kept
                failing for QUERY_RETRY_MAX consecutive batches.
        """
        prefix, path_major, ok = split_path_version(path)
        if not ok:
            raise InvalidModulePath(f"invalid module path: {path}")

        candidates = MajorCandidates(prefix, self._search_start(path, path_major))
        last_good: Optional[str] = None
        failed_batches = 0

        for batch in candidates.batches(self.batch_size):
            if batch[0] > Constants.MAJOR_SEARCH_LIMIT:
                raise QueryFailure(f"major version search for {path} did not terminate")

            specs = [candidates.spec(major) for major in batch]
            results = self.index.query(specs)
            if len(results) != len(specs):
                raise QueryFailure(
                    f"module index returned {len(results)} results for {len(specs)} queries"
                )

            retry_from = None
            for major, result in zip(batch, results):
                if result.ok:
                    last_good = result.version
                    continue
                if result.not_found:
                    logger.debug("%s: %s", result.spec, result.error)
                    return self._finish(path, last_good)
                if last_good is None:
                    raise QueryFailure(f"error querying {result.spec}: {result.error}")
                retry_from = major
                break

            if retry_from is None:
                failed_batches = 0
                continue

            failed_batches += 1
            if failed_batches >= self.retry_max:
                raise QueryFailure(
                    f"error querying {candidates.spec(retry_from)} after "
                    f"{failed_batches} attempts"
                )
            logger.warning("Module index query failed for %s; retrying",
                           candidates.spec(retry_from))
            candidates.rewind(retry_from)

        raise QueryFailure(f"major version search for {path} ended unexpectedly")

    @staticmethod
    def _finish(path: str, last_good: Optional[str]) -> Tuple[str, str]:
        if last_good is None:
            raise NoUpgradeAvailable(f"no versions available for upgrade of {path}")
        return compute_upgrade_path(path, last_good), last_good

    def resolve_target(self, path: str, version: str) -> Tuple[str, str]:
        """Resolve a user-supplied version of path to (new_path, full_version).

        Raises:
            InvalidVersion: version is not a semantic version.
            VersionNotFound: neither the suffixed nor the unsuffixed path
                publishes a matching version.
            QueryFailure: the index failed for a reason other than not-found.
        """
        if not semver.is_valid(version):
            raise InvalidVersion(f"invalid upgrade version: {version}")

        new_path = compute_upgrade_path(path, version)
        result = self._query_one(f"{new_path}@{version}")
        if result.ok:
            return new_path, result.version
        if not result.not_found:
            raise QueryFailure(f"error getting version {version} of {new_path}: {result.error}")

        # Fall back to a legacy release published without a major suffix.
        prefix, _, _ = split_path_version(path)
        if prefix == new_path or prefix.startswith(GOPKG_IN):
            raise VersionNotFound(f"version {version} of {new_path} not found: {result.error}")

        query = version
        if semver.is_full(query) and not semver.has_build(query) and (semver.major_number(query) or 0) >= 2:
            query += semver.INCOMPATIBLE
        fallback = self._query_one(f"{prefix}@{query}")
        if fallback.ok:
            return prefix, fallback.version
        if fallback.not_found:
            raise VersionNotFound(
                f"version {version} not found for {new_path} or {prefix}: {fallback.error}"
            )
        raise QueryFailure(f"error getting version {version} of {prefix}: {fallback.error}")

    def next_available_majors(
        self, paths: Sequence[str], max_workers: int = Constants.MAX_WORKERS
    ) -> Dict[str, Optional[Tuple[str, str]]]:
        """Run next_available_major for many paths with bounded concurrency.

        Paths without an available upgrade map to None. Any other failure is
        re-raised. The result preserves the order of paths.
        """
        def _resolve(path: str) -> Optional[Tuple[str, str]]:
            try:
                return self.next_available_major(path)
            except NoUpgradeAvailable:
                return None

        if max_workers <= 1 or len(paths) <= 1:
            return {path: _resolve(path) for path in paths}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {path: executor.submit(_resolve, path) for path in paths}
            return {path: futures[path].result() for path in paths}
