"""Go module proxy client: answer batched ``path[@query]`` lookups.

Speaks the GOPROXY protocol (``/@v/list``, ``/@v/<version>.info`` and
``/@latest``) and classifies every failure as NOT_FOUND, TRANSIENT or
INVALID from the HTTP status, never from error text.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from typing import Dict, List, Optional, Sequence, Tuple

import requests

from ..common.http_client import robust_get
from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..versioning import semver
from ..versioning.models import QueryErrorKind, QueryResult, split_spec

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES = (404, 410)
HEADERS_TEXT = {"Accept": "text/plain, application/json"}


def parse_goproxy(value: Optional[str]) -> List[Tuple[str, bool]]:
    """Parse a GOPROXY value into (entry, fall_through_on_any_error) pairs.

    Entries separated by "," only fall through to the next entry when the
    module is not found; entries followed by "|" fall through on any error.
    """
    value = (value or "").strip()
    if not value:
        return [(Constants.GOPROXY_DEFAULT, False)]

    entries: List[Tuple[str, bool]] = []
    current = ""
    for ch in value:
        if ch in ",|":
            if current.strip():
                entries.append((current.strip(), ch == "|"))
            current = ""
        else:
            current += ch
    if current.strip():
        entries.append((current.strip(), False))
    return entries


def escape_path(path: str) -> str:
    """Escape a module path or version for use in a proxy URL.

    Upper-case letters become "!" followed by the lower-case letter.
    """
    out = []
    for ch in path:
        if "A" <= ch <= "Z":
            out.append("!" + ch.lower())
        else:
            out.append(ch)
    return "".join(out)


class GoProxyClient:
    """Batched module index lookups against one or more Go module proxies."""

    def __init__(
        self,
        proxy: Optional[str] = None,
        *,
        timeout: float = Constants.REQUEST_TIMEOUT,
        verbose: bool = False,
    ):
        """Initialize the client.

        Args:
            proxy: GOPROXY-style list; defaults to the GOPROXY environment
                variable, then to the public proxy.
            timeout: Per-request timeout in seconds.
            verbose: Echo every query at INFO level instead of DEBUG.
        """
        if proxy is None:
            proxy = os.environ.get(Constants.ENV_GOPROXY)
        self.entries = parse_goproxy(proxy)
        self.timeout = timeout
        self._audit = logger.info if verbose else logger.debug
        self._memo: Dict[str, QueryResult] = {}
        self._lock = threading.Lock()
        self._local = threading.local()
        self._sessions: List[requests.Session] = []

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        """Close the HTTP sessions opened by every thread that queried."""
        with self._lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()

    def query(self, specs: Sequence[str]) -> List[QueryResult]:
        """Answer every spec, one result per input, in input order.

        Each spec is ``path@query`` (exact or shortened version) or a bare
        ``path``, which asks for the highest available version of that path,
        ``+incompatible`` releases included.
        """
        self._audit("Querying module index: %s", " ".join(specs))
        results = []
        for spec in specs:
            with self._lock:
                cached = self._memo.get(spec)
            if cached is None:
                cached = self._query_one(spec)
                # Transient failures are not remembered so a retry asks again.
                if cached.error_kind != QueryErrorKind.TRANSIENT:
                    with self._lock:
                        self._memo[spec] = cached
            if cached.ok:
                self._audit("  %s: %s", spec, cached.version)
            else:
                self._audit("  %s: %s (%s)", spec, cached.error, cached.error_kind.value)
            results.append(cached)
        return results

    def _query_one(self, spec: str) -> QueryResult:
        path, version_query = split_spec(spec)
        if not path:
            return QueryResult(spec, path, error_kind=QueryErrorKind.INVALID,
                               error="empty module path")
        if version_query and version_query != "latest" and not semver.is_valid(version_query):
            return QueryResult(spec, path, error_kind=QueryErrorKind.INVALID,
                               error=f"invalid version query {version_query!r}")

        result: Optional[QueryResult] = None
        for entry, fall_through_on_error in self.entries:
            if entry == "off":
                return QueryResult(spec, path, error_kind=QueryErrorKind.TRANSIENT,
                                   error="module lookup disabled by GOPROXY=off")
            if entry == "direct":
                continue
            result = self._lookup(entry.rstrip("/"), spec, path, version_query)
            if result.ok:
                return result
            if result.not_found or fall_through_on_error:
                continue
            return result

        if result is None:
            return QueryResult(spec, path, error_kind=QueryErrorKind.INVALID,
                               error="GOPROXY lists no usable proxy (direct mode is not supported)")
        return result

    def _lookup(self, base: str, spec: str, path: str, version_query: str) -> QueryResult:
        module_url = f"{base}/{escape_path(path)}"
        if version_query == "latest":
            return self._fetch_info(f"{module_url}/@latest", spec, path)
        if version_query and semver.is_full(version_query):
            return self._fetch_info(
                f"{module_url}/@v/{escape_path(version_query)}.info", spec, path
            )

        status, _, text = robust_get(
            f"{module_url}/@v/list",
            session=self._session(),
            timeout=self.timeout,
            headers=HEADERS_TEXT,
        )
        failure = self._classify(status, text, spec, path)
        if failure is not None:
            return failure

        listed = [line.strip() for line in text.splitlines() if line.strip()]
        if is_debug_enabled(logger):
            logger.debug(
                "Listed module versions",
                extra=extra_context(
                    event="parse",
                    component="goproxy",
                    action="list",
                    target=path,
                    count=len(listed)
                )
            )
        best = semver.highest(listed, version_query)
        if best is not None:
            return QueryResult(spec, path, version=best)
        if version_query:
            return QueryResult(spec, path, error_kind=QueryErrorKind.NOT_FOUND,
                               error=f"no matching versions for query {version_query!r}")
        # No tagged versions at all: ask for the latest pseudo-version.
        return self._fetch_info(f"{module_url}/@latest", spec, path)

    def _fetch_info(self, url: str, spec: str, path: str) -> QueryResult:
        status, _, text = robust_get(
            url,
            session=self._session(),
            timeout=self.timeout,
            headers=HEADERS_TEXT,
        )
        failure = self._classify(status, text, spec, path)
        if failure is not None:
            return failure
        try:
            info = json.loads(text)
        except json.JSONDecodeError:
            return QueryResult(spec, path, error_kind=QueryErrorKind.INVALID,
                               error="undecodable version info")
        version = info.get("Version") if isinstance(info, dict) else None
        if not isinstance(version, str) or not semver.is_full(version):
            return QueryResult(spec, path, error_kind=QueryErrorKind.INVALID,
                               error=f"invalid version in response: {version!r}")
        return QueryResult(spec, path, version=version)

    @staticmethod
    def _classify(status: int, text: str, spec: str, path: str) -> Optional[QueryResult]:
        """Turn a non-200 status into a failed QueryResult; None means success."""
        if status == 200:
            return None
        detail = (text or "").strip().splitlines()
        message = detail[0] if detail else f"HTTP {status}"
        if status in NOT_FOUND_STATUSES:
            kind = QueryErrorKind.NOT_FOUND
        elif status == 0 or status == 429 or status >= 500:
            kind = QueryErrorKind.TRANSIENT
        else:
            kind = QueryErrorKind.INVALID
        return QueryResult(spec, path, error_kind=kind, error=message)
