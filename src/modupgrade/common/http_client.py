"""Shared HTTP helpers used by module index clients.

Encapsulates request/timeout/retry handling so clients only deal with
(status, headers, body) tuples. Transport failures never raise out of this
module; they are reported as status 0 so callers can classify them.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from ..constants import Constants
from .logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def _trace(message: str, target: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            message,
            extra=extra_context(component="http_client", action="GET", target=target, **fields),
        )


def robust_get(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = Constants.REQUEST_TIMEOUT,
    retries: int = Constants.HTTP_RETRY_MAX,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries, with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, text). status_code is 0 and text
        carries the last error when every attempt failed at transport level.
    """
    target = safe_url(url)
    getter = session.get if session is not None else requests.get
    attempts = max(1, retries)
    last_error = None

    for attempt in range(1, attempts + 1):
        if attempt > 1:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 2)))
        _trace("HTTP request", target, event="http_request", attempt=attempt)
        with Timer() as t:
            try:
                response = getter(url, timeout=timeout, headers=headers, **kwargs)
            except requests.Timeout:
                last_error = f"timed out after {timeout} seconds"
                _trace("HTTP timeout", target, event="http_exception", outcome="timeout", attempt=attempt)
                continue
            except requests.RequestException as exc:
                last_error = str(exc)
                _trace("HTTP request exception", target, event="http_exception",
                       outcome="request_exception", attempt=attempt)
                continue
        _trace("HTTP response ok", target, event="http_response", outcome="success",
               status_code=response.status_code, duration_ms=t.duration_ms())
        return response.status_code, dict(response.headers), response.text

    return 0, {}, f"Request failed after {attempts} attempts: {last_error}"
