"""Shared HTTP helper used by the repository clients.

Encapsulates timeout, retry and DEBUG tracing so callers only deal with a
``(status_code, headers, text)`` triple. A status code of 0 means no response
was received at all; the text then carries the last transport error.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries with DEBUG traces.

    Server errors (5xx) and transport failures are retried up to
    ``Constants.HTTP_RETRY_MAX`` attempts with linear backoff. Client errors
    such as 404 are returned immediately.

    Args:
        url: Target URL.
        headers: Optional request headers.
        session: Optional requests session to reuse connections.
        **kwargs: Passed through to ``requests.get``.

    Returns:
        Tuple of (status_code, headers_dict, text).
    """
    safe_target = safe_url(url)
    getter = session.get if session is not None else requests.get
    merged_headers = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged_headers.update(headers)

    last_exception = None
    last_response: Optional[Tuple[int, Dict[str, str], str]] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * attempt)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = getter(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=merged_headers,
                    **kwargs
                )

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            outcome="success" if response.status_code < 400 else "handled_non_2xx",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                if response.status_code >= 500:
                    last_response = (response.status_code, dict(response.headers), response.text)
                    continue
                return response.status_code, dict(response.headers), response.text

            except requests.Timeout:
                last_exception = f"timeout after {Constants.REQUEST_TIMEOUT}s"
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP timeout",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue
            except requests.RequestException as exc:
                last_exception = str(exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                continue

    if last_response is not None:
        return last_response
    # All retries failed
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"
