"""Blocking JSON-over-HTTP helper shared by the platform adapters.

Calls here block, so adapters run them through ``asyncio.to_thread``; the
orchestrator then sees ordinary coroutines that run in parallel.
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Optional

from core.error_log import ErrorContext, PathLike
from core.errors import (
    ApiError,
    AuthenticationError,
    DataParseError,
    PlatformConfigurationError,
    PlatformConnectionError,
    PlatformError,
)

LOGGER = logging.getLogger(__name__)

MAX_ERROR_BODY = 500


def build_basic_auth(username: str, secret: str) -> str:
    credentials = f"{username}:{secret}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def get_json(
    url: str,
    auth_header: str,
    timeout: float = 30.0,
    strip_prefix: Optional[str] = None,
) -> Any:
    """GET ``url`` and decode the JSON body, mapping failures to PlatformError."""

    LOGGER.debug("GET %s", url)
    try:
        request = urllib.request.Request(url, method="GET")
        request.add_header("Authorization", auth_header)
        request.add_header("Accept", "application/json")
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")[:MAX_ERROR_BODY]
        if exc.code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed (HTTP {exc.code})",
                url=url,
                status_code=exc.code,
                response_body=error_body,
            ) from exc
        raise ApiError(
            f"API returned {exc.code}: {error_body}".strip(),
            url=url,
            status_code=exc.code,
            response_body=error_body,
        ) from exc
    except urllib.error.URLError as exc:
        raise PlatformConnectionError(f"Request failed: {exc.reason}", url=url) from exc
    except TimeoutError as exc:
        raise PlatformConnectionError("Request failed: timeout", url=url) from exc
    except (OSError, http.client.HTTPException) as exc:
        raise PlatformConnectionError(f"Request failed: {exc}", url=url) from exc
    except ValueError as exc:
        # urllib rejects URLs without a scheme or host before connecting.
        raise PlatformConfigurationError(f"Invalid URL: {exc}", url=url) from exc

    # Gerrit prefixes JSON with ")]}'" to prevent JSON hijacking.
    if strip_prefix and body.startswith(strip_prefix):
        body = body[len(strip_prefix):]
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise DataParseError(f"Invalid JSON: {exc.msg}", url=url, response_body=body[:MAX_ERROR_BODY]) from exc


def record_platform_error(
    exc: PlatformError,
    platform_id: str,
    operation: str,
    subject: Optional[str],
    log_path: Optional[PathLike],
    **metadata: str,
) -> None:
    """Write a structured entry for an adapter failure."""

    context = ErrorContext(platform_id, operation).with_error(exc.error_type, str(exc))
    if subject:
        context.with_user(subject)
    if exc.url:
        context.with_request_details(exc.url, exc.status_code, exc.response_body)
    for key, value in metadata.items():
        context.with_metadata(key, value)
    context.log_error(log_path)


def is_timeout(exc: PlatformError) -> bool:
    text = str(exc).lower()
    return isinstance(exc, PlatformConnectionError) and ("timed out" in text or "timeout" in text)
