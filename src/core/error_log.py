"""Structured platform error log.

Every adapter failure can be appended as one JSON line to ``error.log`` in the
data directory, so a failed fetch can be diagnosed after the TUI has closed.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

LOGGER = logging.getLogger(__name__)
ERROR_LOGGER = logging.getLogger("platform_errors")

ERROR_LOG_NAME = "error.log"

PathLike = Union[str, os.PathLike]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ErrorContext:
    """Everything known about one failed platform operation."""

    platform_id: str
    operation: str
    user: Optional[str] = None
    timestamp: str = field(default_factory=_utc_now)
    error_type: str = ""
    error_message: str = ""
    request_url: Optional[str] = None
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    def with_user(self, user: str) -> "ErrorContext":
        self.user = user
        return self

    def with_error(self, error_type: str, message: str) -> "ErrorContext":
        self.error_type = error_type
        self.error_message = message
        return self

    def with_request_details(
        self,
        url: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> "ErrorContext":
        self.request_url = url
        self.status_code = status_code
        self.response_body = response_body
        return self

    def with_metadata(self, key: str, value: str) -> "ErrorContext":
        self.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorContext":
        return cls(
            platform_id=str(data["platform_id"]),
            operation=str(data["operation"]),
            user=data.get("user"),
            timestamp=str(data.get("timestamp") or ""),
            error_type=str(data.get("error_type") or ""),
            error_message=str(data.get("error_message") or ""),
            request_url=data.get("request_url"),
            status_code=data.get("status_code"),
            response_body=data.get("response_body"),
            metadata=dict(data.get("metadata") or {}),
        )

    def log_error(self, log_path: Optional[PathLike] = None) -> None:
        """Log the error and, when a path is given, append it as a JSON line.

        Failing to write the file is only a warning; the original error is
        what the caller cares about.
        """

        ERROR_LOGGER.error(
            "Platform error: %s | Operation: %s | Type: %s | Message: %s | User: %s | URL: %s | Status: %s",
            self.platform_id,
            self.operation,
            self.error_type,
            self.error_message,
            self.user,
            self.request_url,
            self.status_code,
        )
        if log_path is None:
            return
        try:
            path = Path(log_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(self.to_dict(), ensure_ascii=True) + "\n")
        except OSError as exc:
            LOGGER.warning("Failed to write to error log file: %s", exc)


@dataclass
class ErrorStats:
    total_errors: int = 0
    error_types: dict[str, int] = field(default_factory=dict)
    last_error_time: Optional[str] = None


def _iter_errors(log_path: PathLike):
    path = Path(log_path)
    if not path.exists():
        return
    with path.open("rb") as handle:
        for raw in handle:
            raw = raw.strip()
            if not raw:
                continue
            try:
                error = ErrorContext.from_dict(json.loads(raw.decode("utf-8")))
            except (UnicodeDecodeError, ValueError, KeyError, TypeError):
                # Partial writes or foreign lines are skipped.
                continue
            yield error


def read_recent_errors(
    log_path: PathLike,
    limit: int = 20,
    platform: Optional[str] = None,
) -> list[ErrorContext]:
    """Return up to ``limit`` errors, newest first, optionally for one platform."""

    errors = [
        error
        for error in _iter_errors(log_path)
        if platform is None or error.platform_id == platform
    ]
    errors.reverse()
    return errors[:limit]


def get_error_stats(log_path: PathLike) -> dict[str, ErrorStats]:
    stats: dict[str, ErrorStats] = {}
    for error in _iter_errors(log_path):
        entry = stats.setdefault(error.platform_id, ErrorStats())
        entry.total_errors += 1
        entry.error_types[error.error_type] = entry.error_types.get(error.error_type, 0) + 1
        entry.last_error_time = error.timestamp
    return stats
