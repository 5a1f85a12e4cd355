"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape adapters and the app layer expect so they can be built safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_DAYS = 30
DEFAULT_PLATFORM_ORDER = ("gerrit", "jira")


@dataclass(frozen=True)
class GerritConfig:
    """Gerrit REST endpoint and HTTP credentials."""

    url: str
    username: str
    http_password: Optional[str]
    enabled: bool = True
    timeout_seconds: float = 30.0

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.enabled and self.url and self.username and self.http_password)


@dataclass(frozen=True)
class JiraConfig:
    """JIRA Cloud/Server endpoint and API token."""

    url: str
    username: str
    api_token: Optional[str]
    enabled: bool = True
    project_filter: tuple[str, ...] = ()
    max_results: int = 50
    timeout_seconds: float = 30.0

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.enabled and self.url and self.username and self.api_token)


@dataclass(frozen=True)
class UiPreferences:
    default_days: int = DEFAULT_DAYS
    platform_order: tuple[str, ...] = field(default=DEFAULT_PLATFORM_ORDER)
