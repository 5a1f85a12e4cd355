"""Configuration loading for reviewscope.

All user-editable settings live in a single ``config.json`` inside the data
directory. Secrets stay out of that file: they are read from the environment
(optionally via a ``.env`` next to it) with python-dotenv.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from core.config import DEFAULT_DAYS, DEFAULT_PLATFORM_ORDER, GerritConfig, JiraConfig, UiPreferences
from core.error_log import ERROR_LOG_NAME, PathLike
from core.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

HOME_ENV_VAR = "REVIEWSCOPE_HOME"
DEFAULT_DATA_DIR = Path.home() / ".reviewscope"
CONFIG_FILE_NAME = "config.json"

GERRIT_SECRET_ENV = "GERRIT_HTTP_PASSWORD"
JIRA_SECRET_ENV = "JIRA_API_TOKEN"

DEFAULT_CONFIG: dict[str, Any] = {
    "platforms": {
        "gerrit": {"url": "", "username": "", "enabled": True},
        "jira": {"url": "", "username": "", "enabled": True, "project_filter": []},
    },
    "ui": {"default_days": DEFAULT_DAYS, "platform_order": list(DEFAULT_PLATFORM_ORDER)},
    "logging": {
        "enabled": False,
        "level": "INFO",
        "console": True,
        "file": {
            "enabled": False,
            "path": "logs/reviewscope.log",
            "max_bytes": 5 * 1024 * 1024,
            "backup_count": 5,
        },
        "redact": {"enabled": True, "patterns": [GERRIT_SECRET_ENV, JIRA_SECRET_ENV]},
    },
}


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    gerrit: GerritConfig
    jira: JiraConfig
    ui: UiPreferences = field(default_factory=UiPreferences)
    logging: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "logging", MappingProxyType(dict(self.logging)))

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILE_NAME

    @property
    def error_log_path(self) -> Path:
        return self.data_dir / ERROR_LOG_NAME


def resolve_data_dir(explicit: Optional[PathLike] = None) -> Path:
    """Pick the data directory: explicit flag, then env var, then ~/.reviewscope."""

    if explicit:
        return Path(explicit).expanduser()
    from_env = os.getenv(HOME_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_DATA_DIR


def _load_json_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        LOGGER.info("No config file at %s, using defaults", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Malformed config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return raw


def _section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{name}' must be an object")
    return value


def _secret(env_name: str, fallback: Any) -> Optional[str]:
    # Environment wins so secrets can be kept out of config.json.
    value = os.getenv(env_name) or fallback
    return str(value) if value else None


def _build_gerrit(raw: Mapping[str, Any]) -> GerritConfig:
    return GerritConfig(
        url=str(raw.get("url") or ""),
        username=str(raw.get("username") or ""),
        http_password=_secret(GERRIT_SECRET_ENV, raw.get("http_password")),
        enabled=bool(raw.get("enabled", True)),
        timeout_seconds=float(raw.get("timeout_seconds", 30.0)),
    )


def _build_jira(raw: Mapping[str, Any]) -> JiraConfig:
    project_filter = raw.get("project_filter") or []
    if isinstance(project_filter, str):
        project_filter = [part.strip() for part in project_filter.split(",")]
    return JiraConfig(
        url=str(raw.get("url") or ""),
        username=str(raw.get("username") or ""),
        api_token=_secret(JIRA_SECRET_ENV, raw.get("api_token")),
        enabled=bool(raw.get("enabled", True)),
        project_filter=tuple(str(project) for project in project_filter if project),
        max_results=int(raw.get("max_results", 50)),
        timeout_seconds=float(raw.get("timeout_seconds", 30.0)),
    )


def _build_ui(raw: Mapping[str, Any]) -> UiPreferences:
    try:
        default_days = int(raw.get("default_days", DEFAULT_DAYS))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("ui.default_days must be an integer") from exc
    if default_days <= 0:
        raise ConfigurationError("ui.default_days must be positive")
    order = raw.get("platform_order") or DEFAULT_PLATFORM_ORDER
    return UiPreferences(default_days=default_days, platform_order=tuple(str(pid) for pid in order))


def load_settings(data_dir: Optional[PathLike] = None) -> Settings:
    """Load config.json and secrets for ``data_dir`` into a frozen Settings."""

    directory = resolve_data_dir(data_dir)
    # .env next to config.json first, then the usual lookup from the cwd.
    load_dotenv(directory / ".env")
    load_dotenv()

    raw = _load_json_config(directory / CONFIG_FILE_NAME)
    try:
        platforms = _section(raw, "platforms")
        settings = Settings(
            data_dir=directory,
            gerrit=_build_gerrit(_section(platforms, "gerrit")),
            jira=_build_jira(_section(platforms, "jira")),
            ui=_build_ui(_section(raw, "ui")),
            logging=_section(raw, "logging"),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config value in {directory / CONFIG_FILE_NAME}: {exc}") from exc
    LOGGER.info(
        "Loaded settings from %s (gerrit configured=%s, jira configured=%s)",
        directory,
        settings.gerrit.is_configured(),
        settings.jira.is_configured(),
    )
    return settings


def write_default_config(path: PathLike, overwrite: bool = False) -> bool:
    """Write a starter config.json; returns False when one already exists."""

    target = Path(path)
    if target.exists() and not overwrite:
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(DEFAULT_CONFIG, handle, indent=2)
        handle.write("\n")
    return True
