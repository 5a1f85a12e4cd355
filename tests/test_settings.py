from __future__ import annotations

import json

import pytest

import settings
from core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_secrets(monkeypatch):
    # Set then delete so anything a .env file loads is undone afterwards.
    for name in (settings.GERRIT_SECRET_ENV, settings.JIRA_SECRET_ENV, settings.HOME_ENV_VAR):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)


def _write_config(directory, payload) -> None:
    (directory / settings.CONFIG_FILE_NAME).write_text(json.dumps(payload), encoding="utf-8")


def test_missing_config_uses_defaults(tmp_path) -> None:
    loaded = settings.load_settings(tmp_path)

    assert loaded.data_dir == tmp_path
    assert loaded.error_log_path == tmp_path / "error.log"
    assert not loaded.gerrit.is_configured()
    assert not loaded.jira.is_configured()
    assert loaded.ui.default_days == 30
    assert loaded.ui.platform_order == ("gerrit", "jira")


def test_secrets_come_from_the_environment(tmp_path, monkeypatch) -> None:
    _write_config(
        tmp_path,
        {
            "platforms": {
                "gerrit": {"url": "https://review.example/", "username": "alice", "http_password": "stale"},
                "jira": {"url": "https://jira.example", "username": "alice@example.com", "project_filter": "WEB, API"},
            },
            "ui": {"default_days": 14, "platform_order": ["jira", "gerrit"]},
        },
    )
    monkeypatch.setenv(settings.GERRIT_SECRET_ENV, "from-env")

    loaded = settings.load_settings(tmp_path)

    assert loaded.gerrit.http_password == "from-env"
    assert loaded.gerrit.base_url == "https://review.example"
    assert loaded.gerrit.is_configured()
    assert loaded.jira.api_token is None
    assert not loaded.jira.is_configured()
    assert loaded.jira.project_filter == ("WEB", "API")
    assert loaded.ui.default_days == 14
    assert loaded.ui.platform_order == ("jira", "gerrit")


def test_dotenv_next_to_config_is_loaded(tmp_path) -> None:
    _write_config(
        tmp_path,
        {"platforms": {"jira": {"url": "https://jira.example", "username": "alice@example.com"}}},
    )
    (tmp_path / ".env").write_text(f"{settings.JIRA_SECRET_ENV}=token-from-dotenv\n", encoding="utf-8")

    loaded = settings.load_settings(tmp_path)

    assert loaded.jira.api_token == "token-from-dotenv"
    assert loaded.jira.is_configured()


def test_disabled_platform_is_not_configured(tmp_path, monkeypatch) -> None:
    _write_config(
        tmp_path,
        {"platforms": {"gerrit": {"url": "https://review.example", "username": "alice", "enabled": False}}},
    )
    monkeypatch.setenv(settings.GERRIT_SECRET_ENV, "secret")

    assert not settings.load_settings(tmp_path).gerrit.is_configured()


def test_malformed_config_is_a_configuration_error(tmp_path) -> None:
    (tmp_path / settings.CONFIG_FILE_NAME).write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        settings.load_settings(tmp_path)


def test_invalid_days_is_a_configuration_error(tmp_path) -> None:
    _write_config(tmp_path, {"ui": {"default_days": 0}})

    with pytest.raises(ConfigurationError):
        settings.load_settings(tmp_path)


def test_data_dir_resolution(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv(settings.HOME_ENV_VAR, str(tmp_path / "from-env"))

    assert settings.resolve_data_dir(tmp_path / "explicit") == tmp_path / "explicit"
    assert settings.resolve_data_dir() == tmp_path / "from-env"


def test_write_default_config_round_trips(tmp_path) -> None:
    target = tmp_path / "nested" / settings.CONFIG_FILE_NAME

    assert settings.write_default_config(target)
    assert not settings.write_default_config(target)

    loaded = settings.load_settings(target.parent)
    assert loaded.logging["redact"]["patterns"] == [settings.GERRIT_SECRET_ENV, settings.JIRA_SECRET_ENV]
    assert not loaded.gerrit.is_configured()
