from __future__ import annotations

import json

import pytest

import app
import settings
from core.error_log import ErrorContext


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (settings.GERRIT_SECRET_ENV, settings.JIRA_SECRET_ENV, settings.HOME_ENV_VAR):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)


def _configure(tmp_path, monkeypatch, order=("gerrit", "jira")) -> settings.Settings:
    (tmp_path / settings.CONFIG_FILE_NAME).write_text(
        json.dumps(
            {
                "platforms": {
                    "gerrit": {"url": "https://review.example", "username": "alice"},
                    "jira": {"url": "https://jira.example", "username": "alice@example.com"},
                },
                "ui": {"platform_order": list(order)},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv(settings.GERRIT_SECRET_ENV, "gerrit-secret")
    return settings.load_settings(tmp_path)


def test_build_registry_follows_platform_order(tmp_path, monkeypatch) -> None:
    loaded = _configure(tmp_path, monkeypatch, order=("jira",))

    registry = app.build_registry(loaded)

    assert [adapter.platform_id() for adapter in registry.get_all_platforms()] == ["jira", "gerrit"]
    assert [adapter.platform_id() for adapter in registry.get_configured_platforms()] == ["gerrit"]


def test_init_writes_starter_config(tmp_path, capsys) -> None:
    app.main(["--data-path", str(tmp_path), "init"])

    assert (tmp_path / settings.CONFIG_FILE_NAME).exists()
    assert "Wrote starter config" in capsys.readouterr().out

    app.main(["--data-path", str(tmp_path), "init"])
    assert "already exists" in capsys.readouterr().out


def test_review_without_configured_platforms_exits(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--data-path", str(tmp_path), "review", "alice"])

    assert excinfo.value.code == 2
    assert "No configured platforms" in capsys.readouterr().err


def test_malformed_config_exits(tmp_path, capsys) -> None:
    (tmp_path / settings.CONFIG_FILE_NAME).write_text("[", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        app.main(["--data-path", str(tmp_path), "check"])

    assert excinfo.value.code == 2
    assert "Configuration error" in capsys.readouterr().err


def test_errors_command_lists_recorded_errors(tmp_path, capsys) -> None:
    ErrorContext("jira", "get_detailed_activities").with_error("api_error", "HTTP 500").log_error(
        tmp_path / "error.log"
    )

    app.main(["--data-path", str(tmp_path), "errors", "--platform", "jira"])
    out = capsys.readouterr().out
    assert "HTTP 500" in out

    app.main(["--data-path", str(tmp_path), "errors", "--platform", "gerrit"])
    assert "No errors recorded" in capsys.readouterr().out


def test_redacting_formatter_masks_secrets() -> None:
    import logging

    formatter = app._RedactingFormatter(["gerrit-secret"], fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "token=%s", ("gerrit-secret",), None)

    assert formatter.format(record) == "token=***"


def test_days_must_be_positive(tmp_path) -> None:
    with pytest.raises(SystemExit):
        app.main(["--data-path", str(tmp_path), "review", "alice", "--days", "0"])
