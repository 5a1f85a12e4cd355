"""Application entry point for reviewscope."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import settings as settings_module
from adapters.gerrit import GerritPlatform
from adapters.jira import JiraPlatform
from core.error_log import get_error_stats, read_recent_errors
from core.errors import ConfigurationError, NoConfiguredPlatformsError
from core.fetcher import FetchOrchestrator
from core.progress import AllCompleted, Cancelled, Completed, Started
from core.registry import PlatformRegistry
from settings import Settings

NAME = "REVIEWSCOPE"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(settings: Settings, allow_console: bool = True) -> None:
    """Install handlers from the ``logging`` config section.

    The TUI owns the terminal, so console output is dropped while it runs.
    """

    config = dict(settings.logging)
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if allow_console and config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/reviewscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.data_dir, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def build_registry(settings: Settings) -> PlatformRegistry:
    """Register the known adapters in the user's preferred order."""

    error_log = settings.error_log_path
    adapters = {
        "gerrit": GerritPlatform(settings.gerrit, error_log_path=error_log),
        "jira": JiraPlatform(settings.jira, error_log_path=error_log),
    }
    ordered = [pid for pid in settings.ui.platform_order if pid in adapters]
    ordered += [pid for pid in adapters if pid not in ordered]
    return PlatformRegistry(adapters[pid] for pid in ordered)


def _require_configured(registry: PlatformRegistry, console: Console) -> None:
    if not registry.get_configured_platforms():
        console.print(f"[red]{NoConfiguredPlatformsError()}[/red]")
        console.print("Run 'reviewscope init' and set GERRIT_HTTP_PASSWORD / JIRA_API_TOKEN.")
        raise SystemExit(2)


def _review(settings: Settings, subject: str, days: int, name: Optional[str]) -> None:
    _configure_logging(settings, allow_console=False)
    registry = build_registry(settings)
    _require_configured(registry, Console(stderr=True))

    from frontend.app import ActivityBrowserApp

    LOGGER.info("Opening activity browser for %s (%s days)", subject, days)
    ActivityBrowserApp(registry, subject, days, subject_name=name).run()


async def _report_async(registry: PlatformRegistry, subject: str, days: int, console: Console) -> None:
    handle = FetchOrchestrator(registry).start_fetch(subject, days)
    async for event in handle.progress:
        if isinstance(event, Started):
            console.print(f"  … fetching {event.platform_id}")
        elif isinstance(event, Completed):
            if event.success:
                console.print(f"  [green]✓[/green] {event.platform_id}: {event.item_count} item(s)")
            else:
                console.print(f"  [red]✗[/red] {event.platform_id}: {escape(event.error_message or '')}")
        elif isinstance(event, AllCompleted):
            console.print(f"Done: {event.successful}/{event.total} platform(s) succeeded")
        elif isinstance(event, Cancelled):
            console.print("[yellow]Fetch cancelled[/yellow]")
    snapshot = await handle.wait()

    table = Table(title=f"Activity for {subject} (last {days} days)")
    table.add_column("Platform")
    table.add_column("Category")
    table.add_column("Items", justify="right")
    for adapter in registry.get_configured_platforms():
        platform_id = adapter.platform_id()
        activities = snapshot.activities.get(platform_id)
        label = f"{adapter.platform_icon()} {adapter.platform_name()}"
        if activities is None:
            table.add_row(label, escape(snapshot.errors.get(platform_id, snapshot.statuses.get(platform_id, ""))), "-")
            continue
        for category in activities.categories:
            table.add_row(label, category.display_name, str(len(activities.items(category))))
            label = ""
    console.print(table)


def _report(settings: Settings, subject: str, days: int) -> None:
    _print_banner()
    _configure_logging(settings)
    registry = build_registry(settings)
    console = Console()
    _require_configured(registry, console)
    asyncio.run(_report_async(registry, subject, days, console))


async def _search_async(registry: PlatformRegistry, subject: str, query: str, console: Console) -> None:
    adapters = registry.get_configured_platforms()
    results = await asyncio.gather(
        *(adapter.search_items(query, subject) for adapter in adapters),
        return_exceptions=True,
    )
    for adapter, result in zip(adapters, results):
        console.print(f"[bold]{adapter.platform_icon()} {adapter.platform_name()}[/bold]")
        if isinstance(result, Exception):
            console.print(f"  [red]search failed: {escape(str(result))}[/red]")
            continue
        if not result:
            console.print("  no matches")
            continue
        for item in result:
            console.print(escape(f"  [{item.id}] {item.title} - {item.project}"))
            console.print(f"      {adapter.get_item_url(item)}", style="dim")


def _search(settings: Settings, subject: str, query: str) -> None:
    _print_banner()
    _configure_logging(settings)
    registry = build_registry(settings)
    console = Console()
    _require_configured(registry, console)
    asyncio.run(_search_async(registry, subject, query, console))


def _check(settings: Settings) -> None:
    _print_banner()
    _configure_logging(settings)
    registry = build_registry(settings)
    statuses = asyncio.run(registry.test_all_connections())

    table = Table(title="Platform connections")
    table.add_column("Platform")
    table.add_column("Status")
    for platform_id, status in statuses.items():
        adapter = registry.get_platform(platform_id)
        label = f"{adapter.platform_icon()} {adapter.platform_name()}" if adapter else platform_id
        table.add_row(label, f"{status.icon} {status.describe()}")
    Console().print(table)


def _errors(settings: Settings, platform: Optional[str], limit: int, stats: bool) -> None:
    _print_banner()
    console = Console()
    log_path = settings.error_log_path
    if stats:
        table = Table(title="Error statistics")
        table.add_column("Platform")
        table.add_column("Total", justify="right")
        table.add_column("By type")
        table.add_column("Last error")
        for platform_id, entry in get_error_stats(log_path).items():
            by_type = ", ".join(f"{name}={count}" for name, count in sorted(entry.error_types.items()))
            table.add_row(platform_id, str(entry.total_errors), by_type, entry.last_error_time or "")
        console.print(table)
        return

    errors = read_recent_errors(log_path, limit=limit, platform=platform)
    if not errors:
        console.print(f"No errors recorded in {log_path}")
        return
    for error in errors:
        console.print(f"[bold]{error.timestamp}[/bold] {error.platform_id} {error.operation} [red]{error.error_type}[/red]")
        console.print(f"  {escape(error.error_message)}")
        if error.request_url:
            status = f" ({error.status_code})" if error.status_code else ""
            console.print(f"  {error.request_url}{status}", style="dim")


def _init(data_path: Optional[str]) -> None:
    _print_banner()
    data_dir = settings_module.resolve_data_dir(data_path)
    config_path = data_dir / settings_module.CONFIG_FILE_NAME
    if settings_module.write_default_config(config_path):
        print(f"Wrote starter config to {config_path}")
    else:
        print(f"Config already exists at {config_path}")
    print(
        f"Put {settings_module.GERRIT_SECRET_ENV} and {settings_module.JIRA_SECRET_ENV} "
        f"in your environment or in {data_dir / '.env'}"
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reviewscope")
    parser.add_argument("--data-path", help="Directory holding config.json, .env and error.log")
    subparsers = parser.add_subparsers(dest="command")

    review = subparsers.add_parser("review", help="Browse a person's activity interactively")
    review.add_argument("subject", help="Username or email on the platforms")
    review.add_argument("--days", type=_positive_int, help="Look-back window in days")
    review.add_argument("--name", help="Display name shown in the header")

    report = subparsers.add_parser("report", help="Print an activity summary without the TUI")
    report.add_argument("subject")
    report.add_argument("--days", type=_positive_int)

    search = subparsers.add_parser("search", help="Search every configured platform")
    search.add_argument("subject")
    search.add_argument("query")

    subparsers.add_parser("check", help="Test connections to every platform")

    errors = subparsers.add_parser("errors", help="Show recorded platform errors")
    errors.add_argument("--platform", help="Only show errors for this platform id")
    errors.add_argument("--limit", type=_positive_int, default=20)
    errors.add_argument("--stats", action="store_true", help="Show per-platform statistics")

    subparsers.add_parser("init", help="Write a starter config.json")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return
    if args.command == "init":
        _init(args.data_path)
        return

    try:
        settings = settings_module.load_settings(args.data_path)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    days = getattr(args, "days", None) or settings.ui.default_days
    if args.command == "review":
        _review(settings, args.subject, days, args.name)
    elif args.command == "report":
        _report(settings, args.subject, days)
    elif args.command == "search":
        _search(settings, args.subject, args.query)
    elif args.command == "check":
        _check(settings)
    elif args.command == "errors":
        _errors(settings, args.platform, args.limit, args.stats)


if __name__ == "__main__":
    main()
