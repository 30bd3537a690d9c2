from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from tabguard.domain.entities.tab import SweepReport
from tabguard.infrastructure.config import AppConfig, load_config
from tabguard.infrastructure.logging.setup import configure_logging
from tabguard.interfaces.app import create_app
from tabguard.interfaces.composition import guard_components

log = structlog.get_logger(__name__)


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tabguard")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the tab-guard API.")
    serve.add_argument(
        "--host",
        default=None,
        help="Bind host (overrides HOST env).",
    )
    serve.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )
    _add_config_args(serve)

    cleanup = sub.add_parser("cleanup", help="Remove expired tabs from the stores.")
    cleanup.add_argument(
        "--user",
        default=None,
        help="Only clean up tabs of this user id.",
    )
    cleanup.add_argument(
        "--force",
        action="store_true",
        help="Skip the confirmation prompt.",
    )
    cleanup.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be removed without writing.",
    )
    _add_config_args(cleanup)

    return parser.parse_args(list(argv) if argv is not None else None)


def _load(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


async def run_cleanup(
    config: AppConfig, *, user_id: str | None = None, dry_run: bool = False
) -> SweepReport:
    async with guard_components(config) as components:
        return await components.registry.sweep(user_id, dry_run=dry_run)


def _print_report(report: SweepReport, out: Callable[[str], None]) -> None:
    verb = "Would remove" if report.dry_run else "Removed"
    for user_id, removed in sorted(report.removed_by_user.items()):
        out(f"  user {user_id}: {removed} expired tab(s)")
    out(
        f"{verb} {report.removed} of {report.scanned} tab(s) "
        f"across {report.users} user(s)."
    )


def _cleanup(
    args: argparse.Namespace,
    config: AppConfig,
    *,
    confirm: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> int:
    if not (args.force or args.dry_run):
        scope = f"user {args.user}" if args.user else "all users"
        answer = confirm(f"Remove expired tabs for {scope}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            out("Cleanup cancelled.")
            return 0

    if args.dry_run:
        out("Dry run: nothing will be removed.")

    report = asyncio.run(run_cleanup(config, user_id=args.user, dry_run=args.dry_run))
    _print_report(report, out)
    return 0


def _serve(args: argparse.Namespace, config: AppConfig, log_config: dict[str, Any]) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "8000"))

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return 0


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, then dispatches to the subcommand.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    config = _load(args)
    log_config = configure_logging(config)

    if args.command == "cleanup":
        return _cleanup(args, config)
    return _serve(args, config, log_config)


if __name__ == "__main__":
    raise SystemExit(start())
