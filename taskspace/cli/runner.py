"""Command-line entry point for taskspace."""

from __future__ import annotations

import argparse
import os
from typing import Callable, List, Optional

from ..log import configure_logging
from . import commands
from .config import RuntimeConfig, bootstrap, build_runtime_config

CommandHandler = Callable[[argparse.Namespace, RuntimeConfig], None]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskspace-cli",
        description="Command-line tools for the taskspace workspace service.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG). Default: INFO",
    )
    parser.add_argument(
        "--database-url",
        dest="database_url",
        help="Override the database URL (env: TASKSPACE_DB_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    commands.register(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    bootstrap()
    parser = build_parser()
    args = parser.parse_args(argv)

    level_name = str(getattr(args, "log_level", "INFO")).upper()
    configure_logging(level_name)

    handler: CommandHandler = getattr(args, "handler", None)
    if not callable(handler):
        parser.error("Command handler missing")

    runtime = build_runtime_config(
        log_level=level_name,
        database_url=getattr(args, "database_url", None),
    )

    handler(args, runtime)


if __name__ == "__main__":  # pragma: no cover
    main()
