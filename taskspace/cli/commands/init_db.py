"""Create the workspace tables in the configured database."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

import structlog

from taskspace.workspace.service import WorkspaceDatabase, init_engine

from ..config import RuntimeConfig

__all__ = ["register"]

logger = structlog.get_logger(__name__)


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser("init-db", help="Create workspace tables")
    parser.set_defaults(handler=_cmd_init_db)


def _cmd_init_db(_: Namespace, runtime: RuntimeConfig) -> None:
    engine = init_engine(runtime.settings)
    try:
        WorkspaceDatabase(engine).create_all()
    finally:
        engine.dispose()
    logger.info("tables_created", url=engine.url.render_as_string(hide_password=True))
    print("Workspace tables created.")
