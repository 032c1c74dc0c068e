"""Print PostgreSQL ``CREATE TYPE`` statements for the workspace enums."""

from __future__ import annotations

from argparse import Namespace, _SubParsersAction

from taskspace.workspace.schema import render_enum_sql

from ..config import RuntimeConfig

__all__ = ["register"]


def register(subparsers: _SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "render-enums", help="Print SQL for the workspace enum types"
    )
    parser.set_defaults(handler=_cmd_render_enums)


def _cmd_render_enums(_: Namespace, __: RuntimeConfig) -> None:
    print(render_enum_sql())
