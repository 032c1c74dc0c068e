"""Command registrations for the taskspace CLI."""

from __future__ import annotations

from argparse import _SubParsersAction

from . import init_db, render_enums, serve

__all__ = ["register"]


def register(subparsers: _SubParsersAction) -> None:
    """Register all CLI commands with *subparsers*."""

    serve.register(subparsers)
    init_db.register(subparsers)
    render_enums.register(subparsers)
