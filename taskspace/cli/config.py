"""Runtime configuration helpers shared by CLI command handlers."""

from __future__ import annotations

from dataclasses import dataclass

from taskspace.env import load_env
from taskspace.workspace.service import WorkspaceSettings


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved configuration for command handlers."""

    log_level: str
    settings: WorkspaceSettings


def bootstrap() -> None:
    """Load environment variables once."""

    load_env()


def build_runtime_config(
    *, log_level: str, database_url: str | None = None
) -> RuntimeConfig:
    """Construct a :class:`RuntimeConfig`, honoring a ``--database-url`` override."""

    settings = WorkspaceSettings.from_env()
    if database_url:
        settings.database_url = database_url
    return RuntimeConfig(log_level=log_level, settings=settings)
