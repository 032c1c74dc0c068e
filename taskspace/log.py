"""structlog setup shared by the CLI commands and the API server.

Library modules log through ``logging.getLogger`` or ``structlog.get_logger``;
both end up on one stderr handler rendered either as ``key=value`` pairs or
as JSON lines (``TASKSPACE_LOG_FORMAT=json``).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional

import structlog

__all__ = ["configure_logging", "LOG_FORMATS"]

LOG_FORMATS = ("kv", "json")

_SHARED_PROCESSORS = (
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
)


def _renderer(fmt: str):
    if fmt == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.processors.KeyValueRenderer(
        key_order=["timestamp", "level", "logger", "event"], sort_keys=True
    )


def configure_logging(
    level_name: str = "INFO",
    *,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Route stdlib and structlog records through a single handler."""

    level = getattr(logging, level_name.upper(), logging.INFO)
    fmt = (fmt or os.getenv("TASKSPACE_LOG_FORMAT") or "kv").lower()
    if fmt not in LOG_FORMATS:
        fmt = "kv"

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(fmt),
            foreign_pre_chain=list(_SHARED_PROCESSORS),
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # SQL echo is controlled by TASKSPACE_DB_ECHO, not the CLI level.
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
