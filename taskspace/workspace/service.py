"""Database settings, engine construction and session management."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

__all__ = ["WorkspaceSettings", "WorkspaceDatabase", "init_engine", "normalize_database_url"]

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./taskspace.db"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class WorkspaceSettings:
    """Workspace service settings."""

    database_url: str = DEFAULT_DATABASE_URL
    isolation_level: Optional[str] = None
    echo_sql: bool = False
    create_tables: bool = True

    @classmethod
    def from_env(cls) -> WorkspaceSettings:
        database_url = (
            os.getenv("TASKSPACE_DB_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
        )
        return cls(
            database_url=database_url,
            isolation_level=os.getenv("TASKSPACE_DB_ISOLATION_LEVEL") or None,
            echo_sql=_env_flag("TASKSPACE_DB_ECHO", "false"),
            create_tables=_env_flag("TASKSPACE_CREATE_TABLES", "true"),
        )


def normalize_database_url(database_url: str) -> str:
    """Pin PostgreSQL URLs to the psycopg (v3) driver."""

    if database_url.startswith("postgres://"):
        return "postgresql+psycopg://" + database_url[len("postgres://") :]
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def init_engine(settings: WorkspaceSettings) -> Engine:
    """SQLAlchemy engine for the workspace database."""

    database_url = normalize_database_url(settings.database_url)

    engine_kwargs: dict = {"echo": settings.echo_sql, "pool_pre_ping": True}
    if settings.isolation_level:
        engine_kwargs["isolation_level"] = settings.isolation_level
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.split("://", 1)[-1] in {"", "/"}:
            from sqlalchemy.pool import StaticPool

            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs.update(pool_size=10, max_overflow=20)

    return create_engine(database_url, **engine_kwargs)


class WorkspaceDatabase:
    """Session factory for the workspace database."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        return self._session_factory()

    def create_all(self) -> None:
        """Create tables (development and tests)."""
        Base.metadata.create_all(self.engine)
