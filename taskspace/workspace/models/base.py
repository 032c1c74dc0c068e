"""Shared SQLAlchemy base and enum helpers for workspace models."""

from __future__ import annotations

from sqlalchemy import Enum as SqlEnum
from sqlalchemy.orm import DeclarativeBase

from ..schema.enums import WorkspaceRole, sql_enum

__all__ = [
    "Base",
    "WorkspaceRole",
    "workspace_role_enum",
]


class Base(DeclarativeBase):
    """Declarative base class shared by all workspace models."""


def workspace_role_enum() -> SqlEnum:
    """Return a configured ENUM for the ``workspace_role`` type."""

    return sql_enum(WorkspaceRole)
