"""Workspace schema helpers shared between ORM models and migrations."""

from .enums import (
    EnumDefinition,
    PermissionAction,
    ResourceKind,
    WorkspaceRole,
    ENUM_DEFINITIONS,
    render_enum_sql,
    sql_enum,
)

__all__ = [
    "EnumDefinition",
    "PermissionAction",
    "ResourceKind",
    "WorkspaceRole",
    "ENUM_DEFINITIONS",
    "render_enum_sql",
    "sql_enum",
]
