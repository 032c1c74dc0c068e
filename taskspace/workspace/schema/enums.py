"""Canonical workspace enum definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

__all__ = [
    "EnumDefinition",
    "WorkspaceRole",
    "PermissionAction",
    "ResourceKind",
    "ENUM_DEFINITIONS",
    "render_enum_sql",
    "sql_enum",
]


class WorkspaceEnum(str, Enum):
    """Base class for workspace enums stored in the database."""

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(item.value for item in cls)


class WorkspaceRole(WorkspaceEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def outranks(self, other: WorkspaceRole) -> bool:
        return self.rank > other.rank


_ROLE_RANK = {
    WorkspaceRole.OWNER: 3,
    WorkspaceRole.ADMIN: 2,
    WorkspaceRole.MEMBER: 1,
}


class PermissionAction(WorkspaceEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"


class ResourceKind(WorkspaceEnum):
    SECTION = "section"
    TASK = "task"
    PROJECT = "project"
    PORTFOLIO = "portfolio"
    WORKSPACE_GOAL = "workspace_goal"
    PERSONAL_GOAL = "personal_goal"
    WORKSPACE = "workspace"
    MEMBER = "member"


@dataclass(frozen=True)
class EnumDefinition:
    """Metadata describing a PostgreSQL enum type."""

    name: str
    values: tuple[str, ...]
    enum_cls: type[WorkspaceEnum]

    def render_sql(self) -> str:
        values_sql = ",".join(f"'{value}'" for value in self.values)
        return (
            "DO $$ BEGIN\n"
            f"  CREATE TYPE {self.name} AS ENUM ({values_sql});\n"
            "EXCEPTION WHEN duplicate_object THEN NULL; END $$;"
        )


# Only persisted enums get a database type; actions and kinds stay in code.
ENUM_DEFINITIONS: tuple[EnumDefinition, ...] = (
    EnumDefinition("workspace_role", WorkspaceRole.values(), WorkspaceRole),
)

ENUM_DEFINITION_BY_CLASS: Mapping[type[WorkspaceEnum], EnumDefinition] = {
    definition.enum_cls: definition for definition in ENUM_DEFINITIONS
}


def render_enum_sql() -> str:
    """Return ``CREATE TYPE`` statements for all persisted workspace enums."""

    return "\n\n".join(definition.render_sql() for definition in ENUM_DEFINITIONS)


def sql_enum(enum_cls: type[WorkspaceEnum]):
    """Return a SQLAlchemy ``Enum`` tied to the canonical definition.

    Values (not member names) are stored, so the column matches the
    PostgreSQL type rendered by :func:`render_enum_sql`. Other dialects get a
    plain string column.
    """

    from sqlalchemy import Enum as SqlEnum

    definition = ENUM_DEFINITION_BY_CLASS[enum_cls]
    return SqlEnum(
        enum_cls,
        name=definition.name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )
