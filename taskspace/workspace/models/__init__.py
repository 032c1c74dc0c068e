"""Workspace SQLAlchemy models organized by domain."""

from .base import (
    Base,
    WorkspaceRole,
    workspace_role_enum,
)
from .workspaces import Workspace, WorkspaceMember
from .resources import PAYLOAD_COLUMNS, Section

__all__ = [
    "Base",
    "Workspace",
    "WorkspaceMember",
    "Section",
    "PAYLOAD_COLUMNS",
    "WorkspaceRole",
    "workspace_role_enum",
]
