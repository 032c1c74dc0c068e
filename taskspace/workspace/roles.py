"""Resolve a caller's role inside a workspace."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from .errors import MemberNotFound, NotAMember, WorkspaceNotFound
from .models import Workspace, WorkspaceMember
from .schema.enums import WorkspaceRole

__all__ = ["RoleResolver"]


class RoleResolver:
    """Read-only membership lookups.

    Lookups always go to the database (``populate_existing``) instead of the
    session's identity map, because a member's role can change between two
    calls made on the same session. Mutating operations call
    :meth:`resolve_role` with ``lock=True`` from inside their transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def resolve_role(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        *,
        lock: bool = False,
    ) -> WorkspaceRole:
        member = self.find_member(workspace_id, caller_id, lock=lock)
        if member is None:
            self.require_workspace(workspace_id)
            raise NotAMember(f"User {caller_id} is not a member of workspace {workspace_id}")
        return member.role

    def require_workspace(self, workspace_id: uuid.UUID) -> Workspace:
        workspace = self.session.get(Workspace, workspace_id, populate_existing=True)
        if workspace is None:
            raise WorkspaceNotFound(f"Workspace {workspace_id} not found")
        return workspace

    def find_member(
        self,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        lock: bool = False,
    ) -> Optional[WorkspaceMember]:
        stmt = select(WorkspaceMember).where(
            and_(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )
        if lock:
            stmt = stmt.with_for_update()
        return (
            self.session.execute(stmt, execution_options={"populate_existing": True})
            .scalars()
            .first()
        )

    def get_member(
        self,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        lock: bool = False,
    ) -> WorkspaceMember:
        member = self.find_member(workspace_id, user_id, lock=lock)
        if member is None:
            raise MemberNotFound(f"User {user_id} is not a member of workspace {workspace_id}")
        return member

    def count_owners(self, workspace_id: uuid.UUID) -> int:
        stmt = select(func.count()).where(
            and_(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.role == WorkspaceRole.OWNER,
            )
        )
        return int(self.session.execute(stmt).scalar_one())
