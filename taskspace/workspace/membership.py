"""Add, promote/demote, and remove workspace members."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import Conflict, InvariantViolation
from .models import Workspace, WorkspaceMember
from .permissions import PermissionMatrix
from .roles import RoleResolver
from .schema.enums import PermissionAction, ResourceKind, WorkspaceRole
from .transactions import transaction

__all__ = ["MembershipMutator"]

logger = structlog.get_logger(__name__)


class MembershipMutator:
    """Membership changes, each performed in a single transaction.

    The ``authorize_*`` methods hold the ordered checks for each change:
    caller role, target lookup, sole-owner invariant, then the permission
    matrix. They run as a read-only pre-check from the facade and again,
    with rows locked, inside the transaction that performs the write, so a
    concurrent demotion of the caller cannot slip between check and write.
    """

    def __init__(self, session: Session, *, matrix: Optional[PermissionMatrix] = None):
        self.session = session
        self.roles = RoleResolver(session)
        self.matrix = matrix or PermissionMatrix()

    def list_members(self, workspace_id: uuid.UUID) -> list[WorkspaceMember]:
        self.roles.require_workspace(workspace_id)
        stmt = (
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.created_at, WorkspaceMember.user_id)
        )
        return list(
            self.session.execute(stmt, execution_options={"populate_existing": True}).scalars()
        )

    # ------------------------------------------------------------ authorization

    def authorize_add(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
        role: WorkspaceRole,
        *,
        lock: bool = False,
    ) -> WorkspaceRole:
        caller_role = self.roles.resolve_role(workspace_id, caller_id, lock=lock)
        if role is WorkspaceRole.OWNER:
            raise InvariantViolation("A workspace has exactly one owner; owners cannot be added")
        self.matrix.require(
            caller_role, PermissionAction.ADD_MEMBER, ResourceKind.MEMBER, target_role=role
        )
        if self.roles.find_member(workspace_id, target_user_id) is not None:
            raise Conflict(f"User {target_user_id} is already a member")
        return caller_role

    def authorize_role_change(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
        new_role: WorkspaceRole,
        *,
        lock: bool = False,
    ) -> WorkspaceMember:
        caller_role = self.roles.resolve_role(workspace_id, caller_id, lock=lock)
        target = self.roles.get_member(workspace_id, target_user_id, lock=lock)

        if new_role is WorkspaceRole.OWNER and target.role is not WorkspaceRole.OWNER:
            # TODO: replace with an explicit ownership transfer operation
            raise InvariantViolation("Promoting a member to owner would create a second owner")
        if target.role is WorkspaceRole.OWNER and new_role is not WorkspaceRole.OWNER:
            self._ensure_not_sole_owner(workspace_id, "demote")

        self.matrix.require(
            caller_role, PermissionAction.CHANGE_ROLE, ResourceKind.MEMBER, target_role=new_role
        )
        return target

    def authorize_removal(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
        *,
        lock: bool = False,
    ) -> WorkspaceMember:
        caller_role = self.roles.resolve_role(workspace_id, caller_id, lock=lock)
        target = self.roles.get_member(workspace_id, target_user_id, lock=lock)

        if target.role is WorkspaceRole.OWNER:
            self._ensure_not_sole_owner(workspace_id, "remove")

        self.matrix.require(
            caller_role,
            PermissionAction.REMOVE_MEMBER,
            ResourceKind.MEMBER,
            target_role=target.role,
        )
        return target

    # ---------------------------------------------------------------- mutations

    def add_member(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
        role: WorkspaceRole | str,
    ) -> Workspace:
        role = WorkspaceRole(role)
        with transaction(self.session, name="add_member"):
            self.authorize_add(workspace_id, caller_id, target_user_id, role, lock=True)
            self.session.add(
                WorkspaceMember(
                    workspace_id=workspace_id,
                    user_id=target_user_id,
                    role=role,
                    invited_by=caller_id,
                )
            )
            self.session.flush()
            workspace = self._touch(workspace_id)

        logger.info(
            "member_added",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            role=role.value,
            actor_id=str(caller_id),
        )
        return workspace

    def update_member_role(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
        new_role: WorkspaceRole | str,
    ) -> Workspace:
        new_role = WorkspaceRole(new_role)
        with transaction(self.session, name="update_member_role"):
            target = self.authorize_role_change(
                workspace_id, caller_id, target_user_id, new_role, lock=True
            )
            previous = target.role
            target.role = new_role
            self.session.flush()
            workspace = self._touch(workspace_id)

        logger.info(
            "member_role_updated",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            previous_role=previous.value,
            role=new_role.value,
            actor_id=str(caller_id),
        )
        return workspace

    def remove_member(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        target_user_id: uuid.UUID,
    ) -> Workspace:
        with transaction(self.session, name="remove_member"):
            target = self.authorize_removal(workspace_id, caller_id, target_user_id, lock=True)
            self.session.delete(target)
            self.session.flush()
            workspace = self._touch(workspace_id)

        logger.info(
            "member_removed",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            actor_id=str(caller_id),
        )
        return workspace

    # ------------------------------------------------------------------ helpers

    def _ensure_not_sole_owner(self, workspace_id: uuid.UUID, verb: str) -> None:
        if self.roles.count_owners(workspace_id) <= 1:
            raise InvariantViolation(f"Cannot {verb} the sole owner of the workspace")

    def _touch(self, workspace_id: uuid.UUID) -> Workspace:
        workspace = self.roles.require_workspace(workspace_id)
        workspace.updated_at = dt.datetime.now(dt.timezone.utc)
        self.session.expire(workspace, ["members"])
        return workspace
