"""Single entry point the API boundary uses for workspace operations."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from .errors import Forbidden, InvalidRequest, ResourceNotFound
from .membership import MembershipMutator
from .models import Section, Workspace, WorkspaceMember
from .ordering import Guard, OrderedResourceStore
from .permissions import PermissionMatrix
from .roles import RoleResolver
from .schema.enums import PermissionAction, ResourceKind, WorkspaceRole
from .transactions import transaction

__all__ = ["AccessControlFacade"]

logger = structlog.get_logger(__name__)

Action = PermissionAction
Kind = ResourceKind


def _as_uuid(value: uuid.UUID | str, field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise InvalidRequest(f"{field} must be a UUID") from None


def _as_grantable_role(value: WorkspaceRole | str) -> WorkspaceRole:
    try:
        role = WorkspaceRole(value)
    except ValueError:
        raise InvalidRequest(f"Unknown role: {value!r}") from None
    if role is WorkspaceRole.OWNER:
        raise InvalidRequest("Role must be 'admin' or 'member'")
    return role


def _as_kind(value: ResourceKind | str) -> ResourceKind:
    try:
        return ResourceKind(value)
    except ValueError:
        raise InvalidRequest(f"Unknown resource kind: {value!r}") from None


class AccessControlFacade:
    """Validate, resolve role, consult the matrix, then delegate.

    The facade holds no state besides the session handle it is given. Checks
    made here fail fast before any write; the delegates repeat them inside
    the transaction that performs the write.
    """

    def __init__(self, session: Session, *, matrix: Optional[PermissionMatrix] = None):
        self.session = session
        self.matrix = matrix or PermissionMatrix()
        self.roles = RoleResolver(session)
        self.members = MembershipMutator(session, matrix=self.matrix)
        self.resources = OrderedResourceStore(session)

    # --------------------------------------------------------------- workspaces

    def create_workspace(self, caller_id: uuid.UUID | str, name: str) -> Workspace:
        caller_id = _as_uuid(caller_id, "caller_id")
        name = (name or "").strip()
        if not name:
            raise InvalidRequest("Workspace name must not be empty")

        with transaction(self.session, name="create_workspace"):
            workspace = Workspace(name=name, created_by=caller_id)
            self.session.add(workspace)
            self.session.flush()
            self.session.add(
                WorkspaceMember(
                    workspace_id=workspace.id,
                    user_id=caller_id,
                    role=WorkspaceRole.OWNER,
                )
            )
            self.session.flush()
            self.session.expire(workspace, ["members"])

        logger.info("workspace_created", workspace_id=str(workspace.id), owner_id=str(caller_id))
        return workspace

    def get_workspace(self, workspace_id: uuid.UUID | str, caller_id: uuid.UUID | str) -> Workspace:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        self.roles.resolve_role(workspace_id, _as_uuid(caller_id, "caller_id"))
        return self.roles.require_workspace(workspace_id)

    def delete_workspace(self, workspace_id: uuid.UUID | str, caller_id: uuid.UUID | str) -> None:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        self._precheck(workspace_id, caller_id, Action.DELETE, Kind.WORKSPACE)

        with transaction(self.session, name="delete_workspace"):
            self._guard(caller_id, Action.DELETE, Kind.WORKSPACE)(workspace_id)
            self.session.delete(self.roles.require_workspace(workspace_id))
            self.session.flush()

        logger.info("workspace_deleted", workspace_id=str(workspace_id), actor_id=str(caller_id))

    def get_role(self, workspace_id: uuid.UUID | str, caller_id: uuid.UUID | str) -> WorkspaceRole:
        """Caller's role for display; read-only, no transaction."""
        return self.roles.resolve_role(
            _as_uuid(workspace_id, "workspace_id"), _as_uuid(caller_id, "caller_id")
        )

    # --------------------------------------------------------------- membership

    def list_members(
        self, workspace_id: uuid.UUID | str, caller_id: uuid.UUID | str
    ) -> list[WorkspaceMember]:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        self.roles.resolve_role(workspace_id, _as_uuid(caller_id, "caller_id"))
        return self.members.list_members(workspace_id)

    def add_member(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        user_id: uuid.UUID | str,
        role: WorkspaceRole | str = WorkspaceRole.MEMBER,
    ) -> Workspace:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        user_id = _as_uuid(user_id, "user_id")
        role = _as_grantable_role(role)

        with self._log_denial("add_member", workspace_id, caller_id):
            self.members.authorize_add(workspace_id, caller_id, user_id, role)
        return self.members.add_member(workspace_id, caller_id, user_id, role)

    def update_member_role(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        user_id: uuid.UUID | str,
        role: WorkspaceRole | str,
    ) -> Workspace:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        user_id = _as_uuid(user_id, "user_id")
        role = _as_grantable_role(role)

        with self._log_denial("update_member_role", workspace_id, caller_id):
            self.members.authorize_role_change(workspace_id, caller_id, user_id, role)
        return self.members.update_member_role(workspace_id, caller_id, user_id, role)

    def remove_member(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        user_id: uuid.UUID | str,
    ) -> Workspace:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        user_id = _as_uuid(user_id, "user_id")

        with self._log_denial("remove_member", workspace_id, caller_id):
            self.members.authorize_removal(workspace_id, caller_id, user_id)
        return self.members.remove_member(workspace_id, caller_id, user_id)

    # ---------------------------------------------------------------- resources

    def create_resource(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        parent_list_id: uuid.UUID | str,
        fields: Mapping[str, Any],
        kind: ResourceKind | str = ResourceKind.SECTION,
    ) -> Section:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        parent_list_id = _as_uuid(parent_list_id, "parent_list_id")
        kind = _as_kind(kind)
        self._precheck(workspace_id, caller_id, Action.CREATE, kind)
        return self.resources.create(
            workspace_id,
            parent_list_id,
            fields,
            caller_id,
            guard=self._guard(caller_id, Action.CREATE, kind),
        )

    def list_resources(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        parent_list_id: uuid.UUID | str,
    ) -> list[Section]:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        self.roles.resolve_role(workspace_id, _as_uuid(caller_id, "caller_id"))
        sections = self.resources.list_for_parent(_as_uuid(parent_list_id, "parent_list_id"))
        return [s for s in sections if s.workspace_id == workspace_id]

    def update_resource(
        self,
        resource_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        patch: Mapping[str, Any],
        kind: ResourceKind | str = ResourceKind.SECTION,
    ) -> Section:
        if not isinstance(patch, Mapping):
            raise InvalidRequest("Patch must be an object of fields")
        resource_id = _as_uuid(resource_id, "resource_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        kind = _as_kind(kind)

        current = self.resources.get(resource_id)
        self._precheck(current.workspace_id, caller_id, Action.UPDATE, kind)
        return self.resources.update(
            resource_id, patch, guard=self._guard(caller_id, Action.UPDATE, kind)
        )

    def move_resource(
        self,
        resource_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        position: int,
        kind: ResourceKind | str = ResourceKind.SECTION,
    ) -> list[Section]:
        resource_id = _as_uuid(resource_id, "resource_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        kind = _as_kind(kind)

        current = self.resources.get(resource_id)
        self._precheck(current.workspace_id, caller_id, Action.UPDATE, kind)
        return self.resources.move(
            resource_id, position, guard=self._guard(caller_id, Action.UPDATE, kind)
        )

    def reorder_resources(
        self,
        workspace_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        parent_list_id: uuid.UUID | str,
        ordered_ids: Sequence[uuid.UUID | str],
        kind: ResourceKind | str = ResourceKind.SECTION,
    ) -> list[Section]:
        workspace_id = _as_uuid(workspace_id, "workspace_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        parent_list_id = _as_uuid(parent_list_id, "parent_list_id")
        ordered = [_as_uuid(value, "resource_ids") for value in ordered_ids]
        if not ordered:
            raise InvalidRequest("resource_ids must not be empty")
        kind = _as_kind(kind)
        self._precheck(workspace_id, caller_id, Action.UPDATE, kind)

        check = self._guard(caller_id, Action.UPDATE, kind)

        def guard(list_workspace_id: uuid.UUID) -> None:
            if list_workspace_id != workspace_id:
                raise ResourceNotFound(f"List {parent_list_id} not found in workspace")
            check(list_workspace_id)

        return self.resources.reorder(parent_list_id, ordered, guard=guard)

    def delete_resource(
        self,
        resource_id: uuid.UUID | str,
        caller_id: uuid.UUID | str,
        kind: ResourceKind | str = ResourceKind.SECTION,
    ) -> None:
        resource_id = _as_uuid(resource_id, "resource_id")
        caller_id = _as_uuid(caller_id, "caller_id")
        kind = _as_kind(kind)

        current = self.resources.get(resource_id)
        self._precheck(current.workspace_id, caller_id, Action.DELETE, kind)
        self.resources.delete(resource_id, guard=self._guard(caller_id, Action.DELETE, kind))

    # ------------------------------------------------------------------ helpers

    def _precheck(
        self,
        workspace_id: uuid.UUID,
        caller_id: uuid.UUID,
        action: PermissionAction,
        kind: ResourceKind,
    ) -> WorkspaceRole:
        with self._log_denial(action.value, workspace_id, caller_id):
            role = self.roles.resolve_role(workspace_id, caller_id)
            self.matrix.require(role, action, kind)
        return role

    def _guard(
        self, caller_id: uuid.UUID, action: PermissionAction, kind: ResourceKind
    ) -> Guard:
        def check(workspace_id: uuid.UUID) -> None:
            role = self.roles.resolve_role(workspace_id, caller_id, lock=True)
            self.matrix.require(role, action, kind)

        return check

    @contextmanager
    def _log_denial(
        self, operation: str, workspace_id: uuid.UUID, caller_id: uuid.UUID
    ) -> Iterator[None]:
        try:
            yield
        except Forbidden as exc:
            logger.info(
                "permission_denied",
                operation=operation,
                workspace_id=str(workspace_id),
                caller_id=str(caller_id),
                reason=exc.message,
            )
            raise
