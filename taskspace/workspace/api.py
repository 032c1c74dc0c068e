"""FastAPI application exposing the workspace access-control core.

- workspace lifecycle (create/get/delete) and the caller's role
- membership (add, change role, remove)
- ordered resources (create/list/update/move/reorder/delete)
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterator

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import schemas
from .errors import InvalidRequest, Unauthenticated, WorkspaceError
from .facade import AccessControlFacade
from .models import Section, Workspace
from .service import WorkspaceDatabase, WorkspaceSettings, init_engine

__all__ = ["create_app", "WorkspaceSettings"]

logger = logging.getLogger(__name__)

_ERROR_STATUSES = (400, 401, 403, 404, 409, 500)


def _workspace_response(workspace: Workspace) -> schemas.WorkspaceResponse:
    return schemas.WorkspaceResponse.model_validate(workspace)


def _resource_response(section: Section) -> schemas.ResourceResponse:
    return schemas.ResourceResponse.model_validate(section)


def create_app(settings: WorkspaceSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application for workspace management."""

    settings = settings or WorkspaceSettings.from_env()
    engine = init_engine(settings)
    database = WorkspaceDatabase(engine=engine)
    if settings.create_tables:
        database.create_all()

    app = FastAPI(
        title="Taskspace Workspace API",
        version="1.0.0",
        description="Workspace roles, membership and ordered resources",
        responses={code: {"model": schemas.ErrorResponse} for code in _ERROR_STATUSES},
    )
    app.state.database = database

    def get_session() -> Iterator[Session]:
        session = database.session()
        try:
            yield session
        finally:
            session.close()

    def get_facade(session: Session = Depends(get_session)) -> AccessControlFacade:
        return AccessControlFacade(session)

    def get_current_user(request: Request) -> uuid.UUID:
        """Caller identity from the ``X-User-ID`` header."""
        user_id = request.headers.get("X-User-ID")
        if not user_id:
            raise Unauthenticated("Missing X-User-ID header")
        try:
            return uuid.UUID(user_id)
        except ValueError:
            raise Unauthenticated("X-User-ID must be a UUID") from None

    @app.exception_handler(WorkspaceError)
    async def _handle_workspace_error(request: Request, exc: WorkspaceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(status_code=400, content=InvalidRequest(details).to_dict())

    @app.exception_handler(Exception)
    async def _handle_errors(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "kind": "internal"},
        )

    # ========================================================================
    # Workspaces
    # ========================================================================

    @app.post("/workspaces", response_model=schemas.WorkspaceResponse, status_code=201)
    def create_workspace(
        request: schemas.WorkspaceCreateRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.WorkspaceResponse:
        return _workspace_response(facade.create_workspace(user_id, request.name))

    @app.get("/workspaces/{workspace_id}", response_model=schemas.WorkspaceResponse)
    def get_workspace(
        workspace_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.WorkspaceResponse:
        return _workspace_response(facade.get_workspace(workspace_id, user_id))

    @app.delete("/workspaces/{workspace_id}", response_model=schemas.DeletedResponse)
    def delete_workspace(
        workspace_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.DeletedResponse:
        facade.delete_workspace(workspace_id, user_id)
        return schemas.DeletedResponse()

    @app.get("/workspaces/{workspace_id}/role", response_model=schemas.RoleResponse)
    def get_role(
        workspace_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.RoleResponse:
        role = facade.get_role(workspace_id, user_id)
        return schemas.RoleResponse(workspace_id=workspace_id, user_id=user_id, role=role)

    # ========================================================================
    # Membership
    # ========================================================================

    @app.get(
        "/workspaces/{workspace_id}/members",
        response_model=list[schemas.MemberResponse],
    )
    def list_members(
        workspace_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> list[schemas.MemberResponse]:
        members = facade.list_members(workspace_id, user_id)
        return [schemas.MemberResponse.model_validate(m) for m in members]

    @app.post("/workspaces/{workspace_id}/members", response_model=schemas.WorkspaceResponse)
    def add_member(
        workspace_id: uuid.UUID,
        request: schemas.MemberAddRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.WorkspaceResponse:
        workspace = facade.add_member(workspace_id, user_id, request.user_id, request.role)
        return _workspace_response(workspace)

    @app.patch(
        "/workspaces/{workspace_id}/members/{member_id}",
        response_model=schemas.WorkspaceResponse,
    )
    def update_member_role(
        workspace_id: uuid.UUID,
        member_id: uuid.UUID,
        request: schemas.MemberUpdateRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.WorkspaceResponse:
        workspace = facade.update_member_role(workspace_id, user_id, member_id, request.role)
        return _workspace_response(workspace)

    @app.delete(
        "/workspaces/{workspace_id}/members/{member_id}",
        response_model=schemas.WorkspaceResponse,
    )
    def remove_member(
        workspace_id: uuid.UUID,
        member_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.WorkspaceResponse:
        return _workspace_response(facade.remove_member(workspace_id, user_id, member_id))

    # ========================================================================
    # Ordered resources
    # ========================================================================

    @app.post(
        "/workspaces/{workspace_id}/resources",
        response_model=schemas.ResourceResponse,
        status_code=201,
    )
    def create_resource(
        workspace_id: uuid.UUID,
        request: schemas.ResourceCreateRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.ResourceResponse:
        fields = request.model_dump(exclude={"parent_list_id"}, exclude_none=True)
        section = facade.create_resource(workspace_id, user_id, request.parent_list_id, fields)
        return _resource_response(section)

    @app.get(
        "/workspaces/{workspace_id}/lists/{list_id}/resources",
        response_model=list[schemas.ResourceResponse],
    )
    def list_resources(
        workspace_id: uuid.UUID,
        list_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> list[schemas.ResourceResponse]:
        sections = facade.list_resources(workspace_id, user_id, list_id)
        return [_resource_response(s) for s in sections]

    @app.post(
        "/workspaces/{workspace_id}/lists/{list_id}/reorder",
        response_model=list[schemas.ResourceResponse],
    )
    def reorder_resources(
        workspace_id: uuid.UUID,
        list_id: uuid.UUID,
        request: schemas.ResourceReorderRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> list[schemas.ResourceResponse]:
        sections = facade.reorder_resources(workspace_id, user_id, list_id, request.resource_ids)
        return [_resource_response(s) for s in sections]

    @app.patch("/resources/{resource_id}", response_model=schemas.ResourceResponse)
    def update_resource(
        resource_id: uuid.UUID,
        request: schemas.ResourceUpdateRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.ResourceResponse:
        section = facade.update_resource(resource_id, user_id, request.to_patch())
        return _resource_response(section)

    @app.post("/resources/{resource_id}/move", response_model=list[schemas.ResourceResponse])
    def move_resource(
        resource_id: uuid.UUID,
        request: schemas.ResourceMoveRequest,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> list[schemas.ResourceResponse]:
        sections = facade.move_resource(resource_id, user_id, request.position)
        return [_resource_response(s) for s in sections]

    @app.delete("/resources/{resource_id}", response_model=schemas.DeletedResponse)
    def delete_resource(
        resource_id: uuid.UUID,
        facade: AccessControlFacade = Depends(get_facade),
        user_id: uuid.UUID = Depends(get_current_user),
    ) -> schemas.DeletedResponse:
        facade.delete_resource(resource_id, user_id)
        return schemas.DeletedResponse()

    return app
