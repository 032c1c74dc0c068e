"""Pydantic schemas for workspace API requests/responses.

Wire names are camelCase (``userId``, ``parentListId``, ``orderKey``);
Python attributes stay snake_case.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .schema.enums import WorkspaceRole

__all__ = [
    "WorkspaceCreateRequest",
    "WorkspaceResponse",
    "RoleResponse",
    "MemberAddRequest",
    "MemberUpdateRequest",
    "MemberResponse",
    "ResourceCreateRequest",
    "ResourceUpdateRequest",
    "ResourceMoveRequest",
    "ResourceReorderRequest",
    "ResourceResponse",
    "DeletedResponse",
    "ErrorResponse",
]

class ApiModel(BaseModel):
    """Base model with camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ========================================================================
# Workspaces
# ========================================================================


class WorkspaceCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)


class MemberResponse(ApiModel):
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    role: WorkspaceRole
    invited_by: Optional[uuid.UUID] = None
    created_at: Optional[dt.datetime] = None


class WorkspaceResponse(ApiModel):
    id: uuid.UUID
    name: str
    created_by: uuid.UUID
    members: list[MemberResponse]
    created_at: dt.datetime
    updated_at: dt.datetime


class RoleResponse(ApiModel):
    workspace_id: uuid.UUID
    user_id: uuid.UUID
    role: WorkspaceRole


# ========================================================================
# Membership
# ========================================================================


class MemberAddRequest(ApiModel):
    user_id: uuid.UUID
    role: WorkspaceRole = WorkspaceRole.MEMBER


class MemberUpdateRequest(ApiModel):
    role: WorkspaceRole


# ========================================================================
# Ordered resources
# ========================================================================


class ResourceCreateRequest(ApiModel):
    parent_list_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    properties: Optional[dict[str, Any]] = None


class ResourceUpdateRequest(ApiModel):
    """Partial update. A client-sent ``orderKey`` is accepted and ignored."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    properties: Optional[dict[str, Any]] = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ResourceMoveRequest(ApiModel):
    position: int = Field(..., ge=0)


class ResourceReorderRequest(ApiModel):
    resource_ids: list[uuid.UUID] = Field(..., min_length=1)


class ResourceResponse(ApiModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    parent_list_id: uuid.UUID
    order_key: int
    title: str
    description: Optional[str] = None
    properties: Optional[dict[str, Any]] = None
    created_by: uuid.UUID
    created_at: dt.datetime
    updated_at: dt.datetime


# ========================================================================
# Misc
# ========================================================================


class DeletedResponse(ApiModel):
    success: bool = True


class ErrorResponse(ApiModel):
    error: str
    kind: str
