"""Structured error kinds raised by the workspace core.

Every error carries a ``kind`` (stable identifier surfaced to API callers)
and the HTTP status the boundary maps it to.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "WorkspaceError",
    "InvalidRequest",
    "Unauthenticated",
    "NotAMember",
    "Forbidden",
    "WorkspaceNotFound",
    "ResourceNotFound",
    "MemberNotFound",
    "Conflict",
    "InvariantViolation",
    "StoreFailure",
]


class WorkspaceError(Exception):
    """Base class for errors crossing the access-control boundary."""

    kind = "workspace_error"
    status_code = 500
    default_message = "Workspace operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind}


class InvalidRequest(WorkspaceError):
    kind = "invalid_request"
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(WorkspaceError):
    kind = "unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class NotAMember(WorkspaceError):
    kind = "not_a_member"
    status_code = 403
    default_message = "Not a workspace member"


class Forbidden(WorkspaceError):
    kind = "forbidden"
    status_code = 403
    default_message = "Operation not permitted for this role"


class WorkspaceNotFound(WorkspaceError):
    kind = "workspace_not_found"
    status_code = 404
    default_message = "Workspace not found"


class ResourceNotFound(WorkspaceError):
    kind = "resource_not_found"
    status_code = 404
    default_message = "Resource not found"


class MemberNotFound(WorkspaceError):
    kind = "member_not_found"
    status_code = 404
    default_message = "Member not found"


class Conflict(WorkspaceError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflicting concurrent modification"


class InvariantViolation(WorkspaceError):
    kind = "invariant_violation"
    status_code = 409
    default_message = "Operation would break a workspace invariant"


class StoreFailure(WorkspaceError):
    kind = "store_failure"
    status_code = 500
    default_message = "Storage failure"
