"""Workspace and membership models."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, WorkspaceRole, workspace_role_enum

if TYPE_CHECKING:  # pragma: no cover
    from .resources import Section

__all__ = ["Workspace", "WorkspaceMember"]


class Workspace(Base):
    """Top level tenant owning members and ordered resources."""

    __tablename__ = "workspaces"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    members: Mapped[list["WorkspaceMember"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="WorkspaceMember.created_at",
    )
    sections: Mapped[list["Section"]] = relationship(
        back_populates="workspace", cascade="all, delete-orphan"
    )

    def owner_ids(self) -> list[uuid.UUID]:
        return [m.user_id for m in self.members if m.role == WorkspaceRole.OWNER]


class WorkspaceMember(Base):
    """Membership mapping between users and workspaces."""

    __tablename__ = "workspace_members"
    __table_args__ = (
        Index("workspace_members_role_idx", "workspace_id", "role"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", onupdate="NO ACTION", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(primary_key=True)
    role: Mapped[WorkspaceRole] = mapped_column(workspace_role_enum(), nullable=False)
    invited_by: Mapped[uuid.UUID | None] = mapped_column()
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    workspace: Mapped[Workspace] = relationship(back_populates="members")
