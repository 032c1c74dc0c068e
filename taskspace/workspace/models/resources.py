"""Orderable resources living in a workspace list."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:  # pragma: no cover
    from .workspaces import Workspace

__all__ = ["Section", "PAYLOAD_COLUMNS"]

# Columns a plain update may write. Identity and position are excluded.
PAYLOAD_COLUMNS: frozenset[str] = frozenset({"title", "description", "properties"})


class Section(Base):
    """A section of a list (e.g. a board column), ordered among its siblings."""

    __tablename__ = "sections"
    __table_args__ = (
        Index("sections_parent_order_idx", "parent_list_id", "order_key", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", onupdate="NO ACTION", ondelete="CASCADE"),
        nullable=False,
    )
    parent_list_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    order_key: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    properties: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_by: Mapped[uuid.UUID] = mapped_column(nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    workspace: Mapped["Workspace"] = relationship(back_populates="sections")

    def payload(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in PAYLOAD_COLUMNS}
