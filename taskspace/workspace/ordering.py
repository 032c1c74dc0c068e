"""Read-modify-write access to orderable resources.

Sections are ordered among their siblings (same ``parent_list_id``) by an
integer ``order_key``. Only :meth:`OrderedResourceStore.move` and
:meth:`OrderedResourceStore.reorder` change it; :meth:`update` always
writes back the key it just read inside its own transaction, so a client
submitting a stale copy of the resource cannot undo a concurrent reorder.
Keys are unique within a list; :meth:`create` appends after the locked
siblings, and an insert racing another one fails with :class:`Conflict`.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import InvalidRequest, ResourceNotFound
from .models import PAYLOAD_COLUMNS, Section
from .transactions import transaction

__all__ = ["OrderedResourceStore", "Guard"]

logger = logging.getLogger(__name__)

# Called inside the transaction with the owning workspace id; raises to abort.
Guard = Callable[[uuid.UUID], None]


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _writable(patch: Mapping[str, Any]) -> dict[str, Any]:
    """Filter *patch* down to payload columns."""

    filtered = {key: value for key, value in patch.items() if key in PAYLOAD_COLUMNS}
    ignored = set(patch) - PAYLOAD_COLUMNS
    if ignored:
        logger.debug("Ignoring non-payload fields in resource patch: %s", sorted(ignored))
    if "title" in filtered and not (filtered["title"] or "").strip():
        raise InvalidRequest("Resource title must not be empty")
    return filtered


class OrderedResourceStore:
    """Transactional operations on :class:`Section` rows."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------ reads

    def get(self, resource_id: uuid.UUID) -> Section:
        return self._load(resource_id)

    def list_for_parent(self, parent_list_id: uuid.UUID) -> list[Section]:
        return self._siblings(parent_list_id)

    # ----------------------------------------------------------------- writes

    def create(
        self,
        workspace_id: uuid.UUID,
        parent_list_id: uuid.UUID,
        fields: Mapping[str, Any],
        created_by: uuid.UUID,
        *,
        guard: Optional[Guard] = None,
    ) -> Section:
        payload = _writable(fields)
        if "title" not in payload:
            raise InvalidRequest("Resource title is required")

        with transaction(self.session, name="create_resource"):
            if guard is not None:
                guard(workspace_id)
            siblings = self._siblings(parent_list_id, lock=True)
            if siblings and siblings[0].workspace_id != workspace_id:
                raise InvalidRequest(f"List {parent_list_id} belongs to another workspace")

            section = Section(
                workspace_id=workspace_id,
                parent_list_id=parent_list_id,
                order_key=max((s.order_key for s in siblings), default=-1) + 1,
                created_by=created_by,
                **payload,
            )
            self.session.add(section)
            self.session.flush()

        logger.info("Created resource %s at order %s", section.id, section.order_key)
        return section

    def update(
        self,
        resource_id: uuid.UUID,
        patch: Mapping[str, Any],
        *,
        guard: Optional[Guard] = None,
    ) -> Section:
        """Merge *patch* onto the stored resource, preserving its position."""

        changes = _writable(patch)
        with transaction(self.session, name="update_resource"):
            current = self._load(resource_id, lock=True)
            if guard is not None:
                guard(current.workspace_id)

            order_key = current.order_key
            merged = {**current.payload(), **changes}
            for column, value in merged.items():
                setattr(current, column, value)
            current.order_key = order_key
            current.updated_at = _utcnow()
            self.session.flush()

        return current

    def move(
        self,
        resource_id: uuid.UUID,
        position: int,
        *,
        guard: Optional[Guard] = None,
    ) -> list[Section]:
        """Move a resource to a zero-based *position* among its siblings."""

        if position < 0:
            raise InvalidRequest("Position must be zero or greater")

        with transaction(self.session, name="move_resource"):
            current = self._load(resource_id, lock=True)
            if guard is not None:
                guard(current.workspace_id)

            siblings = [
                s for s in self._siblings(current.parent_list_id, lock=True) if s.id != current.id
            ]
            siblings.insert(min(position, len(siblings)), current)
            self._renumber(siblings)

        return siblings

    def reorder(
        self,
        parent_list_id: uuid.UUID,
        ordered_ids: Sequence[uuid.UUID],
        *,
        guard: Optional[Guard] = None,
    ) -> list[Section]:
        """Apply a complete new ordering to every resource of a list."""

        with transaction(self.session, name="reorder_resources"):
            siblings = self._siblings(parent_list_id, lock=True)
            if not siblings:
                raise ResourceNotFound(f"List {parent_list_id} has no resources")
            if guard is not None:
                guard(siblings[0].workspace_id)

            by_id = {s.id: s for s in siblings}
            if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(by_id):
                raise InvalidRequest(
                    "Reorder must list every resource of the list exactly once"
                )
            ordered = [by_id[resource_id] for resource_id in ordered_ids]
            self._renumber(ordered)

        return ordered

    def delete(self, resource_id: uuid.UUID, *, guard: Optional[Guard] = None) -> None:
        with transaction(self.session, name="delete_resource"):
            current = self._load(resource_id, lock=True)
            if guard is not None:
                guard(current.workspace_id)
            self.session.delete(current)
            self.session.flush()

        logger.info("Deleted resource %s", resource_id)

    # ---------------------------------------------------------------- helpers

    def _load(self, resource_id: uuid.UUID, *, lock: bool = False) -> Section:
        stmt = select(Section).where(Section.id == resource_id)
        if lock:
            stmt = stmt.with_for_update()
        section = (
            self.session.execute(stmt, execution_options={"populate_existing": True})
            .scalars()
            .first()
        )
        if section is None:
            raise ResourceNotFound(f"Resource {resource_id} not found")
        return section

    def _siblings(self, parent_list_id: uuid.UUID, *, lock: bool = False) -> list[Section]:
        stmt = (
            select(Section)
            .where(Section.parent_list_id == parent_list_id)
            .order_by(Section.order_key, Section.created_at, Section.id)
        )
        if lock:
            stmt = stmt.with_for_update()
        return list(
            self.session.execute(stmt, execution_options={"populate_existing": True}).scalars()
        )

    def _renumber(self, ordered: Iterable[Section]) -> None:
        changed = [(index, s) for index, s in enumerate(ordered) if s.order_key != index]
        if not changed:
            return

        # (parent_list_id, order_key) is unique: park moved rows on negative
        # keys before assigning their final positions.
        for index, section in changed:
            section.order_key = -(index + 1)
        self.session.flush()

        now = _utcnow()
        for index, section in changed:
            section.order_key = index
            section.updated_at = now
        self.session.flush()
