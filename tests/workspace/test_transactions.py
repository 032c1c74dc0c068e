import sqlite3
import uuid

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from taskspace.workspace.errors import Conflict, InvalidRequest, StoreFailure
from taskspace.workspace.models import Section, WorkspaceMember
from taskspace.workspace.ordering import OrderedResourceStore
from taskspace.workspace.schema.enums import WorkspaceRole
from taskspace.workspace.transactions import is_conflict_error, transaction


class _FakeDriverError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def test_error_after_write_rolls_back(database, session, workspace):
    section = OrderedResourceStore(session).create(
        workspace.id, uuid.uuid4(), {"title": "Before"}, uuid.uuid4()
    )

    with pytest.raises(RuntimeError):
        with transaction(session):
            section.title = "After"
            session.flush()
            raise RuntimeError("boom")

    other = database.session()
    try:
        assert other.get(Section, section.id).title == "Before"
    finally:
        other.close()


def test_workspace_errors_pass_through(session):
    with pytest.raises(InvalidRequest):
        with transaction(session):
            raise InvalidRequest("bad")


def test_integrity_error_becomes_conflict(database, session, workspace):
    user_id = uuid.uuid4()
    session.add(WorkspaceMember(workspace_id=workspace.id, user_id=user_id, role=WorkspaceRole.OWNER))
    session.commit()

    other = database.session()
    try:
        with pytest.raises(Conflict):
            with transaction(other, name="duplicate"):
                other.add(
                    WorkspaceMember(
                        workspace_id=workspace.id, user_id=user_id, role=WorkspaceRole.MEMBER
                    )
                )
                other.flush()
    finally:
        other.close()


def test_locked_database_becomes_conflict(session):
    locked = OperationalError("UPDATE sections", {}, sqlite3.OperationalError("database is locked"))

    with pytest.raises(Conflict):
        with transaction(session):
            raise locked


def test_other_database_errors_become_store_failure(session):
    broken = OperationalError("SELECT 1", {}, sqlite3.OperationalError("disk I/O error"))

    with pytest.raises(StoreFailure):
        with transaction(session):
            raise broken
    with pytest.raises(StoreFailure):
        with transaction(session):
            raise SQLAlchemyError("mapper exploded")


@pytest.mark.parametrize(("sqlstate", "expected"), [("40001", True), ("40P01", True), ("23505", False)])
def test_is_conflict_error_by_sqlstate(sqlstate, expected):
    exc = OperationalError("stmt", {}, _FakeDriverError(sqlstate))
    assert is_conflict_error(exc) is expected
