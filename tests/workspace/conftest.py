"""Shared fixtures for the workspace core tests."""

from __future__ import annotations

import uuid
from pathlib import Path

import pytest

from taskspace.workspace.facade import AccessControlFacade
from taskspace.workspace.models import Workspace
from taskspace.workspace.service import WorkspaceDatabase, WorkspaceSettings, init_engine


@pytest.fixture()
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "workspace.db"


@pytest.fixture()
def database(temp_db_path: Path):
    """File-backed SQLite so separate sessions can interleave."""

    engine = init_engine(WorkspaceSettings(database_url=f"sqlite:///{temp_db_path}"))
    db = WorkspaceDatabase(engine)
    db.create_all()
    yield db
    engine.dispose()


@pytest.fixture()
def session(database: WorkspaceDatabase):
    session = database.session()
    yield session
    session.close()


@pytest.fixture()
def facade(session) -> AccessControlFacade:
    return AccessControlFacade(session)


@pytest.fixture()
def workspace(session) -> Workspace:
    """A bare workspace row without members, for store-level tests."""

    ws = Workspace(name="Board", created_by=uuid.uuid4())
    session.add(ws)
    session.commit()
    return ws
