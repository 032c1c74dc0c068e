"""Scoped transaction boundary for mutating workspace operations."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import Conflict, StoreFailure, WorkspaceError

__all__ = ["transaction", "is_conflict_error"]

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def is_conflict_error(exc: DBAPIError) -> bool:
    """Return ``True`` when the driver reports a retryable write conflict."""

    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in _CONFLICT_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


@contextmanager
def transaction(session: Session, *, name: str = "transaction") -> Iterator[Session]:
    """Run the enclosed block as one unit of work on *session*.

    Commits when the block exits normally. On any exception, including
    cancellation, the transaction is rolled back before the error propagates,
    so no partial write is ever visible. Database errors are translated into
    :class:`Conflict` (constraint or serialization failures) or
    :class:`StoreFailure`; errors the core raised itself pass through.
    """

    try:
        yield session
        session.commit()
    except WorkspaceError as exc:
        _rollback(session, name)
        logger.debug("%s aborted: %s", name, exc.kind)
        raise
    except IntegrityError as exc:
        _rollback(session, name)
        raise Conflict(f"{name} violated a uniqueness or integrity constraint") from exc
    except DBAPIError as exc:
        _rollback(session, name)
        if is_conflict_error(exc):
            raise Conflict(f"{name} conflicted with a concurrent transaction") from exc
        logger.error("%s failed in the database: %s", name, exc)
        raise StoreFailure(f"{name} failed") from exc
    except SQLAlchemyError as exc:
        _rollback(session, name)
        logger.error("%s failed: %s", name, exc)
        raise StoreFailure(f"{name} failed") from exc
    except BaseException:
        _rollback(session, name)
        raise


def _rollback(session: Session, name: str) -> None:
    try:
        session.rollback()
    except SQLAlchemyError:
        # original error still propagates
        logger.exception("Rollback of %s failed", name)
