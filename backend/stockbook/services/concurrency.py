# Overview: Transaction boundary and row-locking helpers shared by the mutating services.

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db

T = TypeVar("T")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id_col on InventoryItem and Sale still detects lost updates there.
    """
    return query.with_for_update()


def atomic(func: Callable[[], T]) -> T:
    """
    Run func as one database transaction.

    Commits when func returns, rolls back on any exception and re-raises.
    Concurrency failures (optimistic version mismatch, lock timeouts) are
    reported as ConflictError; nothing is retried.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Record was modified concurrently; reload and try again") from exc
    except OperationalError as exc:
        db.session.rollback()
        if "lock" in str(exc.orig).lower():
            raise ConflictError("Record is locked by another request; try again") from exc
        raise
    except Exception:
        db.session.rollback()
        raise
