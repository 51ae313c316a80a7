# Overview: Row-locking and savepoint helpers shared by the write services.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for stock and status changes.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def savepoint():
    """
    Run a block inside a SAVEPOINT of the current transaction.

    On error only the savepoint is rolled back and the exception propagates;
    the outer transaction stays usable.
    """
    with db.session.begin_nested():
        yield
