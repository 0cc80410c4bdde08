# Overview: Unit-of-work boundary shared by the order processor and ledger services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import text

from ..extensions import db


@contextmanager
def unit_of_work():
    """
    Run the enclosed block as one all-or-nothing database transaction.

    Commits when the block exits normally; any exception rolls back every
    write made inside the block and is re-raised unchanged. No retry is
    attempted.

    SQLite takes the write lock up front (BEGIN IMMEDIATE) so concurrent
    writers serialize at transaction start; other databases rely on their
    own isolation level. No row-level locks are requested.
    """
    if db.engine.dialect.name == "sqlite" and not db.session().in_transaction():
        db.session.execute(text("BEGIN IMMEDIATE"))
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise
