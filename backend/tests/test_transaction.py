"""
Unit-of-work tests.

Verifies:
- The block commits on normal exit
- Any exception rolls back every write in the block and is re-raised
- A session that already has an open transaction can enter the block
"""

import pytest

from bizops.extensions import db
from bizops.models import Customer
from bizops.services.transaction import unit_of_work


def test_commits_on_success(db_session):
    with unit_of_work():
        db.session.add(Customer(name="Committed", total_due_cents=0))

    db_session.expire_all()
    assert db_session.query(Customer).filter_by(name="Committed").count() == 1


def test_rolls_back_on_error(db_session):
    with pytest.raises(RuntimeError):
        with unit_of_work():
            db.session.add(Customer(name="Discarded", total_due_cents=0))
            db.session.flush()
            raise RuntimeError("abort")

    assert db_session.query(Customer).count() == 0


def test_enters_from_an_open_transaction(db_session):
    # A read leaves the session inside a transaction
    assert db_session.query(Customer).count() == 0

    with unit_of_work():
        db.session.add(Customer(name="Nested", total_due_cents=0))

    assert db_session.query(Customer).count() == 1
