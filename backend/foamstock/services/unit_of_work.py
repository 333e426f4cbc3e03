# Overview: Unit-of-work boundary for multi-entity writes (all-or-nothing).

"""
A unit of work groups writes across products, customers and sales so they
commit together or not at all.

Usage:

    with SqlAlchemyUnitOfWork() as uow:
        uow.add(sale)
        ...
    # committed here; any exception inside the block rolls back every write

Any transactional store can back the interface: a relational session with
explicit transactions or a key/value store with multi-key atomic batches.
"""

from __future__ import annotations

from ..extensions import db


class UnitOfWork:
    """Interface: begin, stage writes, then commit-or-abort-all."""

    def begin(self) -> None:
        raise NotImplementedError

    def add(self, obj) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        raise NotImplementedError

    def commit(self) -> None:
        raise NotImplementedError

    def rollback(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work over the Flask-SQLAlchemy scoped session.

    Staged objects become visible to later queries in the same unit through
    autoflush; nothing is durable until commit().
    """

    def __init__(self, session=None):
        self.session = session or db.session
        self.committed = False

    def begin(self) -> None:
        self.committed = False

    def add(self, obj) -> None:
        self.session.add(obj)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()
        self.committed = True

    def rollback(self) -> None:
        self.session.rollback()
