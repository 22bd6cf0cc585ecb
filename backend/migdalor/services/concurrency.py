# Overview: Service-layer helpers for concurrency; insert-if-absent against unique constraints.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _conflict_ignoring_insert(table, dialect_name: str):
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert
        return sqlite_insert(table).on_conflict_do_nothing()
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert
        return pg_insert(table).on_conflict_do_nothing()
    if dialect_name in {"mysql", "mariadb"}:
        return insert(table).prefix_with("IGNORE")
    return None


def insert_ignoring_conflicts(model, rows: Iterable[dict]) -> int:
    """
    Insert rows, silently skipping any that collide with a unique constraint.

    Callers filter out rows they already know exist; this guards the gap
    between that read and the write (another writer at a day rollover, an
    overlapping run). Flushes pending ORM state first, does not commit.

    Returns the number of rows the database reports as inserted.
    """
    rows = list(rows)
    if not rows:
        return 0

    db.session.flush()
    table = model.__table__
    dialect_name = db.session.get_bind().dialect.name
    stmt = _conflict_ignoring_insert(table, dialect_name)

    if stmt is not None:
        result = db.session.execute(stmt, rows)
        if result.rowcount is None or result.rowcount < 0:
            return len(rows)
        return result.rowcount

    # Generic dialects: one savepoint per row so a conflict only drops that row.
    inserted = 0
    for row in rows:
        try:
            with db.session.begin_nested():
                db.session.execute(insert(table), [row])
            inserted += 1
        except IntegrityError:
            continue
    return inserted
