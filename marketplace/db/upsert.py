# marketplace/db/upsert.py
"""
Idempotent inserts for reference data and join rows.

The pattern is insert-ignore-conflict followed by a re-select by natural key.
Two concurrent callers both attempt the insert; the loser's insert is a
no-op and its re-select reads the winner's row.

Pending ORM objects are flushed first so foreign keys to rows added in the
same session resolve.
"""
from typing import Any, Dict, Iterable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def _dialect_insert(db: Session, target):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(target)
    if dialect == "sqlite":
        return sqlite.insert(target)
    raise RuntimeError(f"Upserts are not supported on the {dialect} dialect")


def insert_ignore(db: Session, target, values: Dict[str, Any], conflict_columns: Iterable[str]) -> None:
    db.flush()
    stmt = _dialect_insert(db, target).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    db.execute(stmt)


def upsert(
    db: Session,
    target,
    values: Dict[str, Any],
    conflict_columns: Iterable[str],
    update_values: Dict[str, Any],
) -> None:
    db.flush()
    stmt = _dialect_insert(db, target).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=update_values)
    db.execute(stmt)
