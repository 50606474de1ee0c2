# backend/spareparts/core/locking.py
from __future__ import annotations
from typing import Optional, Type, TypeVar

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

T = TypeVar("T")


def dialect_name(db: Session) -> str:
    bind = db.get_bind()
    return bind.dialect.name if bind is not None else "unknown"


def lock_for_update(db: Session, model: Type[T], pk: int) -> Optional[T]:
    """
    Lock one row for the rest of the transaction and read it fresh.
    MSSQL uses UPDLOCK+ROWLOCK; everything else SELECT ... FOR UPDATE
    (SQLite has no row locks and serializes writers on its own).
    """
    if dialect_name(db) == "mssql":
        table = model.__table__
        pk_col = inspect(model).primary_key[0]
        db.execute(
            text(f"SELECT {pk_col.name} FROM [{table.name}] WITH (UPDLOCK, ROWLOCK) WHERE {pk_col.name}=:pk"),
            {"pk": pk},
        )
        row = db.get(model, pk)
        if row is not None:
            # session cache may hold a stale copy
            db.refresh(row)
        return row

    pk_attr = getattr(model, inspect(model).primary_key[0].key)
    return (
        db.query(model)
        .filter(pk_attr == pk)
        .populate_existing()
        .with_for_update()
        .one_or_none()
    )
