# Overview: Conditional updates and database error translation shared by the workflow services.

from __future__ import annotations

import logging

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from ..errors import StoreUnavailable
from ..extensions import db

logger = logging.getLogger(__name__)


def compare_and_set(model, ident: int, *, expected: dict, patch: dict) -> int:
    """
    UPDATE model SET patch WHERE id = ident AND every `expected` column matches.

    Returns the number of rows affected. Zero means the row is gone or no
    longer matches; callers decide which error that is. Nothing is
    committed here.
    """
    query = db.session.query(model).filter(model.id == ident)
    for column, value in expected.items():
        query = query.filter(getattr(model, column) == value)
    affected = query.update(patch, synchronize_session=False)
    return affected


def is_unique_violation(exc: IntegrityError, constraint_name: str, *columns: str) -> bool:
    """
    Best-effort check that an IntegrityError came from a particular unique index.

    PostgreSQL reports the constraint name; SQLite only reports
    "UNIQUE constraint failed: table.column".
    """
    message = str(getattr(exc, "orig", exc))
    if constraint_name in message:
        return True
    if "UNIQUE" not in message.upper():
        return False
    return any(column in message for column in columns)


def flush_or_raise(on_unique=None):
    """
    Flush pending writes, translating driver errors.

    `on_unique(exc)` may return an exception to raise for a unique violation;
    returning None re-raises the original IntegrityError.
    """
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        mapped = on_unique(exc) if on_unique else None
        if mapped is not None:
            raise mapped from exc
        raise
    except (OperationalError, DBAPIError) as exc:
        db.session.rollback()
        logger.warning("Database flush failed: %s", exc)
        raise StoreUnavailable() from exc


def commit_or_raise():
    """Commit the current transaction; on failure roll back so nothing is half-written."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except (OperationalError, DBAPIError) as exc:
        db.session.rollback()
        logger.warning("Database commit failed: %s", exc)
        raise StoreUnavailable() from exc
