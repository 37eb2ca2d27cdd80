"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row-level locking for read-modify-write updates
- Per-date locking for check-then-create of bookings
"""

import logging
from datetime import date
from typing import Optional, TypeVar, Type
from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Keeps booking date locks apart from any other advisory locks on the database
DATE_LOCK_NAMESPACE = 0x54_42_00_00_00


def dialect_name(db: Session) -> str:
    try:
        return db.bind.dialect.name
    except Exception:
        return ""


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    return dialect_name(db) == 'postgresql'


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    return dialect_name(db) == 'sqlite'


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise error immediately if lock unavailable (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Example:
        booking = acquire_row_lock(db, Booking, Booking.id == booking_id)
    """
    query = db.query(model).filter(filter_condition)

    # Only apply locking on PostgreSQL
    if is_postgres(db):
        query = query.with_for_update(nowait=nowait)

    return query.first()


def date_lock_key(day: date) -> int:
    return DATE_LOCK_NAMESPACE + day.toordinal()


def acquire_date_lock(db: Session, day: date) -> None:
    """
    Serialize writers that target the same calendar date until the current
    transaction ends.

    - PostgreSQL: transaction-scoped advisory lock keyed by the date.
    - SQLite: a no-op write opens the write transaction up front; SQLite has a
      single writer, so a competing creator waits until this one commits.

    Must be the first statement of the transaction.
    """
    if is_postgres(db):
        db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": date_lock_key(day)}
        )
    elif is_sqlite(db):
        db.execute(text("UPDATE bookings SET id = id WHERE 1 = 0"))
    else:
        logger.warning(
            f"No date lock available for dialect '{dialect_name(db)}', "
            f"exclusive create on {day} relies on the availability check only"
        )
