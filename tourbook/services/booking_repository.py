"""
Booking Repository

Persistence operations over the booking collection:
- create / get_by_id / list / patch / soft_delete
- the two availability queries (single date, all occupied dates)
- exclusive create and date move (check-then-write under a per-date lock)

Soft delete is a tombstone: ``deleted_at`` is set once and never cleared, and
every read goes through ``_active()`` so a tombstoned booking can't leak into
a new query.
"""

import abc
import logging
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ConflictError, PersistenceError
from ..models.booking import (
    Booking,
    BookingRecord,
    NewBooking,
    MUTABLE_FIELDS,
    OCCUPYING_STATUSES,
)
from ..utils.dates import utc_now
from ..utils.db_helpers import acquire_date_lock, acquire_row_lock

logger = logging.getLogger(__name__)


@dataclass
class BookingFilters:
    """
    Optional filters for listing bookings. All given filters are combined.

    future=True  -> date >= today,  future=False -> date < today
    past=True    -> date < today,   past=False   -> date >= today
    date_range   -> start <= date < end
    """
    status: Optional[str] = None
    payment_status: Optional[str] = None
    future: Optional[bool] = None
    past: Optional[bool] = None
    date_range: Optional[Tuple[date, date]] = None
    # Reference "today" for future/past; defaults to the local date
    today: Optional[date] = None

    def reference_day(self) -> date:
        return self.today or date.today()


def check_patch_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot patch booking fields: {', '.join(sorted(unknown))}")


class BookingRepository(abc.ABC):
    """Storage contract shared by the durable and in-memory implementations."""

    @abc.abstractmethod
    def create(self, data: NewBooking) -> BookingRecord:
        """Persist a new booking with a generated id and timestamps."""

    @abc.abstractmethod
    def create_exclusive(self, data: NewBooking) -> BookingRecord:
        """Create only if the date is not occupied; raise ConflictError otherwise."""

    @abc.abstractmethod
    def get_by_id(self, booking_id: str) -> Optional[BookingRecord]:
        """Active booking or None (absent and soft-deleted look the same)."""

    @abc.abstractmethod
    def list(self, filters: Optional[BookingFilters] = None) -> List[BookingRecord]:
        """Active bookings matching filters, most recently created first."""

    @abc.abstractmethod
    def patch(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        """Apply only the given fields and refresh updated_at. None if not active."""

    @abc.abstractmethod
    def patch_exclusive(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        """Patch that moves the booking to ``fields['client_selected_date']`` only
        if no other booking occupies it; raise ConflictError otherwise."""

    @abc.abstractmethod
    def soft_delete(self, booking_id: str) -> bool:
        """Tombstone the booking. False if not found or already deleted."""

    @abc.abstractmethod
    def exists_active_on(self, day: date) -> bool:
        """True if an active pending/confirmed booking sits on ``day``."""

    @abc.abstractmethod
    def occupied_dates(self, from_day: date) -> List[date]:
        """Distinct occupied dates on or after ``from_day``, ascending."""


class SqlBookingRepository(BookingRepository):
    """SQLAlchemy implementation. One instance per request session."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    @contextmanager
    def _store_errors(self, action: str, **context):
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e} | context={context}", exc_info=True)
            raise PersistenceError(f"Failed to {action}") from e

    def _active(self):
        """Base query for every read path: excludes tombstoned bookings"""
        return self.db.query(Booking).filter(Booking.deleted_at.is_(None))

    def _occupying(self, day: date):
        return self._active().filter(
            Booking.client_selected_date == day,
            Booking.status.in_(OCCUPYING_STATUSES)
        )

    def _new_row(self, data: NewBooking) -> Booking:
        now = self.clock()
        return Booking(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            deleted_at=None,
            **asdict(data)
        )

    def create(self, data: NewBooking) -> BookingRecord:
        with self._store_errors("create booking", tour_id=data.tour_id, date=str(data.client_selected_date)):
            row = self._new_row(data)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_record()

    def create_exclusive(self, data: NewBooking) -> BookingRecord:
        day = data.client_selected_date
        with self._store_errors("create booking", tour_id=data.tour_id, date=str(day)):
            acquire_date_lock(self.db, day)

            if self._occupying(day).with_entities(Booking.id).first() is not None:
                self.db.rollback()
                raise ConflictError(f"Date {day.isoformat()} is already booked")

            row = self._new_row(data)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row.to_record()

    def get_by_id(self, booking_id: str) -> Optional[BookingRecord]:
        with self._store_errors("fetch booking", booking_id=booking_id):
            row = self._active().filter(Booking.id == booking_id).first()
            return row.to_record() if row else None

    def list(self, filters: Optional[BookingFilters] = None) -> List[BookingRecord]:
        filters = filters or BookingFilters()
        today = filters.reference_day()
        query = self._active()

        if filters.status:
            query = query.filter(Booking.status == filters.status)

        if filters.payment_status:
            query = query.filter(Booking.payment_status == filters.payment_status)

        if filters.future is not None:
            if filters.future:
                query = query.filter(Booking.client_selected_date >= today)
            else:
                query = query.filter(Booking.client_selected_date < today)

        if filters.past is not None:
            if filters.past:
                query = query.filter(Booking.client_selected_date < today)
            else:
                query = query.filter(Booking.client_selected_date >= today)

        if filters.date_range:
            start, end = filters.date_range
            query = query.filter(
                Booking.client_selected_date >= start,
                Booking.client_selected_date < end
            )

        with self._store_errors("fetch bookings", filters=asdict(filters)):
            rows = query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
            return [row.to_record() for row in rows]

    def _apply_patch(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        # lock the row so concurrent patches don't interleave
        row = acquire_row_lock(
            self.db, Booking,
            (Booking.id == booking_id) & Booking.deleted_at.is_(None)
        )
        if row is None:
            self.db.rollback()
            return None

        for field, value in fields.items():
            setattr(row, field, value)
        row.updated_at = self.clock()

        self.db.commit()
        self.db.refresh(row)
        return row.to_record()

    def patch(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        check_patch_fields(fields)
        with self._store_errors("update booking", booking_id=booking_id, fields=sorted(fields)):
            return self._apply_patch(booking_id, fields)

    def patch_exclusive(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        check_patch_fields(fields)
        day = fields["client_selected_date"]
        with self._store_errors("update booking", booking_id=booking_id, date=str(day)):
            acquire_date_lock(self.db, day)

            taken = (
                self._occupying(day)
                .filter(Booking.id != booking_id)
                .with_entities(Booking.id)
                .first()
            )
            if taken is not None:
                self.db.rollback()
                raise ConflictError(f"Date {day.isoformat()} is already booked")

            return self._apply_patch(booking_id, fields)

    def soft_delete(self, booking_id: str) -> bool:
        with self._store_errors("soft delete booking", booking_id=booking_id):
            changed = self.db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.deleted_at.is_(None)
            ).update({Booking.deleted_at: self.clock()}, synchronize_session=False)
            self.db.commit()
            return changed > 0

    def exists_active_on(self, day: date) -> bool:
        with self._store_errors("check date availability", date=str(day)):
            return self._occupying(day).with_entities(Booking.id).first() is not None

    def occupied_dates(self, from_day: date) -> List[date]:
        with self._store_errors("fetch unavailable dates", from_day=str(from_day)):
            rows = (
                self._active()
                .with_entities(Booking.client_selected_date)
                .filter(
                    Booking.client_selected_date >= from_day,
                    Booking.status.in_(OCCUPYING_STATUSES)
                )
                .distinct()
                .order_by(Booking.client_selected_date)
                .all()
            )
            return [row[0] for row in rows]
