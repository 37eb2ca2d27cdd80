"""
In-memory booking repository.

Process-local and lost on restart; used for local development without a
database and to check that the SQL repository behaves the same way.
"""

import itertools
import threading
import uuid
from dataclasses import asdict, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from ..errors import ConflictError
from ..models.booking import BookingRecord, NewBooking, OCCUPYING_STATUSES
from ..utils.dates import utc_now
from .booking_repository import BookingFilters, BookingRepository, check_patch_fields


class InMemoryBookingRepository(BookingRepository):

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self._rows: Dict[str, BookingRecord] = {}
        # insertion order breaks created_at ties
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def _visible(self) -> List[BookingRecord]:
        return [row for row in self._rows.values() if row.deleted_at is None]

    def _is_occupied(self, day: date, exclude_id: Optional[str] = None) -> bool:
        return any(
            row.client_selected_date == day
            and row.status in OCCUPYING_STATUSES
            and row.id != exclude_id
            for row in self._visible()
        )

    def _insert(self, data: NewBooking) -> BookingRecord:
        now = self.clock()
        record = BookingRecord(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            deleted_at=None,
            **asdict(data)
        )
        self._rows[record.id] = record
        self._sequence[record.id] = next(self._counter)
        return record

    def create(self, data: NewBooking) -> BookingRecord:
        with self._lock:
            return self._insert(data)

    def create_exclusive(self, data: NewBooking) -> BookingRecord:
        with self._lock:
            day = data.client_selected_date
            if self._is_occupied(day):
                raise ConflictError(f"Date {day.isoformat()} is already booked")
            return self._insert(data)

    def get_by_id(self, booking_id: str) -> Optional[BookingRecord]:
        with self._lock:
            row = self._rows.get(booking_id)
            if row is None or row.deleted_at is not None:
                return None
            return row

    def list(self, filters: Optional[BookingFilters] = None) -> List[BookingRecord]:
        filters = filters or BookingFilters()
        today = filters.reference_day()

        def matches(row: BookingRecord) -> bool:
            day = row.client_selected_date
            if filters.status and row.status != filters.status:
                return False
            if filters.payment_status and row.payment_status != filters.payment_status:
                return False
            if filters.future is not None and (day >= today) != filters.future:
                return False
            if filters.past is not None and (day < today) != filters.past:
                return False
            if filters.date_range:
                start, end = filters.date_range
                if not (start <= day < end):
                    return False
            return True

        with self._lock:
            rows = [row for row in self._visible() if matches(row)]
            rows.sort(key=lambda row: (row.created_at, self._sequence[row.id]), reverse=True)
            return rows

    def patch(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        check_patch_fields(fields)
        with self._lock:
            row = self.get_by_id(booking_id)
            if row is None:
                return None
            updated = replace(row, updated_at=self.clock(), **fields)
            self._rows[booking_id] = updated
            return updated

    def patch_exclusive(self, booking_id: str, fields: Dict[str, Any]) -> Optional[BookingRecord]:
        check_patch_fields(fields)
        day = fields["client_selected_date"]
        with self._lock:
            if self._is_occupied(day, exclude_id=booking_id):
                raise ConflictError(f"Date {day.isoformat()} is already booked")
            return self.patch(booking_id, fields)

    def soft_delete(self, booking_id: str) -> bool:
        with self._lock:
            row = self.get_by_id(booking_id)
            if row is None:
                return False
            self._rows[booking_id] = replace(row, deleted_at=self.clock())
            return True

    def exists_active_on(self, day: date) -> bool:
        with self._lock:
            return self._is_occupied(day)

    def occupied_dates(self, from_day: date) -> List[date]:
        with self._lock:
            return sorted({
                row.client_selected_date
                for row in self._visible()
                if row.client_selected_date >= from_day and row.status in OCCUPYING_STATUSES
            })
