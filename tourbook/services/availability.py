"""
Date availability.

A calendar date is occupied when an active (not soft-deleted) booking in
``pending`` or ``confirmed`` status sits on it. Cancelled bookings free the date.

The bulk query feeds the booking form's date picker; the single-date check is
what the write path re-validates on date changes.
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Union

from .booking_repository import BookingRepository
from ..utils.dates import to_calendar_date

logger = logging.getLogger(__name__)


class AvailabilityChecker:

    def __init__(self, repository: BookingRepository, today: Callable[[], date] = date.today):
        self.repository = repository
        self.today = today

    def is_date_available(self, day: Union[date, datetime, str]) -> bool:
        """True iff no active pending/confirmed booking exists on that calendar date"""
        return not self.repository.exists_active_on(to_calendar_date(day))

    def list_unavailable_dates(self) -> List[date]:
        """Distinct occupied dates from today on, ascending"""
        dates = self.repository.occupied_dates(self.today())
        logger.debug(f"{len(dates)} unavailable dates from {self.today()}")
        return dates
