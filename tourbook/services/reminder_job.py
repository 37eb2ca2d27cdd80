"""
Tour Reminder Job

Sends a "your tour is tomorrow" e-mail to every client with a booking on the
next calendar date. Triggered externally (cron hitting the reminders endpoint);
there is no in-process scheduler.

Every booking is processed independently. A booking whose tour is missing or
can't be looked up is skipped; a failed e-mail is recorded as a failure and the
batch carries on.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

from ..models.booking import BookingRecord, BookingStatus
from ..utils.dates import tomorrow_window
from ..utils.logging_config import get_logger
from .booking_repository import BookingFilters, BookingRepository
from .notifications import Notifier
from .tour_catalog import TourCatalog

logger = get_logger(__name__)


SENT = "sent"
FAILED = "failed"
SKIPPED_NO_TOUR = "skipped_no_tour"


@dataclass
class ReminderOutcome:
    booking_id: str
    status: str
    error: Optional[str] = None


@dataclass
class ReminderResult:
    """Batch summary. total == sent + failed + skipped"""
    total: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[ReminderOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[ReminderOutcome]) -> "ReminderResult":
        return cls(
            total=len(outcomes),
            sent=sum(1 for o in outcomes if o.status == SENT),
            failed=sum(1 for o in outcomes if o.status == FAILED),
            skipped=sum(1 for o in outcomes if o.status == SKIPPED_NO_TOUR),
            outcomes=list(outcomes),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
        }


class ReminderJob:

    def __init__(
        self,
        repository: BookingRepository,
        tours: TourCatalog,
        notifier: Notifier,
        today: Callable[[], date] = date.today,
        concurrency: int = 10,
    ):
        self.repository = repository
        self.tours = tours
        self.notifier = notifier
        self.today = today
        self.concurrency = max(1, concurrency)

    def due_bookings(self) -> List[BookingRecord]:
        """Active, non-cancelled bookings dated tomorrow"""
        today = self.today()
        bookings = self.repository.list(
            BookingFilters(date_range=tomorrow_window(today), today=today)
        )
        return [b for b in bookings if b.status != BookingStatus.CANCELLED.value]

    async def run(self) -> ReminderResult:
        started = time.perf_counter()
        bookings = self.due_bookings()

        if not bookings:
            logger.info("No bookings found for tomorrow, nothing to remind")
            return ReminderResult()

        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(
            *(self._remind(booking, semaphore) for booking in bookings)
        )

        result = ReminderResult.from_outcomes(list(outcomes))
        duration_ms = (time.perf_counter() - started) * 1000
        logger.reminder_batch_completed(
            result.total, result.sent, result.failed, result.skipped, round(duration_ms, 2)
        )
        return result

    async def _remind(self, booking: BookingRecord, semaphore: asyncio.Semaphore) -> ReminderOutcome:
        async with semaphore:
            try:
                tour = await self.tours.get_tour_by_id(booking.tour_id)
            except Exception as e:
                logger.error(f"Tour lookup failed for booking {booking.id}, skipping reminder: {e}")
                return ReminderOutcome(booking.id, SKIPPED_NO_TOUR, str(e))

            if tour is None:
                logger.warning(f"Tour {booking.tour_id} not found for booking {booking.id}, skipping reminder")
                return ReminderOutcome(booking.id, SKIPPED_NO_TOUR)

            try:
                await self.notifier.send_reminder(booking, tour)
            except Exception as e:
                logger.notification_failed(booking.id, "reminder", e)
                return ReminderOutcome(booking.id, FAILED, str(e))

            return ReminderOutcome(booking.id, SENT)
