# Services package
from .booking_repository import BookingRepository, BookingFilters, SqlBookingRepository
from .memory_repository import InMemoryBookingRepository
from .availability import AvailabilityChecker
from .tour_catalog import Tour, TourCatalog, HttpTourCatalog, StaticTourCatalog
from .notifications import Notifier, ResendNotifier, LoggingNotifier
from .booking_lifecycle import BookingLifecycleService
from .reminder_job import ReminderJob, ReminderResult, ReminderOutcome

__all__ = [
    "BookingRepository", "BookingFilters", "SqlBookingRepository",
    "InMemoryBookingRepository",
    "AvailabilityChecker",
    "Tour", "TourCatalog", "HttpTourCatalog", "StaticTourCatalog",
    "Notifier", "ResendNotifier", "LoggingNotifier",
    "BookingLifecycleService",
    "ReminderJob", "ReminderResult", "ReminderOutcome",
]
