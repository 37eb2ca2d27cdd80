"""
FastAPI dependency providers.

Each collaborator has its own provider so tests can swap any of them through
``app.dependency_overrides``.
"""

import logging
import secrets
from datetime import date
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..config import Settings, get_settings, settings
from ..database import get_db
from ..errors import UnauthorizedError
from ..services.availability import AvailabilityChecker
from ..services.booking_lifecycle import BookingLifecycleService
from ..services.booking_repository import BookingRepository, SqlBookingRepository
from ..services.notifications import LoggingNotifier, Notifier, ResendNotifier
from ..services.reminder_job import ReminderJob
from ..services.tour_catalog import HttpTourCatalog, StaticTourCatalog, TourCatalog
from .dates import today_in

logger = logging.getLogger(__name__)


def get_booking_repository(db: Session = Depends(get_db)) -> BookingRepository:
    return SqlBookingRepository(db)


@lru_cache()
def get_tour_catalog() -> TourCatalog:
    if settings.tour_catalog_url:
        return HttpTourCatalog(
            settings.tour_catalog_url,
            timeout=settings.tour_catalog_timeout_seconds,
            api_token=settings.tour_catalog_token or None,
        )
    if settings.tours_file:
        return StaticTourCatalog.from_file(settings.tours_file)

    logger.warning("No TOUR_CATALOG_URL or TOURS_FILE configured; every tour lookup will miss")
    return StaticTourCatalog()


@lru_cache()
def get_notifier() -> Notifier:
    if settings.resend_api_key:
        return ResendNotifier(
            settings.resend_api_key,
            sender=settings.email_from,
            operator_email=settings.operator_email,
            base_url=settings.resend_base_url,
            timeout=settings.email_timeout_seconds,
        )

    logger.warning("RESEND_API_KEY not set, e-mails will only be logged")
    return LoggingNotifier()


def get_today_provider(config: Settings = Depends(get_settings)) -> Callable[[], date]:
    """Returns a callable giving today's date in the configured timezone"""
    return lambda: today_in(config.timezone)


def get_availability_checker(
    repository: BookingRepository = Depends(get_booking_repository),
    today: Callable[[], date] = Depends(get_today_provider),
) -> AvailabilityChecker:
    return AvailabilityChecker(repository, today)


def get_lifecycle_service(
    repository: BookingRepository = Depends(get_booking_repository),
    tours: TourCatalog = Depends(get_tour_catalog),
    notifier: Notifier = Depends(get_notifier),
    today: Callable[[], date] = Depends(get_today_provider),
    config: Settings = Depends(get_settings),
) -> BookingLifecycleService:
    return BookingLifecycleService(
        repository,
        tours,
        notifier,
        strict_date_exclusivity=config.strict_date_exclusivity,
        today=today,
    )


def get_reminder_job(
    repository: BookingRepository = Depends(get_booking_repository),
    tours: TourCatalog = Depends(get_tour_catalog),
    notifier: Notifier = Depends(get_notifier),
    today: Callable[[], date] = Depends(get_today_provider),
    config: Settings = Depends(get_settings),
) -> ReminderJob:
    return ReminderJob(
        repository, tours, notifier, today=today, concurrency=config.reminder_concurrency
    )


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    config: Settings = Depends(get_settings),
) -> None:
    """
    ``Authorization: Bearer <CRON_SECRET>``. With no secret configured the
    endpoint is open.
    """
    if not config.cron_secret:
        return

    expected = f"Bearer {config.cron_secret}"
    if not authorization or not secrets.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Rejected reminders request with missing or invalid bearer secret")
        raise UnauthorizedError("Unauthorized")
