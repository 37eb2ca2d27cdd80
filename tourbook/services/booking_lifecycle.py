"""
Booking Lifecycle Service

Orchestrates validation, availability enforcement and state transitions for
creating, updating and removing bookings.

Status machine:      pending -> confirmed -> cancelled, pending -> cancelled
Payment machine:     pending -> paid | failed, failed -> pending | paid

Setting a field to its current value is accepted as a no-op. ``cancelled`` and
``paid`` are terminal.

Creation does not re-check availability unless strict date exclusivity is
enabled: by default two concurrent submissions for the same date can both
succeed (first-come-first-served is enforced on the date picker and on date
changes only). With strict mode the repository re-checks the date under a
per-date lock, for creates and date moves alike, and the second writer gets a
ConflictError.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import NotFoundError, ConflictError, ValidationError
from ..models.booking import (
    BookingRecord,
    BookingStatus,
    NewBooking,
    PaymentStatus,
)
from ..schemas.booking import BookingFormInput, BookingPatch
from ..utils.logging_config import get_logger
from .availability import AvailabilityChecker
from .booking_repository import BookingFilters, BookingRepository
from .notifications import Notifier
from .tour_catalog import Tour, TourCatalog

logger = get_logger(__name__)


STATUS_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    BookingStatus.PENDING.value: frozenset({BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}),
    BookingStatus.CONFIRMED.value: frozenset({BookingStatus.CANCELLED.value}),
    BookingStatus.CANCELLED.value: frozenset(),
}

PAYMENT_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    PaymentStatus.PENDING.value: frozenset({PaymentStatus.PAID.value, PaymentStatus.FAILED.value}),
    PaymentStatus.FAILED.value: frozenset({PaymentStatus.PENDING.value, PaymentStatus.PAID.value}),
    PaymentStatus.PAID.value: frozenset(),
}


def check_transition(
    field: str,
    transitions: Mapping[str, FrozenSet[str]],
    current: str,
    requested: str
) -> None:
    """Raise ValidationError unless current -> requested is allowed"""
    if requested == current:
        return
    if requested not in transitions.get(current, frozenset()):
        raise ValidationError.for_field(
            field, f"Cannot change {field} from '{current}' to '{requested}'"
        )


class BookingLifecycleService:

    def __init__(
        self,
        repository: BookingRepository,
        tours: TourCatalog,
        notifier: Notifier,
        strict_date_exclusivity: bool = False,
        today: Callable[[], date] = date.today,
    ):
        self.repository = repository
        self.tours = tours
        self.notifier = notifier
        self.strict_date_exclusivity = strict_date_exclusivity
        self.today = today
        self.availability = AvailabilityChecker(repository, today)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> BookingRecord:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(self, filters: Optional[BookingFilters] = None) -> List[BookingRecord]:
        filters = filters or BookingFilters()
        if filters.today is None:
            filters = replace(filters, today=self.today())
        return self.repository.list(filters)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def submit_booking(self, form: Union[BookingFormInput, Dict[str, Any]]) -> BookingRecord:
        """
        Validate a reservation, snapshot the tour price and store a pending booking.

        Raises:
            ValidationError: invalid field, or date in the past
            NotFoundError: the tour does not exist
            ConflictError: date taken (strict date exclusivity only)
        """
        if not isinstance(form, BookingFormInput):
            try:
                form = BookingFormInput.model_validate(form)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e.errors())

        if form.selected_date < self.today():
            raise ValidationError.for_field("date", "Date must be today or in the future")

        tour = await self.tours.get_tour_by_id(form.tour_id)
        if tour is None:
            raise NotFoundError("Tour not found")

        data = NewBooking(
            client_name=form.name,
            client_email=str(form.email),
            client_phone=form.phone_number,
            client_phone_country_code=form.phone_country_code,
            client_country=form.country,
            client_language=form.language,
            client_selected_date=form.selected_date,
            client_message=form.message,
            tour_id=form.tour_id,
            price=tour.price,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=None,
        )

        if self.strict_date_exclusivity:
            booking = self.repository.create_exclusive(data)
        else:
            booking = self.repository.create(data)

        logger.booking_created(
            booking.id, booking.tour_id, booking.client_selected_date.isoformat(), float(booking.price)
        )

        await self._send_booking_emails(booking, tour)
        return booking

    async def _send_booking_emails(self, booking: BookingRecord, tour: Tour) -> None:
        """Client confirmation + operator notice. Failures are logged, the booking stands."""
        results = await asyncio.gather(
            self.notifier.send_confirmation(booking, tour),
            self.notifier.send_operator_notification(booking, tour),
            return_exceptions=True,
        )
        for kind, result in zip(("confirmation", "operator"), results):
            if isinstance(result, Exception):
                logger.notification_failed(booking.id, kind, result)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    async def update_booking(
        self,
        booking_id: str,
        patch: Union[BookingPatch, Dict[str, Any]]
    ) -> BookingRecord:
        """
        Apply a partial update.

        A new date is checked against availability first; if it is taken the
        whole patch is rejected with ConflictError and nothing is written.
        A booking that ends up cancelled doesn't claim its new date, so no
        check is made. In strict mode the check runs under the date lock.
        """
        if not isinstance(patch, BookingPatch):
            try:
                patch = BookingPatch.model_validate(patch)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e.errors())

        fields = patch.to_fields()

        current = self.repository.get_by_id(booking_id)
        if current is None:
            raise NotFoundError("Booking not found")

        if "status" in fields:
            check_transition("status", STATUS_TRANSITIONS, current.status, fields["status"])

        if "payment_status" in fields:
            check_transition(
                "paymentStatus", PAYMENT_TRANSITIONS, current.payment_status, fields["payment_status"]
            )

        new_date = fields.get("client_selected_date")
        resulting_status = fields.get("status", current.status)
        moves_date = new_date is not None and new_date != current.client_selected_date
        # a cancelled booking never occupies a date
        claims_date = moves_date and resulting_status != BookingStatus.CANCELLED.value

        if moves_date and new_date < self.today():
            raise ValidationError.for_field(
                "clientSelectedDate", "Date must be today or in the future"
            )

        if claims_date and self.strict_date_exclusivity:
            updated = self.repository.patch_exclusive(booking_id, fields)
        else:
            if claims_date and not self.availability.is_date_available(new_date):
                raise ConflictError(f"Date {new_date.isoformat()} is already booked")
            updated = self.repository.patch(booking_id, fields)

        if updated is None:
            # soft-deleted between the read and the write
            raise NotFoundError("Booking not found")

        if updated.status != current.status:
            logger.booking_status_changed(booking_id, current.status, updated.status)

        return updated

    def remove_booking(self, booking_id: str) -> None:
        """Soft delete. NotFoundError if the booking is absent or already deleted."""
        if not self.repository.soft_delete(booking_id):
            raise NotFoundError("Booking not found")
        logger.log_with_context(logging.INFO, "Booking soft deleted", entity_type="booking", entity_id=booking_id)
