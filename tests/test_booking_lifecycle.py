"""
Booking Lifecycle Tests

Test Coverage:
1. Submission: validation, past dates, unknown tour, price snapshot
2. E-mails are best effort
3. Status / payment transitions
4. Date changes respect availability
5. Strict date exclusivity, for creates and date moves
"""

import asyncio
import httpx
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from tourbook.errors import ConflictError, NotFoundError, NotificationError, ValidationError
from tourbook.services.booking_repository import BookingFilters
from tourbook.services.booking_lifecycle import (
    BookingLifecycleService,
    PAYMENT_TRANSITIONS,
    STATUS_TRANSITIONS,
    check_transition,
)
from tourbook.services.notifications import Notifier
from tourbook.services.tour_catalog import HttpTourCatalog, Tour

TODAY = date(2025, 6, 1)


@pytest.fixture
def service(memory_repository, tours, notifier):
    return BookingLifecycleService(memory_repository, tours, notifier, today=lambda: TODAY)


class TestSubmitBooking:

    def test_creates_pending_booking_with_tour_price(self, service, form_payload, notifier):
        booking = asyncio.run(service.submit_booking(form_payload))

        assert booking.status == "pending"
        assert booking.payment_status == "pending"
        assert booking.payment_method is None
        assert booking.price == Decimal("120.00")
        assert booking.client_selected_date == date(2025, 6, 10)
        assert booking.client_phone == "912 345 678"
        assert booking.client_phone_country_code == "+351"

        subjects = [m["subject"] for m in notifier.sent]
        assert "Booking Confirmation - Lisbon Old Town" in subjects
        assert any(s.startswith("New Booking - Lisbon Old Town on ") for s in subjects)

    def test_price_is_a_snapshot(self, service, form_payload, tours):
        booking = asyncio.run(service.submit_booking(form_payload))

        tours.add(Tour(id="tour-1", title="Lisbon Old Town", price=Decimal("999.00")))

        assert service.get_booking(booking.id).price == Decimal("120.00")

    def test_datetime_input_keeps_calendar_date(self, service, form_payload):
        form_payload["date"] = "2025-06-10T14:30:00.000Z"

        booking = asyncio.run(service.submit_booking(form_payload))

        assert booking.client_selected_date == date(2025, 6, 10)

    def test_today_is_accepted(self, service, form_payload):
        form_payload["date"] = "2025-06-01"

        booking = asyncio.run(service.submit_booking(form_payload))

        assert booking.client_selected_date == TODAY

    def test_past_date_rejected(self, service, form_payload, memory_repository):
        form_payload["date"] = "2025-05-31"

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(service.submit_booking(form_payload))

        assert exc_info.value.details[0]["field"] == "date"
        assert memory_repository.list() == []

    def test_unknown_tour_is_not_found(self, service, form_payload, memory_repository):
        form_payload["tourId"] = "no-such-tour"

        with pytest.raises(NotFoundError):
            asyncio.run(service.submit_booking(form_payload))

        assert memory_repository.list() == []

    def test_tour_with_non_positive_cms_price_is_not_found(
        self, memory_repository, notifier, form_payload
    ):
        def handler(request):
            return httpx.Response(200, json={"id": "tour-1", "title": "Lisbon Old Town", "price": 0})

        catalog = HttpTourCatalog(
            "https://cms.example.com", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        service = BookingLifecycleService(memory_repository, catalog, notifier, today=lambda: TODAY)

        with pytest.raises(NotFoundError):
            asyncio.run(service.submit_booking(form_payload))

        assert memory_repository.list() == []

    @pytest.mark.parametrize("field,value", [
        ("email", "not-an-email"),
        ("name", "A"),
        ("name", "R2-D2"),
        ("phoneNumber", "12345"),
        ("phoneNumber", "+351 912"),
        ("country", "P"),
        ("message", "x" * 1001),
    ])
    def test_invalid_fields_rejected(self, service, form_payload, field, value):
        form_payload[field] = value

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(service.submit_booking(form_payload))

        assert field in [d["field"] for d in exc_info.value.details]

    def test_missing_field_rejected(self, service, form_payload):
        del form_payload["tourId"]

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(service.submit_booking(form_payload))

        assert "tourId" in [d["field"] for d in exc_info.value.details]

    def test_accented_names_are_accepted(self, service, form_payload):
        form_payload["name"] = "José O'Brien-Gonçalves Jr."

        booking = asyncio.run(service.submit_booking(form_payload))

        assert booking.client_name == "José O'Brien-Gonçalves Jr."

    def test_script_tags_stripped_from_message(self, service, form_payload):
        form_payload["message"] = "Hello<script>alert(1)</script> there"

        booking = asyncio.run(service.submit_booking(form_payload))

        assert booking.client_message == "Hello there"

    def test_email_failure_does_not_undo_booking(self, memory_repository, tours, form_payload):
        notifier = AsyncMock(spec=Notifier)
        notifier.send_confirmation.side_effect = NotificationError("provider down")
        notifier.send_operator_notification.side_effect = NotificationError("provider down")
        service = BookingLifecycleService(memory_repository, tours, notifier, today=lambda: TODAY)

        booking = asyncio.run(service.submit_booking(form_payload))

        assert memory_repository.get_by_id(booking.id) is not None
        notifier.send_confirmation.assert_awaited_once()
        notifier.send_operator_notification.assert_awaited_once()

    def test_same_date_allowed_without_strict_mode(self, service, form_payload, memory_repository):
        asyncio.run(service.submit_booking(form_payload))
        asyncio.run(service.submit_booking(form_payload))

        assert len(memory_repository.list()) == 2

    def test_strict_mode_rejects_occupied_date(self, memory_repository, tours, notifier, form_payload):
        service = BookingLifecycleService(
            memory_repository, tours, notifier, strict_date_exclusivity=True, today=lambda: TODAY
        )
        asyncio.run(service.submit_booking(form_payload))

        with pytest.raises(ConflictError):
            asyncio.run(service.submit_booking(form_payload))

        assert len(memory_repository.list()) == 1


class TestTransitions:

    @pytest.mark.parametrize("current,requested", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "cancelled"),
        ("confirmed", "confirmed"),
        ("cancelled", "cancelled"),
    ])
    def test_allowed_status_changes(self, current, requested):
        check_transition("status", STATUS_TRANSITIONS, current, requested)

    @pytest.mark.parametrize("current,requested", [
        ("confirmed", "pending"),
        ("cancelled", "pending"),
        ("cancelled", "confirmed"),
    ])
    def test_rejected_status_changes(self, current, requested):
        with pytest.raises(ValidationError):
            check_transition("status", STATUS_TRANSITIONS, current, requested)

    @pytest.mark.parametrize("current,requested,allowed", [
        ("pending", "paid", True),
        ("pending", "failed", True),
        ("failed", "pending", True),
        ("failed", "paid", True),
        ("paid", "paid", True),
        ("paid", "pending", False),
        ("paid", "failed", False),
    ])
    def test_payment_changes(self, current, requested, allowed):
        if allowed:
            check_transition("paymentStatus", PAYMENT_TRANSITIONS, current, requested)
        else:
            with pytest.raises(ValidationError):
                check_transition("paymentStatus", PAYMENT_TRANSITIONS, current, requested)


class TestUpdateBooking:

    @pytest.fixture
    def booking(self, memory_repository, make_booking):
        return memory_repository.create(make_booking())

    def test_confirm_and_pay(self, service, booking):
        updated = asyncio.run(service.update_booking(booking.id, {
            "status": "confirmed", "paymentStatus": "paid", "paymentMethod": "card"
        }))

        assert updated.status == "confirmed"
        assert updated.payment_status == "paid"
        assert updated.payment_method == "card"
        assert updated.updated_at > booking.updated_at

    def test_cannot_reopen_confirmed_booking(self, service, booking, memory_repository):
        asyncio.run(service.update_booking(booking.id, {"status": "confirmed"}))

        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"status": "pending"}))

        assert memory_repository.get_by_id(booking.id).status == "confirmed"

    def test_invalid_enum_value_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"status": "archived"}))

    def test_unknown_field_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"tourId": "tour-2"}))

    def test_null_status_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"status": None}))

    def test_payment_method_can_be_cleared(self, service, booking):
        asyncio.run(service.update_booking(booking.id, {"paymentMethod": "cash"}))

        updated = asyncio.run(service.update_booking(booking.id, {"paymentMethod": None}))

        assert updated.payment_method is None

    def test_price_override(self, service, booking):
        updated = asyncio.run(service.update_booking(booking.id, {"price": 99.5}))

        assert updated.price == Decimal("99.5")

    def test_non_positive_price_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"price": 0}))

    def test_missing_booking(self, service):
        with pytest.raises(NotFoundError):
            asyncio.run(service.update_booking("missing", {"status": "confirmed"}))

    def test_move_to_free_date(self, service, booking):
        updated = asyncio.run(service.update_booking(booking.id, {"clientSelectedDate": "2025-06-12"}))

        assert updated.client_selected_date == date(2025, 6, 12)

    def test_move_to_occupied_date_conflicts_and_changes_nothing(
        self, service, booking, memory_repository, make_booking
    ):
        memory_repository.create(make_booking(client_selected_date=date(2025, 6, 12)))

        with pytest.raises(ConflictError):
            asyncio.run(service.update_booking(booking.id, {
                "clientSelectedDate": "2025-06-12", "status": "confirmed"
            }))

        unchanged = memory_repository.get_by_id(booking.id)
        assert unchanged.client_selected_date == date(2025, 6, 10)
        assert unchanged.status == "pending"
        assert unchanged.updated_at == booking.updated_at

    def test_keeping_own_date_is_not_a_conflict(self, service, booking):
        updated = asyncio.run(service.update_booking(booking.id, {
            "clientSelectedDate": "2025-06-10", "status": "confirmed"
        }))

        assert updated.status == "confirmed"

    def test_move_to_past_date_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {"clientSelectedDate": "2025-05-01"}))

    def test_cancelled_move_onto_occupied_date_is_allowed(
        self, service, booking, memory_repository, make_booking
    ):
        memory_repository.create(make_booking(client_selected_date=date(2025, 6, 12)))

        updated = asyncio.run(service.update_booking(booking.id, {
            "clientSelectedDate": "2025-06-12", "status": "cancelled"
        }))

        assert updated.status == "cancelled"
        assert updated.client_selected_date == date(2025, 6, 12)

    def test_cancelled_move_to_past_date_still_rejected(self, service, booking):
        with pytest.raises(ValidationError):
            asyncio.run(service.update_booking(booking.id, {
                "clientSelectedDate": "2025-05-01", "status": "cancelled"
            }))

    def test_strict_mode_moves_through_exclusive_patch(self, booking, memory_repository, tours, notifier):
        repository = MagicMock(wraps=memory_repository)
        service = BookingLifecycleService(
            repository, tours, notifier, strict_date_exclusivity=True, today=lambda: TODAY
        )

        asyncio.run(service.update_booking(booking.id, {"clientSelectedDate": "2025-06-12"}))

        repository.patch_exclusive.assert_called_once_with(
            booking.id, {"client_selected_date": date(2025, 6, 12)}
        )
        repository.patch.assert_not_called()

    def test_strict_mode_rejects_move_to_occupied_date(
        self, booking, memory_repository, tours, notifier, make_booking
    ):
        memory_repository.create(make_booking(client_selected_date=date(2025, 6, 12)))
        service = BookingLifecycleService(
            memory_repository, tours, notifier, strict_date_exclusivity=True, today=lambda: TODAY
        )

        with pytest.raises(ConflictError):
            asyncio.run(service.update_booking(booking.id, {"clientSelectedDate": "2025-06-12"}))

        assert memory_repository.get_by_id(booking.id).client_selected_date == date(2025, 6, 10)


class TestRemoveBooking:

    def test_remove_then_not_found(self, service, memory_repository, make_booking):
        booking = memory_repository.create(make_booking())

        service.remove_booking(booking.id)

        with pytest.raises(NotFoundError):
            service.get_booking(booking.id)
        with pytest.raises(NotFoundError):
            service.remove_booking(booking.id)

    def test_list_bookings_uses_service_today(self, service, memory_repository, make_booking):
        memory_repository.create(make_booking(client_selected_date=date(2025, 5, 1)))
        upcoming = memory_repository.create(make_booking(client_selected_date=date(2025, 6, 2)))

        result = service.list_bookings(BookingFilters(future=True))

        assert [b.id for b in result] == [upcoming.id]

    def test_list_bookings_leaves_caller_filters_untouched(self, service):
        filters = BookingFilters(future=True)

        service.list_bookings(filters)

        assert filters.today is None
