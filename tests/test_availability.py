import pytest
from datetime import date, datetime

from tourbook.services.availability import AvailabilityChecker


class TestAvailabilityChecker:

    @pytest.fixture
    def checker(self, memory_repository):
        return AvailabilityChecker(memory_repository, today=lambda: date(2025, 6, 1))

    def test_empty_calendar_is_available(self, checker):
        assert checker.is_date_available(date(2025, 6, 10)) is True
        assert checker.list_unavailable_dates() == []

    def test_pending_booking_blocks_date(self, checker, memory_repository, make_booking):
        memory_repository.create(make_booking())

        assert checker.is_date_available(date(2025, 6, 10)) is False
        assert checker.list_unavailable_dates() == [date(2025, 6, 10)]

    def test_time_of_day_is_ignored(self, checker, memory_repository, make_booking):
        memory_repository.create(make_booking())

        assert checker.is_date_available(datetime(2025, 6, 10, 23, 30)) is False
        assert checker.is_date_available("2025-06-10T14:30:00.000Z") is False
        assert checker.is_date_available("2025-06-11") is True

    def test_cancelled_booking_frees_date(self, checker, memory_repository, make_booking):
        booking = memory_repository.create(make_booking())
        memory_repository.patch(booking.id, {"status": "cancelled"})

        assert checker.is_date_available(date(2025, 6, 10)) is True
        assert checker.list_unavailable_dates() == []

    def test_past_dates_are_not_listed(self, checker, memory_repository, make_booking):
        memory_repository.create(make_booking(client_selected_date=date(2025, 5, 31)))
        memory_repository.create(make_booking(client_selected_date=date(2025, 6, 1)))

        assert checker.list_unavailable_dates() == [date(2025, 6, 1)]

    def test_invalid_date_string_raises(self, checker):
        with pytest.raises(ValueError):
            checker.is_date_available("not-a-date")
