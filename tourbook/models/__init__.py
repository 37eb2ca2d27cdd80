# Models package
from .booking import (
    Booking,
    BookingRecord,
    NewBooking,
    BookingStatus,
    PaymentStatus,
    PaymentMethod,
    OCCUPYING_STATUSES,
    MUTABLE_FIELDS,
)

__all__ = [
    "Booking", "BookingRecord", "NewBooking",
    "BookingStatus", "PaymentStatus", "PaymentMethod",
    "OCCUPYING_STATUSES", "MUTABLE_FIELDS",
]
