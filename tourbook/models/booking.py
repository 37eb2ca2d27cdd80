import enum
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, String, Date, Numeric, Text, DateTime, Index

from ..database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CASH = "cash"


# Statuses that make a calendar date unavailable
OCCUPYING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


@dataclass(frozen=True)
class NewBooking:
    """Fields supplied when creating a booking. id and timestamps are set by the repository."""
    client_name: str
    client_email: str
    client_phone: str
    client_phone_country_code: str
    client_country: str
    client_language: str
    client_selected_date: date
    tour_id: str
    price: Decimal
    client_message: Optional[str] = None
    status: str = BookingStatus.PENDING.value
    payment_status: str = PaymentStatus.PENDING.value
    payment_method: Optional[str] = None


@dataclass(frozen=True)
class BookingRecord:
    """A stored booking as returned by every repository implementation."""
    id: str
    client_name: str
    client_email: str
    client_phone: str
    client_phone_country_code: str
    client_country: str
    client_language: str
    client_selected_date: date
    client_message: Optional[str]
    tour_id: str
    price: Decimal
    status: str
    payment_status: str
    payment_method: Optional[str]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


# Fields a patch may touch; id and the timestamps are managed by the repository
MUTABLE_FIELDS = frozenset(f.name for f in fields(NewBooking))


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True)
    client_name = Column(String(100), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(20), nullable=False)
    client_phone_country_code = Column(String(10), nullable=False)
    client_country = Column(String(100), nullable=False)
    client_language = Column(String(50), nullable=False)
    client_selected_date = Column(Date, nullable=False)
    client_message = Column(Text, nullable=True)

    tour_id = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Soft Delete (tombstone, never cleared)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_booking_selected_date", "client_selected_date"),
        Index("ix_booking_status", "status"),
        Index("ix_booking_deleted_at", "deleted_at"),
        Index("ix_booking_created_at", "created_at"),
    )

    def to_record(self) -> BookingRecord:
        return BookingRecord(
            id=self.id,
            client_name=self.client_name,
            client_email=self.client_email,
            client_phone=self.client_phone,
            client_phone_country_code=self.client_phone_country_code,
            client_country=self.client_country,
            client_language=self.client_language,
            client_selected_date=self.client_selected_date,
            client_message=self.client_message,
            tour_id=self.tour_id,
            price=Decimal(self.price),
            status=self.status,
            payment_status=self.payment_status,
            payment_method=self.payment_method,
            created_at=self.created_at,
            updated_at=self.updated_at,
            deleted_at=self.deleted_at,
        )

    def __repr__(self):
        return f"<Booking {self.client_name} - {self.client_selected_date}>"
