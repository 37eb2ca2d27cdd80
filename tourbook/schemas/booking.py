from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal
import re

from ..models.booking import BookingRecord, BookingStatus, PaymentStatus, PaymentMethod
from ..utils.dates import to_calendar_date

MAX_MESSAGE_LENGTH = 1000

NAME_PUNCTUATION = "'.-"


def strip_markup(v):
    """Remove script tags and inline event handlers from free text"""
    if isinstance(v, str):
        v = re.sub(r'<script[^>]*>.*?</script>', '', v, flags=re.IGNORECASE | re.DOTALL)
        v = re.sub(r'on\w+\s*=', '', v, flags=re.IGNORECASE)
    return v


def coerce_calendar_date(v):
    """Accept ISO datetimes from date pickers; only the date part is kept"""
    if isinstance(v, (date, str)):
        try:
            return to_calendar_date(v)
        except ValueError:
            # let pydantic report the invalid date
            return v
    return v


class BookingFormInput(BaseModel):
    """Reservation form as submitted by the public booking page."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone_country_code: str = Field(..., min_length=1, alias="phonePhoneCountryCode")
    phone_number: str = Field(
        ..., min_length=6, max_length=15, pattern=r"^[\d\s\-()]+$", alias="phoneNumber"
    )
    country: str = Field(..., min_length=2, max_length=100)
    language: str = Field(..., min_length=1)
    tour_id: str = Field(..., min_length=1, alias="tourId")
    selected_date: date = Field(..., alias="date")
    message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not all(ch.isalpha() or ch.isspace() or ch in NAME_PUNCTUATION for ch in v):
            raise ValueError(
                "Name can only contain letters (including accented characters), "
                "spaces, hyphens, apostrophes, and periods"
            )
        return v

    @field_validator('selected_date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        return coerce_calendar_date(v)

    @field_validator('message', mode='before')
    @classmethod
    def sanitize_message(cls, v):
        return strip_markup(v)


class BookingPatch(BaseModel):
    """
    Partial update. Only keys present in the request are applied; unknown keys
    are rejected. ``paymentMethod`` and ``clientMessage`` may be set to null.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = Field(None, alias="paymentStatus")
    payment_method: Optional[PaymentMethod] = Field(None, alias="paymentMethod")
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    client_message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH, alias="clientMessage")
    client_selected_date: Optional[date] = Field(None, alias="clientSelectedDate")

    @field_validator('client_selected_date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        return coerce_calendar_date(v)

    @field_validator('client_message', mode='before')
    @classmethod
    def sanitize_message(cls, v):
        return strip_markup(v)

    @model_validator(mode='after')
    def reject_null_required_fields(self):
        for field in ("status", "payment_status", "price", "client_selected_date"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def to_fields(self) -> Dict[str, Any]:
        """Present fields only, enum members flattened to their stored values"""
        fields = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            fields[name] = value.value if hasattr(value, "value") else value
        return fields


class BookingResponse(BaseModel):
    """Booking wire shape (camelCase)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    client_name: str
    client_email: str
    client_phone: str
    client_phone_country_code: str
    client_country: str
    client_language: str
    client_selected_date: date
    client_message: Optional[str] = None
    tour_id: str
    price: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @field_serializer('price')
    def serialize_price(self, v: Decimal) -> float:
        return float(v)

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingResponse":
        return cls(
            id=record.id,
            client_name=record.client_name,
            client_email=record.client_email,
            client_phone=record.client_phone,
            client_phone_country_code=record.client_phone_country_code,
            client_country=record.client_country,
            client_language=record.client_language,
            client_selected_date=record.client_selected_date,
            client_message=record.client_message,
            tour_id=record.tour_id,
            price=record.price,
            status=record.status,
            payment_status=record.payment_status,
            payment_method=record.payment_method,
            created_at=record.created_at,
            updated_at=record.updated_at,
            deleted_at=record.deleted_at,
        )


class DateAvailabilityResponse(BaseModel):
    date: date
    available: bool


class UnavailableDatesResponse(BaseModel):
    dates: List[date]


class ReminderResultResponse(BaseModel):
    total: int
    sent: int
    failed: int
    skipped: int


class MessageResponse(BaseModel):
    message: str
