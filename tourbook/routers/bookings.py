from fastapi import APIRouter, Body, Depends, Query, Request, status
from typing import Any, Dict, List, Optional, Type
from datetime import date
from enum import Enum
import logging

from ..errors import ValidationError
from ..models.booking import BookingStatus, PaymentStatus
from ..schemas.booking import (
    BookingResponse,
    DateAvailabilityResponse,
    MessageResponse,
    UnavailableDatesResponse,
)
from ..services.availability import AvailabilityChecker
from ..services.booking_lifecycle import BookingLifecycleService
from ..services.booking_repository import BookingFilters
from ..utils.dates import to_calendar_date
from ..utils.dependencies import get_availability_checker, get_lifecycle_service
from ..utils.rate_limiter import limiter, get_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def _enum_or_none(value: Optional[str], enum: Type[Enum]) -> Optional[str]:
    """Unknown filter values are ignored rather than rejected"""
    if value is None:
        return None
    try:
        return enum(value).value
    except ValueError:
        return None


def _flag_or_none(value: Optional[str]) -> Optional[bool]:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def _parse_day(field: str, value: str) -> date:
    try:
        return to_calendar_date(value)
    except ValueError:
        raise ValidationError.for_field(field, "Invalid date, expected YYYY-MM-DD")


def build_filters(
    status_filter: Optional[str] = None,
    payment_status: Optional[str] = None,
    future: Optional[str] = None,
    past: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> BookingFilters:
    """Translate list query parameters into repository filters"""
    date_range = None
    if start or end:
        if not (start and end):
            raise ValidationError.for_field(
                "start" if not start else "end", "start and end must be given together"
            )
        date_range = (_parse_day("start", start), _parse_day("end", end))

    return BookingFilters(
        status=_enum_or_none(status_filter, BookingStatus),
        payment_status=_enum_or_none(payment_status, PaymentStatus),
        future=_flag_or_none(future),
        past=_flag_or_none(past),
        date_range=date_range,
    )


# ================================
# PUBLIC: AVAILABILITY
# ================================

@router.get("/availability", response_model=DateAvailabilityResponse)
@limiter.limit(get_rate_limit("availability"))
async def check_date_availability(
    request: Request,
    day: str = Query(..., alias="date"),
    checker: AvailabilityChecker = Depends(get_availability_checker)
):
    """Is the calendar date free for a new booking?"""
    parsed = _parse_day("date", day)
    return DateAvailabilityResponse(date=parsed, available=checker.is_date_available(parsed))


@router.get("/unavailable-dates", response_model=UnavailableDatesResponse)
@limiter.limit(get_rate_limit("availability"))
async def list_unavailable_dates(
    request: Request,
    checker: AvailabilityChecker = Depends(get_availability_checker)
):
    """Occupied dates from today on, for the booking form's date picker"""
    return UnavailableDatesResponse(dates=checker.list_unavailable_dates())


# ================================
# CRUD
# ================================

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED, response_model_by_alias=True)
@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED, response_model_by_alias=True)
@limiter.limit(get_rate_limit("booking_create"))
async def create_booking(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    service: BookingLifecycleService = Depends(get_lifecycle_service)
):
    """Submit a reservation from the public booking form"""
    booking = await service.submit_booking(payload)
    return BookingResponse.from_record(booking)


@router.get("", response_model=List[BookingResponse], response_model_by_alias=True)
@router.get("/", response_model=List[BookingResponse], response_model_by_alias=True)
@limiter.limit(get_rate_limit("booking_list"))
async def list_bookings(
    request: Request,
    status_filter: Optional[str] = Query(None, alias="status"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    future: Optional[str] = None,
    past: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    service: BookingLifecycleService = Depends(get_lifecycle_service)
):
    """All active bookings, newest first"""
    filters = build_filters(status_filter, payment_status, future, past, start, end)
    return [BookingResponse.from_record(b) for b in service.list_bookings(filters)]


@router.get("/{booking_id}", response_model=BookingResponse, response_model_by_alias=True)
@limiter.limit(get_rate_limit("booking_get"))
async def get_booking(
    request: Request,
    booking_id: str,
    service: BookingLifecycleService = Depends(get_lifecycle_service)
):
    return BookingResponse.from_record(service.get_booking(booking_id))


@router.patch("/{booking_id}", response_model=BookingResponse, response_model_by_alias=True)
@limiter.limit(get_rate_limit("booking_update"))
async def update_booking(
    request: Request,
    booking_id: str,
    payload: Dict[str, Any] = Body(...),
    service: BookingLifecycleService = Depends(get_lifecycle_service)
):
    """Partial update: status, paymentStatus, paymentMethod, price, clientMessage, clientSelectedDate"""
    booking = await service.update_booking(booking_id, payload)
    return BookingResponse.from_record(booking)


@router.delete("/{booking_id}", response_model=MessageResponse)
@limiter.limit(get_rate_limit("booking_delete"))
async def delete_booking(
    request: Request,
    booking_id: str,
    service: BookingLifecycleService = Depends(get_lifecycle_service)
):
    """Soft delete: the booking disappears from every read and frees its date"""
    service.remove_booking(booking_id)
    return MessageResponse(message="Booking deleted successfully")
