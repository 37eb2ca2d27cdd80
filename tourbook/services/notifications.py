"""
Booking e-mails

- Confirmation to the client and a "new booking" notice to the operator when a
  booking is created
- "Your tour is tomorrow" reminder, sent by the reminder job

Senders raise NotificationError; callers decide whether that matters (it never
rolls back a booking).
"""

import abc
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

import httpx

from ..errors import NotificationError
from ..models.booking import BookingRecord
from .tour_catalog import Tour

logger = logging.getLogger(__name__)


def format_date(day: date) -> str:
    """Tuesday, June 10, 2025"""
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


def format_price(price: Decimal) -> str:
    return f"€{Decimal(price):,.2f}"


def confirmation_message(booking: BookingRecord, tour: Tour) -> Dict[str, str]:
    lines = [
        f"Hi {booking.client_name},",
        "",
        f"Thank you for booking {tour.title}.",
        f"Date: {format_date(booking.client_selected_date)}",
        f"Price: {format_price(booking.price)}",
        "",
        "We will get in touch shortly to confirm the details.",
    ]
    return {
        "subject": f"Booking Confirmation - {tour.title}",
        "text": "\n".join(lines),
    }


def operator_message(booking: BookingRecord, tour: Tour) -> Dict[str, str]:
    booking_date = format_date(booking.client_selected_date)
    lines = [
        f"New booking for {tour.title} on {booking_date}",
        "",
        f"Client: {booking.client_name} ({booking.client_email})",
        f"Phone: {booking.client_phone_country_code} {booking.client_phone}",
        f"Country: {booking.client_country}",
        f"Language: {booking.client_language}",
        f"Price: {format_price(booking.price)}",
    ]
    if booking.client_message:
        lines += ["", "Message:", booking.client_message]
    lines += ["", f"Booking ID: {booking.id}"]
    return {
        "subject": f"New Booking - {tour.title} on {booking_date}",
        "text": "\n".join(lines),
    }


def reminder_message(booking: BookingRecord, tour: Tour) -> Dict[str, str]:
    lines = [
        f"Hi {booking.client_name},",
        "",
        f"This is a reminder that your tour {tour.title} is tomorrow, "
        f"{format_date(booking.client_selected_date)}.",
        "",
        "See you soon!",
    ]
    return {
        "subject": f"Reminder - Your tour is tomorrow: {tour.title}",
        "text": "\n".join(lines),
    }


class Notifier(abc.ABC):

    @abc.abstractmethod
    async def send_confirmation(self, booking: BookingRecord, tour: Tour) -> None:
        ...

    @abc.abstractmethod
    async def send_operator_notification(self, booking: BookingRecord, tour: Tour) -> None:
        ...

    @abc.abstractmethod
    async def send_reminder(self, booking: BookingRecord, tour: Tour) -> None:
        ...


class ResendNotifier(Notifier):
    """Sends e-mail through the Resend HTTP API (``POST /emails``)."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        operator_email: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.operator_email = operator_email
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _post(self, payload: Dict) -> httpx.Response:
        url = f"{self.base_url}/emails"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            return await self._client.post(url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=payload, headers=headers)

    async def _send(self, to: str, message: Dict[str, str], booking_id: str) -> None:
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": message["subject"],
            "text": message["text"],
        }
        try:
            response = await self._post(payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send '{message['subject']}' for booking {booking_id}: {e}")
            raise NotificationError(f"E-mail delivery failed: {message['subject']}") from e

        logger.info(f"E-mail '{message['subject']}' sent for booking {booking_id}")

    async def send_confirmation(self, booking: BookingRecord, tour: Tour) -> None:
        await self._send(booking.client_email, confirmation_message(booking, tour), booking.id)

    async def send_operator_notification(self, booking: BookingRecord, tour: Tour) -> None:
        if not self.operator_email:
            raise NotificationError("OPERATOR_EMAIL is not configured")
        await self._send(self.operator_email, operator_message(booking, tour), booking.id)

    async def send_reminder(self, booking: BookingRecord, tour: Tour) -> None:
        await self._send(booking.client_email, reminder_message(booking, tour), booking.id)


class LoggingNotifier(Notifier):
    """Writes e-mails to the log instead of sending them (no RESEND_API_KEY)."""

    def _deliver(self, to: str, message: Dict[str, str]) -> None:
        logger.info(f"[email not sent] to={to} subject={message['subject']}")

    async def send_confirmation(self, booking: BookingRecord, tour: Tour) -> None:
        self._deliver(booking.client_email, confirmation_message(booking, tour))

    async def send_operator_notification(self, booking: BookingRecord, tour: Tour) -> None:
        self._deliver("operator", operator_message(booking, tour))

    async def send_reminder(self, booking: BookingRecord, tour: Tour) -> None:
        self._deliver(booking.client_email, reminder_message(booking, tour))
