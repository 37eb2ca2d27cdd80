"""
Rate Limiter Configuration

Storage comes from RATE_LIMIT_STORAGE_URI (``memory://`` by default,
``redis://...`` when several instances share limits).
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    # Check X-Forwarded-For header (set by proxies)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter(storage_uri: str = "memory://", enabled: bool = True) -> Limiter:
    logger.info(f"Rate limiter storage: {storage_uri.split('://')[0]}")
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=storage_uri,
        default_limits=["100/minute"],
        enabled=enabled,
    )


# Global rate limiter instance
limiter = create_limiter(settings.rate_limit_storage_uri, settings.rate_limit_enabled)


# Different rate limits for different operations
RATE_LIMITS = {
    # Public booking form
    "booking_create": "30/minute",
    "availability": "120/minute",

    # Back office
    "booking_update": "60/minute",
    "booking_delete": "20/minute",
    "booking_list": "100/minute",
    "booking_get": "200/minute",

    # Cron
    "reminders": "10/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
