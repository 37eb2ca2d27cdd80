"""
Tour Catalog

Tours live in the CMS; the booking subsystem only needs a tour's title and
current price. ``get_tour_by_id`` returns None when the tour can't be resolved,
whatever the reason (missing document, CMS down, malformed payload), which is
logged here so callers only deal with "found / not found".
"""

import abc
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tour:
    id: str
    title: str
    price: Decimal
    duration: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Tour":
        """Build from a CMS JSON document. Raises ValueError on missing/invalid fields."""
        try:
            price = Decimal(str(payload["price"]))
            # is_finite first: NaN can't be ordered against 0
            if not price.is_finite() or price <= 0:
                raise ValueError(f"Invalid tour payload: price must be positive, got {payload['price']!r}")
            duration = payload.get("duration")
            return cls(
                id=str(payload["id"]),
                title=str(payload["title"]),
                price=price,
                duration=float(duration) if duration is not None else None,
            )
        except (KeyError, TypeError, InvalidOperation) as e:
            raise ValueError(f"Invalid tour payload: {e}") from e


class TourCatalog(abc.ABC):

    @abc.abstractmethod
    async def get_tour_by_id(self, tour_id: str) -> Optional[Tour]:
        """The tour, or None if it does not exist / can't be fetched."""


class HttpTourCatalog(TourCatalog):
    """
    Reads tours from the CMS over HTTP: ``GET {base_url}/tours/{id}``.

    The response body is the tour document, optionally wrapped in ``{"data": ...}``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        api_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_token = api_token
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=self._headers())
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, headers=self._headers())

    async def get_tour_by_id(self, tour_id: str) -> Optional[Tour]:
        url = f"{self.base_url}/tours/{tour_id}"
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch tour {tour_id}: {e}")
            return None

        if response.status_code == 404:
            return None

        if response.status_code >= 400:
            logger.error(f"Failed to fetch tour {tour_id}: HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                payload = payload["data"]
            return Tour.from_payload(payload)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to parse tour {tour_id}: {e}")
            return None


class StaticTourCatalog(TourCatalog):
    """Fixed set of tours, for local development and tests."""

    def __init__(self, tours: Iterable[Tour] = ()):
        self.tours: Dict[str, Tour] = {tour.id: tour for tour in tours}

    @classmethod
    def from_file(cls, path: str) -> "StaticTourCatalog":
        with open(path, "r", encoding="utf-8") as f:
            documents = json.load(f)
        return cls(Tour.from_payload(doc) for doc in documents)

    def add(self, tour: Tour) -> None:
        self.tours[tour.id] = tour

    async def get_tour_by_id(self, tour_id: str) -> Optional[Tour]:
        return self.tours.get(tour_id)
