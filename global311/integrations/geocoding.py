"""Address lookup against a Nominatim-compatible geocoder."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel

from global311.core.config import settings
from global311.core.exceptions import ServiceUnavailable

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3


class GeocodeResult(BaseModel):
    place_id: str
    latitude: float
    longitude: float
    display_name: str
    title: str


class GeocodingClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or str(settings.GEOCODER_URL)).rstrip("/")
        self.user_agent = user_agent or settings.GEOCODER_USER_AGENT
        self.timeout = timeout or settings.GEOCODER_TIMEOUT_SECONDS
        self._transport = transport

    async def search(self, query: str, limit: int = 5) -> List[GeocodeResult]:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/search",
                    params={"format": "json", "q": query, "limit": limit},
                    headers={"User-Agent": self.user_agent, "Accept-Language": "en-US,en;q=0.9"},
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocoder lookup failed for %r: %s", query, exc)
            raise ServiceUnavailable("Address lookup is unavailable") from exc

        return [_parse(item) for item in payload]


def _parse(item: dict) -> GeocodeResult:
    display_name = item.get("display_name", "")
    return GeocodeResult(
        place_id=str(item["place_id"]),
        latitude=float(item["lat"]),
        longitude=float(item["lon"]),
        display_name=display_name,
        title=display_name.split(",")[0].strip(),
    )


geocoding_client = GeocodingClient()
