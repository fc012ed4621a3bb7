"""
Coordinate Resolver

Turns a location request into a center point. Free-text queries go through the
Nominatim geocoding API (first candidate only); explicit coordinates are used
as given with a synthesized display name.

Geocoding API: https://nominatim.org/release-docs/latest/api/Search/
"""

import math
import asyncio
import logging
from typing import Any, Dict, List, NamedTuple, Optional

import aiohttp

from terrain_api import config
from terrain_api.services.errors import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class CenterPoint(NamedTuple):
    """Resolved center of a terrain request."""
    latitude: float
    longitude: float
    name: str


class Geocoder:
    """
    Asynchronous Nominatim client.

    Use as an async context manager so the HTTP session is always closed::

        async with Geocoder() as geocoder:
            center = await geocoder.geocode("Grand Canyon")
    """

    def __init__(self, base_url: str = None, user_agent: str = None):
        self.base_url = base_url or config.NOMINATIM_URL
        self.user_agent = user_agent or config.GEOCODER_USER_AGENT
        self.session = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """
        Run a geocoding search and return the raw candidate list.

        Raises:
            UpstreamError: On transport failure, non-200 status or a non-list body
        """
        if not self.session:
            raise UpstreamError("Geocoder session not initialized. Use async context manager.")

        params = {"format": "json", "q": query, "limit": 1}
        try:
            async with self.session.get(self.base_url, params=params) as response:
                if response.status != 200:
                    logger.error(f"Geocoding failed for '{query}': HTTP {response.status}")
                    raise UpstreamError(f"Geocoding failed: {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Geocoding request error for '{query}': {e}")
            raise UpstreamError("Geocoding failed", details=str(e)) from e

        if not isinstance(data, list):
            raise UpstreamError("Geocoding failed: malformed response")
        return data

    async def geocode(self, query: str) -> CenterPoint:
        """
        Resolve a free-text place name to its first geocoding candidate.

        Raises:
            NotFoundError: If the geocoder returned no candidates
            UpstreamError: If the call failed or the candidate is malformed
        """
        candidates = await self.search(query)
        if not candidates:
            logger.info(f"No geocoding candidates for '{query}'")
            raise NotFoundError("Location not found")

        first = candidates[0]
        try:
            latitude = float(first["lat"])
            longitude = float(first["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError("Geocoding failed: malformed candidate", details=str(e)) from e

        name = first.get("display_name") or query
        logger.info(f"Geocoded '{query}' to {latitude}, {longitude}")
        return CenterPoint(latitude, longitude, name)


def parse_coordinates(lat: Any, lon: Any) -> CenterPoint:
    """
    Build a center point from explicit coordinates.

    Raises:
        ValidationError: If either value is not a finite number in range
    """
    try:
        latitude = float(lat)
        longitude = float(lon)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates")

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValidationError("Invalid coordinates")
    if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        raise ValidationError("Invalid coordinates")

    return CenterPoint(latitude, longitude, f"{latitude:.4f}, {longitude:.4f}")


def has_coordinates(lat: Optional[str], lon: Optional[str]) -> bool:
    """True when both halves of a coordinate pair were supplied."""
    return bool(lat) and bool(lon)


async def resolve_center(query: Optional[str], lat: Optional[str], lon: Optional[str],
                         geocoder: Optional[Geocoder] = None) -> CenterPoint:
    """
    Resolve a location request to a center point.

    A text query takes precedence over explicit coordinates when both are
    supplied.

    Raises:
        ValidationError: If neither a query nor a complete coordinate pair is given
        NotFoundError: If the query has no geocoding candidates
        UpstreamError: If the geocoder fails
    """
    if query:
        if has_coordinates(lat, lon):
            logger.warning("Both q and lat/lon supplied; using the text query")
        if geocoder is None:
            async with Geocoder() as owned:
                return await owned.geocode(query)
        return await geocoder.geocode(query)

    if has_coordinates(lat, lon):
        return parse_coordinates(lat, lon)

    raise ValidationError("Provide ?q=location or ?lat=X&lon=Y")
