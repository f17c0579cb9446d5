import logging
from typing import Optional, Protocol

import httpx

from airquality_mcp.errors import LocationUnavailableError
from airquality_mcp.models import Coordinates

logger = logging.getLogger("airquality.location")


class LocationProvider(Protocol):
    """One-shot location source.

    Raises LocationUnavailableError when no fix can be produced and
    PermissionDeniedError when access to the location is refused. The call is
    awaited as a task so the orchestrator can cancel it.
    """

    async def current_location(self) -> Coordinates:
        ...


class StaticLocationProvider:
    """Location fixed by the caller"""

    def __init__(self, coordinates: Coordinates):
        self.coordinates = coordinates

    async def current_location(self) -> Coordinates:
        return self.coordinates


async def get_coordinates(
    client: httpx.AsyncClient,
    location: str,
    url: str = "https://nominatim.openstreetmap.org/search",
    country_code: Optional[str] = "kr",
) -> Coordinates:
    """Get coordinates for a place name using OpenStreetMap Nominatim"""
    params = {"q": location, "format": "json", "limit": 1}
    if country_code:
        params["countrycodes"] = country_code

    try:
        response = await client.get(url, params=params, headers={"User-Agent": "AirQuality_MCP/1.0"})
        response.raise_for_status()

        results = response.json()
        if not results:
            raise LocationUnavailableError(f"Location '{location}' not found")

        place = results[0]
        return Coordinates(latitude=float(place["lat"]), longitude=float(place["lon"]))

    except LocationUnavailableError:
        raise
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Error getting coordinates for {location}: {str(e)}")
        raise LocationUnavailableError(f"Failed to get coordinates for location: {str(e)}") from e


class PlaceLocationProvider:
    """Location of a named place, geocoded on every request"""

    def __init__(
        self,
        place: str,
        client: httpx.AsyncClient,
        url: str = "https://nominatim.openstreetmap.org/search",
        country_code: Optional[str] = "kr",
    ):
        self.place = place
        self._client = client
        self._url = url
        self._country_code = country_code

    async def current_location(self) -> Coordinates:
        coords = await get_coordinates(self._client, self.place, self._url, self._country_code)
        logger.info(f"Found coordinates for {self.place}: {coords}")
        return coords
