import logging
from typing import Optional

import httpx

from airquality_mcp.errors import ConfigurationError, TransportFailureError
from airquality_mcp.models import ProjectedCoordinates

logger = logging.getLogger("airquality.kakao")


class KakaoLocalClient:
    """Client for the Kakao Local coordinate transform API"""

    TRANSCOORD_PATH = "/v2/local/geo/transcoord.json"

    def __init__(self, api_key: Optional[str], client: httpx.AsyncClient, base_url: str = "https://dapi.kakao.com"):
        if not api_key:
            logger.error("Kakao API key is missing")
            raise ConfigurationError("KAKAO_API_KEY environment variable is required")

        # Strip "KakaoAK" prefix if it exists in the env var
        self._api_key = api_key.replace("KakaoAK ", "")
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def get_tm_coordinates(self, latitude: float, longitude: float) -> Optional[ProjectedCoordinates]:
        """Transform WGS84 coordinates to TM, taking the first candidate"""
        # Kakao expects x=longitude, y=latitude
        params = {
            "x": longitude,
            "y": latitude,
            "input_coord": "WGS84",
            "output_coord": "TM",
        }
        headers = {"Authorization": f"KakaoAK {self._api_key}"}

        try:
            response = await self._client.get(
                f"{self._base_url}{self.TRANSCOORD_PATH}", params=params, headers=headers
            )
        except httpx.TransportError as e:
            logger.error(f"Kakao transcoord request failed: {str(e)}")
            raise TransportFailureError(f"Failed to reach Kakao Local API: {str(e)}") from e

        if not response.is_success:
            logger.warning(f"Kakao transcoord returned HTTP {response.status_code}")
            return None

        try:
            documents = response.json().get("documents") or []
            if not documents:
                logger.info(f"No TM coordinates for ({latitude}, {longitude})")
                return None
            return ProjectedCoordinates(x=documents[0]["x"], y=documents[0]["y"])
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            logger.warning(f"Malformed Kakao transcoord response: {str(e)}")
            return None
