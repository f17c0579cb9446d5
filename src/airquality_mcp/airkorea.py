import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from airquality_mcp.errors import ConfigurationError, TransportFailureError
from airquality_mcp.models import MeasuredValue, MonitoringStation, ProjectedCoordinates

logger = logging.getLogger("airquality.airkorea")


class AirKoreaClient:
    """Client for the AirKorea open data services (data.go.kr)"""

    NEARBY_STATIONS_PATH = "/B552584/MsrstnInfoInqireSvc/getNearbyMsrstnList"
    REALTIME_MEASUREMENTS_PATH = "/B552584/ArpltnInforInqireSvc/getMsrstnAcctoRltmMesureDnsty"
    SUCCESS_CODE = "00"

    def __init__(
        self, service_key: Optional[str], client: httpx.AsyncClient, base_url: str = "http://apis.data.go.kr"
    ):
        if not service_key:
            logger.error("AirKorea service key is missing")
            raise ConfigurationError("AIR_KOREA_SERVICE_KEY environment variable is required")

        self._service_key = service_key
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def _get_items(self, path: str, params: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        """Fetch the item list of a response, None when the response is not a success"""
        params = {"serviceKey": self._service_key, "returnType": "json", **params}

        try:
            response = await self._client.get(f"{self._base_url}{path}", params=params)
        except httpx.TransportError as e:
            logger.error(f"AirKorea request to {path} failed: {str(e)}")
            raise TransportFailureError(f"Failed to reach AirKorea API: {str(e)}") from e

        if not response.is_success:
            logger.warning(f"AirKorea {path} returned HTTP {response.status_code}")
            return None

        try:
            payload = response.json()["response"]
            header = payload.get("header") or {}
            if header.get("resultCode") != self.SUCCESS_CODE:
                logger.warning(f"AirKorea {path} failed: {header.get('resultCode')} {header.get('resultMsg')}")
                return None
            return (payload.get("body") or {}).get("items") or []
        except (ValueError, KeyError, AttributeError, TypeError) as e:
            logger.warning(f"Malformed AirKorea response from {path}: {str(e)}")
            return None

    async def get_nearby_stations(self, tm: ProjectedCoordinates) -> Optional[List[MonitoringStation]]:
        """List monitoring stations near TM coordinates, nearest first"""
        items = await self._get_items(self.NEARBY_STATIONS_PATH, {"tmX": tm.x, "tmY": tm.y, "ver": "1.1"})
        if items is None:
            return None

        try:
            return [
                MonitoringStation.model_validate({**item, "projected_coordinates": tm}) for item in items
            ]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Malformed station list: {str(e)}")
            return None

    async def get_realtime_measurements(self, station_name: str) -> Optional[List[MeasuredValue]]:
        """List the day's real-time measurement records of a station"""
        params = {"stationName": station_name, "dataTerm": "DAILY", "ver": "1.3"}
        items = await self._get_items(self.REALTIME_MEASUREMENTS_PATH, params)
        if items is None:
            return None

        records = []
        for item in items:
            try:
                records.append(MeasuredValue.model_validate(item))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping malformed measurement record for {station_name}: {str(e)}")
        return records
