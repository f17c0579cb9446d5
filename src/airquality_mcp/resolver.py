import logging
from typing import Optional

from airquality_mcp.airkorea import AirKoreaClient
from airquality_mcp.kakao import KakaoLocalClient
from airquality_mcp.models import MonitoringStation

logger = logging.getLogger("airquality.resolver")


class StationResolver:
    """Resolves the nearest monitoring station for WGS84 coordinates.

    Coordinates are not range checked here; out of range values are left for
    the provider to reject. Ranking is the provider's: the first TM candidate
    and the first station of the nearby list are taken as-is.
    """

    def __init__(self, kakao: KakaoLocalClient, air_korea: AirKoreaClient):
        self.kakao = kakao
        self.air_korea = air_korea

    async def resolve_nearest_station(self, latitude: float, longitude: float) -> Optional[MonitoringStation]:
        """Find the nearest station, None when the providers return no candidate"""
        logger.info(f"Resolving nearest station for ({latitude}, {longitude})")

        tm = await self.kakao.get_tm_coordinates(latitude, longitude)
        if tm is None:
            return None
        logger.debug(f"TM coordinates: {tm}")

        stations = await self.air_korea.get_nearby_stations(tm)
        if not stations:
            logger.info(f"No monitoring station near {tm}")
            return None

        station = stations[0]
        logger.info(f"Found nearest station: {station.name} ({station.address})")
        return station
