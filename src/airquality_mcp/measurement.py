import logging
from datetime import datetime
from typing import List, Optional

from airquality_mcp.airkorea import AirKoreaClient
from airquality_mcp.models import MeasuredValue

logger = logging.getLogger("airquality.measurement")


def select_latest(records: List[MeasuredValue]) -> Optional[MeasuredValue]:
    """Pick the most recent record; undated records rank last, ties keep provider order"""
    if not records:
        return None
    return max(records, key=lambda record: record.measured_at or datetime.min)


class MeasurementFetcher:
    """Fetches the latest measurement of a monitoring station"""

    def __init__(self, air_korea: AirKoreaClient):
        self.air_korea = air_korea

    async def fetch_latest_measurement(self, station_name: str) -> Optional[MeasuredValue]:
        if not station_name:
            raise ValueError("Station name is required")

        logger.info(f"Fetching latest measurement for station {station_name}")
        records = await self.air_korea.get_realtime_measurements(station_name)
        measured_value = select_latest(records or [])
        if measured_value is None:
            logger.info(f"No measurement records for station {station_name}")
            return None

        logger.info(f"Latest measurement for {station_name} at {measured_value.measured_at}")
        return measured_value
