import asyncio
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from airquality_mcp.config import Config
from airquality_mcp.models import Coordinates, MeasuredValue, MonitoringStation, ProjectedCoordinates
from airquality_mcp.presenter import ScreenPresenter
from airquality_mcp.repository import AirQualityRepository

KAKAO_HOST = "dapi.kakao.com"
AIR_KOREA_HOST = "apis.data.go.kr"


def air_korea_payload(items: List[Dict[str, Any]], result_code: str = "00") -> Dict[str, Any]:
    return {
        "response": {
            "header": {"resultCode": result_code, "resultMsg": "NORMAL_CODE" if result_code == "00" else "ERROR"},
            "body": {"items": items, "totalCount": len(items), "pageNo": 1, "numOfRows": 10},
        }
    }


def measurement_item(**overrides: Any) -> Dict[str, Any]:
    """AirKorea real-time record for Station-1 with grade codes as strings"""
    item = {
        "stationName": "Station-1",
        "dataTime": "2024-05-01 14:00",
        "pm10Value": "45",
        "pm25Value": "12",
        "so2Value": "0.003",
        "coValue": "0.4",
        "o3Value": "0.121",
        "no2Value": "0.021",
        "khaiValue": "78",
        "khaiGrade": "2",
        "pm10Grade": "2",
        "pm25Grade": "1",
        "so2Grade": "3",
        "coGrade": "1",
        "o3Grade": "4",
        "no2Grade": "2",
        "pm10Flag": None,
        "pm25Flag": None,
        "so2Flag": None,
        "coFlag": None,
        "o3Flag": None,
        "no2Flag": None,
    }
    item.update(overrides)
    return item


class FakeProviders:
    """In-memory Kakao Local and AirKorea endpoints behind an httpx.MockTransport"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.tm_documents: List[Dict[str, Any]] = [{"x": 198056.2, "y": 451935.7}]
        self.kakao_status = 200
        self.stations: List[Dict[str, Any]] = [
            {"stationName": "Station-1", "addr": "1 Example-ro, Seoul", "tm": 1.2},
            {"stationName": "Station-2", "addr": "2 Example-ro, Seoul", "tm": 3.4},
        ]
        self.station_result_code = "00"
        self.measurements: List[Dict[str, Any]] = [measurement_item()]
        self.measurement_result_code = "00"
        self.fail_with: Optional[Exception] = None

    def requests_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        path = request.url.path
        if path.endswith("/transcoord.json"):
            return httpx.Response(self.kakao_status, json={"documents": self.tm_documents})
        if path.endswith("/getNearbyMsrstnList"):
            return httpx.Response(200, json=air_korea_payload(self.stations, self.station_result_code))
        if path.endswith("/getMsrstnAcctoRltmMesureDnsty"):
            return httpx.Response(200, json=air_korea_payload(self.measurements, self.measurement_result_code))
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def test_config() -> Config:
    return Config(_env_file=None, kakao_api_key="test-kakao-key", air_korea_service_key="test-service-key")


@pytest.fixture
def providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def repository(test_config: Config, providers: FakeProviders) -> AirQualityRepository:
    return AirQualityRepository(test_config, http_client=providers.client())


class RecordingPresenter(ScreenPresenter):
    """ScreenPresenter that also records every call"""

    def __init__(self):
        super().__init__()
        self.calls: List[Tuple[str, Any]] = []

    def show_loading(self) -> None:
        self.calls.append(("show_loading", None))
        super().show_loading()

    def show_error(self, visible: bool) -> None:
        self.calls.append(("show_error", visible))
        super().show_error(visible)

    def render(self, station: MonitoringStation, measured_value: MeasuredValue) -> None:
        self.calls.append(("render", station.name))
        super().render(station, measured_value)

    def finish_refresh(self) -> None:
        self.calls.append(("finish_refresh", None))
        super().finish_refresh()

    def close(self) -> None:
        self.calls.append(("close", None))
        super().close()

    @property
    def renders(self) -> List[Any]:
        return [arg for name, arg in self.calls if name == "render"]


class FakeLocationProvider:
    """Returns queued results in order; an exception in the queue is raised"""

    def __init__(self, *results: Any):
        self.results = list(results) or [Coordinates(latitude=37.5, longitude=127.0)]
        self.calls = 0

    async def current_location(self) -> Coordinates:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


class HangingLocationProvider:
    """First request never completes; later ones return a fix"""

    def __init__(self, coordinates: Coordinates = Coordinates(latitude=37.5, longitude=127.0)):
        self.coordinates = coordinates
        self.calls = 0
        self.started = asyncio.Event()
        self.cancelled = False

    async def current_location(self) -> Coordinates:
        self.calls += 1
        if self.calls == 1:
            self.started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return self.coordinates


class FakeResolver:
    def __init__(self, result: Any = None):
        self.result = result
        self.calls: List[Tuple[float, float]] = []

    async def resolve_nearest_station(self, latitude: float, longitude: float) -> Optional[MonitoringStation]:
        self.calls.append((latitude, longitude))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeFetcher:
    def __init__(self, *results: Any):
        self.results = list(results)
        self.calls: List[str] = []

    async def fetch_latest_measurement(self, station_name: str) -> Optional[MeasuredValue]:
        self.calls.append(station_name)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def make_station(name: Optional[str] = "Station-1") -> MonitoringStation:
    return MonitoringStation(
        name=name,
        address="1 Example-ro, Seoul",
        projected_coordinates=ProjectedCoordinates(x=198056.2, y=451935.7),
    )


def make_measured_value(**overrides: Any) -> MeasuredValue:
    return MeasuredValue.model_validate(measurement_item(**overrides))
