import logging
from typing import Optional

import httpx

from airquality_mcp.airkorea import AirKoreaClient
from airquality_mcp.config import Config
from airquality_mcp.kakao import KakaoLocalClient
from airquality_mcp.measurement import MeasurementFetcher
from airquality_mcp.resolver import StationResolver

logger = logging.getLogger("airquality.repository")


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"--> {request.method} {request.url.copy_remove_param('serviceKey')}")


async def _log_response(response: httpx.Response) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    await response.aread()
    logger.debug(f"<-- {response.status_code} {response.request.url.path}: {response.text[:1000]}")


def build_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Shared HTTP client; request and response bodies are logged at DEBUG"""
    event_hooks = {"request": [_log_request], "response": [_log_response]}
    return httpx.AsyncClient(transport=transport, event_hooks=event_hooks)


class AirQualityRepository:
    """Owns the provider clients behind the station resolver and the measurement fetcher"""

    def __init__(self, config: Config, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client or build_http_client()
        self.kakao = KakaoLocalClient(config.kakao_api_key, self.http_client, base_url=config.kakao_base_url)
        self.air_korea = AirKoreaClient(
            config.air_korea_service_key, self.http_client, base_url=config.air_korea_base_url
        )
        self.resolver = StationResolver(self.kakao, self.air_korea)
        self.fetcher = MeasurementFetcher(self.air_korea)

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def __aenter__(self) -> "AirQualityRepository":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
