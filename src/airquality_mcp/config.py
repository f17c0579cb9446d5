from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    kakao_api_key: Optional[str] = None
    air_korea_service_key: Optional[str] = None
    kakao_base_url: str = "https://dapi.kakao.com"
    air_korea_base_url: str = "http://apis.data.go.kr"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    location_country_code: str = "kr"
    port: int = 8001


config = Config()
