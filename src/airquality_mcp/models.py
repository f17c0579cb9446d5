from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from airquality_mcp.grading import Grade, Pollutant, grade_of

# AirKorea sends this for a missing reading
MISSING = "-"


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ProjectedCoordinates(BaseModel):
    """Planar TM coordinates used to key station lookups"""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class MonitoringStation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, alias="stationName")
    address: Optional[str] = Field(None, alias="addr")
    projected_coordinates: Optional[ProjectedCoordinates] = None
    distance: Optional[float] = Field(None, alias="tm")


def _parse_data_time(value: str) -> Optional[datetime]:
    """Parse AirKorea's dataTime, where "24:00" is midnight of the next day"""
    value = value.strip()
    next_day = False
    if value.endswith("24:00"):
        value = value[: -len("24:00")] + "00:00"
        next_day = True
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d %H:%M")
    except ValueError:
        return None
    return parsed + timedelta(days=1) if next_day else parsed


class MeasuredValue(BaseModel):
    """Latest reading of a station.

    Every field may be absent. A value the provider omits, sends as "-" or
    flags as invalid is None and is never read as zero.
    """

    model_config = ConfigDict(populate_by_name=True)

    station_name: Optional[str] = Field(None, alias="stationName")
    measured_at: Optional[datetime] = Field(None, alias="dataTime")

    pm10: Optional[float] = Field(None, alias="pm10Value")
    pm25: Optional[float] = Field(None, alias="pm25Value")
    so2: Optional[float] = Field(None, alias="so2Value")
    co: Optional[float] = Field(None, alias="coValue")
    o3: Optional[float] = Field(None, alias="o3Value")
    no2: Optional[float] = Field(None, alias="no2Value")
    composite_value: Optional[float] = Field(None, alias="khaiValue")

    composite_grade: Optional[Grade] = Field(None, alias="khaiGrade")
    pm10_grade: Optional[Grade] = Field(None, alias="pm10Grade")
    pm25_grade: Optional[Grade] = Field(None, alias="pm25Grade")
    so2_grade: Optional[Grade] = Field(None, alias="so2Grade")
    co_grade: Optional[Grade] = Field(None, alias="coGrade")
    o3_grade: Optional[Grade] = Field(None, alias="o3Grade")
    no2_grade: Optional[Grade] = Field(None, alias="no2Grade")

    @model_validator(mode="before")
    @classmethod
    def _drop_flagged_readings(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for pollutant in Pollutant:
            flag = data.get(f"{pollutant.key}Flag")
            if flag is not None and str(flag).strip():
                data[f"{pollutant.key}Value"] = None
                data[f"{pollutant.key}Grade"] = None
        return data

    @field_validator("pm10", "pm25", "so2", "co", "o3", "no2", "composite_value", mode="before")
    @classmethod
    def _parse_reading(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.strip()
            if value in ("", MISSING):
                return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator(
        "composite_grade", "pm10_grade", "pm25_grade", "so2_grade", "co_grade", "o3_grade", "no2_grade",
        mode="before",
    )
    @classmethod
    def _parse_grade(cls, value: Any) -> Optional[Grade]:
        if value is None or isinstance(value, Grade):
            return value
        if isinstance(value, str) and value.strip() in ("", MISSING):
            return None
        return grade_of(None, value)

    @field_validator("measured_at", mode="before")
    @classmethod
    def _parse_measured_at(cls, value: Any) -> Optional[datetime]:
        if isinstance(value, str):
            return _parse_data_time(value)
        return value

    @field_serializer(
        "composite_grade", "pm10_grade", "pm25_grade", "so2_grade", "co_grade", "o3_grade", "no2_grade"
    )
    def _serialize_grade(self, grade: Optional[Grade]) -> Optional[str]:
        return grade.name if grade is not None else None

    def value_of(self, pollutant: Pollutant) -> Optional[float]:
        return getattr(self, pollutant.key)

    def grade_for(self, pollutant: Pollutant) -> Grade:
        """Grade of a pollutant, UNKNOWN when absent"""
        return getattr(self, f"{pollutant.key}_grade") or Grade.UNKNOWN

    @property
    def overall_grade(self) -> Grade:
        return self.composite_grade or Grade.UNKNOWN
