from enum import Enum
from typing import Any, Optional


class Grade(Enum):
    """Air quality severity with its display label, emoji and background color"""

    GOOD = ("Good", "😆", "blue")
    NORMAL = ("Normal", "🙂", "green")
    BAD = ("Bad", "😞", "yellow")
    VERY_BAD = ("Very bad", "😫", "red")
    UNKNOWN = ("Unknown", "🧐", "gray")

    def __init__(self, label: str, emoji: str, color: str):
        self.label = label
        self.emoji = emoji
        self.color = color

    def __str__(self) -> str:
        return self.label


class Pollutant(Enum):
    """Pollutants reported by AirKorea, keyed by their field prefix"""

    PM10 = ("pm10", "Fine dust (PM10)", "㎍/㎥")
    PM25 = ("pm25", "Ultrafine dust (PM2.5)", "㎍/㎥")
    SO2 = ("so2", "Sulfur dioxide", "ppm")
    CO = ("co", "Carbon monoxide", "ppm")
    O3 = ("o3", "Ozone", "ppm")
    NO2 = ("no2", "Nitrogen dioxide", "ppm")

    def __init__(self, key: str, label: str, unit: str):
        self.key = key
        self.label = label
        self.unit = unit


# Grade codes are shared by every pollutant and by the integrated index (khai)
GRADE_CODES = {
    1: Grade.GOOD,
    2: Grade.NORMAL,
    3: Grade.BAD,
    4: Grade.VERY_BAD,
}


def _parse_code(code: Any) -> Optional[int]:
    if code is None or isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, float):
        return int(code) if code.is_integer() else None
    if isinstance(code, str):
        code = code.strip()
        if code.isdecimal():
            try:
                return int(code)
            except ValueError:
                return None
    return None


def grade_of(pollutant: Optional[Pollutant], code: Any) -> Grade:
    """Map a provider grade code to a Grade.

    Total: an absent or unmapped code is Grade.UNKNOWN, never an error.
    ``pollutant`` is None for the composite (integrated index) grade.
    """
    return GRADE_CODES.get(_parse_code(code), Grade.UNKNOWN)
