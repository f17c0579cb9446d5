import logging
from typing import List, Optional, Protocol

from pydantic import BaseModel

from airquality_mcp.grading import Grade, Pollutant
from airquality_mcp.models import MeasuredValue, MonitoringStation

logger = logging.getLogger("airquality.presenter")

ERROR_MESSAGE = "Unable to load air quality data. Refresh to try again."


class Presenter(Protocol):
    """Surface a fetch cycle is rendered to"""

    def show_loading(self) -> None:
        ...

    def show_error(self, visible: bool) -> None:
        ...

    def render(self, station: MonitoringStation, measured_value: MeasuredValue) -> None:
        ...

    def finish_refresh(self) -> None:
        ...

    def close(self) -> None:
        ...


class PollutantRow(BaseModel):
    label: str
    grade: str
    emoji: str
    value: str


class Screen(BaseModel):
    """Everything currently visible on the screen"""

    progress_visible: bool = False
    refreshing: bool = False
    error_visible: bool = False
    content_alpha: float = 0.0
    closed: bool = False

    station_name: Optional[str] = None
    station_address: Optional[str] = None
    measured_at: Optional[str] = None
    background: str = Grade.UNKNOWN.color
    composite_label: str = Grade.UNKNOWN.label
    composite_emoji: str = Grade.UNKNOWN.emoji
    rows: List[PollutantRow] = []

    @property
    def content_visible(self) -> bool:
        return self.content_alpha > 0 and self.station_name is not None


def format_value(value: Optional[float], unit: str) -> str:
    if value is None:
        return "-"
    return f"{value:g} {unit}"


class ScreenPresenter:
    """Keeps the screen state of the latest fetch cycle and renders it as text"""

    def __init__(self):
        self.screen = Screen()

    def show_loading(self) -> None:
        self.screen.progress_visible = True
        self.screen.refreshing = True

    def show_error(self, visible: bool) -> None:
        self.screen.error_visible = visible
        if visible:
            # Hide the previous result so the error never overlaps stale data
            self.screen.content_alpha = 0.0

    def render(self, station: MonitoringStation, measured_value: MeasuredValue) -> None:
        overall = measured_value.overall_grade
        self.screen.content_alpha = 1.0
        self.screen.station_name = station.name
        self.screen.station_address = station.address
        self.screen.measured_at = (
            measured_value.measured_at.strftime("%Y-%m-%d %H:%M") if measured_value.measured_at else None
        )
        self.screen.background = overall.color
        self.screen.composite_label = overall.label
        self.screen.composite_emoji = overall.emoji
        self.screen.rows = [
            PollutantRow(
                label=pollutant.label,
                grade=measured_value.grade_for(pollutant).label,
                emoji=measured_value.grade_for(pollutant).emoji,
                value=format_value(measured_value.value_of(pollutant), pollutant.unit),
            )
            for pollutant in Pollutant
        ]
        logger.debug(f"Rendered {station.name}: {overall.name}")

    def finish_refresh(self) -> None:
        self.screen.progress_visible = False
        self.screen.refreshing = False

    def close(self) -> None:
        self.screen.closed = True

    def render_text(self) -> str:
        """Plain text view of the screen"""
        screen = self.screen
        if screen.error_visible:
            return f"Error: {ERROR_MESSAGE}"
        if not screen.content_visible:
            return "No air quality data loaded."

        lines = [
            f"Station: {screen.station_name}",
            f"Address: {screen.station_address or '-'}",
        ]
        if screen.measured_at:
            lines.append(f"Measured at: {screen.measured_at}")
        lines.append(f"Overall: {screen.composite_emoji} {screen.composite_label} (background: {screen.background})")
        for row in screen.rows:
            lines.append(f"- {row.label}: {row.value} {row.emoji} {row.grade}")
        return "\n".join(lines)
