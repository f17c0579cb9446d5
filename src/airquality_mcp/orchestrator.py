import asyncio
import logging
from enum import Enum
from typing import List, Optional

from airquality_mcp.errors import (
    AirQualityError,
    MeasurementUnavailableError,
    PermissionDeniedError,
    StationNotFoundError,
)
from airquality_mcp.location import LocationProvider
from airquality_mcp.measurement import MeasurementFetcher
from airquality_mcp.models import Coordinates, MeasuredValue, MonitoringStation
from airquality_mcp.presenter import Presenter
from airquality_mcp.resolver import StationResolver

logger = logging.getLogger("airquality.orchestrator")


class FetchState(Enum):
    IDLE = "idle"
    LOCATING = "locating"
    RESOLVING_STATION = "resolving_station"
    FETCHING_MEASUREMENT = "fetching_measurement"
    DISPLAYING = "displaying"
    FAILED = "failed"
    CLOSED = "closed"


class AirQualityOrchestrator:
    """Runs fetch cycles: locate, resolve the nearest station, fetch, present.

    Only one location request is outstanding at a time; starting a cycle or
    closing the session cancels it. A cycle overtaken by a newer one renders
    nothing. Every failure of a cycle ends in FAILED (or CLOSED when location
    permission is denied); no exception escapes refresh().
    """

    def __init__(
        self,
        location_provider: LocationProvider,
        resolver: StationResolver,
        fetcher: MeasurementFetcher,
        presenter: Presenter,
    ):
        self.location_provider = location_provider
        self.resolver = resolver
        self.fetcher = fetcher
        self.presenter = presenter

        self.state = FetchState.IDLE
        self.history: List[FetchState] = [FetchState.IDLE]
        self.last_error: Optional[Exception] = None
        self.station: Optional[MonitoringStation] = None
        self.measured_value: Optional[MeasuredValue] = None

        self._location_request: Optional["asyncio.Task[Coordinates]"] = None
        self._cycle = 0

    @property
    def closed(self) -> bool:
        return self.state is FetchState.CLOSED

    def _transition(self, state: FetchState) -> None:
        logger.debug(f"{self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    def _cancel_location_request(self) -> None:
        if self._location_request is not None and not self._location_request.done():
            logger.info("Cancelling outstanding location request")
            self._location_request.cancel()
        self._location_request = None

    def _is_current(self, cycle: int) -> bool:
        return cycle == self._cycle and not self.closed

    async def _locate(self, cycle: int) -> Optional[Coordinates]:
        """Await a single location fix; None when the cycle was superseded or the session ended"""
        request = asyncio.ensure_future(self.location_provider.current_location())
        self._location_request = request
        try:
            return await request
        except asyncio.CancelledError:
            if self._is_current(cycle) or not request.cancelled():
                raise
            logger.info(f"Fetch cycle {cycle} superseded while locating")
            return None
        except PermissionDeniedError as e:
            logger.error(f"Location permission denied: {str(e)}")
            self.last_error = e
            self.close()
            return None
        finally:
            if self._location_request is request:
                self._location_request = None

    async def refresh(self) -> FetchState:
        """Start a new fetch cycle and return the session state once it is over"""
        if self.closed:
            logger.warning("Refresh requested after the session was closed")
            return self.state

        self._cancel_location_request()
        self._cycle += 1
        cycle = self._cycle

        if self.state is not FetchState.IDLE:
            self._transition(FetchState.IDLE)
        self._transition(FetchState.LOCATING)
        self.presenter.show_loading()

        try:
            coords = await self._locate(cycle)
            if coords is None or not self._is_current(cycle):
                return self.state

            # A previous failure may still be on screen
            self.presenter.show_error(False)

            self._transition(FetchState.RESOLVING_STATION)
            station = await self.resolver.resolve_nearest_station(coords.latitude, coords.longitude)
            if station is None or not station.name:
                raise StationNotFoundError(f"No monitoring station found near {coords}")
            if not self._is_current(cycle):
                return self.state

            self._transition(FetchState.FETCHING_MEASUREMENT)
            measured_value = await self.fetcher.fetch_latest_measurement(station.name)
            if measured_value is None:
                raise MeasurementUnavailableError(f"No measurement available for station {station.name}")
            if not self._is_current(cycle):
                return self.state

            self.station = station
            self.measured_value = measured_value
            self.last_error = None
            self._transition(FetchState.DISPLAYING)
            self.presenter.render(station, measured_value)
            logger.info(f"Displaying air quality for {station.name}: {measured_value.overall_grade.name}")
        except Exception as e:
            self._fail(cycle, e)
        finally:
            if self._is_current(cycle):
                self.presenter.finish_refresh()

        return self.state

    def _fail(self, cycle: int, error: Exception) -> None:
        if not self._is_current(cycle):
            logger.info(f"Ignoring failure of superseded fetch cycle {cycle}: {str(error)}")
            return

        if isinstance(error, AirQualityError):
            logger.error(f"Fetch cycle failed ({type(error).__name__}): {str(error)}")
        else:
            logger.exception(f"Unexpected error in fetch cycle: {str(error)}")

        self.last_error = error
        self.station = None
        self.measured_value = None
        self._transition(FetchState.FAILED)
        self.presenter.show_error(True)

    def close(self) -> None:
        """End the session, cancelling the outstanding location request"""
        self._cancel_location_request()
        if not self.closed:
            self._transition(FetchState.CLOSED)
            self.presenter.close()
