import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP
from pydantic import ValidationError

from airquality_mcp.config import config
from airquality_mcp.errors import AirQualityError, PermissionDeniedError
from airquality_mcp.location import LocationProvider, PlaceLocationProvider, StaticLocationProvider
from airquality_mcp.models import Coordinates
from airquality_mcp.orchestrator import AirQualityOrchestrator, FetchState
from airquality_mcp.presenter import ScreenPresenter
from airquality_mcp.repository import AirQualityRepository

load_dotenv()

# Set up logging
log_dir = Path("logs")
log_dir.mkdir(exist_ok=True)
log_file = log_dir / "airquality.log"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(log_file),
        logging.StreamHandler(),
    ],
)

logger = logging.getLogger("airquality")

mcp = FastMCP(
    "AirKorea Air Quality",
    instructions="Real-time air quality of the nearest AirKorea monitoring station in South Korea",
    dependencies=["httpx", "pydantic", "pydantic-settings", "python-dotenv"],
    debug=False,
    log_level="INFO",
    port=config.port,
)

_repository: Optional[AirQualityRepository] = None
_session: Optional[AirQualityOrchestrator] = None


def get_repository() -> AirQualityRepository:
    """Build the provider clients on first use"""
    global _repository
    if _repository is None:
        _repository = AirQualityRepository(config)
    return _repository


async def _run_session(location_provider: LocationProvider, ctx: Context) -> str:
    """Replace the current session with a new one and run its first fetch cycle"""
    global _session
    repository = get_repository()

    if _session is not None:
        _session.close()
    presenter = ScreenPresenter()
    session = AirQualityOrchestrator(location_provider, repository.resolver, repository.fetcher, presenter)
    _session = session

    state = await session.refresh()
    await ctx.info(f"Fetch cycle ended in {state.name}")
    return _describe(session, presenter)


def _describe(session: AirQualityOrchestrator, presenter: ScreenPresenter) -> str:
    if session.state is FetchState.CLOSED:
        if isinstance(session.last_error, PermissionDeniedError):
            return "Error: Location access was denied. The session has ended."
        return "Error: The request was replaced by a newer one."
    return presenter.render_text()


# Tools
@mcp.tool()
async def get_air_quality(latitude: float, longitude: float, ctx: Context) -> str:
    """
    Get the current air quality at the nearest monitoring station

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    logger.info(f"Starting air quality request for ({latitude}, {longitude})")
    try:
        coords = Coordinates(latitude=latitude, longitude=longitude)
        return await _run_session(StaticLocationProvider(coords), ctx)
    except (AirQualityError, ValidationError) as e:
        logger.error(f"Error getting air quality: {str(e)}")
        return f"Error: Unable to get air quality for ({latitude}, {longitude}). {str(e)}"


@mcp.tool()
async def get_place_air_quality(place: str, ctx: Context) -> str:
    """
    Get the current air quality near a place in South Korea

    Args:
        place: City, district or address
    """
    logger.info(f"Starting air quality request for {place}")
    try:
        repository = get_repository()
        provider = PlaceLocationProvider(
            place, repository.http_client, url=config.nominatim_url, country_code=config.location_country_code
        )
        return await _run_session(provider, ctx)
    except AirQualityError as e:
        logger.error(f"Error getting air quality for {place}: {str(e)}")
        return f"Error: Unable to get air quality for {place}. {str(e)}"


@mcp.tool()
async def refresh_air_quality(ctx: Context) -> str:
    """Fetch the air quality again for the location of the current session"""
    session = _session
    if session is None or session.closed:
        return "Error: No active session. Request the air quality for a location first."

    state = await session.refresh()
    await ctx.info(f"Fetch cycle ended in {state.name}")
    return _describe(session, session.presenter)


@mcp.tool()
async def get_nearest_station(latitude: float, longitude: float, ctx: Context) -> Union[Dict[str, Any], str]:
    """
    Find the nearest AirKorea monitoring station to given coordinates

    Args:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
    """
    try:
        station = await get_repository().resolver.resolve_nearest_station(latitude, longitude)
    except AirQualityError as e:
        logger.error(f"Error resolving station: {str(e)}")
        return f"Error: Unable to resolve a station. {str(e)}"

    if station is None:
        return f"Error: No monitoring station found near ({latitude}, {longitude})"
    await ctx.info(f"Nearest station: {station.name}")
    return station.model_dump()


# Prompts
@mcp.prompt()
def air_quality_interpretation(report: str) -> str:
    """Help the assistant interpret an air quality report"""
    return f"""Please analyze this air quality report from AirKorea and provide:
        1. A clear summary of the overall air quality
        2. The pollutants that are worse than normal, if any
        3. Advice on outdoor activities and wearing a mask

        {report}
        """


if __name__ == "__main__":
    mcp.run()
