import asyncio

import pytest

from airquality_mcp import server
from airquality_mcp.errors import PermissionDeniedError

from conftest import FakeLocationProvider, HangingLocationProvider


class FakeContext:
    def __init__(self):
        self.messages = []

    async def info(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def mcp_server(monkeypatch, repository):
    monkeypatch.setattr(server, "_repository", repository)
    monkeypatch.setattr(server, "_session", None)
    return server


@pytest.mark.asyncio
async def test_get_air_quality(mcp_server):
    ctx = FakeContext()

    report = await mcp_server.get_air_quality(37.5, 127.0, ctx)

    assert report.startswith("Station: Station-1")
    assert "Overall: 🙂 Normal" in report
    assert ctx.messages == ["Fetch cycle ended in DISPLAYING"]


@pytest.mark.asyncio
async def test_get_air_quality_invalid_coordinates(mcp_server):
    report = await mcp_server.get_air_quality(123.0, 127.0, FakeContext())
    assert report.startswith("Error:")


@pytest.mark.asyncio
async def test_refresh_air_quality(mcp_server, providers):
    ctx = FakeContext()
    assert (await mcp_server.refresh_air_quality(ctx)).startswith("Error: No active session")

    await mcp_server.get_air_quality(37.5, 127.0, ctx)
    providers.measurements = []

    report = await mcp_server.refresh_air_quality(ctx)
    assert report.startswith("Error: Unable to load air quality data")


@pytest.mark.asyncio
async def test_get_nearest_station(mcp_server, providers):
    station = await mcp_server.get_nearest_station(37.5, 127.0, FakeContext())
    assert station["name"] == "Station-1"
    assert station["projected_coordinates"] == {"x": 198056.2, "y": 451935.7}

    providers.stations = []
    result = await mcp_server.get_nearest_station(37.5, 127.0, FakeContext())
    assert result.startswith("Error: No monitoring station")


def test_interpretation_prompt():
    prompt = server.air_quality_interpretation("Station: Station-1")
    assert "Station: Station-1" in prompt


@pytest.mark.asyncio
async def test_overlapping_requests_describe_their_own_session(mcp_server):
    location_provider = HangingLocationProvider()
    first = asyncio.create_task(mcp_server._run_session(location_provider, FakeContext()))
    await location_provider.started.wait()

    second = await mcp_server.get_air_quality(37.5, 127.0, FakeContext())

    assert second.startswith("Station: Station-1")
    assert await first == "Error: The request was replaced by a newer one."


@pytest.mark.asyncio
async def test_permission_denied_ends_session(mcp_server):
    location_provider = FakeLocationProvider(PermissionDeniedError("denied"))

    report = await mcp_server._run_session(location_provider, FakeContext())

    assert report == "Error: Location access was denied. The session has ended."
    assert (await mcp_server.refresh_air_quality(FakeContext())).startswith("Error: No active session")
