"""Tests for TelemetryClient and payload parsing."""

import datetime

import httpx
import pytest

from app.core.telemetry_client import TelemetryClient, parse_sample

AS_OF = datetime.datetime(2026, 10, 18, 2, 30, tzinfo=datetime.timezone.utc)


def test_parse_sample():
    sample = parse_sample({"latitude": "5.9485", "longitude": 80.5353, "speed": "27.5"}, AS_OF)
    assert sample.lat == 5.9485
    assert sample.lng == 80.5353
    assert sample.speed == 27.5
    assert sample.as_of == AS_OF


def test_negative_speed_clamped():
    sample = parse_sample({"latitude": 5.9, "longitude": 80.5, "speed": -3}, AS_OF)
    assert sample.speed == 0.0


def test_missing_or_bad_speed_is_zero():
    assert parse_sample({"latitude": 5.9, "longitude": 80.5}, AS_OF).speed == 0.0
    assert parse_sample({"latitude": 5.9, "longitude": 80.5, "speed": "fast"}, AS_OF).speed == 0.0


def test_infinite_speed_is_zero():
    assert parse_sample({"latitude": 5.9, "longitude": 80.5, "speed": "Infinity"}, AS_OF).speed == 0.0


@pytest.mark.parametrize("payload", [
    None,
    [],
    "bus1",
    {"longitude": 80.5, "speed": 10},
    {"latitude": 5.9, "speed": 10},
    {"latitude": "north", "longitude": 80.5},
    {"latitude": float("nan"), "longitude": 80.5},
    {"latitude": "Infinity", "longitude": 80.5},
    {"latitude": 5.9, "longitude": "-inf"},
])
def test_malformed_payload_rejected(payload):
    assert parse_sample(payload, AS_OF) is None


def _client(handler) -> TelemetryClient:
    return TelemetryClient(url="http://gps.test/bus1.json", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_sample():
    client = _client(lambda request: httpx.Response(
        200, json={"latitude": 5.9485, "longitude": 80.5353, "speed": 32.1},
    ))
    sample = await client.fetch_sample()
    await client.close()
    assert sample is not None
    assert (sample.lat, sample.lng, sample.speed) == (5.9485, 80.5353, 32.1)


@pytest.mark.asyncio
async def test_fetch_returns_none_on_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)
    assert await client.fetch_sample() is None
    await client.close()


@pytest.mark.asyncio
async def test_fetch_returns_none_on_http_error():
    client = _client(lambda request: httpx.Response(500))
    assert await client.fetch_sample() is None
    await client.close()


@pytest.mark.asyncio
async def test_fetch_returns_none_on_empty_node():
    # Firebase answers "null" for a node that does not exist
    client = _client(lambda request: httpx.Response(200, content=b"null"))
    assert await client.fetch_sample() is None
    await client.close()


@pytest.mark.asyncio
async def test_fetch_returns_none_on_invalid_json():
    client = _client(lambda request: httpx.Response(200, content=b"{oops"))
    assert await client.fetch_sample() is None
    await client.close()


@pytest.mark.asyncio
async def test_sample_stamped_with_injected_clock():
    client = TelemetryClient(
        url="http://gps.test/bus1.json",
        transport=httpx.MockTransport(lambda request: httpx.Response(
            200, json={"latitude": 5.9485, "longitude": 80.5353, "speed": 12},
        )),
        clock=lambda: AS_OF,
    )
    sample = await client.fetch_sample()
    await client.close()
    assert sample.as_of == AS_OF
