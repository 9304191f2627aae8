"""Async client for the tracked bus's GPS feed (Firebase realtime database)."""

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Callable

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class TelemetrySample:
    lat: float
    lng: float
    speed: float  # km/h, never negative
    as_of: datetime.datetime


def parse_sample(data, as_of: datetime.datetime) -> TelemetrySample | None:
    """Build a sample from a ``{latitude, longitude, speed}`` payload.

    Returns None when the payload is not an object or lacks usable coordinates.
    A missing or non-numeric speed is read as 0.
    """
    if not isinstance(data, dict):
        return None
    lat = data.get("latitude")
    lng = data.get("longitude")
    if lat is None or lng is None:
        return None
    try:
        lat = float(lat)
        lng = float(lng)
    except (ValueError, TypeError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None

    try:
        speed = float(data.get("speed") or 0)
    except (ValueError, TypeError):
        speed = 0.0
    if not math.isfinite(speed):
        speed = 0.0

    return TelemetrySample(lat=lat, lng=lng, speed=max(speed, 0.0), as_of=as_of)


class TelemetryClient:
    """Reads the current position and speed of the single tracked vehicle."""

    def __init__(
        self,
        url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.url = url or settings.telemetry_url
        self.clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))
        self._client = httpx.AsyncClient(
            timeout=settings.telemetry_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_sample(self) -> TelemetrySample | None:
        """Single best-effort GET. None on any failure; the caller retries next tick."""
        try:
            resp = await self._client.get(self.url)
            resp.raise_for_status()
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.warning("Telemetry fetch failed (%s)", type(e).__name__)
            return None
        except httpx.HTTPStatusError as e:
            logger.warning("Telemetry fetch got HTTP %d", e.response.status_code)
            return None
        except httpx.HTTPError:
            logger.exception("Failed to fetch telemetry")
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Telemetry response is not valid JSON")
            return None

        sample = parse_sample(data, self.clock())
        if sample is None:
            logger.debug("Skipping malformed telemetry payload: %r", data)
        return sample
