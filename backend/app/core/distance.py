"""Road distance between the bus and a stop: OSRM first, great-circle fallback."""

import logging
import math
from dataclasses import dataclass

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

SOURCE_OSRM = "osrm"
SOURCE_HAVERSINE = "haversine"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers between two lat/lon points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    if a > 1.0:  # float noise near antipodes
        a = 1.0
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass
class DistanceEstimate:
    km: float
    source: str


class DistanceEstimator:
    """Driving distance via the OSRM route service, never failing outright."""

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.osrm_base_url,
            timeout=settings.routing_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def estimate(self, lat1: float, lng1: float, lat2: float, lng2: float) -> DistanceEstimate | None:
        """Road distance in km, or great-circle distance when OSRM is unavailable.

        None only for non-finite coordinates, which no distance can be computed from.
        """
        if not all(math.isfinite(v) for v in (lat1, lng1, lat2, lng2)):
            logger.warning("Non-finite coordinates (%s, %s) -> (%s, %s), no distance", lat1, lng1, lat2, lng2)
            return None
        road_km = await self._fetch_road_km(lat1, lng1, lat2, lng2)
        if road_km is not None:
            return DistanceEstimate(km=road_km, source=SOURCE_OSRM)
        return DistanceEstimate(km=haversine_km(lat1, lng1, lat2, lng2), source=SOURCE_HAVERSINE)

    async def _fetch_road_km(self, lat1: float, lng1: float, lat2: float, lng2: float) -> float | None:
        # OSRM wants lon,lat order
        path = f"/route/v1/driving/{lng1},{lat1};{lng2},{lat2}"
        try:
            resp = await self._client.get(path, params={"overview": "false"})
            resp.raise_for_status()
            data = resp.json()
        except Exception as e:
            logger.warning("OSRM distance fetch failed: %s", type(e).__name__)
            return None

        routes = data.get("routes") if isinstance(data, dict) else None
        if not routes:
            logger.debug("OSRM returned no route (code=%s)", data.get("code") if isinstance(data, dict) else None)
            return None
        try:
            meters = float(routes[0]["distance"])
        except (KeyError, TypeError, ValueError):
            logger.debug("OSRM route without usable distance: %r", routes[0])
            return None
        if not math.isfinite(meters) or meters < 0:
            return None
        return meters / 1000.0
