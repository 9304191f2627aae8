"""Read-only access to halt timetables and route endpoints in the database."""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.core.schedule_matcher import BusEntry, normalize_stop_name
from app.models.tables import Bus, BusSchedule, Route

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteEndpoints:
    route_no: str
    starting_halt: str
    ending_halt: str


class TimetableStore:
    """Looks up timetables by normalized halt name. Fetched fresh on every call."""

    def __init__(self, session_factory, timeout: float = 2.0) -> None:
        self.session_factory = session_factory
        self.timeout = timeout

    async def lookup(self, stop_name: str) -> list[BusEntry] | None:
        """Entries for the halt in timetable order, None when the halt is unknown or unreachable."""
        key = normalize_stop_name(stop_name)
        if not key:
            return None
        try:
            return await asyncio.wait_for(self._lookup(key), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Timetable lookup for %r timed out after %.1fs", key, self.timeout)
        except Exception:
            logger.exception("Timetable lookup for %r failed", key)
        return None

    async def _lookup(self, key: str) -> list[BusEntry] | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(BusSchedule)
                .where(BusSchedule.halt_key == key)
                .options(selectinload(BusSchedule.entries))
            )
            schedule = result.scalar_one_or_none()
            if schedule is None:
                return None
            return [BusEntry(bus_number=e.bus_number, expected_time=e.expected_time) for e in schedule.entries]

    async def route_endpoints(self, bus_number: str) -> RouteEndpoints | None:
        """Starting and ending halt of the route the bus runs on."""
        try:
            return await asyncio.wait_for(self._route_endpoints(bus_number), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Route lookup for bus %s timed out", bus_number)
        except Exception:
            logger.exception("Route lookup for bus %s failed", bus_number)
        return None

    async def _route_endpoints(self, bus_number: str) -> RouteEndpoints | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Route)
                .join(Bus, Bus.route_no == Route.route_no)
                .where(Bus.bus_number == str(bus_number))
            )
            route = result.scalars().first()
            if route is None:
                return None
            return RouteEndpoints(
                route_no=route.route_no,
                starting_halt=route.starting_halt,
                ending_halt=route.ending_halt,
            )

    async def list_schedules(self) -> list[BusSchedule]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(BusSchedule)
                .options(selectinload(BusSchedule.entries))
                .order_by(BusSchedule.halt_key)
            )
            return list(result.scalars().all())
