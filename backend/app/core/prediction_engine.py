"""Per-session tick: telemetry -> distance -> ETA -> timetable -> delay label -> emit."""

import datetime
import logging
from typing import Callable
from zoneinfo import ZoneInfo

from app.core.delay_classifier import NO_SCHEDULE, DelayClassifier
from app.core.distance import DistanceEstimator
from app.core.emitter import emit
from app.core.eta_calculator import EtaCalculator
from app.core.schedule_matcher import ScheduleMatcher
from app.core.session_registry import Session
from app.core.telemetry_client import TelemetryClient
from app.core.timetable_store import TimetableStore
from app.schemas.prediction import Prediction

logger = logging.getLogger(__name__)

NO_ROUTE = "—"
NO_TIME = "--:--"


def make_clock(tz_name: str) -> Callable[[], datetime.datetime]:
    tz = ZoneInfo(tz_name)

    def now() -> datetime.datetime:
        return datetime.datetime.now(tz)

    return now


def format_clock_time(instant: datetime.datetime) -> str:
    return instant.strftime("%H:%M")


class PredictionEngine:
    """Runs one prediction tick for a session and pushes the result to its stream."""

    def __init__(
        self,
        telemetry: TelemetryClient,
        distance: DistanceEstimator,
        timetable: TimetableStore,
        eta_calculator: EtaCalculator | None = None,
        matcher: ScheduleMatcher | None = None,
        classifier: DelayClassifier | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.telemetry = telemetry
        self.distance = distance
        self.timetable = timetable
        self.eta_calculator = eta_calculator or EtaCalculator()
        self.matcher = matcher or ScheduleMatcher()
        self.classifier = classifier or DelayClassifier()
        self.clock = clock or (lambda: datetime.datetime.now(datetime.timezone.utc))

    async def tick(self, session: Session) -> None:
        """Scheduler entry point. Never raises; a failed tick leaves the session untouched."""
        if session.closed or session.stop is None:
            return
        try:
            prediction = await self.predict(session)
        except Exception:
            logger.exception("Error in prediction tick for session %s", session.id)
            return
        if prediction is not None:
            emit(session, prediction)

    async def predict(self, session: Session) -> Prediction | None:
        """Compute this tick's prediction and commit the session state it implies.

        Returns None, leaving the session as it was, when telemetry is
        unavailable, no distance can be computed from the coordinates, the
        session closed mid-tick or the stop selection was replaced while the
        tick was in flight.
        """
        stop = session.stop
        if stop is None:
            return None

        sample = await self.telemetry.fetch_sample()
        if sample is None:
            return None

        estimate = await self.distance.estimate(sample.lat, sample.lng, stop.lat, stop.lng)
        if estimate is None:
            return None
        now = self.clock()
        eta = self.eta_calculator.update(
            distance_km=estimate.km,
            speed_kmh=sample.speed,
            now=now,
            low_speed_since=session.low_speed_since,
            carried_arrival=session.last_arrival,
        )
        logger.debug(
            "Session %s: %.2f km (%s), speed %.1f km/h, %s, eta %s min",
            session.id, estimate.km, estimate.source, sample.speed, eta.state.value, eta.eta_minutes,
        )

        entries = await self.timetable.lookup(stop.name)
        match = self.matcher.match(entries, eta.arrival) if entries else None

        route, origin, destination, scheduled = NO_ROUTE, "", "", NO_TIME
        if match is None:
            label, delay = NO_SCHEDULE, None
        else:
            label, delay = self.classifier.resolve(
                fresh=eta.fresh,
                predicted=eta.arrival,
                scheduled=match.scheduled_at,
                now=now,
                last_label=session.last_status,
                last_delay=session.last_delay_minutes,
                low_speed_since=eta.low_speed_since,
            )
            route = str(match.entry.bus_number)
            scheduled = match.entry.expected_time
            endpoints = await self.timetable.route_endpoints(match.entry.bus_number)
            if endpoints is not None:
                origin, destination = endpoints.starting_halt, endpoints.ending_halt

        if session.closed or session.stop is not stop:
            logger.debug("Session %s changed during tick, discarding result", session.id)
            return None

        # Commit
        session.low_speed_since = eta.low_speed_since
        session.last_distance_source = estimate.source
        if eta.fresh:
            session.last_arrival = eta.arrival
            session.last_actual_time = format_clock_time(eta.arrival)
        if match is not None:
            session.last_status = label
            session.last_delay_minutes = delay
        elif eta.fresh:
            session.last_status = label
            session.last_delay_minutes = None

        return Prediction(
            route=route,
            from_=origin,
            to=destination,
            scheduled=scheduled,
            actual=session.last_actual_time,
            status=label.text,
            distance_km=f"{estimate.km:.2f}",
            speed=f"{eta.effective_speed_kmh:.1f}",
        )
