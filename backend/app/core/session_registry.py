"""One state record and one poll job per open client stream."""

import asyncio
import datetime
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.delay_classifier import DelayLabel
from app.core.emitter import new_outbox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectedStop:
    name: str
    lat: float
    lng: float


@dataclass
class Session:
    id: str
    outbox: asyncio.Queue = field(default_factory=new_outbox)
    stop: SelectedStop | None = None

    # Stall tracking and carried-forward outputs, committed only by the session's own tick
    low_speed_since: datetime.datetime | None = None
    last_arrival: datetime.datetime | None = None
    last_actual_time: str | None = None
    last_status: DelayLabel | None = None
    last_delay_minutes: int | None = None
    last_distance_source: str | None = None

    closed: bool = False

    @property
    def job_id(self) -> str:
        return f"session:{self.id}"


class SessionRegistry:
    """Creates sessions on connect and tears them down on disconnect.

    Each session gets an APScheduler interval job with ``max_instances=1``: a
    tick still running when the next one is due makes the scheduler skip it,
    so ticks of one session never overlap.
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        tick: Callable[[Session], Awaitable[None]],
        interval_seconds: float = 3,
    ) -> None:
        self.scheduler = scheduler
        self.tick = tick
        self.interval_seconds = interval_seconds
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def create(self, session_id: str) -> Session:
        if session_id in self._sessions:
            raise ValueError(f"Session {session_id} already exists")
        session = Session(id=session_id)
        self._sessions[session_id] = session
        self.scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_seconds,
            args=[session],
            id=session.job_id,
            name=f"Predict arrival for {session_id}",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info("Client connected: %s (%d open)", session_id, len(self._sessions))
        return session

    def select(self, session: Session, stop: SelectedStop) -> None:
        """Replace the stop selection wholesale. Nothing else on the session changes."""
        session.stop = stop
        logger.info("Session %s selected stop %r", session.id, stop.name)

    def destroy(self, session: Session) -> None:
        """Cancel the poll job and drop the record. Safe to call twice."""
        session.closed = True
        try:
            self.scheduler.remove_job(session.job_id)
        except JobLookupError:
            pass
        if self._sessions.pop(session.id, None) is not None:
            logger.info("Client disconnected: %s (%d open)", session.id, len(self._sessions))
