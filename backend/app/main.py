"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import diagnostics, schedules, ws
from app.config import settings
from app.core.delay_classifier import DelayClassifier, DelayThresholds
from app.core.distance import DistanceEstimator
from app.core.eta_calculator import EtaCalculator, EtaConfig
from app.core.prediction_engine import PredictionEngine, make_clock
from app.core.schedule_matcher import ScheduleMatcher
from app.core.scheduler import create_scheduler
from app.core.session_registry import SessionRegistry
from app.core.telemetry_client import TelemetryClient
from app.core.timetable_store import TimetableStore
from app.db.session import async_session, engine
from app.models.base import Base
from app.models import tables  # noqa: F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    # Create tables if they don't exist
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Initialize services
    clock = make_clock(settings.timezone)
    telemetry = TelemetryClient(clock=clock)
    distance = DistanceEstimator()
    timetable = TimetableStore(async_session, timeout=settings.schedule_timeout_seconds)

    predictor = PredictionEngine(
        telemetry,
        distance,
        timetable,
        eta_calculator=EtaCalculator(EtaConfig(
            min_speed_kmh=settings.min_speed_kmh,
            stall_speed_kmh=settings.stall_speed_kmh,
        )),
        matcher=ScheduleMatcher(settings.schedule_policy),
        classifier=DelayClassifier(DelayThresholds(
            late_minutes=settings.late_threshold_minutes,
            not_coming_minutes=settings.not_coming_threshold_minutes,
            stall_timeout_seconds=settings.stall_timeout_seconds,
        )),
        clock=clock,
    )

    scheduler = create_scheduler()
    registry = SessionRegistry(scheduler, predictor.tick, interval_seconds=settings.poll_interval_seconds)

    # Wire up API modules
    ws.registry = registry
    diagnostics.registry = registry
    schedules.timetable = timetable

    scheduler.start()
    logger.info(
        "Arrival monitor started - polling every %ds, %s schedule matching",
        settings.poll_interval_seconds, settings.schedule_policy,
    )

    yield

    # Shutdown
    for session in registry.sessions():
        registry.destroy(session)
    scheduler.shutdown(wait=False)
    await telemetry.close()
    await distance.close()
    await engine.dispose()
    logger.info("Arrival monitor shut down")


app = FastAPI(
    title="Rextro Bus Arrival Monitor",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedules.router)
app.include_router(diagnostics.router)
app.include_router(ws.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
