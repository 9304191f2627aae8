"""APScheduler setup for per-session prediction jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Create the scheduler that hosts one interval job per open session.

    Jobs are added and removed by the session registry as clients connect and
    disconnect. A tick that fires late is dropped rather than replayed.
    """
    return AsyncIOScheduler(
        job_defaults={
            "max_instances": 1,
            "coalesce": True,
            "misfire_grace_time": 1,
        },
    )
