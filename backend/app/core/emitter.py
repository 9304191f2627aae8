"""Per-session delivery of predictions to the originating WebSocket."""

import asyncio
import logging
from typing import Awaitable, Callable

import orjson

from app.schemas.prediction import Prediction

logger = logging.getLogger(__name__)

OUTBOX_SIZE = 10


def new_outbox() -> asyncio.Queue:
    return asyncio.Queue(maxsize=OUTBOX_SIZE)


def emit(session, prediction: Prediction) -> bool:
    """Queue a prediction for the session's own stream. Never blocks or raises.

    Returns False when the session is already closed. A full outbox (client not
    reading) drops its oldest frame.
    """
    if session.closed:
        logger.debug("Session %s closed, dropping prediction", session.id)
        return False

    payload = orjson.dumps([prediction.model_dump(by_alias=True)])
    q = session.outbox
    try:
        q.put_nowait(payload)
    except asyncio.QueueFull:
        q.get_nowait()
        q.put_nowait(payload)
        logger.debug("Session %s outbox full, dropped oldest frame", session.id)
    return True


async def drain(session, send: Callable[[bytes], Awaitable[None]]) -> None:
    """Forward queued frames to ``send`` until cancelled or ``send`` raises."""
    while True:
        data = await session.outbox.get()
        await send(data)
