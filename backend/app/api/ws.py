"""WebSocket endpoint streaming arrival predictions for the passenger's stop."""

import asyncio
import contextlib
import logging
import uuid

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.core.emitter import drain
from app.core.session_registry import SelectedStop
from app.schemas.prediction import StopSelection

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py on startup
registry = None


async def _send_loop(session, websocket: WebSocket) -> None:
    async def send(data: bytes) -> None:
        await websocket.send_text(data.decode())

    try:
        await drain(session, send)
    except (WebSocketDisconnect, RuntimeError):
        logger.debug("Stream for session %s closed while sending", session.id)
    except Exception:
        logger.exception("Failed sending to session %s", session.id)


@router.websocket("/ws/timetable")
async def timetable_ws(websocket: WebSocket) -> None:
    """Accept stop selections and push one prediction per poll interval."""
    await websocket.accept()

    if registry is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    session = registry.create(uuid.uuid4().hex)
    sender = asyncio.create_task(_send_loop(session, websocket))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                selection = StopSelection.model_validate(orjson.loads(raw))
            except (orjson.JSONDecodeError, ValidationError) as e:
                logger.warning("Session %s sent an invalid stop selection: %s", session.id, e)
                continue
            registry.select(
                session,
                SelectedStop(name=selection.stop_name, lat=selection.lat, lng=selection.lng),
            )
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("WebSocket error")
    finally:
        registry.destroy(session)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
