"""Diagnostics API for inspecting open prediction sessions."""

from fastapi import APIRouter

from app.core.eta_calculator import MotionState
from app.schemas.prediction import SessionInfo

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
registry = None


def session_info(session) -> SessionInfo:
    state = MotionState.STALLED if session.low_speed_since is not None else MotionState.MOVING
    return SessionInfo(
        id=session.id,
        stop_name=session.stop.name if session.stop else None,
        state=state.value,
        low_speed_since=session.low_speed_since.isoformat() if session.low_speed_since else None,
        last_actual_time=session.last_actual_time,
        last_status=session.last_status.text if session.last_status else None,
        last_delay_minutes=session.last_delay_minutes,
        distance_source=session.last_distance_source,
    )


@router.get("")
async def get_diagnostics():
    """Open sessions with their stall state and carried-forward outputs."""
    if registry is None:
        return {"error": "Registry not initialized"}
    sessions = [session_info(s).model_dump() for s in registry.sessions()]
    return {"open_sessions": len(sessions), "sessions": sessions}
