"""Read-only timetable endpoints."""

from fastapi import APIRouter, HTTPException

from app.core.schedule_matcher import normalize_stop_name
from app.schemas.prediction import ScheduleEntryInfo, ScheduleInfo

router = APIRouter(prefix="/api/schedules", tags=["schedules"])

# Will be set by main.py
timetable = None


@router.get("", response_model=list[ScheduleInfo])
async def list_schedules():
    """Get every halt's timetable."""
    if timetable is None:
        return []
    schedules = await timetable.list_schedules()
    return [
        ScheduleInfo(
            halt_key=s.halt_key,
            display_name=s.display_name or s.halt_key,
            buses=[ScheduleEntryInfo(bus_number=e.bus_number, expected_time=e.expected_time) for e in s.entries],
        )
        for s in schedules
    ]


@router.get("/{halt_name}", response_model=ScheduleInfo)
async def get_schedule(halt_name: str):
    """Get one halt's timetable; the name is matched case- and whitespace-insensitively."""
    entries = await timetable.lookup(halt_name) if timetable else None
    if entries is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    key = normalize_stop_name(halt_name)
    return ScheduleInfo(
        halt_key=key,
        display_name=key,
        buses=[ScheduleEntryInfo(bus_number=e.bus_number, expected_time=e.expected_time) for e in entries],
    )
