"""Resolve the selected stop's timetable to the bus entry relevant to this tick."""

import datetime
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

POLICY_NEAREST = "nearest"
POLICY_FIRST = "first"

_WS_RE = re.compile(r"\s+")
_TIME_RE = re.compile(r"^(\d{1,2})[:.](\d{2})\s*([AaPp][Mm])?$")


def normalize_stop_name(name: str | None) -> str:
    """Lowercase, trim and collapse inner whitespace: the timetable lookup key."""
    if not name:
        return ""
    return _WS_RE.sub(" ", name.strip()).lower()


def parse_time_of_day(raw: str | None) -> datetime.time | None:
    """Parse '07:45', '7.45', '7:45 AM' or '12:10 pm'. None when unparseable."""
    if not raw:
        return None
    m = _TIME_RE.match(raw.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    ampm = (m.group(3) or "").upper()
    if ampm:
        if not 1 <= hour <= 12:
            return None
        if ampm == "PM" and hour != 12:
            hour += 12
        elif ampm == "AM" and hour == 12:
            hour = 0
    if hour > 23 or minute > 59:
        return None
    return datetime.time(hour, minute)


def anchor_time_of_day(tod: datetime.time, reference: datetime.datetime) -> datetime.datetime:
    """Concrete instant for ``tod`` on the day nearest to ``reference``.

    Candidates are the previous, same and next calendar day of ``reference``,
    so an arrival predicted past midnight lines up with an early-morning
    timetable entry instead of one almost a day away.
    """
    base = reference.date()
    candidates = [
        datetime.datetime.combine(base + datetime.timedelta(days=offset), tod, tzinfo=reference.tzinfo)
        for offset in (-1, 0, 1)
    ]
    return min(candidates, key=lambda c: abs((c - reference).total_seconds()))


@dataclass(frozen=True)
class BusEntry:
    bus_number: str
    expected_time: str


@dataclass(frozen=True)
class ScheduleMatch:
    entry: BusEntry
    scheduled_at: datetime.datetime


class ScheduleMatcher:
    """Picks one timetable entry per tick.

    ``nearest`` (default) chooses the entry whose anchored instant is closest to
    the predicted arrival, earlier entry winning a tie. ``first`` always takes
    the first parseable entry in timetable order.
    """

    def __init__(self, policy: str = POLICY_NEAREST) -> None:
        if policy not in (POLICY_NEAREST, POLICY_FIRST):
            raise ValueError(f"Unknown schedule policy: {policy!r}")
        self.policy = policy

    def match(self, entries: list[BusEntry], predicted_arrival: datetime.datetime) -> ScheduleMatch | None:
        best: ScheduleMatch | None = None
        best_gap = None
        for entry in entries:
            tod = parse_time_of_day(entry.expected_time)
            if tod is None:
                logger.debug("Skipping unparseable timetable time %r (bus %s)", entry.expected_time, entry.bus_number)
                continue
            scheduled_at = anchor_time_of_day(tod, predicted_arrival)
            if self.policy == POLICY_FIRST:
                return ScheduleMatch(entry=entry, scheduled_at=scheduled_at)
            gap = abs((scheduled_at - predicted_arrival).total_seconds())
            if best_gap is None or gap < best_gap:
                best, best_gap = ScheduleMatch(entry=entry, scheduled_at=scheduled_at), gap
        return best
