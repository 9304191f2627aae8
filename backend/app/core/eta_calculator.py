"""Speed-based ETA to the selected stop with stall hysteresis.

The calculator is a two-state machine per session. While MOVING every tick
yields a fresh arrival estimate. Once the reported speed drops below the stall
threshold the session is STALLED and the last estimate is carried forward
unchanged until the first tick back at or above the threshold. GPS speed is
noisy at rest (traffic lights, boarding), so freezing keeps the ETA from
bouncing around while the bus stands still.

The calculator never reads the wall clock or mutates the session: callers pass
``now`` and the carried-forward values in and commit the returned result.
"""

import datetime
import enum
import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


class MotionState(str, enum.Enum):
    MOVING = "moving"
    STALLED = "stalled"


@dataclass(frozen=True)
class EtaConfig:
    # Floor applied to the speed used for the ETA (km/h), prevents division blow-up
    min_speed_kmh: float = 1.0
    # Below this reported speed (km/h) the bus counts as stalled
    stall_speed_kmh: float = 0.5


@dataclass
class EtaResult:
    state: MotionState
    fresh: bool
    arrival: datetime.datetime | None
    eta_minutes: int | None
    effective_speed_kmh: float
    low_speed_since: datetime.datetime | None


class EtaCalculator:
    def __init__(self, config: EtaConfig | None = None) -> None:
        self.config = config or EtaConfig()

    def motion_state(self, speed_kmh: float) -> MotionState:
        if speed_kmh < self.config.stall_speed_kmh:
            return MotionState.STALLED
        return MotionState.MOVING

    def effective_speed(self, speed_kmh: float) -> float:
        return max(speed_kmh, self.config.min_speed_kmh)

    def eta_minutes(self, distance_km: float, speed_kmh: float) -> int:
        """Whole minutes to cover ``distance_km``, never less than 1."""
        speed_km_per_min = self.effective_speed(speed_kmh) / 60
        return max(1, round_half_up(distance_km / speed_km_per_min))

    def update(
        self,
        distance_km: float,
        speed_kmh: float,
        now: datetime.datetime,
        low_speed_since: datetime.datetime | None = None,
        carried_arrival: datetime.datetime | None = None,
    ) -> EtaResult:
        """Advance the stall machine by one tick and return the arrival to report.

        A STALLED tick with nothing carried forward yet (first tick after the
        stop was selected) still computes an estimate so the client is not
        left without one.
        """
        state = self.motion_state(speed_kmh)
        effective = self.effective_speed(speed_kmh)

        if state is MotionState.STALLED:
            since = low_speed_since or now
            if carried_arrival is not None:
                return EtaResult(
                    state=state,
                    fresh=False,
                    arrival=carried_arrival,
                    eta_minutes=None,
                    effective_speed_kmh=effective,
                    low_speed_since=since,
                )
        else:
            if low_speed_since is not None:
                logger.debug("Bus moving again after stall since %s", low_speed_since.isoformat())
            since = None

        minutes = self.eta_minutes(distance_km, speed_kmh)
        return EtaResult(
            state=state,
            fresh=True,
            arrival=now + datetime.timedelta(minutes=minutes),
            eta_minutes=minutes,
            effective_speed_kmh=effective,
            low_speed_since=since,
        )
