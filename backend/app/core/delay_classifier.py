"""Sticky delay label for the predicted arrival versus the timetable."""

import datetime
import enum
import logging
from dataclasses import dataclass

from app.core.eta_calculator import round_half_up

logger = logging.getLogger(__name__)


class DelayStatus(str, enum.Enum):
    ON_TIME = "on_time"
    LATE = "late"
    EARLY = "early"
    NOT_COMING = "not_coming"
    NO_SCHEDULE = "no_schedule"


@dataclass(frozen=True)
class DelayLabel:
    status: DelayStatus
    minutes: int = 0

    @property
    def text(self) -> str:
        if self.status is DelayStatus.LATE:
            return f"{self.minutes} Min Late"
        if self.status is DelayStatus.EARLY:
            return f"{self.minutes} Min Early"
        if self.status is DelayStatus.NOT_COMING:
            return "Bus is not coming"
        if self.status is DelayStatus.NO_SCHEDULE:
            return "No schedule"
        return "On Time"


NO_SCHEDULE = DelayLabel(DelayStatus.NO_SCHEDULE)


@dataclass(frozen=True)
class DelayThresholds:
    late_minutes: int = 2
    not_coming_minutes: int = 60
    # Continuous stall after which a hopelessly late bus is declared not coming
    stall_timeout_seconds: int = 900


def delay_minutes(predicted: datetime.datetime, scheduled: datetime.datetime) -> int:
    return round_half_up((predicted - scheduled).total_seconds() / 60)


class DelayClassifier:
    def __init__(self, thresholds: DelayThresholds | None = None) -> None:
        self.thresholds = thresholds or DelayThresholds()

    def label_for(self, delay: int) -> DelayLabel:
        t = self.thresholds
        if delay > t.not_coming_minutes:
            return DelayLabel(DelayStatus.NOT_COMING, delay)
        if delay > t.late_minutes:
            return DelayLabel(DelayStatus.LATE, delay)
        if delay < -t.late_minutes:
            return DelayLabel(DelayStatus.EARLY, -delay)
        return DelayLabel(DelayStatus.ON_TIME)

    def classify(self, predicted: datetime.datetime, scheduled: datetime.datetime) -> tuple[DelayLabel, int]:
        delay = delay_minutes(predicted, scheduled)
        return self.label_for(delay), delay

    def stall_expired(
        self,
        low_speed_since: datetime.datetime | None,
        last_delay: int | None,
        now: datetime.datetime,
    ) -> bool:
        """True once a stall outlasts the timeout while the bus was already hopelessly late."""
        if low_speed_since is None or last_delay is None:
            return False
        stalled_for = (now - low_speed_since).total_seconds()
        return (
            stalled_for > self.thresholds.stall_timeout_seconds
            and last_delay > self.thresholds.not_coming_minutes
        )

    def resolve(
        self,
        fresh: bool,
        predicted: datetime.datetime,
        scheduled: datetime.datetime,
        now: datetime.datetime,
        last_label: DelayLabel | None = None,
        last_delay: int | None = None,
        low_speed_since: datetime.datetime | None = None,
    ) -> tuple[DelayLabel, int | None]:
        """Label to emit on this tick together with the delay to carry forward.

        Fresh ticks reclassify. Stalled ticks keep the previous label unless the
        stall timeout fires; with no usable previous label the frozen arrival is
        classified instead.
        """
        if not fresh:
            if self.stall_expired(low_speed_since, last_delay, now):
                logger.info("Stalled past %ds with delay %d min, marking not coming",
                            self.thresholds.stall_timeout_seconds, last_delay)
                return DelayLabel(DelayStatus.NOT_COMING, last_delay), last_delay
            if last_label is not None and last_label.status is not DelayStatus.NO_SCHEDULE:
                return last_label, last_delay
        return self.classify(predicted, scheduled)
