"""
PrayerPeriod snapshot and its state variants.

PrayerPeriodState is a discriminated union of four independent models; dispatch on it
with match/isinstance. A PrayerPeriod is recomputed on every query and never mutated.
"""
from datetime import datetime
from enum import IntEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .times import PrayerName

URGENT_THRESHOLD_SECONDS = 30 * 60


class BeforeFajr(BaseModel):
    """Night before today's Fajr."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["before_fajr"] = "before_fajr"
    next_fajr: datetime

    @property
    def is_active_time(self) -> bool:
        return False

    @property
    def next_event_time(self) -> Optional[datetime]:
        return self.next_fajr

    @property
    def description(self) -> str:
        return "Before Fajr"


class InProgress(BaseModel):
    """A prayer's window is open until deadline (exclusive)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["in_progress"] = "in_progress"
    prayer: PrayerName
    deadline: datetime

    @property
    def is_active_time(self) -> bool:
        return True

    @property
    def next_event_time(self) -> Optional[datetime]:
        return self.deadline

    @property
    def description(self) -> str:
        return f"{self.prayer.display_name} Period"


class BetweenPrayers(BaseModel):
    """Gap after one prayer's deadline and before the next one starts (e.g. sunrise to Dhuhr)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["between_prayers"] = "between_prayers"
    previous: PrayerName
    next: PrayerName
    next_start: datetime

    @property
    def is_active_time(self) -> bool:
        return False

    @property
    def next_event_time(self) -> Optional[datetime]:
        return self.next_start

    @property
    def description(self) -> str:
        return f"Between {self.previous.display_name} and {self.next.display_name}"


class AfterIsha(BaseModel):
    """Past Islamic midnight. tomorrow_fajr is None when tomorrow's times are unknown."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["after_isha"] = "after_isha"
    tomorrow_fajr: Optional[datetime] = None

    @property
    def is_active_time(self) -> bool:
        return False

    @property
    def next_event_time(self) -> Optional[datetime]:
        return self.tomorrow_fajr

    @property
    def description(self) -> str:
        return "After Isha"


PrayerPeriodState = Annotated[
    Union[BeforeFajr, InProgress, BetweenPrayers, AfterIsha],
    Field(discriminator="kind"),
]


class NextPrayer(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: PrayerName
    time: datetime


class UrgencyLevel(IntEnum):
    """Countdown urgency scale by whole minutes remaining."""

    RELAXED = 0  # >= 2 hours
    NORMAL = 1  # 30 min - 2 hours
    ELEVATED = 2  # 10 - 30 min
    URGENT = 3  # 5 - 10 min
    CRITICAL = 4  # < 5 min

    @classmethod
    def from_minutes(cls, minutes_remaining: int) -> "UrgencyLevel":
        if minutes_remaining >= 120:
            return cls.RELAXED
        if minutes_remaining >= 30:
            return cls.NORMAL
        if minutes_remaining >= 10:
            return cls.ELEVATED
        if minutes_remaining >= 5:
            return cls.URGENT
        return cls.CRITICAL

    @classmethod
    def from_seconds(cls, seconds_remaining: float) -> "UrgencyLevel":
        return cls.from_minutes(int(seconds_remaining // 60))

    @classmethod
    def from_period(cls, period: "PrayerPeriod") -> "UrgencyLevel":
        remaining = period.time_remaining
        if remaining is None:
            return cls.RELAXED
        return cls.from_seconds(remaining)

    @property
    def should_pulse(self) -> bool:
        return self is UrgencyLevel.CRITICAL

    @property
    def description(self) -> str:
        return _URGENCY_DESCRIPTIONS[self]


_URGENCY_DESCRIPTIONS = {
    UrgencyLevel.RELAXED: "More than 2 hours remaining",
    UrgencyLevel.NORMAL: "Between 30 minutes and 2 hours remaining",
    UrgencyLevel.ELEVATED: "Between 10 and 30 minutes remaining",
    UrgencyLevel.URGENT: "Less than 10 minutes remaining",
    UrgencyLevel.CRITICAL: "Less than 5 minutes remaining, prayer time ending soon",
}


def format_countdown(seconds: Optional[float]) -> str:
    """HH:MM:SS when at least an hour remains, else MM:SS. Fractions are truncated."""
    if seconds is None:
        return "--:--"
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_duration(seconds: float) -> str:
    """Compact duration, e.g. "2h 30m", "2h", "45m", "0m"."""
    total = max(int(seconds), 0)
    hours = total // 3600
    minutes = (total % 3600) // 60
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours == 0:
        parts.append(f"{minutes}m")
    return " ".join(parts)


class PrayerPeriod(BaseModel):
    """Snapshot of the prayer schedule at `now`.

    period_start/period_end bound the interval the state covers; period_end is None
    only when the boundary cannot be resolved (after Isha without tomorrow's times).
    """

    model_config = ConfigDict(frozen=True)

    state: PrayerPeriodState
    current_prayer: Optional[PrayerName] = None
    next_prayer: Optional[NextPrayer] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    now: datetime

    @computed_field
    @property
    def time_remaining(self) -> Optional[float]:
        """Seconds until the state's next event (deadline or next start)."""
        target = self.state.next_event_time
        if target is None:
            return None
        return (target - self.now).total_seconds()

    @computed_field
    @property
    def period_progress(self) -> float:
        if self.period_start is None or self.period_end is None:
            return 0.0
        total = (self.period_end - self.period_start).total_seconds()
        if total <= 0:
            return 0.0
        elapsed = (self.now - self.period_start).total_seconds()
        return min(max(elapsed / total, 0.0), 1.0)

    @computed_field
    @property
    def is_urgent(self) -> bool:
        if not isinstance(self.state, InProgress):
            return False
        return (self.state.deadline - self.now).total_seconds() < URGENT_THRESHOLD_SECONDS

    @computed_field
    @property
    def urgency_level(self) -> UrgencyLevel:
        return UrgencyLevel.from_period(self)

    @computed_field
    @property
    def countdown_string(self) -> str:
        return format_countdown(self.time_remaining)

    @computed_field
    @property
    def status_text(self) -> str:
        if isinstance(self.state, InProgress):
            return f"Ends in {self.countdown_string}"
        return f"Starts in {self.countdown_string}"

    @computed_field
    @property
    def formatted_time_remaining(self) -> str:
        """Remaining time with the destination prayer, e.g. "2h 30m until Asr"."""
        remaining = self.time_remaining
        if remaining is None:
            return "Fajr time unavailable"
        if remaining <= 0:
            return "Now"
        duration = format_duration(remaining)

        state = self.state
        if isinstance(state, InProgress):
            if self.next_prayer is not None:
                return f"{duration} until {self.next_prayer.name.display_name}"
            return f"{duration} remaining"
        if isinstance(state, BetweenPrayers):
            return f"{duration} until {state.next.display_name}"
        return f"{duration} until {PrayerName.FAJR.display_name}"
