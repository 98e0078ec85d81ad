"""
Prayer time value types: prayer names, special night/day markers, and the immutable
DailyPrayerTimes snapshot for one calculation date.
"""
import re
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class PrayerName(str, Enum):
    """The five obligatory prayers in chronological order. Cyclical: Isha is followed by Fajr."""

    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def index(self) -> int:
        return list(PrayerName).index(self)

    def next(self) -> "PrayerName":
        """Following prayer in the cycle (Isha wraps to Fajr)."""
        members = list(PrayerName)
        return members[(self.index + 1) % len(members)]


class SpecialTimeType(str, Enum):
    IMSAK = "Imsak"
    SUNRISE = "Sunrise"
    SUNSET = "Sunset"
    MIDNIGHT = "Midnight"
    FIRST_THIRD = "First Third"
    LAST_THIRD = "Last Third"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return _SPECIAL_TIME_DESCRIPTIONS[self]


_SPECIAL_TIME_DESCRIPTIONS = {
    SpecialTimeType.IMSAK: "Stop eating for Fajr",
    SpecialTimeType.SUNRISE: "Sun rises",
    SpecialTimeType.SUNSET: "Sun sets",
    SpecialTimeType.MIDNIGHT: "Islamic midnight",
    SpecialTimeType.FIRST_THIRD: "First third of night",
    SpecialTimeType.LAST_THIRD: "Best time for Tahajjud",
}


class PrayerTime(NamedTuple):
    name: PrayerName
    time: datetime


class SpecialTime(NamedTuple):
    type: SpecialTimeType
    time: datetime


# Provider timing labels (Aladhan style, case-insensitive) -> DailyPrayerTimes field
TIMING_FIELDS = {
    "imsak": "imsak",
    "fajr": "fajr",
    "sunrise": "sunrise",
    "dhuhr": "dhuhr",
    "asr": "asr",
    "sunset": "sunset",
    "maghrib": "maghrib",
    "isha": "isha",
    "midnight": "midnight",
    "firstthird": "first_third",
    "lastthird": "last_third",
}

# Fields that may fall after 00:00 of the following calendar day
_NIGHT_FIELDS = ("isha", "first_third", "midnight", "last_third")

MAX_ADJUSTMENT_MINUTES = 30

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?")


def parse_clock_time(value: str) -> time:
    """Parse "HH:MM", "HH:MM:SS" or "HH:MM (TZ)" into a time."""
    m = _HHMM_RE.match(str(value))
    if not m:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = int(m.group(1)), int(m.group(2))
    second = int(m.group(3)) if m.group(3) else 0
    return time(hour, minute, second)


def clamp_adjustment(minutes: int) -> int:
    return max(-MAX_ADJUSTMENT_MINUTES, min(MAX_ADJUSTMENT_MINUTES, int(minutes)))


def format_adjustment(minutes: int) -> str:
    """Display form of an offset, e.g. "+5 min" or "No adjustment"."""
    if minutes == 0:
        return "No adjustment"
    return f"{minutes:+d} min"


class DailyPrayerTimes(BaseModel):
    """Prayer times for one calculation date. Immutable once constructed.

    midnight is the Islamic midnight (midpoint between sunset and dawn), not 00:00 on
    the clock; it is mandatory because it ends the Isha period.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    imsak: Optional[datetime] = None
    fajr: datetime
    sunrise: datetime
    dhuhr: datetime
    asr: datetime
    maghrib: datetime
    sunset: datetime
    isha: datetime
    midnight: datetime
    first_third: Optional[datetime] = None
    last_third: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_order(self) -> "DailyPrayerTimes":
        chain = [
            ("fajr", self.fajr),
            ("sunrise", self.sunrise),
            ("dhuhr", self.dhuhr),
            ("asr", self.asr),
            ("maghrib", self.maghrib),
            ("isha", self.isha),
            ("midnight", self.midnight),
        ]
        for (prev_name, prev), (name, current) in zip(chain, chain[1:]):
            if not prev < current:
                raise ValueError(f"{name} ({current}) must be after {prev_name} ({prev})")
        # Sunset is approximately Maghrib and may precede it by a few minutes
        if not self.asr < self.sunset < self.isha:
            raise ValueError(f"sunset ({self.sunset}) must fall between asr and isha")
        if self.imsak is not None and self.imsak > self.fajr:
            raise ValueError(f"imsak ({self.imsak}) must not be after fajr")
        return self

    @property
    def prayer_times(self) -> List[PrayerTime]:
        return [PrayerTime(prayer, self.start_of(prayer)) for prayer in PrayerName]

    def start_of(self, prayer: PrayerName) -> datetime:
        """Start timestamp of the given prayer on this date."""
        return getattr(self, prayer.name.lower())

    @property
    def special_times(self) -> List[SpecialTime]:
        candidates = [
            (SpecialTimeType.IMSAK, self.imsak),
            (SpecialTimeType.SUNRISE, self.sunrise),
            (SpecialTimeType.SUNSET, self.sunset),
            (SpecialTimeType.MIDNIGHT, self.midnight),
            (SpecialTimeType.FIRST_THIRD, self.first_third),
            (SpecialTimeType.LAST_THIRD, self.last_third),
        ]
        times = [SpecialTime(kind, when) for kind, when in candidates if when is not None]
        return sorted(times, key=lambda t: t.time)

    @property
    def all_times_sorted(self) -> List[Tuple[str, datetime]]:
        """Prayers and special times as (label, time) pairs in chronological order."""
        entries = [(p.name.display_name, p.time) for p in self.prayer_times]
        entries += [(s.type.display_name, s.time) for s in self.special_times]
        return sorted(entries, key=lambda entry: entry[1])

    @classmethod
    def from_timings(
        cls,
        day: date,
        timings: Mapping[str, str],
        tzinfo=None,
    ) -> "DailyPrayerTimes":
        """Build from a {label: "HH:MM"} mapping such as Aladhan's data.timings.

        Labels are matched case-insensitively and unknown labels are ignored. Isha and
        the night markers are moved to the next calendar day when they read earlier
        than Maghrib (high latitudes can put Isha after 00:00). Raises ValueError
        (pydantic ValidationError) if required times are missing or out of order.
        """
        values: Dict[str, datetime] = {}
        for label, raw in timings.items():
            field = TIMING_FIELDS.get(str(label).replace(" ", "").replace("_", "").lower())
            if field is None or raw in (None, ""):
                continue
            values[field] = datetime.combine(day, parse_clock_time(raw), tzinfo=tzinfo)

        evening = values.get("maghrib") or values.get("isha")
        if evening is not None:
            for field in _NIGHT_FIELDS:
                when = values.get(field)
                if when is not None and when < evening:
                    values[field] = when + timedelta(days=1)

        return cls(date=day, **values)

    def with_adjustments(self, adjustments: Mapping[PrayerName, int]) -> "DailyPrayerTimes":
        """Copy with each prayer's start shifted by its offset in minutes.

        Offsets are clamped to +/-MAX_ADJUSTMENT_MINUTES. Sunrise, sunset and the night
        markers are not moved. Raises ValidationError if the shifted times are out of order.
        """
        if not any(adjustments.values()):
            return self
        data = self.model_dump()
        for prayer, minutes in adjustments.items():
            field = prayer.name.lower()
            data[field] = data[field] + timedelta(minutes=clamp_adjustment(minutes))
        return DailyPrayerTimes.model_validate(data)
