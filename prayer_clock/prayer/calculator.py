"""
Prayer period state machine: classify an instant against one day's prayer times.

Pure and total. Intervals are half-open [start, deadline), so an instant equal to a
deadline belongs to whatever follows it.
"""
import logging
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from .period import (
    AfterIsha,
    BeforeFajr,
    BetweenPrayers,
    InProgress,
    NextPrayer,
    PrayerPeriod,
)
from .times import DailyPrayerTimes, PrayerName

logger = logging.getLogger(__name__)


class PrayerWindow(NamedTuple):
    prayer: PrayerName
    start: datetime
    deadline: datetime


def prayer_windows(times: DailyPrayerTimes) -> List[PrayerWindow]:
    """The five prayer windows of a day in chronological order.

    Fajr ends at sunrise, Isha at Islamic midnight, the others when the next prayer starts.
    """
    return [
        PrayerWindow(PrayerName.FAJR, times.fajr, times.sunrise),
        PrayerWindow(PrayerName.DHUHR, times.dhuhr, times.asr),
        PrayerWindow(PrayerName.ASR, times.asr, times.maghrib),
        PrayerWindow(PrayerName.MAGHRIB, times.maghrib, times.isha),
        PrayerWindow(PrayerName.ISHA, times.isha, times.midnight),
    ]


class PrayerPeriodCalculator:
    """Derives a PrayerPeriod from the clock and the day's prayer times."""

    @staticmethod
    def calculate(
        now: datetime,
        today: DailyPrayerTimes,
        tomorrow: Optional[DailyPrayerTimes] = None,
    ) -> PrayerPeriod:
        """Classify `now` against today's times.

        `today` must be the times for the day `now` belongs to; a mismatch is not an
        error, the result is simply computed as if the data were correct. Without
        `tomorrow` the period after Isha has no known end and no next prayer.
        """
        _log_if_mismatched(now, today)

        if now < today.fajr:
            return PrayerPeriod(
                state=BeforeFajr(next_fajr=today.fajr),
                next_prayer=NextPrayer(name=PrayerName.FAJR, time=today.fajr),
                # Previous night's midnight, estimated from today's
                period_start=today.midnight - timedelta(days=1),
                period_end=today.fajr,
                now=now,
            )

        windows = prayer_windows(today)
        for index, window in enumerate(windows):
            if window.start <= now < window.deadline:
                return PrayerPeriod(
                    state=InProgress(prayer=window.prayer, deadline=window.deadline),
                    current_prayer=window.prayer,
                    next_prayer=_following(windows, index, tomorrow),
                    period_start=window.start,
                    period_end=window.deadline,
                    now=now,
                )
            if index + 1 < len(windows):
                upcoming = windows[index + 1]
                if window.deadline <= now < upcoming.start:
                    return PrayerPeriod(
                        state=BetweenPrayers(
                            previous=window.prayer,
                            next=upcoming.prayer,
                            next_start=upcoming.start,
                        ),
                        next_prayer=NextPrayer(name=upcoming.prayer, time=upcoming.start),
                        period_start=window.deadline,
                        period_end=upcoming.start,
                        now=now,
                    )

        tomorrow_fajr = tomorrow.fajr if tomorrow is not None else None
        return PrayerPeriod(
            state=AfterIsha(tomorrow_fajr=tomorrow_fajr),
            next_prayer=(
                NextPrayer(name=PrayerName.FAJR, time=tomorrow_fajr)
                if tomorrow_fajr is not None
                else None
            ),
            period_start=today.midnight,
            period_end=tomorrow_fajr,
            now=now,
        )


def _following(
    windows: List[PrayerWindow],
    index: int,
    tomorrow: Optional[DailyPrayerTimes],
) -> Optional[NextPrayer]:
    if index + 1 < len(windows):
        upcoming = windows[index + 1]
        return NextPrayer(name=upcoming.prayer, time=upcoming.start)
    if tomorrow is not None:
        return NextPrayer(name=PrayerName.FAJR, time=tomorrow.fajr)
    return None


def _log_if_mismatched(now: datetime, today: DailyPrayerTimes) -> None:
    if now < today.fajr - timedelta(days=1) or now > today.midnight + timedelta(days=1):
        logger.debug(f"now={now} is more than a day outside prayer times for {today.date}")


calculate_period = PrayerPeriodCalculator.calculate
