"""
Service layer: persist daily prayer times and serve today's/tomorrow's times to the
period calculator, fetching through a backend when the DB has nothing for a date.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import select, delete

from prayer_clock.core.db import session_scope
from prayer_clock.prayer.models import DailyPrayerTimesRecord
from prayer_clock.prayer.prayer_base import PrayerTimesBackend
from prayer_clock.prayer.times import DailyPrayerTimes, PrayerName, clamp_adjustment, format_adjustment

logger = logging.getLogger(__name__)

COMPONENT_NAME = "Prayer Times"


class PrayerTimesUnavailable(RuntimeError):
    """No prayer times could be loaded or fetched for the requested date."""


def save_daily_times(component_name: str, times: DailyPrayerTimes) -> None:
    """Replace this component's prayer times for times.date."""
    fetched_at = datetime.now(timezone.utc).replace(tzinfo=None)
    with session_scope() as session:
        session.execute(
            delete(DailyPrayerTimesRecord).where(
                DailyPrayerTimesRecord.component_name == component_name,
                DailyPrayerTimesRecord.prayer_date == times.date,
            )
        )
        session.add(
            DailyPrayerTimesRecord(
                component_name=component_name,
                fetched_at=fetched_at,
                prayer_date=times.date,
                data=times.model_dump(mode="json"),
            )
        )


def get_daily_times_record(component_name: str, prayer_date: date) -> Optional[DailyPrayerTimesRecord]:
    """Return the stored row for this component and date (for API serialization)."""
    with session_scope() as session:
        return (
            session.execute(
                select(DailyPrayerTimesRecord)
                .where(
                    DailyPrayerTimesRecord.component_name == component_name,
                    DailyPrayerTimesRecord.prayer_date == prayer_date,
                )
                .limit(1)
            )
            .scalars().first()
        )


def load_daily_times(component_name: str, prayer_date: date) -> Optional[DailyPrayerTimes]:
    """Stored prayer times for a date, or None if missing or unreadable."""
    record = get_daily_times_record(component_name, prayer_date)
    if record is None:
        return None
    try:
        return DailyPrayerTimes.model_validate(record.data)
    except ValidationError as e:
        logger.error(f"Stored prayer times for {prayer_date} are invalid: {e}")
        return None


def parse_adjustments(raw: Optional[Mapping[str, Any]]) -> Dict[PrayerName, int]:
    """Per-prayer minute offsets from config ({Fajr: 2, ...}), clamped to +/-30.

    Prayer labels are matched case-insensitively; unknown labels and non-numeric
    values are logged and skipped.
    """
    adjustments: Dict[PrayerName, int] = {}
    by_label = {prayer.value.lower(): prayer for prayer in PrayerName}
    for label, minutes in (raw or {}).items():
        prayer = by_label.get(str(label).strip().lower())
        if prayer is None:
            logger.warning(f"Ignoring adjustment for unknown prayer {label!r}")
            continue
        try:
            clamped = clamp_adjustment(minutes)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric adjustment for {prayer.value}: {minutes!r}")
            continue
        if clamped != int(minutes):
            logger.warning(f"{prayer.value} adjustment {minutes} clamped to {clamped}")
        adjustments[prayer] = clamped
    return adjustments


class PrayerTimesProvider:
    """Supplies DailyPrayerTimes for a day: DB first, then the backend (result persisted).

    Stored rows hold the unadjusted times; per-prayer adjustments are applied on the
    way out so a config change takes effect without refetching.
    """

    def __init__(
        self,
        backend: PrayerTimesBackend,
        component_name: str = COMPONENT_NAME,
        adjustments: Optional[Mapping[PrayerName, int]] = None,
    ):
        self.backend = backend
        self.component_name = component_name
        self.adjustments = dict(adjustments or {})
        self.logger = logging.getLogger(self.__class__.__name__)
        for prayer, minutes in self.adjustments.items():
            if minutes:
                self.logger.info(f"{prayer.value} adjusted {format_adjustment(minutes)}")

    def get_times(self, day: date, force_fetch: bool = False) -> Optional[DailyPrayerTimes]:
        times = self._get_unadjusted(day, force_fetch)
        if times is None:
            return None
        return self._apply_adjustments(times)

    def _get_unadjusted(self, day: date, force_fetch: bool) -> Optional[DailyPrayerTimes]:
        if not force_fetch:
            stored = load_daily_times(self.component_name, day)
            if stored is not None:
                return stored

        self.logger.info(f"Fetching prayer times for {day}")
        times = self.backend.get_daily_times(day, force_fetch=force_fetch)
        if times is None:
            self.logger.warning(f"Backend returned no prayer times for {day}")
            return None
        save_daily_times(self.component_name, times)
        return times

    def _apply_adjustments(self, times: DailyPrayerTimes) -> DailyPrayerTimes:
        try:
            return times.with_adjustments(self.adjustments)
        except ValidationError as e:
            self.logger.error(f"Adjustments would put prayer times for {times.date} out of order, ignoring them: {e}")
            return times

    def get_today_and_tomorrow(
        self, now: datetime
    ) -> Tuple[DailyPrayerTimes, Optional[DailyPrayerTimes]]:
        """Times for the prayer day `now` belongs to, and the following day if available.

        Between 00:00 and the previous day's Islamic midnight the prayer day is still
        yesterday (its Isha has not ended). Raises PrayerTimesUnavailable when the
        times for that day cannot be obtained; a missing following day is tolerated.
        """
        calendar_day = now.date()
        today = self.get_times(calendar_day)
        if today is None:
            raise PrayerTimesUnavailable(f"No prayer times available for {calendar_day}")

        if now < today.fajr:
            yesterday = self.get_times(calendar_day - timedelta(days=1))
            if yesterday is not None and now < yesterday.midnight:
                return yesterday, today

        tomorrow = self.get_times(calendar_day + timedelta(days=1))
        if tomorrow is None:
            self.logger.warning(f"Tomorrow's prayer times unavailable for {calendar_day}")
        return today, tomorrow
