"""
API for the prayer clock. Mounted at /api/prayer/.
Period responses are the PrayerPeriod model itself, computed fields included.
"""
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, HTTPException

from .period import PrayerPeriod
from .service import PrayerTimesUnavailable
from .times import DailyPrayerTimes


def get_router(prayer_app) -> APIRouter:
    """Return router bound to a PrayerClockApp; mounted with prefix /api/prayer."""
    router = APIRouter(tags=["Prayer Times"])

    @router.get("/period", response_model=PrayerPeriod)
    def get_period(now: Optional[datetime] = None) -> PrayerPeriod:
        """Current prayer period, or the period at `now` (ISO datetime) when given."""
        try:
            return prayer_app.current_period(now)
        except PrayerTimesUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))

    @router.get("/times/{prayer_date}", response_model=DailyPrayerTimes)
    def get_times(prayer_date: date) -> DailyPrayerTimes:
        """Prayer times for a date, from the DB or fetched from the backend."""
        times = prayer_app.provider.get_times(prayer_date)
        if times is None:
            raise HTTPException(status_code=404, detail=f"No prayer times available for {prayer_date}")
        return times

    return router
