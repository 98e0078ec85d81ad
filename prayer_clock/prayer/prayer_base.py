import requests
from datetime import date
from typing import Dict, Any, Optional
import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from prayer_clock.core.cache_helper import CacheHelper
from prayer_clock.prayer.times import DailyPrayerTimes


class PrayerTimesBackend(ABC):
    """Base class for prayer time sources. Backends log failures and return None."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_daily_times(self, day: date, force_fetch: bool = False) -> Optional[DailyPrayerTimes]:
        """Get prayer times for a date
        Args:
            day: Calculation date
            force_fetch: If True, bypass any cache and fetch fresh data
        Returns:
            DailyPrayerTimes or None on error
        """


class AladhanBackend(PrayerTimesBackend):
    """Prayer times backend using api.aladhan.com"""

    API_URL = "https://api.aladhan.com/v1/timings/{day}"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.cache_helper = CacheHelper(config.get('cache_dir'), "prayer_times")

    def get_daily_times(self, day: date, force_fetch: bool = False) -> Optional[DailyPrayerTimes]:
        cache_key = f"prayer_times_{day.isoformat()}_{self.config.get('lat')}_{self.config.get('lon')}"
        try:
            timings = None
            if not force_fetch:
                timings = self.cache_helper.get_cached_content(cache_key, day=day)
                if timings:
                    self.logger.debug(f"Got {day} timings from cache")

            if not timings:
                timings = self._fetch_timings(day)
                self.cache_helper.save_to_cache(cache_key, timings, day=day)

            return DailyPrayerTimes.from_timings(day, timings)

        except requests.RequestException as e:
            self.logger.error(f"Error fetching prayer times for {day}: {e}")
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            self.logger.error(f"Invalid prayer times for {day}: {e}")
        return None

    def _fetch_timings(self, day: date) -> Dict[str, str]:
        """Fetch raw {label: "HH:MM"} timings for a date"""
        url = self.API_URL.format(day=day.strftime('%d-%m-%Y'))
        params = {
            'latitude': self.config.get('lat'),
            'longitude': self.config.get('lon'),
            'method': self.config.get('calculation_method', 2),
            'school': self.config.get('school', 0),
        }
        self.logger.info(f"Making API request to {url} with params {params}")
        response = requests.get(url, params=params, timeout=self.config.get('timeout', 10))
        response.raise_for_status()
        return response.json()['data']['timings']


class ManualBackend(PrayerTimesBackend):
    """Fixed daily times from config (prayer.times: {Fajr: "05:00", ...}). No network, no cache."""

    def get_daily_times(self, day: date, force_fetch: bool = False) -> Optional[DailyPrayerTimes]:
        times = self.config.get('times') or {}
        try:
            return DailyPrayerTimes.from_timings(day, times)
        except (TypeError, ValueError, ValidationError) as e:
            self.logger.error(f"Invalid manual prayer times: {e}")
            return None


_BACKENDS = {
    "aladhan": AladhanBackend,
    "manual": ManualBackend,
}


def get_backend(backend_type: str, config: Dict[str, Any]) -> Optional[PrayerTimesBackend]:
    """Factory: return backend instance for given type."""
    cls = _BACKENDS.get((backend_type or "").lower())
    if not cls:
        return None
    return cls(config)
