"""Shared fixtures for prayer clock tests."""

from datetime import date, datetime, timedelta

import pytest

from prayer_clock.core import db
from prayer_clock.prayer.times import DailyPrayerTimes

BASE_DAY = date(2025, 11, 1)

MANUAL_TIMES = {
    "Imsak": "04:45",
    "Fajr": "05:00",
    "Sunrise": "06:30",
    "Dhuhr": "12:30",
    "Asr": "15:30",
    "Sunset": "17:55",
    "Maghrib": "18:00",
    "Isha": "20:00",
    "Firstthird": "22:00",
    "Midnight": "00:30",
    "Lastthird": "02:00",
}


def at(hour: int, minute: int = 0, second: int = 0, day: date = BASE_DAY, days: int = 0) -> datetime:
    """Naive local timestamp on `day` shifted by `days`."""
    return datetime(day.year, day.month, day.day, hour, minute, second) + timedelta(days=days)


def make_times(day: date = BASE_DAY) -> DailyPrayerTimes:
    """Fajr 05:00, sunrise 06:30, Dhuhr 12:30, Asr 15:30, Maghrib 18:00, Isha 20:00, midnight 00:30 (+1d)."""
    return DailyPrayerTimes.from_timings(day, MANUAL_TIMES)


@pytest.fixture
def today() -> DailyPrayerTimes:
    return make_times(BASE_DAY)


@pytest.fixture
def tomorrow() -> DailyPrayerTimes:
    return make_times(BASE_DAY + timedelta(days=1))


@pytest.fixture
def database(tmp_path):
    """Fresh SQLite database per test."""
    db.reset_db()
    db.init_db(db_url=f"sqlite:///{tmp_path / 'test.db'}")
    yield
    db.reset_db()


@pytest.fixture
def manual_config_file(tmp_path):
    """Config file using the manual backend and a temp database."""
    config_path = tmp_path / "config.yaml"
    lines = [
        "prayer:",
        "  backend: manual",
        "  times:",
    ]
    lines += [f'    {label}: "{value}"' for label, value in MANUAL_TIMES.items()]
    lines += [
        "cache:",
        f"  directory: {tmp_path / 'cache'}",
        "database:",
        f"  path: {tmp_path / 'app.db'}",
        "logging:",
        "  level: INFO",
    ]
    config_path.write_text("\n".join(lines) + "\n")
    return config_path
