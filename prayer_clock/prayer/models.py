"""
SQLAlchemy models for prayer times: one row per component per calculation date.
"""
from sqlalchemy import Column, String, Date, DateTime, Integer, JSON, UniqueConstraint

from prayer_clock.core.db import Base


class DailyPrayerTimesRecord(Base):
    """Prayer times for one date. data is DailyPrayerTimes as JSON (ISO datetime strings)."""
    __tablename__ = "daily_prayer_times"
    __table_args__ = (UniqueConstraint("component_name", "prayer_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    component_name = Column(String(255), nullable=False, index=True)
    fetched_at = Column(DateTime(timezone=False), nullable=False, index=True)
    prayer_date = Column(Date, nullable=False, index=True)
    data = Column(JSON, nullable=False)  # {"fajr": "2025-11-01T05:00:00", ...}
