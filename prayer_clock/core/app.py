from typing import Dict, Any, Optional
import logging
import sys
from datetime import datetime

from .config import Config
from .db import init_db
from prayer_clock.prayer.calculator import PrayerPeriodCalculator
from prayer_clock.prayer.period import PrayerPeriod
from prayer_clock.prayer.prayer_base import get_backend
from prayer_clock.prayer.service import PrayerTimesProvider, parse_adjustments

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class PrayerClockApp:
    """Wires configuration, logging, database and the prayer times provider.

    The app is the clock source: the calculator itself only ever sees an explicit `now`.
    """

    def __init__(self, config_path: Optional[str] = None, db_url: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path)
        self.config.register_change_callback(self.handle_config_change)

        self._file_handler: Optional[logging.Handler] = None
        self._setup_logging()

        init_db(self.config.data, db_url=db_url)

        self.provider = self._create_provider(self.config.get_section("prayer"))

    def _setup_logging(self) -> None:
        """Apply logging.level and add a file handler when logging.file is set"""
        log_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO))

        if self._file_handler is not None:
            root_logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

        log_file = log_config.get("file")
        if log_file:
            self._file_handler = logging.FileHandler(log_file)
            self._file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root_logger.addHandler(self._file_handler)

        logging.info("Prayer clock starting...")

    def _create_provider(self, prayer_config: Dict[str, Any]) -> PrayerTimesProvider:
        """Create the prayer times provider for the configured backend"""
        backend_type = prayer_config.get("backend", "aladhan")
        cfg = dict(prayer_config)
        cache_dir = self.config.get_section("cache").get("directory")
        if cache_dir and "cache_dir" not in cfg:
            cfg["cache_dir"] = cache_dir
        backend = get_backend(backend_type, cfg)
        if backend is None:
            raise ValueError(f"Unknown prayer times backend: {backend_type}")
        self.logger.info(f"Using {backend.__class__.__name__} for prayer times")
        return PrayerTimesProvider(backend, adjustments=parse_adjustments(prayer_config.get("adjustments")))

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Rebuild logging and provider after the config file changed"""
        self._setup_logging()
        try:
            self.provider = self._create_provider(new_config.get("prayer") or {})
        except ValueError as e:
            self.logger.error(f"Keeping previous prayer times provider: {e}")

    def current_period(self, now: Optional[datetime] = None) -> PrayerPeriod:
        """Prayer period at `now` (default: local wall-clock time).

        Prayer times are naive local timestamps, so an aware `now` is converted to
        naive local time first. Raises PrayerTimesUnavailable if today's times cannot
        be obtained.
        """
        if now is None:
            now = datetime.now()
        elif now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        today, tomorrow = self.provider.get_today_and_tomorrow(now)
        return PrayerPeriodCalculator.calculate(now, today, tomorrow)

    def cleanup(self) -> None:
        self.config.cleanup()
        if self._file_handler is not None:
            logging.getLogger().removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None


def setup_basic_logging() -> None:
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")
