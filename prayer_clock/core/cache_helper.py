import os
import json
from datetime import date
import logging
from typing import Any, Optional
import hashlib

logger = logging.getLogger(__name__)


class CacheHelper:
    DEFAULT_CACHE_DIR = ".cache"

    def __init__(self, cache_dir: Optional[str] = None, component_name: str = ""):
        """Initialize cache helper with specific cache directory
        Args:
            cache_dir: Base cache directory from config, if None uses DEFAULT_CACHE_DIR
            component_name: Component specific subdirectory
        """
        base_dir = os.path.expanduser(cache_dir or self.DEFAULT_CACHE_DIR)
        self.cache_dir = os.path.join(base_dir, component_name) if component_name else base_dir
        os.makedirs(self.cache_dir, exist_ok=True)

    def _get_cache_file(self, key: str) -> str:
        """Generate cache filename from key"""
        key_hash = hashlib.md5(key.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{key_hash}.json")

    def get_cached_content(self, key: str, day: Optional[date] = None) -> Optional[Any]:
        """Get cached content if it exists and was saved for `day` (default: today)"""
        cache_file = self._get_cache_file(key)
        if not os.path.exists(cache_file):
            return None
        try:
            with open(cache_file, 'r') as f:
                cached = json.load(f)

            cache_date = date.fromisoformat(cached['date'])
            if cache_date == (day or date.today()):
                return cached['content']
            return None

        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Error reading cache: {e}")
            return None

    def save_to_cache(self, key: str, content: Any, day: Optional[date] = None) -> None:
        """Save JSON-serializable content to cache for `day` (default: today)"""
        try:
            cache_data = {
                'date': (day or date.today()).isoformat(),
                'content': content,
            }
            with open(self._get_cache_file(key), 'w') as f:
                json.dump(cache_data, f)

        except (OSError, TypeError) as e:
            logger.error(f"Error saving to cache: {e}")
