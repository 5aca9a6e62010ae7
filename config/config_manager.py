"""Configuration manager for channel engine settings.

Loads and saves settings.json with mtime-based change detection for
live-reload in the main loop. Selected keys can be overridden through
environment variables (a .env file is honoured via python-dotenv in main).
"""
import json
import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from config.constants import (
    DEFAULT_FALLBACK_TIMEOUT_MS,
    DEFAULT_ADVANCE_FLOOR_MS,
    DEFAULT_SLIDE_COVER_LEAD_MS,
    DEFAULT_DEEP_LINK_DELAY_MS,
    DEFAULT_SLIDE_DURATION_SECONDS,
    DEFAULT_BUMPERS,
    DEFAULT_SLIDE_BUMPER,
    DEFAULT_FORBIDDEN_CATEGORY,
    DEFAULT_EXCLUDED_ITEM_ID,
    DEFAULT_SOURCE_PATH,
    DEFAULT_SIM_BUMPER_SECONDS,
    DEFAULT_SIM_STREAM_SECONDS,
)

logger = logging.getLogger(__name__)

# settings.json key -> environment variable that overrides it
_ENV_OVERRIDES = {
    'forbidden_category': 'CHANNEL_FORBIDDEN_CATEGORY',
    'excluded_item_id': 'CHANNEL_EXCLUDED_ITEM_ID',
    'content_source': 'CHANNEL_CONTENT_SOURCE',
    'slide_bumper': 'CHANNEL_SLIDE_BUMPER',
}

_POSITIVE_INT_KEYS = (
    'fallback_timeout_ms',
    'advance_floor_ms',
    'slide_duration_seconds',
)

_NON_NEGATIVE_INT_KEYS = (
    'slide_cover_lead_ms',
    'deep_link_delay_ms',
    'pool_refresh_seconds',
)

_NON_NEGATIVE_NUMBER_KEYS = (
    'sim_bumper_seconds',
    'sim_stream_seconds',
)


@dataclass(frozen=True)
class EngineSettings:
    """Typed view of the tunables the engine components consume."""
    fallback_timeout_ms: int = DEFAULT_FALLBACK_TIMEOUT_MS
    advance_floor_ms: int = DEFAULT_ADVANCE_FLOOR_MS
    slide_cover_lead_ms: int = DEFAULT_SLIDE_COVER_LEAD_MS
    deep_link_delay_ms: int = DEFAULT_DEEP_LINK_DELAY_MS
    slide_duration_seconds: int = DEFAULT_SLIDE_DURATION_SECONDS
    slide_auto_advance: bool = True
    bumpers: Tuple[str, ...] = field(default=DEFAULT_BUMPERS)
    slide_bumper: str = DEFAULT_SLIDE_BUMPER
    forbidden_category: str = DEFAULT_FORBIDDEN_CATEGORY
    excluded_item_id: str = DEFAULT_EXCLUDED_ITEM_ID


class ConfigManager:
    def __init__(self, settings_path: Optional[str] = None):
        config_dir = os.path.dirname(os.path.abspath(__file__))
        self.settings_path = settings_path or os.path.join(config_dir, "settings.json")
        self._cached_settings: Optional[Dict] = None
        self._settings_cache_mtime: float = 0

        if not os.path.exists(self.settings_path):
            self._create_default_settings()

        # Seed with the actual mtime so the first has_config_changed() call
        # doesn't spuriously report a change on startup.
        self.last_settings_mtime: float = self._safe_mtime(self.settings_path)

    def _create_default_settings(self):
        """Create a default settings file."""
        default_settings = {
            "fallback_timeout_ms": DEFAULT_FALLBACK_TIMEOUT_MS,
            "advance_floor_ms": DEFAULT_ADVANCE_FLOOR_MS,
            "slide_cover_lead_ms": DEFAULT_SLIDE_COVER_LEAD_MS,
            "deep_link_delay_ms": DEFAULT_DEEP_LINK_DELAY_MS,
            "slide_duration_seconds": DEFAULT_SLIDE_DURATION_SECONDS,
            "slide_auto_advance": True,
            "bumpers": list(DEFAULT_BUMPERS),
            "slide_bumper": DEFAULT_SLIDE_BUMPER,
            "forbidden_category": DEFAULT_FORBIDDEN_CATEGORY,
            "excluded_item_id": DEFAULT_EXCLUDED_ITEM_ID,
            "content_source": DEFAULT_SOURCE_PATH,
            "pool_refresh_seconds": 0,
            "sim_bumper_seconds": DEFAULT_SIM_BUMPER_SECONDS,
            "sim_stream_seconds": DEFAULT_SIM_STREAM_SECONDS,
            "debug_mode": False
        }

        with open(self.settings_path, 'w') as f:
            json.dump(default_settings, f, indent=2)

        logger.info(f"Created default settings at {self.settings_path}")

    def _load_json(self, path: str) -> Dict | None:
        """Load a JSON file and return its contents."""
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load {path}: {e}")
            return None

    def has_config_changed(self) -> bool:
        """Check if the settings file has been modified."""
        try:
            current_mtime = os.path.getmtime(self.settings_path)
            if current_mtime > self.last_settings_mtime:
                self.last_settings_mtime = current_mtime
                return True
        except Exception as e:
            logger.error(f"Error checking settings modification time: {e}")
        return False

    def get_settings(self) -> Dict:
        """Get settings from settings.json (cached, re-read on file change).

        Keys listed in _ENV_OVERRIDES are replaced by their environment
        variable when it is set, so deployment data such as the excluded
        item id never has to live in the JSON file.
        """
        try:
            current_mtime = os.path.getmtime(self.settings_path)
        except OSError:
            current_mtime = 0

        if self._cached_settings is not None and current_mtime == self._settings_cache_mtime:
            return self._cached_settings

        self._settings_cache_mtime = current_mtime
        settings = self._load_json(self.settings_path) or {}

        for key, env_name in _ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value is not None:
                settings[key] = value

        self._cached_settings = settings
        return settings

    def engine_settings(self) -> EngineSettings:
        """Build the typed engine settings, falling back to defaults per key."""
        s = self.get_settings()
        bumpers = s.get('bumpers') or list(DEFAULT_BUMPERS)
        return EngineSettings(
            fallback_timeout_ms=int(s.get('fallback_timeout_ms', DEFAULT_FALLBACK_TIMEOUT_MS)),
            advance_floor_ms=int(s.get('advance_floor_ms', DEFAULT_ADVANCE_FLOOR_MS)),
            slide_cover_lead_ms=int(s.get('slide_cover_lead_ms', DEFAULT_SLIDE_COVER_LEAD_MS)),
            deep_link_delay_ms=int(s.get('deep_link_delay_ms', DEFAULT_DEEP_LINK_DELAY_MS)),
            slide_duration_seconds=int(s.get('slide_duration_seconds', DEFAULT_SLIDE_DURATION_SECONDS)),
            slide_auto_advance=bool(s.get('slide_auto_advance', True)),
            bumpers=tuple(bumpers),
            slide_bumper=s.get('slide_bumper', DEFAULT_SLIDE_BUMPER),
            forbidden_category=s.get('forbidden_category', DEFAULT_FORBIDDEN_CATEGORY) or '',
            excluded_item_id=str(s.get('excluded_item_id', DEFAULT_EXCLUDED_ITEM_ID) or ''),
        )

    @property
    def content_source(self) -> str:
        """Get the content source (file path or http(s) URL)."""
        return self.get_settings().get('content_source', DEFAULT_SOURCE_PATH)

    @property
    def pool_refresh_seconds(self) -> int:
        """Seconds between background pool refreshes, 0 disables refresh."""
        return int(self.get_settings().get('pool_refresh_seconds', 0) or 0)

    def validate_config(self) -> bool:
        """Validate the settings file structure."""
        settings = self._load_json(self.settings_path)
        if not settings:
            logger.error("Failed to load settings.json")
            return False

        for key in _POSITIVE_INT_KEYS + _NON_NEGATIVE_INT_KEYS + _NON_NEGATIVE_NUMBER_KEYS:
            if key not in settings:
                continue
            convert = float if key in _NON_NEGATIVE_NUMBER_KEYS else int
            try:
                value = convert(settings[key])
            except (TypeError, ValueError):
                logger.error(f"Setting {key} must be a number, got {settings[key]!r}")
                return False
            if key in _POSITIVE_INT_KEYS and value <= 0:
                logger.error(f"Setting {key} must be positive, got {settings[key]}")
                return False
            if value < 0:
                logger.error(f"Setting {key} must not be negative, got {settings[key]}")
                return False

        if 'bumpers' in settings:
            bumpers = settings['bumpers']
            if (not isinstance(bumpers, list) or not bumpers
                    or not all(isinstance(b, str) and b for b in bumpers)):
                logger.error("Setting bumpers must be a non-empty list of clip paths")
                return False

        if 'slide_bumper' in settings and not (isinstance(settings['slide_bumper'], str)
                                               and settings['slide_bumper']):
            logger.error("Setting slide_bumper must be a clip path")
            return False

        return True

    @staticmethod
    def _safe_mtime(path: str) -> float:
        """Return the file's mtime, or 0 if it doesn't exist yet."""
        try:
            return os.path.getmtime(path)
        except OSError:
            return 0
