import asyncio
import logging
import random
import signal
import time
from typing import Optional

from config.config_manager import ConfigManager, EngineSettings
from config.constants import DEFAULT_SIM_BUMPER_SECONDS, DEFAULT_SIM_STREAM_SECONDS
from controllers.transition_controller import TransitionController
from core.scheduler import AsyncioScheduler, Scheduler
from handlers.deep_link_handler import DeepLinkHandler
from managers.bumper_rotation import BumperRotation
from managers.content_pool import ContentPool
from playback.presence_guard import PresenceGuard
from playback.simulated_renderer import SimulatedRenderer
from playback.wake_lock import SystemdInhibitProvider, WakeLockProvider, release_all_locks
from services.content_source import ContentSource

logger = logging.getLogger(__name__)

LOOP_INTERVAL = 1.0


class ChannelApp:
    """Main channel application - wires the engine and runs the main loop."""

    def __init__(self, config_manager: ConfigManager,
                 source_location: Optional[str] = None,
                 deep_link: Optional[str] = None,
                 wake_lock_provider: Optional[WakeLockProvider] = None,
                 scheduler: Optional[Scheduler] = None,
                 seed: Optional[int] = None):
        self.config_manager = config_manager
        # Invalid settings are refused in run(); build with defaults meanwhile
        self.config_valid = config_manager.validate_config()
        self.settings: EngineSettings = (config_manager.engine_settings()
                                         if self.config_valid else EngineSettings())
        self.source = ContentSource(
            source_location or config_manager.content_source,
            default_slide_duration=self.settings.slide_duration_seconds,
        )
        self.deep_link = deep_link
        self.scheduler = scheduler or AsyncioScheduler()
        self._rng = random.Random(seed)

        self.controller = TransitionController.from_settings(
            self._build_pool([]), self.scheduler, self.settings, rng=self._rng
        )
        self.presence_guard = PresenceGuard(wake_lock_provider or SystemdInhibitProvider())
        self.controller.add_listener(self.presence_guard.on_state_change)
        self.deep_link_handler = DeepLinkHandler(self.controller, self.scheduler, self.settings.deep_link_delay_ms)

        raw = config_manager.get_settings() if self.config_valid else {}
        self.renderer = SimulatedRenderer(
            self.controller,
            bumper_seconds=float(raw.get('sim_bumper_seconds', DEFAULT_SIM_BUMPER_SECONDS)),
            stream_seconds=float(raw.get('sim_stream_seconds', DEFAULT_SIM_STREAM_SECONDS)),
        )
        self.renderer.attach()

        self.refresh_seconds = config_manager.pool_refresh_seconds if self.config_valid else 0
        self._last_refresh = 0.0
        self._shutdown_requested = False

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self.signal_handler)
        signal.signal(signal.SIGTERM, self.signal_handler)

    def signal_handler(self, sig, frame):
        """Handle shutdown signals gracefully."""
        logger.info("Shutdown signal received...")
        self._shutdown_requested = True

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def _build_pool(self, items) -> ContentPool:
        return ContentPool(
            items,
            forbidden_category=self.settings.forbidden_category,
            excluded_item_id=self.settings.excluded_item_id,
            rng=self._rng,
        )

    def refresh_pool(self) -> None:
        """Reload the content source and hand the new pool to the controller."""
        items = self.source.load()
        self._last_refresh = time.time()
        if not items and not self.controller.pool.is_empty:
            logger.warning("Content refresh returned nothing, keeping the current pool")
            return
        self.controller.set_pool(self._build_pool(items))

    def start(self) -> None:
        """Load content, honour the deep link, then make the first pick."""
        if not ContentSource.exists(self.source.location):
            logger.warning(f"Content source {self.source.location} does not exist yet")
        items = self.source.load()
        self._last_refresh = time.time()
        pool = self._build_pool(items)
        if pool.is_empty:
            logger.warning("Starting with an empty content pool, waiting for content")

        # Resolve the deep link before the first pick so it wins the latch
        self.controller.set_pool(pool, start=False)
        if self.deep_link:
            handled = (self.deep_link_handler.handle_url(self.deep_link)
                       if '?' in self.deep_link else self.deep_link_handler.handle(self.deep_link))
            if not handled:
                logger.warning(f"Deep link {self.deep_link} could not be resolved, starting at random")
        self.controller.start_initial()

    def _apply_config_changes(self) -> bool:
        """Apply a changed settings file. Invalid settings leave everything as it was.

        Returns:
            True if the new settings were applied
        """
        if not self.config_manager.validate_config():
            logger.error("Changed settings are invalid, keeping the previous ones")
            return False

        settings = self.config_manager.engine_settings()
        if (settings.bumpers, settings.slide_bumper) != (self.settings.bumpers, self.settings.slide_bumper):
            self.controller.set_bumper_rotation(
                BumperRotation(settings.bumpers, settings.slide_bumper, rng=self._rng)
            )
        self.settings = settings

        self.controller.fallback_timeout_ms = settings.fallback_timeout_ms
        self.controller.advance_floor_ms = settings.advance_floor_ms
        self.controller.slide_cover_lead_ms = settings.slide_cover_lead_ms
        self.controller.slide_auto_advance = settings.slide_auto_advance
        self.deep_link_handler.delay_ms = settings.deep_link_delay_ms
        self.source.default_slide_duration = settings.slide_duration_seconds
        self.refresh_seconds = self.config_manager.pool_refresh_seconds
        # Exclusions may have changed: rebuild the pool from the current items
        self.controller.set_pool(self._build_pool(self.controller.pool.items))
        return True

    async def run(self) -> None:
        """Main loop."""
        logger.info("Starting always-on channel")
        if not self.config_valid:
            logger.error("Invalid settings, refusing to start")
            return

        self.start()

        while not self._shutdown_requested:
            try:
                if self.config_manager.has_config_changed():
                    logger.info("Settings changed, applying...")
                    self._apply_config_changes()

                if self.refresh_seconds and time.time() - self._last_refresh >= self.refresh_seconds:
                    self.refresh_pool()

            except Exception as e:
                logger.error(f"Error in main loop: {e}", exc_info=True)

            await asyncio.sleep(LOOP_INTERVAL)

        self.shutdown()

    def shutdown(self) -> None:
        """Tear the session down: stop timers, release the wake-lock."""
        logger.info("Shutting down channel...")
        self.deep_link_handler.cancel_pending()
        self.renderer.detach()
        self.controller.close()
        self.presence_guard.close()
        release_all_locks()
        logger.info("Cleanup complete")
