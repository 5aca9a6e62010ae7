import logging
from typing import Optional, Set, Tuple
from urllib.parse import parse_qs, urlencode, urlparse

from config.constants import (
    DEFAULT_DEEP_LINK_DELAY_MS,
    DEEP_LINK_STREAM_PARAM,
    DEEP_LINK_SLIDE_PARAM,
    DEFAULT_SHARE_BASE_URL,
)
from controllers.transition_controller import TransitionController
from core.content import ContentItem
from core.playback_state import PlaybackState
from core.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


def parse_deep_link(url: str) -> Optional[Tuple[str, str]]:
    """
    Extract the target from a shared link.

    ``?v=<id>`` points at a stream, ``?id=<id>`` at a slide.

    Returns:
        Tuple of (kind, item id) with kind "stream" or "slide", or None
    """
    query = parse_qs(urlparse(url).query)
    for param, kind in ((DEEP_LINK_STREAM_PARAM, 'stream'), (DEEP_LINK_SLIDE_PARAM, 'slide')):
        values = query.get(param)
        if values and values[0].strip():
            return kind, values[0].strip()
    return None


def build_deep_link(item: ContentItem, base_url: str = DEFAULT_SHARE_BASE_URL) -> str:
    """Build the link that parse_deep_link resolves back to item."""
    param = DEEP_LINK_STREAM_PARAM if item.is_stream else DEEP_LINK_SLIDE_PARAM
    return f"{base_url.rstrip('/')}/?{urlencode({param: item.id})}"


class DeepLinkHandler:
    """Plays an externally supplied item as if it had been picked by hand."""

    def __init__(self, controller: TransitionController, scheduler: Scheduler,
                 delay_ms: int = DEFAULT_DEEP_LINK_DELAY_MS):
        """
        Initialize deep-link handler.

        Args:
            controller: TransitionController that will play the item
            scheduler: Scheduler for the mount deferral
            delay_ms: Deferral before the first playback command
        """
        self.controller = controller
        self.scheduler = scheduler
        self.delay_ms = max(delay_ms, 0)
        self._processed: Set[str] = set()
        self._pending: Optional[TimerHandle] = None
        self._pending_start_count = 0
        controller.add_listener(self._on_state_change)

    def was_processed(self, item_id: str) -> bool:
        return str(item_id) in self._processed

    def handle(self, item_id: Optional[str]) -> bool:
        """
        Resolve item_id in the current pool and play it after the deferral.

        Each id fires at most once per session. Ids that don't resolve yet are
        not remembered, so a later pool refresh can still pick them up.

        Returns:
            True if playback was scheduled
        """
        if not item_id:
            return False
        item_id = str(item_id)
        if item_id in self._processed:
            logger.debug(f"Deep link {item_id} already handled, ignoring")
            return False

        item = self.controller.pool.find(item_id)
        if item is None:
            logger.warning(f"Deep link target {item_id} not found in pool")
            return False

        self._processed.add(item_id)
        # Keep the random first pick from racing the deferred deep link
        self.controller.claim_initial_selection()
        self.cancel_pending()
        self._pending_start_count = self.controller.start_count
        self._pending = self.scheduler.call_later(self.delay_ms, lambda: self._play(item))
        logger.info(f"Deep link {item_id} resolved, playing in {self.delay_ms}ms")
        return True

    def handle_url(self, url: str) -> bool:
        """Parse a shared link and handle its target."""
        target = parse_deep_link(url)
        if target is None:
            logger.debug(f"No deep-link target in {url}")
            return False
        kind, item_id = target
        item = self.controller.pool.find(item_id)
        if item is not None and item.is_stream != (kind == 'stream'):
            logger.warning(f"Deep link {url} asks for a {kind} but {item_id} is not one")
            return False
        return self.handle(item_id)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _on_state_change(self, state: PlaybackState) -> None:
        # Any start after handle() (e.g. a user pick) supersedes the deferred link
        if self._pending is not None and self.controller.start_count != self._pending_start_count:
            logger.info("Deep link superseded by a newer selection, cancelling it")
            self.cancel_pending()

    def _play(self, item: ContentItem) -> None:
        self._pending = None
        if self.controller.start_count != self._pending_start_count:
            logger.info(f"Deep link {item.id} superseded by a newer selection, not playing")
            return
        self.controller.play_manual(item)
