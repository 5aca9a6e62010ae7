"""Headless stand-in for the player UI.

Follows the transition controller's state and reports playback events on
a clock instead of real players: a bumper "ends" after a fixed length and
an item "ends" after its length (slides use their display duration). This
is enough to run the channel unattended from the CLI.
"""
import logging
from typing import Optional

from config.constants import DEFAULT_SIM_BUMPER_SECONDS, DEFAULT_SIM_STREAM_SECONDS
from controllers.transition_controller import TransitionController
from core.content import ContentItem
from core.playback_state import PlaybackState
from core.scheduler import TimerHandle

logger = logging.getLogger(__name__)


class SimulatedRenderer:

    def __init__(self, controller: TransitionController,
                 bumper_seconds: float = DEFAULT_SIM_BUMPER_SECONDS,
                 stream_seconds: float = DEFAULT_SIM_STREAM_SECONDS):
        self.controller = controller
        self.scheduler = controller.scheduler
        self.bumper_ms = int(bumper_seconds * 1000)
        self.stream_ms = int(stream_seconds * 1000)

        self._bumper_timer: Optional[TimerHandle] = None
        self._content_timer: Optional[TimerHandle] = None
        self._shown_bumper: Optional[str] = None
        self._shown_seq: Optional[int] = None
        self._overlay_up = False
        self._active_item: Optional[ContentItem] = None
        self.bumpers_played = 0
        self.items_played = 0

    def attach(self) -> None:
        self.controller.add_listener(self.on_state_change)

    def on_state_change(self, state: PlaybackState) -> None:
        if state.overlay_visible:
            self._cancel_content()
            self._active_item = None
            # A new bumper assignment restarts the clip even if it is the same url
            if not self._overlay_up or state.bumper_seq != self._shown_seq:
                self._start_bumper(state.bumper_url, state.bumper_seq)
            self._overlay_up = True
            return

        self._overlay_up = False
        self._cancel_bumper()
        self._shown_bumper = None
        self._shown_seq = None
        if state.content_active and state.current is not None and state.current != self._active_item:
            self._start_content(state.current)

    def _start_bumper(self, bumper: Optional[str], seq: int) -> None:
        self._cancel_bumper()
        self._shown_bumper = bumper
        self._shown_seq = seq
        self.bumpers_played += 1
        logger.debug(f"[renderer] bumper {bumper} playing")
        self._bumper_timer = self.scheduler.call_later(self.bumper_ms, self._on_bumper_ended)

    def _on_bumper_ended(self) -> None:
        self._bumper_timer = None
        if self.controller.dismiss_overlay():
            return
        # Swap still pending under the overlay: loop the bumper
        if self.controller.state.overlay_visible:
            logger.debug(f"[renderer] looping bumper {self._shown_bumper}")
            self._bumper_timer = self.scheduler.call_later(self.bumper_ms, self._on_bumper_ended)

    def _start_content(self, item: ContentItem) -> None:
        self._cancel_content()
        self._active_item = item
        self.items_played += 1
        length_ms = self.stream_ms if item.is_stream else item.duration_ms
        logger.info(f"[renderer] showing {item.id} ({item.label}) for {length_ms / 1000:.1f}s")
        self._content_timer = self.scheduler.call_later(length_ms, lambda: self._on_content_ended(item))

    def _on_content_ended(self, item: ContentItem) -> None:
        self._content_timer = None
        self.controller.on_content_ended(item)

    def _cancel_bumper(self) -> None:
        if self._bumper_timer is not None:
            self._bumper_timer.cancel()
            self._bumper_timer = None

    def _cancel_content(self) -> None:
        if self._content_timer is not None:
            self._content_timer.cancel()
            self._content_timer = None

    def detach(self) -> None:
        self._cancel_bumper()
        self._cancel_content()
        self.controller.remove_listener(self.on_state_change)
