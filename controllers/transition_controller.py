"""Transition state machine for the always-on channel.

Owns the shared PlaybackState and the only two timers the engine uses:

  * **Fallback timer**: force-dismisses the bumper overlay if the bumper
    player never reports its end (blocked autoplay, broken clip).
  * **Advance timer**: either the pending cover-then-swap of a scheduled
    advance, or the slide clock that starts that advance before a timed
    slide runs out.

Every operation that starts a transition cancels both timers first, so a
stale timer can never fire after a manual override. Player callbacks are
treated as racing those timers and are guarded by state checks, which makes
``dismiss_overlay`` and ``on_content_ended`` safe to call late or twice.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, List, Optional, TYPE_CHECKING

from config.constants import (
    DEFAULT_FALLBACK_TIMEOUT_MS,
    DEFAULT_ADVANCE_FLOOR_MS,
    DEFAULT_SLIDE_COVER_LEAD_MS,
)
from core.content import ContentItem
from core.playback_state import PlaybackState, TransitionPhase
from core.scheduler import Scheduler, TimerHandle
from managers.bumper_rotation import BumperRotation
from managers.content_pool import ContentPool

if TYPE_CHECKING:
    from config.config_manager import EngineSettings

logger = logging.getLogger(__name__)

StateListener = Callable[[PlaybackState], None]


class TransitionController:
    """Sequences content and bumpers, and exposes state to the renderer."""

    def __init__(
        self,
        pool: ContentPool,
        bumper_rotation: BumperRotation,
        scheduler: Scheduler,
        *,
        fallback_timeout_ms: int = DEFAULT_FALLBACK_TIMEOUT_MS,
        advance_floor_ms: int = DEFAULT_ADVANCE_FLOOR_MS,
        slide_cover_lead_ms: int = DEFAULT_SLIDE_COVER_LEAD_MS,
        slide_auto_advance: bool = True,
    ):
        if fallback_timeout_ms <= 0 or advance_floor_ms <= 0:
            raise ValueError("Fallback timeout and advance floor must be positive")

        self._pool = pool
        self.bumper_rotation = bumper_rotation
        self.scheduler = scheduler
        self.fallback_timeout_ms = fallback_timeout_ms
        self.advance_floor_ms = advance_floor_ms
        self.slide_cover_lead_ms = max(slide_cover_lead_ms, 0)
        self.slide_auto_advance = slide_auto_advance

        self._state = PlaybackState()
        self._fallback_timer: Optional[TimerHandle] = None
        self._advance_timer: Optional[TimerHandle] = None
        self._swap_pending = False
        self._initial_selection_done = False
        self._start_count = 0
        self._closed = False
        self._listeners: List[StateListener] = []

    @classmethod
    def from_settings(cls, pool: ContentPool, scheduler: Scheduler,
                      settings: EngineSettings,
                      rng: Optional[random.Random] = None) -> TransitionController:
        rotation = BumperRotation(settings.bumpers, settings.slide_bumper, rng=rng)
        return cls(
            pool, rotation, scheduler,
            fallback_timeout_ms=settings.fallback_timeout_ms,
            advance_floor_ms=settings.advance_floor_ms,
            slide_cover_lead_ms=settings.slide_cover_lead_ms,
            slide_auto_advance=settings.slide_auto_advance,
        )

    # ── Read side ────────────────────────────────────────────────────

    @property
    def state(self) -> PlaybackState:
        return self._state.snapshot()

    @property
    def pool(self) -> ContentPool:
        return self._pool

    @property
    def phase(self) -> TransitionPhase:
        if self._state.current is None:
            return TransitionPhase.EMPTY
        if self._swap_pending:
            return TransitionPhase.COVERING
        if self._state.overlay_visible:
            return TransitionPhase.OVERLAY_SHOWING
        return TransitionPhase.CONTENT_ACTIVE

    @property
    def has_fallback_timer(self) -> bool:
        return self._fallback_timer is not None

    @property
    def has_advance_timer(self) -> bool:
        return self._advance_timer is not None

    @property
    def initial_selection_done(self) -> bool:
        return self._initial_selection_done

    @property
    def start_count(self) -> int:
        """Number of start_immediate calls so far (manual, deep-link or automatic)."""
        return self._start_count

    # ── Listeners ────────────────────────────────────────────────────

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        snapshot = self._state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}", exc_info=True)

    # ── Timers ───────────────────────────────────────────────────────

    def _cancel_fallback(self) -> None:
        if self._fallback_timer is not None:
            self._fallback_timer.cancel()
            self._fallback_timer = None

    def _cancel_advance(self) -> None:
        if self._advance_timer is not None:
            self._advance_timer.cancel()
            self._advance_timer = None
        self._swap_pending = False

    def _cancel_timers(self) -> None:
        self._cancel_fallback()
        self._cancel_advance()

    def _arm_fallback(self) -> None:
        self._cancel_fallback()
        self._fallback_timer = self.scheduler.call_later(self.fallback_timeout_ms, self._on_fallback_timeout)

    def _on_fallback_timeout(self) -> None:
        self._fallback_timer = None
        if not self._state.overlay_visible:
            return
        logger.warning(f"Bumper did not finish within {self.fallback_timeout_ms}ms, dismissing overlay")
        self.dismiss_overlay()

    def _take_bumper(self, item: ContentItem) -> None:
        bumper, queue = self.bumper_rotation.next_bumper(
            item.is_stream, self._state.bumper_queue, previous=self._state.bumper_url
        )
        self._state.bumper_url = bumper
        self._state.bumper_queue = queue
        self._state.bumper_seq += 1

    def set_bumper_rotation(self, bumper_rotation: BumperRotation) -> None:
        """Swap in a new bumper set. The current cycle is dropped."""
        self.bumper_rotation = bumper_rotation
        self._state.bumper_queue = ()
        logger.info(f"Bumper set updated: {len(bumper_rotation.bumpers)} clips")

    # ── Pool / first selection ───────────────────────────────────────

    def set_pool(self, pool: ContentPool, start: bool = True) -> Optional[ContentItem]:
        """Replace the pool (e.g. background refresh).

        Only the very first pool that yields an item triggers an initial
        pick; later refreshes never restart playback.

        Args:
            pool: New content pool
            start: Attempt the initial pick if it hasn't happened yet

        Returns:
            The initially selected item, if this call made the first pick
        """
        self._pool = pool
        logger.info(f"Content pool updated: {len(pool)} items")
        if self._state.next is not None and pool.find(self._state.next.id) is None:
            logger.debug(f"Prepared item {self._state.next.id} no longer in pool, dropping it")
            self._state.next = None
        if not start:
            return None
        return self.start_initial()

    def claim_initial_selection(self) -> None:
        """Close the first-selection latch without picking anything."""
        self._initial_selection_done = True

    def start_initial(self) -> Optional[ContentItem]:
        """Pick the first item at random, once per session."""
        if self._initial_selection_done:
            return None
        item = self._pool.select()
        if item is None:
            logger.info("Initial selection deferred: content pool is empty")
            return None
        logger.info(f"Initial selection: {item.id} ({item.label})")
        self.start_immediate(item)
        return item

    # ── Transitions ──────────────────────────────────────────────────

    def start_immediate(self, item: ContentItem) -> None:
        """Bind item to the renderer right away, behind a fresh bumper."""
        if self._closed:
            logger.debug("start_immediate ignored: controller closed")
            return
        if item is None:
            return

        self._cancel_timers()
        self._initial_selection_done = True
        self._start_count += 1

        state = self._state
        state.current = item
        state.next = None
        self._take_bumper(item)
        state.overlay_visible = True
        state.play_intent = True
        state.content_active = False
        self._arm_fallback()

        logger.info(f"Now playing {item.id} ({'stream' if item.is_stream else 'slide'}) "
                    f"behind bumper {state.bumper_url}")
        self._notify()

    def play_manual(self, item: ContentItem) -> None:
        """User or deep-link choice; always wins over automatic advances."""
        logger.info(f"Manual selection: {item.id}")
        self.start_immediate(item)

    def prepare_next(self) -> Optional[ContentItem]:
        """Pre-select the following item without touching what is rendered."""
        if self._closed or self._state.next is not None or self._pool.is_empty:
            return self._state.next

        current = self._state.current
        item = self._pool.select(exclude_category=current.category if current else None)
        if item is None:
            logger.debug("Nothing to prepare: no selectable content")
            return None

        self._state.next = item
        logger.debug(f"Prepared next item: {item.id}")
        self._notify()
        return item

    def schedule_advance(self, delay_ms: int) -> bool:
        """Cover the current item now and swap to the prepared one later.

        The swap waits at least advance_floor_ms so the overlay is fully up
        before the underlying item changes.

        Returns:
            True if an advance was scheduled
        """
        if self._closed or self._state.next is None or self._state.overlay_visible:
            logger.debug("schedule_advance ignored: nothing prepared or overlay already up")
            return False

        self._cancel_timers()
        state = self._state
        self._take_bumper(state.next)
        state.overlay_visible = True
        state.content_active = False

        delay = max(delay_ms, self.advance_floor_ms)
        self._swap_pending = True
        self._advance_timer = self.scheduler.call_later(delay, self._on_advance_swap)

        logger.info(f"Advance to {state.next.id} scheduled in {delay}ms behind bumper {state.bumper_url}")
        self._notify()
        return True

    def _on_advance_swap(self) -> None:
        self._advance_timer = None
        self._swap_pending = False
        state = self._state
        if state.next is None:
            logger.debug("Advance swap fired with nothing prepared, ignoring")
            return

        state.current = state.next
        state.next = None
        self._arm_fallback()

        logger.info(f"Swapped to {state.current.id} under overlay")
        self._notify()

    def dismiss_overlay(self) -> bool:
        """Reveal the current item. Called on bumper end or by the fallback timer.

        Returns:
            True if the overlay was actually dismissed
        """
        state = self._state
        if not state.overlay_visible:
            logger.debug("dismiss_overlay ignored: overlay already dismissed")
            return False
        if self._swap_pending:
            logger.debug("dismiss_overlay ignored: swap still pending under overlay")
            return False

        self._cancel_fallback()
        state.overlay_visible = False
        state.content_active = True
        logger.debug(f"Overlay dismissed, {state.current.id if state.current else None} is active")

        self._start_slide_clock()
        self._notify()
        return True

    def on_content_ended(self, item: Optional[ContentItem] = None) -> Optional[ContentItem]:
        """Advance after the active item finished.

        Args:
            item: The item whose player ended; a mismatch with current marks
                the callback as stale and it is ignored.

        Returns:
            The item now playing, or None when nothing could be selected
        """
        state = self._state
        if item is not None and state.current is not None and item.id != state.current.id:
            logger.debug(f"Stale content-ended for {item.id}, current is {state.current.id}")
            return None

        if state.next is not None:
            successor = state.next
        else:
            current = state.current
            successor = self._pool.select(exclude_category=current.category if current else None)

        if successor is None:
            logger.warning("Content ended but the pool has nothing to play")
            return None

        self.start_immediate(successor)
        return successor

    def on_content_error(self, item: Optional[ContentItem] = None, error: Optional[str] = None) -> Optional[ContentItem]:
        """A content player failed to start; skip ahead as if it had ended."""
        failed = item or self._state.current
        logger.warning(f"Playback failed for {failed.id if failed else None}: {error or 'unknown error'}")
        return self.on_content_ended(item)

    def on_bumper_error(self, error: Optional[str] = None) -> bool:
        """The bumper player failed to start; reveal the content instead."""
        logger.warning(f"Bumper {self._state.bumper_url} failed: {error or 'unknown error'}")
        return self.dismiss_overlay()

    # ── Slide clock ──────────────────────────────────────────────────

    def _start_slide_clock(self) -> None:
        current = self._state.current
        if not self.slide_auto_advance or current is None or current.is_stream:
            return

        self.prepare_next()
        self._cancel_advance()
        delay = max(current.duration_ms - self.slide_cover_lead_ms, 0)
        self._advance_timer = self.scheduler.call_later(delay, lambda: self._on_slide_clock(current))
        logger.debug(f"Slide {current.id} will be covered in {delay}ms")

    def _on_slide_clock(self, slide: ContentItem) -> None:
        self._advance_timer = None
        current = self._state.current
        if current is None or current.id != slide.id or not self._state.content_active:
            logger.debug(f"Slide clock for {slide.id} is stale, ignoring")
            return
        if not self.schedule_advance(self.slide_cover_lead_ms):
            self.on_content_ended(slide)

    # ── Teardown ─────────────────────────────────────────────────────

    def close(self) -> None:
        """End the session: cancel timers and withdraw play intent."""
        if self._closed:
            return
        self._cancel_timers()
        self._state.play_intent = False
        self._notify()
        self._closed = True
        self._listeners.clear()
        logger.info("Transition controller closed")
