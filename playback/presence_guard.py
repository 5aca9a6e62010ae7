import logging
from typing import Optional

from core.playback_state import PlaybackState
from playback.wake_lock import WakeLock, WakeLockProvider

logger = logging.getLogger(__name__)


class PresenceGuard:
    """Keeps a wake-lock held exactly while playback is intended."""

    def __init__(self, provider: WakeLockProvider):
        """
        Initialize presence guard.

        Args:
            provider: Source of wake-lock handles
        """
        self.provider = provider
        self._lock: Optional[WakeLock] = None
        self._play_intent = False
        self._visible = True

    @property
    def is_held(self) -> bool:
        return self._lock is not None

    @property
    def play_intent(self) -> bool:
        return self._play_intent

    def on_state_change(self, state: PlaybackState) -> None:
        """Listener for the transition controller."""
        self.set_play_intent(state.play_intent)

    def set_play_intent(self, play_intent: bool) -> None:
        if play_intent == self._play_intent:
            return
        self._play_intent = play_intent
        if play_intent:
            self._acquire()
        else:
            self._release()

    def on_visibility_change(self, visible: bool) -> None:
        """Backgrounding invalidates the lock; take it again when we come back."""
        self._visible = visible
        if not visible:
            # Hidden pages lose the lock anyway; let go of it explicitly
            self._release()
            return
        if self._play_intent and self._lock is None:
            logger.info("Visible again with playback intended, re-acquiring wake-lock")
            self._acquire()

    def _acquire(self) -> None:
        if self._lock is not None or not self._visible:
            return
        try:
            self._lock = self.provider.acquire()
            logger.info("Wake-lock acquired")
        except Exception as e:
            logger.warning(f"Wake-lock request failed, continuing without it: {e}")
            self._lock = None

    def _release(self) -> None:
        lock = self._lock
        self._lock = None
        if lock is None:
            return
        try:
            lock.release()
            logger.info("Wake-lock released")
        except Exception as e:
            logger.warning(f"Wake-lock release failed: {e}")

    def close(self) -> None:
        self._play_intent = False
        self._release()
