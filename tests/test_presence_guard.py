"""Tests for the wake-lock presence guard."""
from unittest.mock import MagicMock

from playback.presence_guard import PresenceGuard
from playback.wake_lock import WakeLockError


def _provider():
    provider = MagicMock()
    provider.acquire.side_effect = lambda: MagicMock(name="lock")
    return provider


class TestLockstep:

    def test_acquires_when_play_intent_set(self):
        provider = _provider()
        guard = PresenceGuard(provider)
        guard.set_play_intent(True)
        assert guard.is_held
        provider.acquire.assert_called_once()

    def test_releases_when_play_intent_cleared(self):
        guard = PresenceGuard(_provider())
        guard.set_play_intent(True)
        lock = guard._lock
        guard.set_play_intent(False)
        assert not guard.is_held
        lock.release.assert_called_once()

    def test_repeated_intent_does_not_reacquire(self):
        provider = _provider()
        guard = PresenceGuard(provider)
        for _ in range(5):
            guard.set_play_intent(True)
        assert provider.acquire.call_count == 1

    def test_follows_controller_state(self, controller, streams):
        provider = _provider()
        guard = PresenceGuard(provider)
        controller.add_listener(guard.on_state_change)

        assert not guard.is_held
        controller.start_immediate(streams[0])
        assert guard.is_held

        controller.close()
        assert not guard.is_held


class TestVisibility:

    def test_reacquires_when_visible_again(self):
        provider = _provider()
        guard = PresenceGuard(provider)
        guard.set_play_intent(True)

        guard.on_visibility_change(False)
        assert not guard.is_held

        guard.on_visibility_change(True)
        assert guard.is_held
        assert provider.acquire.call_count == 2

    def test_no_reacquire_without_play_intent(self):
        provider = _provider()
        guard = PresenceGuard(provider)
        guard.on_visibility_change(False)
        guard.on_visibility_change(True)
        provider.acquire.assert_not_called()

    def test_intent_while_hidden_waits_for_visibility(self):
        provider = _provider()
        guard = PresenceGuard(provider)
        guard.on_visibility_change(False)
        guard.set_play_intent(True)
        assert not guard.is_held

        guard.on_visibility_change(True)
        assert guard.is_held


class TestFailures:

    def test_acquire_failure_is_swallowed(self):
        provider = MagicMock()
        provider.acquire.side_effect = WakeLockError("not supported")
        guard = PresenceGuard(provider)

        guard.set_play_intent(True)
        assert guard.play_intent
        assert not guard.is_held

    def test_failed_lock_retried_on_visibility(self):
        provider = MagicMock()
        provider.acquire.side_effect = [WakeLockError("denied"), MagicMock()]
        guard = PresenceGuard(provider)

        guard.set_play_intent(True)
        guard.on_visibility_change(True)
        assert guard.is_held

    def test_release_failure_is_swallowed(self):
        lock = MagicMock()
        lock.release.side_effect = RuntimeError("already released")
        provider = MagicMock()
        provider.acquire.return_value = lock
        guard = PresenceGuard(provider)

        guard.set_play_intent(True)
        guard.close()
        assert not guard.is_held
