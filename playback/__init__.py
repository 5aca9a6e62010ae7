"""Playback-side collaborators: presence guard, wake-locks, headless renderer."""

from playback.presence_guard import PresenceGuard
from playback.simulated_renderer import SimulatedRenderer

__all__ = [
    "PresenceGuard",
    "SimulatedRenderer",
]
