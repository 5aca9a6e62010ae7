"""Shared playback state read by the renderer."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Optional, Tuple

from core.content import ContentItem


class TransitionPhase(Enum):
    EMPTY = auto()             # nothing selected yet
    OVERLAY_SHOWING = auto()   # bumper occludes the content
    COVERING = auto()          # overlay raised, scheduled swap still pending
    CONTENT_ACTIVE = auto()    # overlay dismissed for the current item


@dataclass
class PlaybackState:
    current: Optional[ContentItem] = None
    next: Optional[ContentItem] = None
    bumper_url: Optional[str] = None
    bumper_queue: Tuple[str, ...] = field(default_factory=tuple)
    bumper_seq: int = 0            # bumped every time a bumper is assigned
    overlay_visible: bool = False
    play_intent: bool = False
    content_active: bool = False

    def snapshot(self) -> PlaybackState:
        """Copy handed to listeners so they can't mutate the engine's state."""
        return replace(self)
