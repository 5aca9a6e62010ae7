"""Bumper clip rotation.

Streamed videos get a bumper drawn from a shuffle bag: every clip in the
set is shown once per cycle, and a fresh cycle never opens with the clip
that closed the previous one. Slides always get the dedicated news bumper.
"""
import logging
import random
from typing import Iterable, Optional, Tuple

from config.constants import DEFAULT_BUMPERS, DEFAULT_SLIDE_BUMPER

logger = logging.getLogger(__name__)


class BumperRotation:

    def __init__(self, bumpers: Iterable[str] = DEFAULT_BUMPERS,
                 slide_bumper: str = DEFAULT_SLIDE_BUMPER,
                 rng: Optional[random.Random] = None):
        self.bumpers: Tuple[str, ...] = tuple(bumpers)
        if not self.bumpers:
            raise ValueError("Bumper set must contain at least one clip")
        self.slide_bumper = slide_bumper
        self._rng = rng or random.Random()

    def shuffled(self) -> list:
        bag = list(self.bumpers)
        self._rng.shuffle(bag)
        return bag

    def next_bumper(self, is_stream: bool, queue: Tuple[str, ...],
                    previous: Optional[str] = None) -> Tuple[str, Tuple[str, ...]]:
        """
        Pick the bumper for the upcoming item.

        Args:
            is_stream: True for streamed video, False for a slide
            queue: Bumpers not yet shown in the current cycle
            previous: Bumper shown last

        Returns:
            Tuple of (bumper, remaining queue)
        """
        if not is_stream:
            return self.slide_bumper, tuple(queue)

        bag = list(queue)
        if not bag:
            bag = self.shuffled()
            logger.debug(f"Bumper bag reshuffled: {bag}")
        if len(bag) > 1 and bag[0] == previous:
            bag.append(bag.pop(0))

        return bag[0], tuple(bag[1:])
