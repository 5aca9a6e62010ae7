"""Shared fixtures: a manual clock scheduler and a small content pool."""
import random
from typing import Callable, List

import pytest

from controllers.transition_controller import TransitionController
from core.content import SlideItem, StreamItem
from managers.bumper_rotation import BumperRotation
from managers.content_pool import ContentPool


class FakeTimer:
    def __init__(self, due_ms: int, seq: int, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.seq = seq
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class FakeScheduler:
    """Deterministic scheduler driven by advance()."""

    def __init__(self):
        self.now_ms = 0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now_ms + max(delay_ms, 0), len(self.timers), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return sorted((t for t in self.timers if t.pending), key=lambda t: (t.due_ms, t.seq))

    def pending_delays(self) -> List[int]:
        return [t.due_ms - self.now_ms for t in self.pending]

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [t for t in self.pending if t.due_ms <= target]
            if not due:
                break
            timer = due[0]
            self.now_ms = timer.due_ms
            timer.fired = True
            timer.callback()
        self.now_ms = target


def make_stream(item_id: str, category: str = "Deportes") -> StreamItem:
    return StreamItem(
        id=item_id,
        name=f"Video {item_id}",
        url=f"https://cdn.example.com/{item_id}.mp4",
        category=category,
    )


def make_slide(item_id: str, category: str = "Noticias", duration: int = 45) -> SlideItem:
    return SlideItem(
        id=item_id,
        title=f"Nota {item_id}",
        category=category,
        slide_url=f"https://slides.example.com/{item_id}.html",
        duration_seconds=duration,
    )


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def streams():
    return [
        make_stream("v1", "Deportes"),
        make_stream("v2", "Cultura"),
        make_stream("v3", "Politica"),
        make_stream("v4", "Deportes"),
    ]


@pytest.fixture
def pool(streams, rng) -> ContentPool:
    return ContentPool(streams, rng=rng)


@pytest.fixture
def bumpers():
    return ("i1", "i2", "i3")


@pytest.fixture
def rotation(bumpers, rng) -> BumperRotation:
    return BumperRotation(bumpers, slide_bumper="news", rng=rng)


@pytest.fixture
def controller(pool, rotation, scheduler) -> TransitionController:
    return TransitionController(pool, rotation, scheduler)
