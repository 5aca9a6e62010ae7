"""Tests for the bumper shuffle bag."""
import random

import pytest

from managers.bumper_rotation import BumperRotation


class _HeadFirstRng(random.Random):
    """Shuffle that leaves the bag in its original order."""

    def shuffle(self, x, *args, **kwargs):
        return None


def _run(rotation, calls, kinds=None):
    queue, previous, picks = (), None, []
    for i in range(calls):
        is_stream = True if kinds is None else kinds[i % len(kinds)]
        previous, queue = rotation.next_bumper(is_stream, queue, previous)
        picks.append(previous)
    return picks


class TestNoImmediateRepeat:

    @pytest.mark.parametrize("seed", range(20))
    def test_never_repeats_back_to_back(self, seed):
        rotation = BumperRotation(("i1", "i2", "i3", "i4", "i5"), rng=random.Random(seed))
        picks = _run(rotation, 500)
        assert all(a != b for a, b in zip(picks, picks[1:]))

    def test_two_clip_set_alternates(self):
        rotation = BumperRotation(("i1", "i2"), rng=random.Random(0))
        picks = _run(rotation, 50)
        assert all(a != b for a, b in zip(picks, picks[1:]))

    def test_reshuffled_head_equal_to_previous_moves_to_tail(self):
        rotation = BumperRotation(("i1", "i2", "i3"), rng=_HeadFirstRng())
        bumper, queue = rotation.next_bumper(True, (), previous="i1")
        assert bumper == "i2"
        assert queue == ("i3", "i1")

    def test_single_clip_set_repeats(self):
        rotation = BumperRotation(("only",), rng=random.Random(0))
        assert _run(rotation, 3) == ["only", "only", "only"]


class TestShuffleBag:

    def test_each_cycle_shows_every_clip_once(self, bumpers):
        rotation = BumperRotation(bumpers, rng=random.Random(42))
        picks = _run(rotation, len(bumpers) * 4)
        for start in range(0, len(picks), len(bumpers)):
            assert sorted(picks[start:start + len(bumpers)]) == sorted(bumpers)

    def test_pops_head_of_existing_queue(self, rotation):
        bumper, queue = rotation.next_bumper(True, ("i3", "i1"), previous="i2")
        assert bumper == "i3"
        assert queue == ("i1",)

    def test_seeded_rotation_is_deterministic(self, bumpers):
        a = _run(BumperRotation(bumpers, rng=random.Random(5)), 12)
        b = _run(BumperRotation(bumpers, rng=random.Random(5)), 12)
        assert a == b


class TestSlideBumper:

    @pytest.mark.parametrize("queue", [(), ("i1",), ("i2", "i3", "i1")])
    def test_slides_always_get_news_bumper(self, rotation, queue):
        bumper, new_queue = rotation.next_bumper(False, queue, previous="i1")
        assert bumper == "news"
        assert new_queue == queue

    def test_slides_do_not_consume_stream_bag(self, rotation):
        picks = _run(rotation, 12, kinds=[True, False])
        stream_picks = picks[0::2]
        assert all(p == "news" for p in picks[1::2])
        assert sorted(stream_picks[:3]) == ["i1", "i2", "i3"]


def test_empty_bumper_set_is_rejected():
    with pytest.raises(ValueError):
        BumperRotation(())
