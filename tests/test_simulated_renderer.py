"""End-to-end sequencing through the headless renderer."""
import pytest

from controllers.transition_controller import TransitionController
from core.playback_state import TransitionPhase
from managers.content_pool import ContentPool
from playback.simulated_renderer import SimulatedRenderer
from tests.conftest import make_slide, make_stream


@pytest.fixture
def renderer(controller):
    renderer = SimulatedRenderer(controller, bumper_seconds=4.0, stream_seconds=30.0)
    renderer.attach()
    return renderer


class TestStreams:

    def test_bumper_then_content_then_next(self, renderer, controller, scheduler, streams):
        controller.start_immediate(streams[0])
        assert renderer.bumpers_played == 1
        assert renderer.items_played == 0

        scheduler.advance(4_000)
        state = controller.state
        assert not state.overlay_visible
        assert state.content_active
        assert renderer.items_played == 1
        assert not controller.has_fallback_timer

        scheduler.advance(30_000)
        state = controller.state
        assert state.overlay_visible
        assert state.current.category != "Deportes"
        assert renderer.bumpers_played == 2

        scheduler.advance(4_000)
        assert renderer.items_played == 2
        assert controller.phase is TransitionPhase.CONTENT_ACTIVE

    def test_manual_override_drops_running_content(self, renderer, controller, scheduler, streams):
        controller.start_immediate(streams[0])
        scheduler.advance(4_000)
        scheduler.advance(10_000)

        controller.play_manual(streams[2])
        scheduler.advance(4_000)
        assert controller.state.current == streams[2]

        # The first item's end would have fired here had it not been cancelled
        scheduler.advance(16_000)
        assert controller.state.current == streams[2]

    def test_runs_unattended(self, renderer, controller, scheduler):
        controller.start_initial()
        scheduler.advance(10 * 34_000)
        assert renderer.items_played == 10
        assert controller.state.play_intent


class TestSlides:

    def test_bumper_loops_while_swap_pending(self, rotation, scheduler):
        slide = make_slide("s1", "Noticias", duration=10)
        video = make_stream("v2", "Cultura")
        controller = TransitionController(ContentPool([slide, video]), rotation, scheduler)
        renderer = SimulatedRenderer(controller, bumper_seconds=1.0, stream_seconds=30.0)
        renderer.attach()

        controller.start_immediate(slide)
        assert controller.state.bumper_url == "news"
        scheduler.advance(1_000)
        assert controller.state.next == video

        # Slide clock covers 1.5s before the end; the swap lands at 11s
        scheduler.advance(8_500)
        assert controller.phase is TransitionPhase.COVERING
        scheduler.advance(1_000)
        assert controller.phase is TransitionPhase.COVERING
        assert controller.state.current == slide

        scheduler.advance(500)
        assert controller.state.current == video
        assert controller.phase is TransitionPhase.OVERLAY_SHOWING

        scheduler.advance(500)
        assert controller.phase is TransitionPhase.CONTENT_ACTIVE
        assert renderer.items_played == 2
        assert renderer.bumpers_played == 2

    def test_same_bumper_restarts_for_new_item(self, rotation, scheduler):
        first = make_slide("s1", "Noticias")
        second = make_slide("s2", "Cultura")
        controller = TransitionController(ContentPool([first, second]), rotation, scheduler)
        renderer = SimulatedRenderer(controller, bumper_seconds=4.0)
        renderer.attach()

        controller.start_immediate(first)
        scheduler.advance(3_000)
        controller.play_manual(second)
        assert controller.state.bumper_url == "news"
        assert renderer.bumpers_played == 2

        # The first clip would have ended here
        scheduler.advance(1_000)
        assert controller.state.overlay_visible

        scheduler.advance(3_000)
        assert controller.state.current == second
        assert controller.phase is TransitionPhase.CONTENT_ACTIVE


def test_detach_stops_reporting(renderer, controller, scheduler, streams):
    controller.start_immediate(streams[0])
    renderer.detach()
    scheduler.advance(4_000)
    # Only the fallback can reveal the content now
    assert controller.state.overlay_visible
    scheduler.advance(6_000)
    assert not controller.state.overlay_visible
    assert renderer.items_played == 0
