import unittest
from itertools import count

from airink.canvas import CanvasRenderer
from airink.config import PipelineConfig
from airink.gesture_logic import Gesture
from airink.hand_tracking import LandmarkError
from airink.pipeline import InkPipeline
from tests.fixtures import draw_hand, make_hand


def fake_clock(start=100.0, step=0.033):
    ticks = count()
    return lambda: start + next(ticks) * step


def erase_hand(x, y=0.5):
    return make_hand(index=True, middle=True, scale=0.5, tip=(x, y))


def open_hand():
    return make_hand(thumb=True, index=True, middle=True, ring=True, pinky=True)


class TestInkPipeline(unittest.TestCase):
    def setUp(self):
        self.renderer = CanvasRenderer(320, 240)
        self.config = PipelineConfig(start_frames=3, stop_frames=3, default_frames=2)
        self.pipeline = InkPipeline(self.renderer, self.config, clock=fake_clock())

    def test_draw_scenario(self):
        """Five pointing frames moving right, then the hand disappears."""
        xs = [0.10, 0.12, 0.14, 0.16, 0.18]
        modes = [self.pipeline.process(draw_hand(x)) for x in xs]

        self.assertEqual(modes[2], Gesture.DRAW)
        self.assertEqual(modes[3:], [Gesture.DRAW, Gesture.DRAW])
        self.assertTrue(self.pipeline.buffer.is_active)

        stroke = self.pipeline.hand_lost()
        self.assertIsNotNone(stroke)
        self.assertFalse(stroke.erase)
        self.assertEqual(stroke.width, 3)

        points = [p.x for p in stroke.points]
        self.assertGreaterEqual(len(points), 2)
        self.assertEqual(points, sorted(points))
        self.assertEqual(len(set(points)), len(points))
        for x in points:
            self.assertGreater(x, 0.10)
            self.assertLess(x, 0.18)
        for p in stroke.points:
            self.assertAlmostEqual(p.y, 0.5)

        self.assertTrue(self.renderer.has_content())
        self.assertFalse(self.pipeline.buffer.is_active)

    def test_no_ink_outside_draw_modes(self):
        for _ in range(6):
            self.assertEqual(self.pipeline.process(make_hand()), Gesture.PANZOOM)
        self.assertFalse(self.renderer.has_content())
        self.assertIsNone(self.pipeline.buffer.current)

    def test_held_still_hand_adds_one_point(self):
        for _ in range(8):
            self.pipeline.process(draw_hand(0.4))
        self.assertEqual(len(self.pipeline.buffer.current.points), 1)
        # A single point is never rendered
        self.assertFalse(self.renderer.has_content())

    def test_mode_exit_ends_stroke(self):
        for x in [0.2, 0.25, 0.3, 0.35, 0.4]:
            self.pipeline.process(draw_hand(x))
        self.assertTrue(self.pipeline.buffer.is_active)

        # Leaving draw needs stop_frames disagreeing frames
        self.pipeline.process(make_hand())
        self.pipeline.process(make_hand())
        self.assertTrue(self.pipeline.buffer.is_active)
        self.assertEqual(self.pipeline.process(make_hand()), Gesture.PANZOOM)
        self.assertFalse(self.pipeline.buffer.is_active)
        self.assertTrue(self.renderer.has_content())

    def test_draw_to_erase_starts_new_stroke(self):
        for x in [0.2, 0.25, 0.3, 0.35]:
            self.pipeline.process(draw_hand(x))
        draw_stroke = self.pipeline.buffer.current

        for x in [0.4, 0.45, 0.5]:
            self.pipeline.process(erase_hand(x))

        self.assertEqual(self.pipeline.mode, Gesture.ERASE)
        erase_stroke = self.pipeline.buffer.current
        self.assertIsNot(erase_stroke, draw_stroke)
        self.assertTrue(draw_stroke.closed)
        self.assertTrue(erase_stroke.erase)
        self.assertEqual(erase_stroke.width, 16)

    def test_erase_removes_ink(self):
        for x in [0.2, 0.3, 0.4, 0.5, 0.6, 0.7]:
            self.pipeline.process(draw_hand(x))
        self.pipeline.hand_lost()
        self.assertTrue(self.renderer.has_content())

        # Erase back over the same path with the wide brush
        for x in [0.75, 0.7, 0.6, 0.5, 0.4, 0.3, 0.2, 0.15, 0.1, 0.1]:
            self.pipeline.process(erase_hand(x))
        self.pipeline.hand_lost()
        self.assertFalse(self.renderer.surface[120, 80:160, 3].any())

    def test_clear_gesture(self):
        for x in [0.2, 0.3, 0.4, 0.5, 0.6]:
            self.pipeline.process(draw_hand(x))
        self.pipeline.hand_lost()
        self.assertTrue(self.renderer.has_content())

        self.pipeline.process(open_hand(), now=1.0)
        self.assertEqual(self.pipeline.process(open_hand(), now=1.03), Gesture.CLEAR)
        self.assertFalse(self.renderer.has_content())
        self.assertEqual(self.pipeline.clear_count, 1)

    def test_clear_cooldown(self):
        """Two clears 200ms apart with an 800ms cooldown run once."""
        self.pipeline.process(open_hand(), now=0.0)
        self.pipeline.process(open_hand(), now=0.1)
        self.assertEqual(self.pipeline.clear_count, 1)

        self.pipeline.process(open_hand(), now=0.3)
        self.assertEqual(self.pipeline.clear_count, 1)

        self.pipeline.process(open_hand(), now=0.95)
        self.assertEqual(self.pipeline.clear_count, 2)

    def test_hand_loss_full_reset(self):
        for x in [0.2, 0.25, 0.3, 0.35]:
            self.pipeline.process(draw_hand(x))
        self.pipeline.process(make_hand())  # one pending disagreement
        self.assertEqual(self.pipeline.stabilizer.counter, 1)

        self.assertEqual(self.pipeline.process(None), Gesture.PANZOOM)
        self.assertEqual(self.pipeline.stabilizer.counter, 0)
        self.assertIsNone(self.pipeline.buffer.current)
        self.assertIsNone(self.pipeline.cursor)

        # Reacquired hand does not inherit draw; it has to dwell again
        self.assertEqual(self.pipeline.process(draw_hand(0.5)), Gesture.PANZOOM)

        # Next stroke starts once draw has dwelled again
        self.pipeline.process(draw_hand(0.5))
        self.pipeline.process(draw_hand(0.5))
        self.assertEqual(len(self.pipeline.buffer.current.points), 1)

    def test_hand_lost_when_idle(self):
        self.assertIsNone(self.pipeline.hand_lost())
        self.assertEqual(self.pipeline.mode, Gesture.PANZOOM)

    def test_malformed_frame_raises(self):
        with self.assertRaises(LandmarkError):
            self.pipeline.process(make_hand()[:5])

    def test_mirror(self):
        pipeline = InkPipeline(self.renderer, PipelineConfig(mirror_x=True), clock=fake_clock())
        pipeline.process(draw_hand(0.2, 0.4))
        cx, cy = pipeline.cursor
        self.assertAlmostEqual(cx, 0.8)
        self.assertAlmostEqual(cy, 0.4)
        self.assertEqual(pipeline.raw_mode, Gesture.DRAW)

    def test_exposes_frame_state(self):
        self.pipeline.process(erase_hand(0.4))
        self.assertEqual(self.pipeline.raw_mode, Gesture.ERASE)
        self.assertTrue(self.pipeline.finger_state.middle)
        self.assertEqual(self.pipeline.mode, Gesture.PANZOOM)

    def test_reset(self):
        for x in [0.2, 0.25, 0.3, 0.35]:
            self.pipeline.process(draw_hand(x))
        self.pipeline.reset()
        self.assertEqual(self.pipeline.mode, Gesture.PANZOOM)
        self.assertIsNone(self.pipeline.buffer.current)

    def test_sessions_are_independent(self):
        other = InkPipeline(CanvasRenderer(320, 240), self.config, clock=fake_clock())
        for x in [0.2, 0.25, 0.3]:
            self.pipeline.process(draw_hand(x))
        self.assertEqual(self.pipeline.mode, Gesture.DRAW)
        self.assertEqual(other.mode, Gesture.PANZOOM)
        self.assertIsNone(other.buffer.current)


if __name__ == '__main__':
    unittest.main()
