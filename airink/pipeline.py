"""
Pipeline Module - Per-Session Gesture-to-Ink Flow
=================================================
One InkPipeline per capture session. Each call to process() takes one
frame of landmarks (or None when no hand was found) through:

    finger states -> raw gesture -> stable mode -> movement gate
    -> stroke buffer -> renderer
"""

import time
import logging
from typing import Optional, Callable, Tuple, Any

from airink.config import PipelineConfig
from airink.hand_tracking import (
    HandLandmark, FingerState, to_landmarks, mirror_landmarks, extract_finger_states
)
from airink.gesture_logic import Gesture, ModeStabilizer, ClearCooldown, classify_gesture
from airink.canvas import StrokeBuffer, StrokeConfig, MovementGate, CanvasRenderer, Stroke


logger = logging.getLogger(__name__)


class InkPipeline:
    """
    Owns all per-session state: stabilizer, movement gate, stroke buffer
    and clear cooldown. Nothing is shared between instances.
    """

    def __init__(
        self,
        renderer: CanvasRenderer,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            renderer: Surface the strokes are drawn on
            config: Tunables (defaults when None)
            clock: Monotonic time source in seconds
        """
        self.renderer = renderer
        self.config = config or PipelineConfig()
        self._clock = clock

        cfg = self.config
        self.stabilizer = ModeStabilizer(cfg.start_frames, cfg.stop_frames, cfg.default_frames)
        self.gate = MovementGate(cfg.movement_epsilon_sq)
        self.buffer = StrokeBuffer(smoothing=cfg.smoothing, clock=clock)
        self.cooldown = ClearCooldown(cfg.clear_cooldown)

        self.raw_mode = Gesture.PANZOOM
        self.finger_state: Optional[FingerState] = None
        self.cursor: Optional[Tuple[float, float]] = None
        self.clear_count = 0

    @property
    def mode(self) -> Gesture:
        """The stable mode driving the tool."""
        return self.stabilizer.stable

    def process(self, landmarks: Any, now: Optional[float] = None) -> Gesture:
        """
        Run one frame.

        Args:
            landmarks: 21 normalized landmarks, or None when no hand was found
            now: Monotonic timestamp of the frame (defaults to the clock)

        Returns:
            The stable mode after this frame

        Raises:
            LandmarkError: malformed landmarks
        """
        if landmarks is None:
            self.hand_lost()
            return self.mode

        lms = to_landmarks(landmarks)
        if self.config.mirror_x:
            lms = mirror_landmarks(lms)

        cfg = self.config
        self.finger_state = extract_finger_states(lms, cfg.finger_cos_threshold, cfg.thumb_ratio)
        self.raw_mode = classify_gesture(self.finger_state)
        mode = self.stabilizer.update(self.raw_mode)

        tip = lms[HandLandmark.INDEX_TIP]
        self.cursor = (tip.x, tip.y)

        if mode.is_inking:
            self._ink(mode, tip.x, tip.y)
        else:
            self._finish_stroke()
            if mode == Gesture.CLEAR:
                self._clear(self._clock() if now is None else now)

        return mode

    def _ink(self, mode: Gesture, x: float, y: float):
        erase = mode == Gesture.ERASE
        active = self.buffer.current

        # A stroke never mixes compositing modes
        if active is not None and active.erase != erase:
            self._finish_stroke()
            active = None

        if active is None:
            cfg = self.config
            self.buffer.begin(StrokeConfig(
                color=cfg.draw_color,
                width=cfg.erase_width if erase else cfg.draw_width,
                erase=erase
            ))

        if self.gate.accept(x, y):
            self.buffer.push(x, y)

        self.renderer.draw_stroke(self.buffer.current)

    def _finish_stroke(self) -> Optional[Stroke]:
        stroke = self.buffer.end()
        if stroke is not None:
            self.renderer.draw_stroke(stroke)
            self.gate.reset()
        return stroke

    def _clear(self, now: float) -> bool:
        if not self.cooldown.try_fire(now):
            return False
        self.renderer.clear()
        self.clear_count += 1
        logger.info("Canvas cleared")
        return True

    def hand_lost(self) -> Optional[Stroke]:
        """
        End the current stroke and fully reset the stabilizer, so a hand
        found again starts from PANZOOM.

        Returns:
            The stroke that was active, if any
        """
        stroke = self._finish_stroke()
        self.gate.reset()
        if self.stabilizer.stable != Gesture.PANZOOM or stroke is not None:
            logger.debug("Hand lost in mode %s", self.stabilizer.stable)
        self.stabilizer.reset()
        self.raw_mode = Gesture.PANZOOM
        self.finger_state = None
        self.cursor = None
        return stroke

    def reset(self):
        """Drop all session state without rendering the active stroke."""
        self.buffer.end()
        self.gate.reset()
        self.stabilizer.reset()
        self.cooldown.reset()
        self.raw_mode = Gesture.PANZOOM
        self.finger_state = None
        self.cursor = None
