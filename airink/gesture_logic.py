"""
Gesture Logic Module - Gesture to Mode Mapping
==============================================
Classifies finger states into a raw gesture label and debounces the
per-frame labels into a stable tool mode. Also holds the cooldown that
gates repeated clear actions.
"""

import logging
import warnings
from enum import Enum
from typing import Optional

import cv2
import numpy as np

from airink.hand_tracking import FingerState


logger = logging.getLogger(__name__)


class Gesture(str, Enum):
    """Recognized gestures. PANZOOM is the fallback."""
    DRAW = "draw"
    ERASE = "erase"
    CLEAR = "clear"
    PANZOOM = "panzoom"

    def __str__(self) -> str:
        return self.value

    @property
    def is_inking(self) -> bool:
        """True for modes that put a stroke on the surface."""
        return self in (Gesture.DRAW, Gesture.ERASE)


def classify_gesture(fingers: FingerState) -> Gesture:
    """
    Map finger states to a raw gesture label. First match wins.

    1. index only                          -> DRAW
    2. index + middle, ring/pinky retracted -> ERASE (thumb ignored)
    3. all five extended                   -> CLEAR
    4. anything else                       -> PANZOOM
    """
    f = fingers

    if f.index and not (f.thumb or f.middle or f.ring or f.pinky):
        return Gesture.DRAW

    if f.index and f.middle and not f.ring and not f.pinky:
        return Gesture.ERASE

    if f.thumb and f.index and f.middle and f.ring and f.pinky:
        return Gesture.CLEAR

    return Gesture.PANZOOM


class ModeStabilizer:
    """
    Debounces raw labels into a stable mode with asymmetric dwell.

    The stable mode only changes after a run of consecutive frames whose
    raw label disagrees with it. The run length required depends on the
    transition: leaving DRAW needs stop_frames, entering DRAW needs
    start_frames, anything else needs default_frames.
    """

    def __init__(self, start_frames: int = 3, stop_frames: int = 3, default_frames: int = 2):
        if min(start_frames, stop_frames, default_frames) < 1:
            raise ValueError("dwell frame counts must be at least 1")
        self.start_frames = start_frames
        self.stop_frames = stop_frames
        self.default_frames = default_frames
        self.reset()

    def reset(self):
        """Back to PANZOOM with no pending disagreement (hand lost)."""
        self.stable = Gesture.PANZOOM
        self.counter = 0

    def required_dwell(self, raw: Gesture) -> int:
        """Consecutive disagreeing frames needed to switch to raw."""
        if self.stable == Gesture.DRAW:
            return self.stop_frames
        if raw == Gesture.DRAW:
            return self.start_frames
        return self.default_frames

    def update(self, raw: Gesture) -> Gesture:
        """Feed one frame's raw label and return the stable mode."""
        if raw == self.stable:
            self.counter = 0
            return self.stable

        self.counter += 1
        if self.counter >= self.required_dwell(raw):
            logger.debug("Mode %s -> %s after %d frames", self.stable, raw, self.counter)
            self.stable = raw
            self.counter = 0

        return self.stable


class SymmetricModeStabilizer(ModeStabilizer):
    """
    Single-dwell form of the stabilizer: every transition needs the same
    number of disagreeing frames (2 by default).

    Deprecated: draw is not sticky against flicker. Use ModeStabilizer.
    """

    def __init__(self, frames: int = 2):
        warnings.warn(
            "SymmetricModeStabilizer is deprecated; use ModeStabilizer",
            DeprecationWarning,
            stacklevel=2
        )
        super().__init__(start_frames=frames, stop_frames=frames, default_frames=frames)


class ClearCooldown:
    """Lets at most one clear action through per cooldown window."""

    def __init__(self, cooldown: float = 0.8):
        self.cooldown = cooldown
        self._last_fired: Optional[float] = None

    def try_fire(self, now: float) -> bool:
        """
        Args:
            now: Monotonic timestamp in seconds

        Returns:
            True if the clear should run now
        """
        if self._last_fired is not None and now - self._last_fired < self.cooldown:
            return False
        self._last_fired = now
        return True

    def reset(self):
        self._last_fired = None


MODE_COLORS = {
    Gesture.DRAW: (0, 255, 0),
    Gesture.ERASE: (0, 165, 255),
    Gesture.CLEAR: (0, 0, 255),
    Gesture.PANZOOM: (200, 200, 200),
}


def draw_gesture_ui(
    frame: np.ndarray,
    mode: Gesture,
    raw_mode: Optional[Gesture] = None
) -> np.ndarray:
    """
    Draw the current mode box in the bottom-left corner.

    Args:
        frame: Image to draw on
        mode: Stable mode
        raw_mode: Last raw label, shown when it differs from the stable mode

    Returns:
        Frame with the overlay
    """
    h, w = frame.shape[:2]
    box_h = 60
    color = MODE_COLORS[mode]

    cv2.rectangle(frame, (10, h - box_h - 10), (250, h - 10), (0, 0, 0), -1)
    cv2.rectangle(frame, (10, h - box_h - 10), (250, h - 10), (255, 255, 255), 2)

    cv2.putText(
        frame, f"Mode: {mode}",
        (20, h - box_h + 20),
        cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2
    )

    if raw_mode is not None and raw_mode != mode:
        cv2.putText(
            frame, f"seen: {raw_mode}",
            (20, h - 20),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, (150, 150, 150), 1
        )

    return frame
