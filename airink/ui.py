"""
UI Module - Main Application Interface
======================================
Webcam window that runs the ink pipeline on every frame and overlays the
ink surface, the detected hand and the current mode on the video.
"""

import time
import logging
from typing import Optional

import cv2
import numpy as np

from airink.camera import Camera
from airink.canvas import CanvasRenderer, ColorPalette
from airink.config import PipelineConfig
from airink.gesture_logic import draw_gesture_ui
from airink.hand_tracking import (
    HandData, HandTracker, LandmarkError, draw_landmarks, mirror_landmarks
)
from airink.pipeline import InkPipeline


logger = logging.getLogger(__name__)

WINDOW_NAME = "AirInk"


class GestureInkApp:
    """Camera -> hand tracker -> ink pipeline -> window."""

    WIDTH = 640
    HEIGHT = 480

    UI_BG_COLOR = (30, 30, 30)
    UI_TEXT_COLOR = (255, 255, 255)
    UI_FPS_COLOR = (0, 255, 0)

    def __init__(self, camera_id: int = 0, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

        self.camera = Camera(camera_id=camera_id, width=self.WIDTH, height=self.HEIGHT, fps=30)
        self.hand_tracker = HandTracker(
            max_hands=1,
            min_detection_confidence=0.7,
            min_tracking_confidence=0.7
        )

        self.renderer = CanvasRenderer(self.WIDTH, self.HEIGHT)
        self.pipeline = InkPipeline(self.renderer, self.config)

        self._colors = ColorPalette.get_all()
        self._hand: Optional[HandData] = None
        self._fps_counter = 0
        self._fps_time = time.monotonic()
        self._current_fps = 0.0

    def _update_fps(self):
        self._fps_counter += 1
        now = time.monotonic()
        elapsed = now - self._fps_time
        if elapsed >= 1.0:
            self._current_fps = self._fps_counter / elapsed
            self._fps_counter = 0
            self._fps_time = now

    def _process_frame(self, frame: np.ndarray) -> np.ndarray:
        hands = self.hand_tracker.process(frame)
        self._hand = hands[0] if hands else None
        landmarks = self._hand.landmarks if self._hand else None

        try:
            self.pipeline.process(landmarks)
        except LandmarkError as e:
            logger.warning("Dropped frame: %s", e)
            self.pipeline.hand_lost()
            self._hand = None
            landmarks = None

        # Landmarks and ink live in the mirrored space when mirroring is on
        if self.config.mirror_x:
            frame = cv2.flip(frame, 1)
            if landmarks is not None:
                landmarks = mirror_landmarks(landmarks)

        display = self.renderer.overlay_on_frame(frame)
        if landmarks is not None:
            display = draw_landmarks(display, landmarks)

        return self._draw_ui(display)

    def _draw_ui(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]

        frame = draw_gesture_ui(frame, self.pipeline.mode, self.pipeline.raw_mode)

        cv2.rectangle(frame, (0, 0), (w, 40), self.UI_BG_COLOR, -1)
        cv2.putText(
            frame, f"{self._current_fps:.0f} fps",
            (10, 28), cv2.FONT_HERSHEY_SIMPLEX, 0.7, self.UI_FPS_COLOR, 2
        )
        cv2.putText(
            frame, "[1-8] Color | [C] Clear | [Q] Quit",
            (w - 330, 28), cv2.FONT_HERSHEY_SIMPLEX, 0.5, self.UI_TEXT_COLOR, 1
        )

        if self.pipeline.cursor is not None:
            cx, cy = self.pipeline.cursor
            px, py = int(cx * w), int(cy * h)
            cv2.circle(frame, (px, py), 8, self.config.draw_color, 2)
            if self._hand is not None:
                cv2.putText(
                    frame, f"{self._hand.handedness} {self._hand.confidence:.2f}",
                    (px + 12, py - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, self.UI_TEXT_COLOR, 1
                )

        return frame

    def _handle_keyboard(self, key: int) -> bool:
        """Returns False if the app should quit."""
        if key in (ord('q'), 27):
            return False

        if key == ord('c'):
            self.renderer.clear()
        elif ord('1') <= key <= ord('8'):
            idx = key - ord('1')
            if idx < len(self._colors):
                self.config.draw_color = self._colors[idx]

        return True

    def run(self):
        """Run the main application loop."""
        if not self.camera.start():
            logger.error("Failed to start camera")
            return

        if (self.camera.width, self.camera.height) != (self.renderer.width, self.renderer.height):
            self.renderer.resize(self.camera.width, self.camera.height)

        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

        last_seq = 0
        try:
            while True:
                # One pipeline pass per camera frame; dwell counts frames, not loop passes
                seq, frame = self.camera.get_new_frame(last_seq)
                if frame is None:
                    time.sleep(0.001)
                    continue
                last_seq = seq

                if frame.shape[:2] != (self.renderer.height, self.renderer.width):
                    self.renderer.resize(frame.shape[1], frame.shape[0])

                display = self._process_frame(frame)
                self._update_fps()
                cv2.imshow(WINDOW_NAME, display)

                key = cv2.waitKey(1) & 0xFF
                if not self._handle_keyboard(key):
                    break
        finally:
            self.camera.stop()
            self.hand_tracker.release()
            cv2.destroyAllWindows()
            logger.info("Application closed")


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="AirInk - draw in the air with your index finger")
    parser.add_argument('--camera', type=int, default=0, help='Camera device index')
    parser.add_argument('--mirror', action='store_true', help='Mirror the view (selfie mode)')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s"
    )

    config = PipelineConfig.from_env()
    if args.mirror:
        config.mirror_x = True

    logger.info("Gestures: index = draw, index+middle = erase, open hand = clear")

    app = GestureInkApp(camera_id=args.camera, config=config)
    app.run()


if __name__ == "__main__":
    main()
