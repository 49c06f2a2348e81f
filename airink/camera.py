"""
Camera Module - Webcam Stream Handler
=====================================
Reads webcam frames on a background thread so the main loop always gets
the latest frame instead of a stale buffered one.
"""

import time
import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class Camera:
    """
    Threaded webcam reader.

    Attributes:
        camera_id: Index of the camera device
        width: Frame width in pixels (updated to what the device delivers)
        height: Frame height in pixels
        fps: Requested frame rate
    """

    def __init__(self, camera_id: int = 0, width: int = 640, height: int = 480, fps: int = 30):
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.fps = fps

        self.cap: Optional[cv2.VideoCapture] = None

        self._frame: Optional[np.ndarray] = None
        self._frame_seq = 0
        self._frame_lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        """
        Open the device and start the capture thread.

        Returns:
            True if camera started successfully, False otherwise
        """
        self.cap = cv2.VideoCapture(self.camera_id)

        if not self.cap.isOpened():
            logger.error("Failed to open camera %s", self.camera_id)
            self.cap.release()
            self.cap = None
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        # Buffer of 1 for minimum latency
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        # Actual resolution may differ from requested
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

        logger.info("Camera started: %dx%d @ %dfps", self.width, self.height, self.fps)

        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()
        return True

    def _capture_loop(self):
        while self._running:
            ret, frame = self.cap.read()
            if ret:
                with self._frame_lock:
                    self._frame = frame
                    self._frame_seq += 1
            else:
                time.sleep(0.001)

    def get_new_frame(self, last_seq: int) -> Tuple[int, Optional[np.ndarray]]:
        """
        Latest frame if it was captured after frame number last_seq.

        Returns:
            (sequence number, frame copy), or (last_seq, None) when no
            new frame has arrived yet
        """
        with self._frame_lock:
            if self._frame is None or self._frame_seq == last_seq:
                return last_seq, None
            return self._frame_seq, self._frame.copy()

    def stop(self):
        """Stop the capture thread and release the device."""
        self._running = False

        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
