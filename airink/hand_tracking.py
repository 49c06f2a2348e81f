"""
Hand Tracking Module - Landmarks and Finger States
==================================================
Turns the 21 normalized hand landmarks produced by a pose estimator into
per-finger "extended" flags. Also wraps the MediaPipe Hand Landmarker
(Tasks API, VIDEO mode) that supplies those landmarks in the live app.
"""

import math
import time
import logging
import urllib.request
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional, Tuple, List, Sequence, Any

import cv2
import numpy as np


logger = logging.getLogger(__name__)

LANDMARK_COUNT = 21

# Added to the cosine denominator so a zero-length bone never divides by zero
EPSILON = 1e-9


class LandmarkError(ValueError):
    """Raised when a frame does not hold 21 well-formed normalized landmarks."""


class HandLandmark(IntEnum):
    """
    MediaPipe hand landmark indices.
    Reference: https://mediapipe.dev/images/mobile/hand_landmarks.png
    """
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# (tip, pip, mcp) for the fingers judged by joint angle
FINGER_JOINTS = {
    'index': (HandLandmark.INDEX_TIP, HandLandmark.INDEX_PIP, HandLandmark.INDEX_MCP),
    'middle': (HandLandmark.MIDDLE_TIP, HandLandmark.MIDDLE_PIP, HandLandmark.MIDDLE_MCP),
    'ring': (HandLandmark.RING_TIP, HandLandmark.RING_PIP, HandLandmark.RING_MCP),
    'pinky': (HandLandmark.PINKY_TIP, HandLandmark.PINKY_PIP, HandLandmark.PINKY_MCP),
}

HAND_CONNECTIONS = [
    # Thumb
    (HandLandmark.WRIST, HandLandmark.THUMB_CMC),
    (HandLandmark.THUMB_CMC, HandLandmark.THUMB_MCP),
    (HandLandmark.THUMB_MCP, HandLandmark.THUMB_IP),
    (HandLandmark.THUMB_IP, HandLandmark.THUMB_TIP),
    # Index
    (HandLandmark.WRIST, HandLandmark.INDEX_MCP),
    (HandLandmark.INDEX_MCP, HandLandmark.INDEX_PIP),
    (HandLandmark.INDEX_PIP, HandLandmark.INDEX_DIP),
    (HandLandmark.INDEX_DIP, HandLandmark.INDEX_TIP),
    # Middle
    (HandLandmark.WRIST, HandLandmark.MIDDLE_MCP),
    (HandLandmark.MIDDLE_MCP, HandLandmark.MIDDLE_PIP),
    (HandLandmark.MIDDLE_PIP, HandLandmark.MIDDLE_DIP),
    (HandLandmark.MIDDLE_DIP, HandLandmark.MIDDLE_TIP),
    # Ring
    (HandLandmark.WRIST, HandLandmark.RING_MCP),
    (HandLandmark.RING_MCP, HandLandmark.RING_PIP),
    (HandLandmark.RING_PIP, HandLandmark.RING_DIP),
    (HandLandmark.RING_DIP, HandLandmark.RING_TIP),
    # Pinky
    (HandLandmark.WRIST, HandLandmark.PINKY_MCP),
    (HandLandmark.PINKY_MCP, HandLandmark.PINKY_PIP),
    (HandLandmark.PINKY_PIP, HandLandmark.PINKY_DIP),
    (HandLandmark.PINKY_DIP, HandLandmark.PINKY_TIP),
    # Palm
    (HandLandmark.INDEX_MCP, HandLandmark.MIDDLE_MCP),
    (HandLandmark.MIDDLE_MCP, HandLandmark.RING_MCP),
    (HandLandmark.RING_MCP, HandLandmark.PINKY_MCP),
]

FINGERTIPS = (
    HandLandmark.THUMB_TIP, HandLandmark.INDEX_TIP, HandLandmark.MIDDLE_TIP,
    HandLandmark.RING_TIP, HandLandmark.PINKY_TIP
)


@dataclass(frozen=True)
class Landmark:
    """A single normalized keypoint (x, y in [0, 1])."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class FingerState:
    """Per-finger extended flags for one frame."""
    thumb: bool = False
    index: bool = False
    middle: bool = False
    ring: bool = False
    pinky: bool = False

    def as_tuple(self) -> Tuple[bool, bool, bool, bool, bool]:
        return (self.thumb, self.index, self.middle, self.ring, self.pinky)

    def count(self) -> int:
        """Number of extended fingers."""
        return sum(self.as_tuple())


def to_landmarks(points: Any) -> List[Landmark]:
    """
    Validate one frame of pose-estimator output.

    Accepts MediaPipe landmark objects (anything with .x/.y), (x, y) or
    (x, y, z) sequences, or an array of shape (21, 2|3).

    Raises:
        LandmarkError: wrong count, non-numeric, non-finite or out-of-range
            coordinates
    """
    if points is None:
        raise LandmarkError("no landmarks supplied")

    try:
        count = len(points)
    except TypeError:
        raise LandmarkError(f"landmarks must be a sequence, got {type(points).__name__}")
    if count != LANDMARK_COUNT:
        raise LandmarkError(f"expected {LANDMARK_COUNT} landmarks, got {count}")

    landmarks = []
    for idx, point in enumerate(points):
        try:
            if hasattr(point, 'x'):
                x, y = float(point.x), float(point.y)
                z = float(getattr(point, 'z', 0.0) or 0.0)
            else:
                x, y = float(point[0]), float(point[1])
                z = float(point[2]) if len(point) > 2 else 0.0
        except (TypeError, ValueError, IndexError):
            raise LandmarkError(f"landmark {idx} is not a 2D point: {point!r}")

        if not (math.isfinite(x) and math.isfinite(y)):
            raise LandmarkError(f"landmark {idx} has non-finite coordinates")
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            raise LandmarkError(f"landmark {idx} outside [0, 1]: ({x:.3f}, {y:.3f})")

        landmarks.append(Landmark(x, y, z))

    return landmarks


def mirror_landmarks(landmarks: Sequence[Landmark]) -> List[Landmark]:
    """Flip the horizontal axis (x' = 1 - x) for selfie-view input."""
    return [Landmark(1.0 - lm.x, lm.y, lm.z) for lm in landmarks]


def _coords(landmarks: Sequence[Landmark]) -> np.ndarray:
    return np.array([[lm.x, lm.y] for lm in landmarks], dtype=np.float64)


def _finger_cosine(coords: np.ndarray, tip: int, pip: int, mcp: int) -> float:
    """Cosine of the angle at the PIP joint between PIP->TIP and PIP->MCP."""
    to_tip = coords[tip] - coords[pip]
    to_mcp = coords[mcp] - coords[pip]
    denom = np.linalg.norm(to_tip) * np.linalg.norm(to_mcp) + EPSILON
    return float(np.dot(to_tip, to_mcp) / denom)


def extract_finger_states(
    landmarks: Sequence[Landmark],
    cos_threshold: float = -0.6,
    thumb_ratio: float = 0.7
) -> FingerState:
    """
    Determine which fingers are extended.

    Index to pinky: extended when the finger is held nearly straight, i.e.
    the TIP and MCP lie in roughly opposite directions from the PIP joint
    (cosine of the joint angle <= cos_threshold). A zero-length bone gives a
    cosine of 0 and so reads as retracted.

    Thumb: extended when the TIP-IP distance exceeds thumb_ratio times the
    TIP-MCP distance. Its joints do not follow the straight-chain model.

    Args:
        landmarks: 21 validated landmarks (see to_landmarks)
        cos_threshold: Joint cosine at or below which a finger is straight
        thumb_ratio: Distance ratio for the thumb

    Returns:
        FingerState for this frame
    """
    coords = _coords(landmarks)

    states = {
        finger: _finger_cosine(coords, tip, pip, mcp) <= cos_threshold
        for finger, (tip, pip, mcp) in FINGER_JOINTS.items()
    }

    tip = coords[HandLandmark.THUMB_TIP]
    tip_to_ip = np.linalg.norm(tip - coords[HandLandmark.THUMB_IP])
    tip_to_mcp = np.linalg.norm(tip - coords[HandLandmark.THUMB_MCP])
    states['thumb'] = bool(tip_to_ip > thumb_ratio * tip_to_mcp)

    return FingerState(**{name: bool(value) for name, value in states.items()})


def draw_landmarks(
    frame: np.ndarray,
    landmarks: Sequence[Landmark],
    draw_connections: bool = True,
    landmark_color: Tuple[int, int, int] = (0, 255, 0),
    connection_color: Tuple[int, int, int] = (255, 255, 255),
    thickness: int = 2
) -> np.ndarray:
    """
    Draw hand landmarks on frame.

    Args:
        frame: BGR image to draw on
        landmarks: 21 normalized landmarks
        draw_connections: Whether to draw bones between landmarks
        landmark_color: BGR color for joints
        connection_color: BGR color for bones
        thickness: Line thickness

    Returns:
        Frame with landmarks drawn
    """
    h, w = frame.shape[:2]
    pixels = [(int(lm.x * w), int(lm.y * h)) for lm in landmarks]

    if draw_connections:
        for start, end in HAND_CONNECTIONS:
            cv2.line(frame, pixels[start], pixels[end], connection_color, thickness)

    for idx, point in enumerate(pixels):
        if idx in FINGERTIPS:
            color, radius = (0, 0, 255), 8  # Red for fingertips
        else:
            color, radius = landmark_color, 5
        cv2.circle(frame, point, radius, color, -1)
        cv2.circle(frame, point, radius, (0, 0, 0), 1)

    return frame


@dataclass
class HandData:
    """
    One detected hand.

    Attributes:
        landmarks: 21 normalized landmarks, clamped to [0, 1]
        handedness: 'Left' or 'Right'
        confidence: Handedness score from the detector
    """
    landmarks: List[Landmark]
    handedness: str
    confidence: float


MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


def _download_model(model_path: Path) -> None:
    """Download the hand landmarker model if not present."""
    logger.info("Downloading hand landmarker model...")
    model_path.parent.mkdir(parents=True, exist_ok=True)
    urllib.request.urlretrieve(MODEL_URL, model_path)
    logger.info("Model downloaded to %s", model_path)


class HandTracker:
    """
    Hand tracking using MediaPipe Hand Landmarker (Tasks API).

    Uses VIDEO running mode, which tracks between sequential frames and
    skips full palm detection on most of them.
    """

    def __init__(
        self,
        max_hands: int = 1,
        min_detection_confidence: float = 0.7,
        min_tracking_confidence: float = 0.7,
        model_path: Optional[Path] = None
    ):
        """
        Initialize the hand tracker.

        Args:
            max_hands: Maximum number of hands to detect
            min_detection_confidence: Minimum confidence for detection
            min_tracking_confidence: Minimum confidence for tracking
            model_path: Landmarker .task file (downloaded when missing)
        """
        import mediapipe as mp
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        self._mp = mp
        self.max_hands = max_hands

        self._model_path = model_path or (
            Path(__file__).parent.parent / "models" / "hand_landmarker.task"
        )
        if not self._model_path.exists():
            _download_model(self._model_path)

        base_options = python.BaseOptions(model_asset_path=str(self._model_path))
        options = vision.HandLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_hands=max_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            min_hand_presence_confidence=min_detection_confidence
        )
        self.detector = vision.HandLandmarker.create_from_options(options)

        # VIDEO mode requires monotonically increasing timestamps
        self._start_time = time.monotonic()
        self._last_timestamp_ms = -1

    def process(self, frame: np.ndarray) -> List[HandData]:
        """
        Detect hands in a BGR frame.

        Returns:
            List of HandData, empty when no hand is visible
        """
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb_frame)

        timestamp_ms = int((time.monotonic() - self._start_time) * 1000)
        timestamp_ms = max(timestamp_ms, self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        results = self.detector.detect_for_video(mp_image, timestamp_ms)

        hands_data = []
        for idx, hand_landmarks in enumerate(results.hand_landmarks or []):
            handedness = "Right"
            confidence = 0.0
            if results.handedness and idx < len(results.handedness):
                hand_info = results.handedness[idx]
                if hand_info:
                    handedness = hand_info[0].category_name
                    confidence = hand_info[0].score

            # Clamp: landmarks of a partially off-frame hand leave [0, 1]
            landmarks = [
                Landmark(
                    x=min(max(lm.x, 0.0), 1.0),
                    y=min(max(lm.y, 0.0), 1.0),
                    z=getattr(lm, 'z', 0.0) or 0.0
                )
                for lm in hand_landmarks
            ]
            hands_data.append(HandData(landmarks, handedness, confidence))

        return hands_data

    def release(self):
        """Release resources."""
        if self.detector:
            self.detector.close()
            self.detector = None
